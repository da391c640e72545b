"""Manifest-backed asset resolver for Revsite.

The asset pipeline writes content-hashed files plus one ``rev-manifest.json``
per asset category (for example ``site/css/rev-manifest.json``). Templates
never hard-code those hashes: they ask this resolver for the public path of a
logical name such as ``main.css`` and get back ``/css/main-1a2b3c4d5e.css``.

Key classes:
- ManifestAssetResolver: Resolves (category, logical name) pairs to URLs.
- AssetNamespace: Attribute-style access for templates (``assets.css.main``).
- AssetResolutionError: Base error; see ManifestUnreadableError and
  UnknownAssetError.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

DEFAULT_MANIFEST_NAME = "rev-manifest.json"


class AssetResolutionError(Exception):
    """Error raised when an asset reference cannot be resolved.

    Attributes:
        category: Asset category that was consulted (e.g. "css").
        logical_name: Logical filename requested by the template.
        manifest_path: Manifest file that was read (or should have been).
    """

    def __init__(
        self,
        category: str,
        logical_name: str,
        manifest_path: Path,
        message: str,
    ):
        self.category = category
        self.logical_name = logical_name
        self.manifest_path = manifest_path
        super().__init__(message)


class ManifestUnreadableError(AssetResolutionError):
    """The category manifest is missing, unreadable or malformed."""

    def __init__(
        self, category: str, logical_name: str, manifest_path: Path, reason: str
    ):
        self.reason = reason
        super().__init__(
            category,
            logical_name,
            manifest_path,
            f"Cannot resolve asset /{category}/{logical_name}: "
            f"manifest for category '{category}' at {manifest_path} "
            f"is unreadable ({reason})",
        )


class UnknownAssetError(AssetResolutionError):
    """The manifest was read but has no revision for the logical name."""

    def __init__(self, category: str, logical_name: str, manifest_path: Path):
        super().__init__(
            category,
            logical_name,
            manifest_path,
            f"No revision found for asset /{category}/{logical_name} "
            f"(category '{category}', manifest {manifest_path})",
        )


class ManifestAssetResolver:
    """Resolves logical asset names to their revisioned public paths.

    Each call re-reads the category manifest, so a manifest rewritten by the
    asset pipeline mid-run is always picked up and nothing is shared between
    categories.

    Attributes:
        manifest_root: Directory holding one sub-directory per category.
        manifest_name: Filename of the manifest inside each category dir.
        category_dirs: Explicit category to directory overrides.
    """

    def __init__(
        self,
        manifest_root: Path,
        category_dirs: Mapping[str, Path] | None = None,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
    ):
        """Initialize the resolver.

        Args:
            manifest_root: Default parent directory of the category dirs.
            category_dirs: Optional mapping of category to manifest directory.
                Categories not listed fall back to ``manifest_root / category``.
            manifest_name: Manifest filename inside each category directory.
        """
        self.manifest_root = Path(manifest_root)
        self.category_dirs = {k: Path(v) for k, v in (category_dirs or {}).items()}
        self.manifest_name = manifest_name

    def manifest_path(self, category: str) -> Path:
        """Return the manifest file consulted for a category."""
        directory = self.category_dirs.get(category, self.manifest_root / category)
        return directory / self.manifest_name

    def load_manifest(self, category: str, logical_name: str = "*") -> dict[str, str]:
        """Read and validate the manifest for a category.

        Args:
            category: Asset category to load.
            logical_name: Name being resolved, only used in error messages.

        Returns:
            Mapping of logical filename to deployed filename.

        Raises:
            ManifestUnreadableError: If the file is missing or malformed.
        """
        path = self.manifest_path(category)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ManifestUnreadableError(
                category, logical_name, path, exc.strerror or str(exc)
            ) from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestUnreadableError(
                category, logical_name, path, f"invalid UTF-8: {exc}"
            ) from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestUnreadableError(
                category, logical_name, path, f"invalid JSON: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise ManifestUnreadableError(
                category,
                logical_name,
                path,
                f"expected a JSON object, got {type(payload).__name__}",
            )
        for key, value in payload.items():
            if not isinstance(value, str):
                raise ManifestUnreadableError(
                    category,
                    logical_name,
                    path,
                    f"value for '{key}' is not a string",
                )
        return payload

    def resolve(self, category: str, logical_name: str) -> str:
        """Resolve a logical asset name to its public URL path.

        Args:
            category: Asset category (e.g. "css", "js").
            logical_name: Pre-hash filename (e.g. "main.css").

        Returns:
            Path of the form ``/<category>/<deployed filename>``.

        Raises:
            ManifestUnreadableError: If the category manifest cannot be read.
            UnknownAssetError: If the manifest has no entry for the name.
        """
        manifest = self.load_manifest(category, logical_name)
        revision = manifest.get(logical_name)
        if not revision:
            raise UnknownAssetError(category, logical_name, self.manifest_path(category))
        return f"/{category}/{revision}"


class _CategoryAssets:
    """Template helper bound to a single category."""

    def __init__(self, resolver: ManifestAssetResolver, category: str, extension: str):
        self._resolver = resolver
        self._category = category
        self._extension = extension

    def __getattr__(self, stem: str) -> str:
        if stem.startswith("_"):
            raise AttributeError(stem)
        return self._resolver.resolve(self._category, f"{stem}.{self._extension}")

    def __getitem__(self, logical_name: str) -> str:
        return self._resolver.resolve(self._category, logical_name)


class AssetNamespace:
    """Attribute-style asset lookups for templates.

    ``assets.css.main`` resolves ``main.css`` in the ``css`` category and
    ``assets.js["vendor.min.js"]`` resolves an exact logical name. The file
    extension used for attribute access defaults to the category name.
    """

    def __init__(
        self,
        resolver: ManifestAssetResolver,
        extensions: Mapping[str, str] | None = None,
    ):
        self._resolver = resolver
        self._extensions = dict(extensions or {})

    def __getattr__(self, category: str) -> _CategoryAssets:
        if category.startswith("_"):
            raise AttributeError(category)
        return self[category]

    def __getitem__(self, category: str) -> _CategoryAssets:
        extension = self._extensions.get(category, category)
        return _CategoryAssets(self._resolver, category, extension)
