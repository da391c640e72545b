"""Passthrough asset processors for Revsite.

Directories such as ``site/images`` and the generated ``site/css`` and
``site/js`` are copied into the output as they are. Each file goes through
the first registered processor that accepts it, so new file types can be
handled by registering another processor.

Key classes:
- ImageProcessor: Re-saves raster images optimized with Pillow.
- ManifestProcessor: Keeps revision manifests out of the published site.
- StaticAssetProcessor: Copies any other file unchanged.
- AssetProcessorRegistry: Priority-ordered processor lookup.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image

from .asset_resolver import DEFAULT_MANIFEST_NAME


class BaseAssetProcessor(ABC):
    """Base class for passthrough processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor handles the given file."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Publish ``source`` at ``dest``.

        Returns:
            True if a file was written.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images with Pillow.

    Files Pillow cannot open are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                img.save(dest, optimize=True)
        except (OSError, ValueError) as exc:
            print(f"Could not optimize {source.name} ({exc}); copying as-is.")
            shutil.copy2(source, dest)
        return True


class ManifestProcessor(BaseAssetProcessor):
    """Skips revision manifests, which are build metadata only."""

    def __init__(self, manifest_name: str = DEFAULT_MANIFEST_NAME):
        self.manifest_name = manifest_name

    @property
    def priority(self) -> int:
        return 200

    def can_process(self, path: Path) -> bool:
        return path.name == self.manifest_name

    def process(self, source: Path, dest: Path) -> bool:
        return False


class StaticAssetProcessor(BaseAssetProcessor):
    """Fallback processor that copies files unchanged."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return True


class AssetProcessorRegistry:
    """Registry selecting the highest-priority processor for each file."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False

    def copy_tree(self, source_dir: Path, dest_dir: Path) -> list[Path]:
        """Publish every file under ``source_dir`` into ``dest_dir``.

        Returns:
            Destination paths that were written.
        """
        written: list[Path] = []
        if not source_dir.is_dir():
            return written
        for item in sorted(source_dir.rglob("*")):
            if item.is_dir():
                continue
            dest = dest_dir / item.relative_to(source_dir)
            if self.process(item, dest):
                written.append(dest)
        return written


def create_default_registry(
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> AssetProcessorRegistry:
    """Create a registry with the default passthrough processors."""
    registry = AssetProcessorRegistry()
    registry.register(ManifestProcessor(manifest_name))
    registry.register(ImageProcessor())
    registry.register(StaticAssetProcessor())
    return registry
