"""Site configuration for Revsite.

Configuration is read once per run from ``revsite.yaml`` in the project
root and combined with a snapshot of the environment variables the site
declares under ``env:``. The resulting SiteConfig is passed explicitly to
the asset pipeline, the resolver and the template engine instead of each
of them reading files or ``os.environ`` on their own.

Example ``revsite.yaml``::

    title: My Site
    output_dir: dist
    env:
      - GOOGLE_ANALYTICS_ID
      - CONTACT_EMAIL
    redirects:
      /resume: /assets/resume.pdf
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .asset_resolver import DEFAULT_MANIFEST_NAME

CONFIG_FILENAME = "revsite.yaml"


class ConfigError(Exception):
    """Error raised for an invalid ``revsite.yaml``.

    Attributes:
        key: Configuration key holding the invalid value.
    """

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{CONFIG_FILENAME}: '{key}' {message}")


@dataclass
class FeedConfig:
    """Settings for the generated feed."""

    path: str = "feed.xml"
    group: str = "posts"
    title: str | None = None
    limit: int = 20


@dataclass
class SiteConfig:
    """Immutable-by-convention settings for one build run.

    Attributes:
        project_root: Root directory of the project.
        input_dir: Content directory, relative to the root.
        output_dir: Directory the generated site is written to.
        data_dir: Directory of YAML data files.
        css_dir: Stylesheet sources.
        js_dir: Script sources.
        js_bundle: Logical name of the concatenated script bundle.
        minify_js: Whether to minify the bundle with rjsmin.
        asset_root: Parent directory of the generated category directories.
        asset_categories: Revisioned asset categories.
        manifest_name: Filename of each category manifest.
        passthrough: Directories under input_dir copied verbatim.
        root_url: Base URL prepended to root-relative links, if set.
        port: Dev server HTTP port.
        ws_port: Dev server websocket port (defaults to port + 1).
        feed: Feed settings.
        redirects: Redirect source path to target.
        headers: Path pattern to header name/value pairs.
        env: Captured environment values exposed to templates and scripts.
        extra: Unrecognized top-level keys.
    """

    project_root: Path
    input_dir: str = "site"
    output_dir: str = "dist"
    data_dir: str = "data"
    css_dir: str = "css"
    js_dir: str = "js"
    js_bundle: str = "main.js"
    minify_js: bool = True
    asset_root: str | None = None
    asset_categories: tuple[str, ...] = ("css", "js")
    manifest_name: str = DEFAULT_MANIFEST_NAME
    passthrough: tuple[str, ...] = ("images", "css", "js")
    root_url: str = ""
    port: int = 4000
    ws_port: int | None = None
    feed: FeedConfig = field(default_factory=FeedConfig)
    redirects: dict[str, str] = field(default_factory=dict)
    headers: dict[str, dict[str, str]] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def site_path(self) -> Path:
        return self.project_root / self.input_dir

    @property
    def output_path(self) -> Path:
        return self.project_root / self.output_dir

    @property
    def data_path(self) -> Path:
        return self.project_root / self.data_dir

    @property
    def asset_root_path(self) -> Path:
        return self.project_root / (self.asset_root or self.input_dir)

    def category_dirs(self) -> dict[str, Path]:
        """Return the directory holding each category's revisioned files."""
        root = self.asset_root_path
        return {category: root / category for category in self.asset_categories}


_SIMPLE_KEYS = {
    "input_dir": str,
    "output_dir": str,
    "data_dir": str,
    "css_dir": str,
    "js_dir": str,
    "js_bundle": str,
    "minify_js": bool,
    "asset_root": str,
    "manifest_name": str,
    "root_url": str,
    "port": int,
    "ws_port": int,
}


def load_config(
    project_root: Path, environ: Mapping[str, str] | None = None
) -> SiteConfig:
    """Load site configuration from revsite.yaml.

    Args:
        project_root: Root directory of the project.
        environ: Environment to snapshot; defaults to ``os.environ``.

    Returns:
        SiteConfig with defaults applied for missing keys.

    Raises:
        ConfigError: If a known key has a value of the wrong shape.
    """
    config_path = project_root / CONFIG_FILENAME
    loaded: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
        if isinstance(payload, dict):
            loaded = payload

    config = SiteConfig(project_root=project_root)
    for key, kind in _SIMPLE_KEYS.items():
        if key in loaded and loaded[key] is not None:
            value = loaded.pop(key)
            if kind is bool:
                setattr(config, key, bool(value))
            else:
                try:
                    setattr(config, key, kind(value))
                except (TypeError, ValueError) as exc:
                    raise ConfigError(key, f"must be {kind.__name__}") from exc
    config.root_url = config.root_url.rstrip("/") if config.root_url else ""

    for key in ("asset_categories", "passthrough"):
        if key in loaded:
            setattr(config, key, tuple(_string_list(key, loaded.pop(key))))

    if "feed" in loaded:
        config.feed = _feed_config(loaded.pop("feed"))
    if "redirects" in loaded:
        config.redirects = _string_map("redirects", loaded.pop("redirects"))
    if "headers" in loaded:
        raw_headers = loaded.pop("headers") or {}
        if not isinstance(raw_headers, dict):
            raise ConfigError("headers", "must be a mapping of path to headers")
        config.headers = {
            str(path): _string_map(f"headers.{path}", values)
            for path, values in raw_headers.items()
        }

    names = _string_list("env", loaded.pop("env", []))
    source = os.environ if environ is None else environ
    config.env = {name: source[name] for name in names if name in source}

    config.extra = loaded
    return config


def _string_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError(key, "must be a list")
    return [str(item) for item in value]


def _string_map(key: str, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(key, "must be a mapping")
    return {str(k): str(v) for k, v in value.items()}


def _feed_config(value: Any) -> FeedConfig:
    if value is None:
        return FeedConfig()
    if not isinstance(value, dict):
        raise ConfigError("feed", "must be a mapping")
    feed = FeedConfig()
    for name in ("path", "group", "title"):
        if value.get(name) is not None:
            setattr(feed, name, str(value[name]))
    if value.get("limit") is not None:
        try:
            feed.limit = int(value["limit"])
        except (TypeError, ValueError) as exc:
            raise ConfigError("feed.limit", "must be int") from exc
    return feed
