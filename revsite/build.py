"""Site building for Revsite.

Runs the asset pipeline, renders every page with the asset resolver in
place, and writes the output directory: pages, passthrough directories,
the feed and the deployment files.

Pages are all rendered before anything is written, so a failing page (for
example one that references an asset missing from the manifest) leaves the
previous output untouched.

Key functions:
- build_site: Build the whole site.
- load_data: Load global template data from YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateSyntaxError

from .asset_processors import create_default_registry
from .asset_resolver import ManifestAssetResolver
from .assets import AssetPipeline
from .config import SiteConfig, load_config
from .content import ContentProcessor, FrontmatterError, Page
from .deploy import write_deploy_files
from .feeds import create_default_feed_registry
from .templates import TemplateEngine
from .utils import absolutize_html_urls, ensure_clean_dir


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: File that caused the error.
        message: Human-readable error message.
        original_error: The underlying exception.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        pages: Pages that were rendered.
        output_dir: Directory the site was written to.
        data: Global site data.
        manifests: Asset manifests written by this build, per category.
    """

    pages: list[Page]
    output_dir: Path
    data: dict[str, Any]
    manifests: dict[str, dict[str, str]] = field(default_factory=dict)


def load_data(data_dir: Path) -> dict[str, Any]:
    """Load YAML data files; ``site.yaml`` is merged at the top level."""
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        with open(path, encoding="utf-8") as f:
            payload = yaml.safe_load(f)
        if payload is None:
            continue
        if path.name == "site.yaml":
            if isinstance(payload, dict):
                data.update(payload)
        else:
            data[path.stem] = payload
    return data


def create_resolver(config: SiteConfig) -> ManifestAssetResolver:
    return ManifestAssetResolver(
        config.asset_root_path,
        category_dirs=config.category_dirs(),
        manifest_name=config.manifest_name,
    )


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    build_assets: bool = True,
    config: SiteConfig | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft pages.
        root_url: Base URL to absolutize links with, overriding the config.
        clean_output: Whether to wipe the output directory first.
        output_dir_override: Write output here instead of the configured dir.
        build_assets: Whether to run the asset pipeline first.
        config: Preloaded configuration; loaded from the project if omitted.

    Returns:
        BuildResult with the rendered pages.

    Raises:
        BuildError: If a page cannot be loaded or rendered.
        FileNotFoundError: If the site directory does not exist.
    """
    config = config or load_config(project_root)
    if root_url is not None:
        config.root_url = root_url.rstrip("/")
    site_dir = config.site_path
    if not site_dir.exists():
        raise FileNotFoundError(f"Expected site directory at {site_dir}")

    manifests = AssetPipeline(config).run() if build_assets else {}

    data = load_data(config.data_path)
    if config.root_url:
        data.setdefault("root_url", config.root_url)
    try:
        pages = ContentProcessor(site_dir, skip_dirs=config.passthrough).load(
            include_drafts=include_drafts
        )
    except FrontmatterError as exc:
        raise BuildError(exc.path, str(exc), exc) from exc

    engine = TemplateEngine(config, data, create_resolver(config))
    engine.update_collections(pages)
    rendered = [(page, _render(engine, page, config.root_url)) for page in pages]

    output_dir = output_dir_override or config.output_path
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    for page, html in rendered:
        target = output_dir / page.output_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(html, encoding="utf-8")

    registry = create_default_registry(config.manifest_name)
    category_dirs = config.category_dirs()
    for name in config.passthrough:
        source = category_dirs.get(name, site_dir / name)
        registry.copy_tree(source, output_dir / name)

    create_default_feed_registry(config.feed).generate_all(output_dir, pages, data)
    write_deploy_files(config, output_dir)
    return BuildResult(pages=pages, output_dir=output_dir, data=data, manifests=manifests)


def _render(engine: TemplateEngine, page: Page, root_url: str) -> str:
    try:
        html = engine.render_page(page)
    except TemplateSyntaxError as exc:
        raise BuildError(
            page.path,
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise BuildError(page.path, _format_error_message(exc), exc) from exc
    if root_url:
        html = absolutize_html_urls(html, root_url)
    return html


def _format_error_message(exc: Exception) -> str:
    """Format an exception raised while rendering for the console."""
    error_type = type(exc).__name__
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    return f"{error_type}: {exc}"
