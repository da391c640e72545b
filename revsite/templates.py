"""Template rendering engine for Revsite.

Uses Jinja2 to render page bodies and wrap them in layouts. The asset
resolver is exposed to every template, so layouts reference revisioned
assets by their logical names::

    <link rel="stylesheet" href="{{ asset('css', 'main.css') }}">
    <script src="{{ assets.js.main }}"></script>

Resolution errors are not caught here: a missing manifest or unknown asset
aborts the build.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date as date_type
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .asset_resolver import AssetNamespace, ManifestAssetResolver
from .collections import Collections, PageCollection
from .config import SiteConfig
from .content import Page
from .renderers import pygments_css, render_markdown
from .utils import join_root_url

XML_PROLOG_RE = re.compile(r"^\s*<\?xml[^>]*\?>\s*", re.IGNORECASE)


def format_date(value: Any, fmt: str | None = None) -> str:
    """Format a date, by default as "January 5, 2024"."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, (datetime, date_type)):
        raise TypeError(f"date filter expects a date, got {type(value).__name__}")
    if fmt:
        return value.strftime(fmt)
    return f"{value:%B} {value.day}, {value.year}"


def first_paragraph(html: str) -> Markup:
    """Return rendered HTML up to and including the first closing ``</p>``."""
    head, sep, _ = str(html).partition("</p>")
    return Markup(head + sep)


class TemplateEngine:
    """Renders pages with Jinja2.

    Attributes:
        config: Site configuration.
        data: Global data from the data directory.
        resolver: Asset resolver used by ``asset()`` and ``assets``.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        config: SiteConfig,
        data: dict[str, Any],
        resolver: ManifestAssetResolver,
    ):
        self.config = config
        self.data = data
        self.resolver = resolver
        site_dir = config.site_path
        self.env = Environment(
            loader=FileSystemLoader(
                [site_dir / "_layouts", site_dir / "_includes", site_dir]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self.pages = PageCollection([])
        self.collections = Collections()
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals.update(
            {
                "data": self.data,
                "env": dict(self.config.env),
                "asset": self.resolver.resolve,
                "assets": AssetNamespace(self.resolver),
                "url_for": self.url_for,
                "pygments_css": pygments_css,
                "pages": self.pages,
                "collections": self.collections,
            }
        )
        self.env.filters["date"] = format_date
        self.env.filters["first_paragraph"] = first_paragraph
        self.env.filters["svg_contents"] = self.svg_contents

    def update_collections(self, pages: Iterable[Page]) -> None:
        pages = list(pages)
        self.pages = PageCollection(pages)
        self.collections = Collections.from_pages(pages)
        self.env.globals["pages"] = self.pages
        self.env.globals["collections"] = self.collections

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://", "//")):
            return path
        path = path if path.startswith("/") else f"/{path}"
        return join_root_url(self.config.root_url, path)

    def svg_contents(self, path: str) -> Markup:
        """Inline an SVG file, looked up in the site dir then the project root."""
        for base in (self.config.site_path, self.config.project_root):
            candidate = base / path.lstrip("/")
            if candidate.is_file():
                svg = candidate.read_text(encoding="utf-8")
                return Markup(XML_PROLOG_RE.sub("", svg).strip())
        raise FileNotFoundError(f"SVG file not found: {path}")

    def render_page(self, page: Page) -> str:
        """Render a page body and wrap it in its layout.

        Also stores the rendered body on ``page.content`` for feeds and
        listing pages.
        """
        context = {"page": page, "frontmatter": page.frontmatter}
        page.content = self._render_body(page, context)
        layout = self._resolve_layout(page.layout)
        if layout is None:
            return page.content
        return layout.render(content=Markup(page.content), **context)

    def _render_body(self, page: Page, context: dict[str, Any]) -> str:
        if page.source_type == "html":
            return page.body
        rendered = self.env.from_string(page.body).render(**context)
        if page.source_type == "markdown":
            html, page.toc = render_markdown(rendered)
            return html
        return rendered

    def _resolve_layout(self, layout: str) -> Template | None:
        names = [layout]
        if layout != "default":
            names.append("default")
        for name in names:
            for candidate in (f"{name}.html.jinja", f"{name}.jinja", f"{name}.html", name):
                try:
                    return self.env.get_template(candidate)
                except TemplateNotFound:
                    continue
        return None