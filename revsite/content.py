"""Content loading for Revsite.

Discovers Markdown, Jinja and HTML pages under the site directory and turns
each into a Page. Page metadata comes from YAML front matter, with
fallbacks to the first heading, a date-prefixed filename and the file's
modification time. Rendering happens later in the template engine, so that
Markdown bodies can use template helpers such as ``asset()``.

Key classes:
- Page: A site page and its metadata.
- FileContentLoader: Finds content files.
- LayoutResolver: Picks the layout template for a page.
- PageBuilder: Builds Page objects from files.
- ContentProcessor: Loads all pages of a site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date as date_type
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .renderers import Heading
from .utils import (
    extract_date_from_name,
    is_html,
    is_markdown,
    is_template,
    slugify,
    titleize,
)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)


class FrontmatterError(Exception):
    """Front matter that is not valid YAML or not a mapping.

    Attributes:
        path: Source file containing the front matter.
    """

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: invalid front matter ({message})")


@dataclass
class Page:
    """A site page.

    Attributes:
        title: Page title.
        body: Source body without front matter.
        url: Public URL path, always ending in "/" unless a permalink
            names a file.
        slug: URL slug.
        date: Publication date.
        tags: Tags from front matter.
        draft: Whether the page is a draft.
        layout: Layout template name.
        group: First folder under the site directory (e.g. "posts").
        path: Source file path.
        folder: Folder relative to the site directory.
        source_type: "markdown", "jinja" or "html".
        description: Summary from front matter or the first paragraph.
        frontmatter: Raw front matter mapping.
        content: Rendered HTML body, filled in by the template engine.
        toc: Headings of the rendered Markdown body.
    """

    title: str
    body: str
    url: str
    slug: str
    date: datetime
    tags: list[str]
    draft: bool
    layout: str
    group: str
    path: Path
    folder: str
    source_type: str
    description: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    toc: list[Heading] = field(default_factory=list)

    @property
    def output_path(self) -> Path:
        """Output file path relative to the output directory."""
        target = self.url.strip("/")
        if target and not self.url.endswith("/") and Path(target).suffix:
            return Path(target)
        return Path(target) / "index.html"


def extract_frontmatter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from the body.

    Raises:
        FrontmatterError: If the front matter is not a YAML mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise FrontmatterError(path, str(exc)) from exc
    if not isinstance(data, dict):
        raise FrontmatterError(path, "expected a mapping")
    return data, text[match.end() :]


def first_paragraph_text(text: str, limit: int = 160) -> str:
    """Return the first prose paragraph of Markdown as plain text."""
    for para in (p.strip() for p in text.split("\n\n")):
        if not para or para.startswith(("#", "![", "```", "{%", "<")):
            continue
        plain = re.sub(r"<[^>]+>|\{[%{#].*?[%}#]\}", "", para)
        plain = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", plain)
        return " ".join(plain.split())[:limit]
    return ""


def _content_stem(path: Path) -> str:
    name = path.name.lstrip("_")
    for suffix in (".html.jinja", ".jinja", ".md", ".html"):
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _coerce_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date_type):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _coerce_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(tag) for tag in value]


class FileContentLoader:
    """Finds content files under the site directory.

    Folders starting with "_" and the passthrough folders are skipped;
    files starting with "_" are drafts and only returned on request.
    """

    def __init__(self, site_dir: Path, skip_dirs: tuple[str, ...] = ()):
        self.site_dir = site_dir
        self.skip_dirs = set(skip_dirs)

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.site_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.site_dir)
            folders = rel.parts[:-1]
            if any(part.startswith("_") for part in folders):
                continue
            if folders and folders[0] in self.skip_dirs:
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            if is_markdown(path) or is_template(path) or is_html(path):
                files.append(path)
        return files


class LayoutResolver:
    """Picks a layout: the page's group layout if present, else "default"."""

    SUFFIXES = (".html.jinja", ".jinja", ".html")

    def __init__(self, site_dir: Path):
        self.layout_dir = site_dir / "_layouts"

    def resolve(self, group: str) -> str:
        if group:
            for suffix in self.SUFFIXES:
                if (self.layout_dir / f"{group}{suffix}").exists():
                    return group
        return "default"


class PageBuilder:
    """Builds Page objects from source files."""

    def __init__(self, site_dir: Path):
        self.site_dir = site_dir
        self.layout_resolver = LayoutResolver(site_dir)

    def build(self, path: Path) -> Page:
        rel = path.relative_to(self.site_dir)
        folder = rel.parent.as_posix() if rel.parent != Path(".") else ""
        group = rel.parts[0] if len(rel.parts) > 1 else ""
        raw = path.read_text(encoding="utf-8")
        frontmatter, body = extract_frontmatter(raw, path)

        stem = _content_stem(path)
        slug = slugify(stem)
        permalink = frontmatter.get("permalink")
        url = str(permalink) if permalink else self._derive_url(rel, slug)
        if not url.startswith("/"):
            url = f"/{url}"

        return Page(
            title=str(frontmatter.get("title") or self._heading_title(body) or titleize(stem)),
            body=body,
            url=url,
            slug=slug,
            date=self._page_date(frontmatter, path, stem),
            tags=_coerce_tags(frontmatter.get("tags")),
            draft=path.name.startswith("_") or bool(frontmatter.get("draft", False)),
            layout=str(frontmatter.get("layout") or self.layout_resolver.resolve(group)),
            group=group,
            path=path,
            folder=folder,
            source_type=self._source_type(path),
            description=str(frontmatter.get("description") or first_paragraph_text(body)),
            frontmatter=frontmatter,
        )

    @staticmethod
    def _source_type(path: Path) -> str:
        if is_markdown(path):
            return "markdown"
        if is_template(path):
            return "jinja"
        return "html"

    @staticmethod
    def _heading_title(body: str) -> str | None:
        for line in body.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return stripped[2:].strip()
        return None

    @staticmethod
    def _page_date(frontmatter: dict[str, Any], path: Path, stem: str) -> datetime:
        found = _coerce_date(frontmatter.get("date"))
        if found is None:
            found = extract_date_from_name(stem)
        if found is None:
            found = datetime.fromtimestamp(path.stat().st_mtime)
        return found

    @staticmethod
    def _derive_url(rel: Path, slug: str) -> str:
        segments = list(rel.parent.parts)
        if slug != "index":
            segments.append(slug)
        path = "/".join(segments)
        return f"/{path}/" if path else "/"


class ContentProcessor:
    """Loads every page of a site."""

    def __init__(
        self,
        site_dir: Path,
        skip_dirs: tuple[str, ...] = (),
        content_loader: FileContentLoader | None = None,
        page_builder: PageBuilder | None = None,
    ):
        self.site_dir = site_dir
        self._content_loader = content_loader or FileContentLoader(site_dir, skip_dirs)
        self._page_builder = page_builder or PageBuilder(site_dir)

    def load(self, include_drafts: bool = False) -> list[Page]:
        pages = [
            self._page_builder.build(path)
            for path in self._content_loader.iter_files(include_drafts)
        ]
        if not include_drafts:
            pages = [page for page in pages if not page.draft]
        return pages
