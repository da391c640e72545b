"""Utility functions for Revsite.

Small helpers shared by the content loader, the asset pipeline and the
build: filename conventions, output directory handling, Node tool lookup
and root URL rewriting.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract date from a YYYY-MM-DD filename prefix.
    ensure_clean_dir: Ensure a directory exists and is empty.
    find_executable: Locate a CLI tool on PATH or in node_modules/.bin.
    absolutize_html_urls: Prefix root-relative URLs with the root URL.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

_URL_ATTR_RE = re.compile(
    r'(?P<prefix>\b(?:href|src|action)=["\'])(?P<url>[^"\']+)(?P<suffix>["\'])'
)

_URL_SKIP_PREFIXES = (
    "http://",
    "https://",
    "//",
    "mailto:",
    "tel:",
    "#",
    "javascript:",
    "data:",
)


def _split_date_prefix(stem: str) -> tuple[datetime | None, str]:
    parts = stem.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            date = datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None, stem
        return date, "-".join(parts[3:])
    return None, stem


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename stem with a YYYY-MM-DD prefix.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0)
    """
    date, _ = _split_date_prefix(name)
    return date


def slugify(name: str) -> str:
    """Convert a filename stem to a slug, dropping any date prefix."""
    date, rest = _split_date_prefix(name)
    cleaned = rest if date is not None and rest else name
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned).strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    date, rest = _split_date_prefix(Path(filename).stem)
    base = rest if date is not None else Path(filename).stem
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() == ".md"


def is_template(path: Path) -> bool:
    """Match both ``.jinja`` and ``.html.jinja`` files."""
    return path.suffix == ".jinja"


def is_html(path: Path) -> bool:
    return path.suffix.lower() == ".html"


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def empty_dir(path: Path) -> None:
    """Remove everything inside ``path`` but keep the directory itself."""
    if not path.exists():
        return
    for item in path.iterdir():
        if item.is_dir() and not item.is_symlink():
            shutil.rmtree(item)
        else:
            item.unlink()


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Find a CLI tool on PATH, then in the project's node_modules/.bin.

    Args:
        name: Executable name (e.g. 'tailwindcss').
        project_root: Project whose local Node tools should be searched.

    Returns:
        Full path to the executable, or None when it is not installed.
    """
    found = shutil.which(name)
    if found:
        return found
    if project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)
    return None


def join_root_url(root_url: str, path: str) -> str:
    """Join a root URL and a path without doubling slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{root_url.rstrip('/')}{suffix}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Rewrite root-relative href/src/action URLs against ``root_url``.

    External URLs, anchors and mailto/tel/javascript/data links are kept.
    """
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        url = match.group("url")
        if url.startswith(_URL_SKIP_PREFIXES) or not url.startswith("/"):
            return match.group(0)
        return f"{match.group('prefix')}{join_root_url(root_url, url)}{match.group('suffix')}"

    return _URL_ATTR_RE.sub(repl, html)
