"""Feed generation for Revsite.

Writes an RSS 2.0 feed of the blog group (``posts`` by default) to
``feed.xml``. Generators share a small base class so other formats can be
registered alongside.

Classes:
    FeedGenerator: Base class for feed generators.
    RSSGenerator: RSS 2.0 feed of the configured group.
    FeedRegistry: Runs every registered generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from markupsafe import escape

from .config import FeedConfig
from .content import Page

RFC822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


class FeedGenerator(ABC):
    """Base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output path relative to the output directory."""
        ...

    @abstractmethod
    def generate(self, pages: Iterable[Page], data: dict[str, Any]) -> str | None:
        """Return the feed document, or None when it cannot be generated."""
        ...

    def write(self, output_dir: Path, pages: Iterable[Page], data: dict[str, Any]) -> bool:
        content = self.generate(pages, data)
        if content is None:
            return False
        output_path = output_dir / self.filename
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        return True


class RSSGenerator(FeedGenerator):
    """RSS 2.0 feed of one content group, newest first.

    Requires ``url`` in the site data; the channel title comes from the
    feed config, then the site title.
    """

    def __init__(self, feed: FeedConfig | None = None):
        self.feed = feed or FeedConfig()

    @property
    def filename(self) -> str:
        return self.feed.path

    def generate(self, pages: Iterable[Page], data: dict[str, Any]) -> str | None:
        base_url = str(data.get("url", "")).rstrip("/")
        if not base_url:
            return None
        title = self.feed.title or data.get("title") or "Feed"

        entries = [p for p in pages if p.group == self.feed.group and not p.draft]
        entries.sort(key=lambda p: p.date, reverse=True)

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(title)}</title>",
            f"<link>{escape(base_url)}/</link>",
            f"<description>{escape(data.get('description', title))}</description>",
            f"<lastBuildDate>{datetime.now(timezone.utc).strftime(RFC822_FORMAT)}</lastBuildDate>",
        ]
        for page in entries[: self.feed.limit]:
            link = escape(f"{base_url}{page.url}")
            body = page.content or page.description or page.title
            lines.append(
                f"<item><title>{escape(page.title)}</title><link>{link}</link>"
                f'<guid isPermaLink="true">{link}</guid>'
                f"<description>{escape(body)}</description>"
                f"<pubDate>{page.date.strftime(RFC822_FORMAT)}</pubDate></item>"
            )
        lines.append("</channel></rss>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Runs a set of feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, pages: Iterable[Page], data: dict[str, Any]
    ) -> list[str]:
        """Write every feed that can be generated.

        Returns:
            Filenames that were written.
        """
        pages_list = list(pages)
        return [
            generator.filename
            for generator in self._generators
            if generator.write(output_dir, pages_list, data)
        ]


def create_default_feed_registry(feed: FeedConfig | None = None) -> FeedRegistry:
    registry = FeedRegistry()
    registry.register(RSSGenerator(feed))
    return registry
