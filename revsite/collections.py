"""Page collections exposed to templates.

``pages`` is the full PageCollection and ``collections`` maps each content
group (first folder under ``site/``) and each tag to its own collection, so
a blog index can loop over ``collections.posts.sorted()``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .content import Page


class PageCollection(Sequence[Page]):
    """Sequence of pages with filtering helpers for templates."""

    def __init__(self, pages: Iterable[Page]):
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PageCollection(self._pages[item])
        return self._pages[item]

    def group(self, name: str) -> PageCollection:
        return PageCollection(p for p in self._pages if p.group == name)

    def with_tag(self, tag: str) -> PageCollection:
        return PageCollection(p for p in self._pages if tag in p.tags)

    def published(self) -> PageCollection:
        return PageCollection(p for p in self._pages if not p.draft)

    def sorted(self, reverse: bool = True) -> PageCollection:
        """Sort by date (newest first by default), then by URL."""
        ordered = sorted(self._pages, key=lambda p: p.url)
        ordered.sort(key=lambda p: p.date, reverse=reverse)
        return PageCollection(ordered)

    def latest(self, count: int = 5) -> PageCollection:
        return self.sorted()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"


class Collections(dict):
    """Group and tag collections, readable as attributes in templates.

    Unknown names give an empty collection rather than an undefined error,
    since a fresh site may not have any posts yet.
    """

    @classmethod
    def from_pages(cls, pages: Iterable[Page]) -> Collections:
        pages = list(pages)
        collections = cls()
        collections["all"] = PageCollection(pages)
        for page in pages:
            if page.group:
                collections.setdefault(page.group, [])
            for tag in page.tags:
                collections.setdefault(tag, [])
        for name in list(collections):
            if name == "all":
                continue
            collections[name] = PageCollection(
                p for p in pages if p.group == name or name in p.tags
            )
        return collections

    def __getattr__(self, name: str) -> PageCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name, PageCollection([]))
