"""Markdown rendering for Revsite.

Converts Markdown to HTML with mistune. Headings get anchor ids and are
collected for a table of contents; fenced code blocks with a language are
highlighted by Pygments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


@dataclass
class Heading:
    """A rendered heading.

    Attributes:
        id: Anchor id.
        text: Heading text.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def heading_id(text: str) -> str:
    """Generate a URL-friendly anchor id from heading text."""
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _SiteRenderer(mistune.HTMLRenderer):
    """mistune renderer with heading anchors and Pygments code blocks."""

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._seen_ids: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base = heading_id(text) or "section"
        if base in self._seen_ids:
            self._seen_ids[base] += 1
            anchor = f"{base}-{self._seen_ids[base]}"
        else:
            self._seen_ids[base] = 0
            anchor = base
        self.headings.append(Heading(id=anchor, text=text, level=level))
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        language = info.split()[0] if info else None
        if language:
            try:
                lexer = get_lexer_by_name(language, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape(language)}"' if language else ""
        return f"<pre><code{lang_class}>{escape(code)}</code></pre>\n"


def render_markdown(source: str) -> tuple[str, list[Heading]]:
    """Render Markdown to HTML.

    Returns:
        Tuple of (HTML, headings in document order).
    """
    renderer = _SiteRenderer()
    markdown = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
    return markdown(source), renderer.headings


def pygments_css(selector: str = ".highlight") -> str:
    """Return the Pygments stylesheet for highlighted code blocks."""
    return HtmlFormatter().get_style_defs(selector)
