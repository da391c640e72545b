from datetime import datetime
from pathlib import Path

import pytest

from revsite.collections import Collections, PageCollection
from revsite.content import (
    ContentProcessor,
    FrontmatterError,
    Page,
    PageBuilder,
    extract_frontmatter,
    first_paragraph_text,
)
from revsite.renderers import heading_id, render_markdown


def test_extract_frontmatter():
    data, body = extract_frontmatter("---\ntitle: Hi\n---\nBody\n", Path("x.md"))
    assert data == {"title": "Hi"}
    assert body == "Body\n"

    data, body = extract_frontmatter("No front matter", Path("x.md"))
    assert data == {}
    assert body == "No front matter"


@pytest.mark.parametrize("text", ["---\ntitle: [oops\n---\n", "---\n- a\n- b\n---\n"])
def test_invalid_frontmatter(text):
    with pytest.raises(FrontmatterError) as exc_info:
        extract_frontmatter(text, Path("bad.md"))
    assert exc_info.value.path == Path("bad.md")


def test_first_paragraph_text_skips_headings_and_strips_links():
    text = "# Title\n\n![img](a.png)\n\nSee [the docs](/docs/) for  more.\n\nSecond."
    assert first_paragraph_text(text) == "See the docs for more."


def test_pages_from_project(project):
    pages = ContentProcessor(project / "site", skip_dirs=("images",)).load()
    by_url = {page.url: page for page in pages}

    assert set(by_url) == {"/", "/posts/first-post/"}

    home = by_url["/"]
    assert home.title == "Home"
    assert home.source_type == "markdown"
    assert home.output_path == Path("index.html")

    post = by_url["/posts/first-post/"]
    assert post.title == "First Post"
    assert post.date == datetime(2024, 1, 15)
    assert post.tags == ["notes"]
    assert post.group == "posts"
    assert post.folder == "posts"
    assert post.layout == "default"
    assert post.description == "Hello from the first post."
    assert post.output_path == Path("posts/first-post/index.html")


def test_group_layout_is_preferred(project):
    (project / "site" / "_layouts" / "posts.html.jinja").write_text("{{ content }}", encoding="utf-8")
    page = PageBuilder(project / "site").build(
        project / "site" / "posts" / "2024-01-15-first-post.md"
    )
    assert page.layout == "posts"


def test_frontmatter_overrides(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "feed.jinja").write_text(
        "---\n"
        "title: Custom\n"
        "permalink: /feeds/custom.xml\n"
        "date: 2023-05-01\n"
        "tags: solo\n"
        "layout: bare\n"
        "description: Short summary\n"
        "---\n"
        "<rss></rss>\n",
        encoding="utf-8",
    )
    page = PageBuilder(site).build(site / "feed.jinja")

    assert page.url == "/feeds/custom.xml"
    assert page.output_path == Path("feeds/custom.xml")
    assert page.date == datetime(2023, 5, 1)
    assert page.tags == ["solo"]
    assert page.layout == "bare"
    assert page.source_type == "jinja"
    assert page.description == "Short summary"


def test_title_falls_back_to_filename(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "about-me.html.jinja").write_text("<p>Hi</p>", encoding="utf-8")
    page = PageBuilder(site).build(site / "about-me.html.jinja")
    assert page.title == "About Me"
    assert page.url == "/about-me/"


def test_drafts_are_excluded_by_default(project):
    site = project / "site"
    (site / "posts" / "_2024-02-01-secret.md").write_text("# Secret\n", encoding="utf-8")
    (site / "posts" / "2024-03-01-unfinished.md").write_text(
        "---\ndraft: true\n---\n# Unfinished\n", encoding="utf-8"
    )

    published = ContentProcessor(site, skip_dirs=("images",)).load()
    everything = ContentProcessor(site, skip_dirs=("images",)).load(include_drafts=True)

    assert {p.slug for p in published} == {"index", "first-post"}
    assert {p.slug for p in everything} == {"index", "first-post", "secret", "unfinished"}
    assert all(p.draft for p in everything if p.slug in {"secret", "unfinished"})


def test_layouts_includes_and_passthrough_are_skipped(project):
    site = project / "site"
    (site / "_includes" / "nav.html").write_text("<nav></nav>", encoding="utf-8")
    (site / "images" / "credits.html").write_text("<p>credits</p>", encoding="utf-8")
    pages = ContentProcessor(site, skip_dirs=("images",)).load()
    assert all(not p.path.parent.name.startswith("_") for p in pages)
    assert all("images" not in p.path.parts for p in pages)


def _make_page(slug, day, group, tags, draft):
    return Page(
        title=slug.title(),
        body="",
        url=f"/{group}/{slug}/" if group else f"/{slug}/",
        slug=slug,
        date=datetime(2024, 1, day),
        tags=tags,
        draft=draft,
        layout="default",
        group=group,
        path=Path(f"{slug}.md"),
        folder=group,
        source_type="markdown",
    )


def test_page_collection_helpers():
    pages = PageCollection(
        [
            _make_page("old", 1, "posts", ["python"], False),
            _make_page("new", 20, "posts", [], False),
            _make_page("mid", 10, "notes", ["python"], True),
        ]
    )

    assert [p.slug for p in pages.sorted()] == ["new", "mid", "old"]
    assert [p.slug for p in pages.sorted(reverse=False)] == ["old", "mid", "new"]
    assert [p.slug for p in pages.group("posts")] == ["old", "new"]
    assert [p.slug for p in pages.with_tag("python")] == ["old", "mid"]
    assert [p.slug for p in pages.published()] == ["old", "new"]
    assert [p.slug for p in pages.latest(1)] == ["new"]
    assert isinstance(pages[:2], PageCollection)
    assert pages[0].slug == "old"


def test_collections_by_group_and_tag():
    pages = [
        _make_page("a", 1, "posts", ["python"], False),
        _make_page("b", 2, "notes", [], False),
    ]
    collections = Collections.from_pages(pages)

    assert len(collections.all) == 2
    assert [p.slug for p in collections.posts] == ["a"]
    assert [p.slug for p in collections.notes] == ["b"]
    assert [p.slug for p in collections.python] == ["a"]
    assert len(collections.missing) == 0
    with pytest.raises(AttributeError):
        collections._hidden


def test_heading_ids_and_toc():
    html, toc = render_markdown("# Hello World\n\n## Intro\n\n## Intro\n")
    assert '<h1 id="hello-world">Hello World</h1>' in html
    assert '<h2 id="intro">' in html
    assert '<h2 id="intro-1">' in html
    assert [(h.id, h.level) for h in toc] == [("hello-world", 1), ("intro", 2), ("intro-1", 2)]


def test_heading_id_strips_markup():
    assert heading_id("<code>asset()</code> helper!") == "asset-helper"


def test_code_blocks_are_highlighted():
    html, _ = render_markdown("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html


def test_unknown_language_is_escaped():
    html, _ = render_markdown("```notalanguage\na < b\n```\n")
    assert 'class="language-notalanguage"' in html
    assert "a &lt; b" in html
