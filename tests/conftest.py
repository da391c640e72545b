import shutil
from pathlib import Path

import pytest


def create_project(root: Path) -> Path:
    """Lay out a small site the way a real project would look."""
    site = root / "site"
    (site / "_layouts").mkdir(parents=True)
    (site / "_includes").mkdir()
    (site / "posts").mkdir()
    (site / "images").mkdir()
    (root / "css").mkdir()
    (root / "js" / "vendor").mkdir(parents=True)
    (root / "data").mkdir()

    (root / "revsite.yaml").write_text(
        "output_dir: dist\n"
        "env:\n"
        "  - GOOGLE_ANALYTICS_ID\n"
        "redirects:\n"
        "  /resume: /assets/resume.pdf\n",
        encoding="utf-8",
    )
    (root / "data" / "site.yaml").write_text(
        "title: Test Site\nurl: https://example.com\n", encoding="utf-8"
    )
    (root / "css" / "main.css").write_text(
        "@tailwind base;\nbody { color: red; }\n", encoding="utf-8"
    )
    (root / "css" / "prism.css").write_text("code { color: blue; }\n", encoding="utf-8")
    (root / "js" / "handlers.js").write_text(
        "function track(){ return 1 + 1; }\n", encoding="utf-8"
    )
    (root / "js" / "vendor" / "analytics.js").write_text(
        "var trackingId = process.env.GOOGLE_ANALYTICS_ID;\n", encoding="utf-8"
    )
    (site / "_layouts" / "default.html.jinja").write_text(
        "<html><head>"
        "<link rel=\"stylesheet\" href=\"{{ asset('css', 'main.css') }}\">"
        '<script src="{{ assets.js.main }}"></script>'
        "</head><body>{{ content }}</body></html>",
        encoding="utf-8",
    )
    (site / "index.md").write_text(
        "---\ntitle: Home\n---\n# Hello\n\nWelcome!\n\n[About](/about/)\n",
        encoding="utf-8",
    )
    (site / "posts" / "2024-01-15-first-post.md").write_text(
        "---\ntags: [notes]\n---\n# First Post\n\nHello from the first post.\n",
        encoding="utf-8",
    )

    from PIL import Image

    Image.new("RGB", (2, 2), color="red").save(site / "images" / "logo.png")
    return root


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_ANALYTICS_ID", "UA-123")
    return create_project(tmp_path)


@pytest.fixture(autouse=True)
def no_node_tools(monkeypatch):
    """Keep tests independent of any Tailwind CLI installed on the machine."""
    monkeypatch.setattr(shutil, "which", lambda name: None)
