"""Static host deployment files for Revsite.

Netlify reads redirects and response headers from ``_redirects`` and
``_headers`` files at the root of the published directory. Revisioned
asset directories get a long-lived cache header by default, since their
filenames change whenever their contents do.
"""

from __future__ import annotations

from pathlib import Path

from .config import SiteConfig

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


def render_redirects(redirects: dict[str, str]) -> str:
    return "".join(f"{source} {target} 301\n" for source, target in redirects.items())


def render_headers(headers: dict[str, dict[str, str]]) -> str:
    blocks = []
    for pattern, values in headers.items():
        lines = [pattern]
        lines.extend(f"  {name}: {' '.join(str(value).split())}" for name, value in values.items())
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n" if blocks else ""


def header_rules(config: SiteConfig) -> dict[str, dict[str, str]]:
    """Configured header blocks plus cache rules for asset categories.

    Multi-line values (such as a Content-Security-Policy written as a YAML
    block) are folded onto one line when rendered.
    """
    rules = {pattern: dict(values) for pattern, values in config.headers.items()}
    for category in config.asset_categories:
        rules.setdefault(f"/{category}/*", {"Cache-Control": IMMUTABLE_CACHE_CONTROL})
    return rules


def write_deploy_files(config: SiteConfig, output_dir: Path) -> list[str]:
    """Write ``_redirects`` and ``_headers`` into ``output_dir``.

    Returns:
        Names of the files written; empty files are not written.
    """
    written = []
    for name, text in (
        ("_redirects", render_redirects(config.redirects)),
        ("_headers", render_headers(header_rules(config))),
    ):
        if text:
            (output_dir / name).write_text(text, encoding="utf-8")
            written.append(name)
    return written
