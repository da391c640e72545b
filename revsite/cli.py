"""Command-line interface for Revsite.

Commands:
- build: Build assets and the site into the output directory.
- assets: Build revisioned assets only, optionally watching for changes.
- clean: Remove generated assets and the output directory.
- resolve: Print the public path of a revisioned asset.
- serve: Run the development server with live reload.
- post: Create a new Markdown post interactively.
"""

from __future__ import annotations

import shutil
import time
from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .asset_resolver import AssetResolutionError
from .config import ConfigError, load_config
from .utils import slugify


@click.group()
@click.version_option(version=__version__, prog_name="revsite")
def cli():
    """Revsite static site generator."""


def _load_config_or_fail(project_root: Path):
    try:
        return load_config(project_root)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--skip-assets", is_flag=True, help="Reuse existing asset manifests")
@click.option("--root-url", default=None, help="Absolutize links against this URL")
def build(drafts: bool, skip_assets: bool, root_url: str | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    config = _load_config_or_fail(project_root)
    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            root_url=root_url,
            build_assets=not skip_assets,
            config=config,
        )
    except BuildError as exc:
        try:
            shown = exc.source_path.relative_to(project_root)
        except ValueError:
            shown = exc.source_path
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


def _echo_manifests(manifests: dict[str, dict[str, str]]) -> None:
    if not manifests:
        click.echo("No asset sources found.")
    for category, entries in manifests.items():
        for logical_name, deployed in entries.items():
            click.echo(f"{category}/{logical_name} -> {category}/{deployed}")


@cli.command()
@click.option("--watch", is_flag=True, help="Rebuild assets when sources change")
def assets(watch: bool):
    """Build revisioned stylesheets and scripts."""
    from .assets import AssetPipeline

    config = _load_config_or_fail(Path.cwd())
    pipeline = AssetPipeline(config)
    _echo_manifests(pipeline.run())
    if not watch:
        return

    from .server import SourceWatcher

    def rebuild_assets():
        click.echo("Change detected; rebuilding assets...")
        _echo_manifests(pipeline.run())

    watcher = SourceWatcher(config, rebuild_assets, folders=pipeline.watched_paths())
    watcher.start()
    click.echo("Watching asset sources. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        watcher.stop()


@cli.command()
def clean():
    """Remove generated assets and the output directory."""
    from .assets import AssetPipeline

    config = _load_config_or_fail(Path.cwd())
    AssetPipeline(config).clean()
    if config.output_path.exists():
        shutil.rmtree(config.output_path)
    click.echo(f"Removed generated assets and {config.output_dir}/")


@cli.command()
@click.argument("category")
@click.argument("name")
def resolve(category: str, name: str):
    """Print the public path of asset NAME in CATEGORY."""
    from .build import create_resolver

    resolver = create_resolver(_load_config_or_fail(Path.cwd()))
    try:
        click.echo(resolver.resolve(category, name))
    except AssetResolutionError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--port", type=int, required=False, help="HTTP port (overrides revsite.yaml)")
@click.option("--ws-port", type=int, required=False, help="Live reload websocket port")
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    from .server import DevServer

    server = DevServer(Path.cwd(), http_port=port, ws_port=ws_port)
    server.start(include_drafts=drafts)


@cli.command()
@click.option("--folder", default="posts", show_default=True, help="Folder under the site directory")
def post(folder: str):
    """Create a new Markdown post interactively."""
    config = _load_config_or_fail(Path.cwd())
    if not config.site_path.exists():
        raise click.ClickException(
            f"No {config.input_dir}/ directory found. Run this command from a project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    tags = questionary.text("Tags (comma separated):", style=_questionary_style()).ask()
    if tags is None:
        raise click.Abort()

    today = datetime.now()
    slug = slugify(title)
    target_dir = config.site_path / folder
    existing = _existing_slugs(target_dir)
    if slug in existing:
        raise click.ClickException(f"A post with slug '{slug}' already exists: {existing[slug]}")

    tag_list = [t.strip() for t in tags.split(",") if t.strip()]
    lines = ["---", f"title: {_yaml_string(title.strip())}", f"date: {today:%Y-%m-%d}"]
    if tag_list:
        lines.append("tags:")
        lines.extend(f"  - {_yaml_string(tag)}" for tag in tag_list)
    lines.extend(["---", "", ""])

    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"{today:%Y-%m-%d}-{slug}.md"
    target.write_text("\n".join(lines), encoding="utf-8")
    click.echo(f"Created {target.relative_to(config.project_root)}")


def _existing_slugs(folder: Path) -> dict[str, str]:
    if not folder.exists():
        return {}
    return {slugify(f.stem): f.name for f in sorted(folder.glob("*.md"))}


def _yaml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
