"""Asset pipeline for Revsite.

Compiles stylesheets and scripts, writes them under content-hashed names
into the per-category asset directories (``site/css``, ``site/js`` by
default) and records the mapping in each directory's ``rev-manifest.json``.
Templates then resolve the hashed names through
:class:`revsite.asset_resolver.ManifestAssetResolver`.

Key components:
- AssetTask: Base class; a task compiles the sources of one category.
- StylesheetTask: Tailwind-processes or copies ``css/*.css``.
- ScriptBundleTask: Concatenates ``js/**/*.js`` into one bundle.
- AssetPipeline: Runs the tasks, revisions their output, prunes stale files.
"""

from __future__ import annotations

import json
import re
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from rjsmin import jsmin

from .config import SiteConfig
from .revision import RevisionManifest, write_revisioned
from .utils import empty_dir, find_executable

TAILWIND_DIRECTIVE_RE = re.compile(
    r"@tailwind\s+\w+|@import\s+[\"']tailwindcss"
)
PROCESS_ENV_RE = re.compile(
    r"\bprocess\.env(?:\.([A-Za-z_$][\w$]*)|\[\s*[\"']([^\"']+)[\"']\s*\])"
)


class AssetTask(ABC):
    """Compiles the sources of one asset category.

    Attributes:
        category: Asset category the output belongs to (e.g. "css").
    """

    category: str

    def __init__(self, config: SiteConfig):
        self.config = config

    @abstractmethod
    def sources(self) -> list[Path]:
        """Return the source files this task reads."""
        ...

    @abstractmethod
    def compile(self) -> dict[str, bytes]:
        """Compile sources into ``{logical name: contents}``."""
        ...


class StylesheetTask(AssetTask):
    """Builds every top-level stylesheet in the CSS source directory.

    Stylesheets with Tailwind directives are run through the Tailwind CLI,
    which scans the site content for class names. Without the CLI, or when
    it fails, the unprocessed stylesheet is used.
    """

    category = "css"

    def sources(self) -> list[Path]:
        css_dir = self.config.project_root / self.config.css_dir
        if not css_dir.is_dir():
            return []
        return sorted(css_dir.glob("*.css"))

    def compile(self) -> dict[str, bytes]:
        outputs: dict[str, bytes] = {}
        for source in self.sources():
            if TAILWIND_DIRECTIVE_RE.search(source.read_text(encoding="utf-8")):
                outputs[source.name] = self._run_tailwind(source)
            else:
                outputs[source.name] = source.read_bytes()
        return outputs

    def _content_globs(self) -> list[str]:
        root = self.config.project_root
        site = root / self.config.input_dir
        return [
            str(site / "**" / "*.md"),
            str(site / "**" / "*.jinja"),
            str(site / "**" / "*.html"),
            str(root / self.config.js_dir / "**" / "*.js"),
        ]

    def _run_tailwind(self, source: Path) -> bytes:
        project_root = self.config.project_root
        tailwind_bin = find_executable("tailwindcss", project_root)
        if not tailwind_bin:
            print("Tailwind CSS CLI not found; skipping CSS build.")
            print(
                "Install with `npm install -D tailwindcss` in the project. "
                f"Falling back to unprocessed {source.name}."
            )
            return source.read_bytes()

        with tempfile.TemporaryDirectory() as tmp:
            output = Path(tmp) / source.name
            cmd = [
                tailwind_bin,
                "-i",
                str(source),
                "-o",
                str(output),
                "--minify",
                "--content",
                ",".join(self._content_globs()),
            ]
            result = subprocess.run(
                cmd, capture_output=True, text=True, cwd=project_root
            )
            if result.returncode != 0 or not output.exists():
                print(f"Tailwind build failed for {source.name}:", result.stderr.strip())
                return source.read_bytes()
            return output.read_bytes()


class ScriptBundleTask(AssetTask):
    """Concatenates all scripts into a single bundle.

    Sources are joined in path order. References to ``process.env.NAME`` are
    replaced with the captured value of NAME as a string literal; names the
    site did not capture are left untouched.
    """

    category = "js"

    def sources(self) -> list[Path]:
        js_dir = self.config.project_root / self.config.js_dir
        if not js_dir.is_dir():
            return []
        return sorted(js_dir.rglob("*.js"), key=lambda p: p.as_posix())

    def compile(self) -> dict[str, bytes]:
        sources = self.sources()
        if not sources:
            return {}
        bundle = "\n".join(path.read_text(encoding="utf-8") for path in sources)
        bundle = envify(bundle, self.config.env)
        if self.config.minify_js:
            bundle = jsmin(bundle)
        return {self.config.js_bundle: bundle.encode("utf-8")}


def envify(source: str, env: dict[str, str]) -> str:
    """Inline environment values referenced as ``process.env.NAME``."""

    def repl(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name not in env:
            return match.group(0)
        return json.dumps(env[name])

    return PROCESS_ENV_RE.sub(repl, source)


class AssetPipeline:
    """Builds revisioned assets and their manifests.

    Attributes:
        config: Site configuration.
        tasks: Tasks to run, one per category.
    """

    def __init__(self, config: SiteConfig, tasks: list[AssetTask] | None = None):
        self.config = config
        self.tasks = tasks if tasks is not None else [
            StylesheetTask(config),
            ScriptBundleTask(config),
        ]

    def category_dir(self, category: str) -> Path:
        return self.config.category_dirs().get(
            category, self.config.asset_root_path / category
        )

    def manifest_path(self, category: str) -> Path:
        return self.category_dir(category) / self.config.manifest_name

    def run(self) -> dict[str, dict[str, str]]:
        """Compile every task and rewrite its category manifest.

        Categories without sources are left untouched.

        Returns:
            Mapping of category to ``{logical name: deployed name}``.
        """
        manifests: dict[str, dict[str, str]] = {}
        for task in self.tasks:
            outputs = task.compile()
            if not outputs:
                continue
            manifests[task.category] = self._publish(task.category, outputs)
        return manifests

    def _publish(self, category: str, outputs: dict[str, bytes]) -> dict[str, str]:
        dest = self.category_dir(category)
        manifest_path = self.manifest_path(category)
        previous = RevisionManifest.load(manifest_path)

        manifest = RevisionManifest()
        for logical_name, data in sorted(outputs.items()):
            manifest.add(logical_name, write_revisioned(dest, logical_name, data))

        root = dest.resolve()
        for stale in sorted(previous.deployed_names() - manifest.deployed_names()):
            stale_path = dest / stale
            if not stale_path.resolve().is_relative_to(root):
                continue
            if stale_path.is_file():
                stale_path.unlink()

        manifest.write(manifest_path)
        return dict(manifest.entries)

    def clean(self) -> None:
        """Remove all generated files from the category directories."""
        for task in self.tasks:
            empty_dir(self.category_dir(task.category))

    def watched_paths(self) -> list[Path]:
        root = self.config.project_root
        return [root / self.config.css_dir, root / self.config.js_dir]
