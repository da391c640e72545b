import json
import shutil
import subprocess
from pathlib import Path

from revsite.asset_resolver import ManifestAssetResolver
from revsite.assets import (
    AssetPipeline,
    ScriptBundleTask,
    StylesheetTask,
    envify,
)
from revsite.config import load_config


def test_pipeline_without_tailwind(project, capsys):
    config = load_config(project)
    manifests = AssetPipeline(config).run()

    assert set(manifests) == {"css", "js"}
    assert set(manifests["css"]) == {"main.css", "prism.css"}
    assert set(manifests["js"]) == {"main.js"}

    css_dir = project / "site" / "css"
    main_css = css_dir / manifests["css"]["main.css"]
    assert main_css.read_text(encoding="utf-8").startswith("@tailwind base;")
    written = json.loads((css_dir / "rev-manifest.json").read_text(encoding="utf-8"))
    assert written == manifests["css"]
    assert "Tailwind CSS CLI not found" in capsys.readouterr().out


def test_pipeline_output_resolves(project):
    config = load_config(project)
    manifests = AssetPipeline(config).run()
    resolver = ManifestAssetResolver(config.asset_root_path)

    css_path = resolver.resolve("css", "main.css")
    js_path = resolver.resolve("js", "main.js")
    assert css_path == f"/css/{manifests['css']['main.css']}"
    assert js_path == f"/js/{manifests['js']['main.js']}"
    assert (project / "site" / css_path.lstrip("/")).exists()
    assert (project / "site" / js_path.lstrip("/")).exists()


def test_tailwind_runs_only_for_tailwind_entry_points(project, monkeypatch):
    fake_bin = project / "node_modules" / ".bin" / "tailwindcss"
    fake_bin.parent.mkdir(parents=True)
    fake_bin.write_text("#!/bin/sh\n", encoding="utf-8")
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        Path(cmd[4]).write_text("body{color:red}", encoding="utf-8")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    outputs = StylesheetTask(load_config(project)).compile()

    assert len(calls) == 1
    cmd, kwargs = calls[0]
    assert cmd[0] == str(fake_bin)
    assert cmd[2] == str(project / "css" / "main.css")
    assert "--minify" in cmd
    assert str(project / "site" / "**" / "*.md") in cmd[-1]
    assert kwargs["cwd"] == project
    assert outputs["main.css"] == b"body{color:red}"
    assert outputs["prism.css"] == b"code { color: blue; }\n"


def test_tailwind_failure_falls_back(project, monkeypatch, capsys):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/tailwindcss")

    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="boom")

    monkeypatch.setattr(subprocess, "run", fake_run)
    outputs = StylesheetTask(load_config(project)).compile()

    assert outputs["main.css"].startswith(b"@tailwind base;")
    out = capsys.readouterr().out
    assert "Tailwind build failed for main.css" in out
    assert "boom" in out


def test_script_bundle_concatenates_in_path_order(project):
    (project / "revsite.yaml").write_text(
        "minify_js: false\nenv: [GOOGLE_ANALYTICS_ID]\n", encoding="utf-8"
    )
    outputs = ScriptBundleTask(load_config(project)).compile()

    bundle = outputs["main.js"].decode("utf-8")
    assert bundle.index("function track") < bundle.index("var trackingId")
    assert 'var trackingId = "UA-123";' in bundle


def test_script_bundle_is_minified(project):
    outputs = ScriptBundleTask(load_config(project)).compile()
    bundle = outputs["main.js"].decode("utf-8")
    assert "return 1+1" in bundle
    assert '"UA-123"' in bundle
    assert "process.env" not in bundle


def test_script_bundle_name_is_configurable(project):
    (project / "revsite.yaml").write_text("js_bundle: app.js\n", encoding="utf-8")
    outputs = ScriptBundleTask(load_config(project)).compile()
    assert list(outputs) == ["app.js"]


def test_envify_leaves_unknown_names():
    source = "a(process.env.KNOWN, process.env['OTHER'], process.env.UNKNOWN)"
    result = envify(source, {"KNOWN": "yes", "OTHER": 'say "hi"'})
    assert result == 'a("yes", "say \\"hi\\"", process.env.UNKNOWN)'


def test_rerun_prunes_stale_revisions(project):
    config = load_config(project)
    pipeline = AssetPipeline(config)
    first = pipeline.run()

    (project / "css" / "prism.css").write_text("code { color: green; }\n", encoding="utf-8")
    second = pipeline.run()

    css_dir = project / "site" / "css"
    assert second["css"]["prism.css"] != first["css"]["prism.css"]
    assert not (css_dir / first["css"]["prism.css"]).exists()
    assert (css_dir / second["css"]["prism.css"]).exists()
    assert second["css"]["main.css"] == first["css"]["main.css"]
    assert (css_dir / second["css"]["main.css"]).exists()


def test_prune_stays_inside_category_dir(project):
    outside = project / "keep.txt"
    outside.write_text("keep", encoding="utf-8")
    css_dir = project / "site" / "css"
    css_dir.mkdir(parents=True)
    (css_dir / "rev-manifest.json").write_text(
        json.dumps({"old.css": "../../keep.txt"}), encoding="utf-8"
    )

    AssetPipeline(load_config(project)).run()

    assert outside.read_text(encoding="utf-8") == "keep"


def test_rerun_recovers_from_non_utf8_manifest(project):
    css_dir = project / "site" / "css"
    css_dir.mkdir(parents=True)
    (css_dir / "rev-manifest.json").write_bytes(b"\xff\xfe{}")

    manifests = AssetPipeline(load_config(project)).run()

    written = json.loads((css_dir / "rev-manifest.json").read_text(encoding="utf-8"))
    assert written == manifests["css"]


def test_pipeline_without_sources(tmp_path):
    (tmp_path / "site").mkdir()
    config = load_config(tmp_path)
    assert AssetPipeline(config).run() == {}
    assert not (tmp_path / "site" / "css" / "rev-manifest.json").exists()


def test_clean_empties_category_dirs(project):
    config = load_config(project)
    pipeline = AssetPipeline(config)
    pipeline.run()
    pipeline.clean()

    assert list((project / "site" / "css").iterdir()) == []
    assert list((project / "site" / "js").iterdir()) == []
    assert (project / "css" / "main.css").exists()


def test_asset_root_override(project):
    (project / "revsite.yaml").write_text("asset_root: build/assets\n", encoding="utf-8")
    config = load_config(project)
    AssetPipeline(config).run()
    assert (project / "build" / "assets" / "css" / "rev-manifest.json").exists()
    assert not (project / "site" / "css").exists()
