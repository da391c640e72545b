import pytest

from revsite.config import ConfigError, FeedConfig, load_config


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path, environ={})
    assert config.output_dir == "dist"
    assert config.input_dir == "site"
    assert config.asset_categories == ("css", "js")
    assert config.manifest_name == "rev-manifest.json"
    assert config.feed == FeedConfig()
    assert config.env == {}
    assert config.category_dirs() == {
        "css": tmp_path / "site" / "css",
        "js": tmp_path / "site" / "js",
    }


def test_non_mapping_config_uses_defaults(tmp_path):
    (tmp_path / "revsite.yaml").write_text("- just a list\n", encoding="utf-8")
    assert load_config(tmp_path, environ={}).output_dir == "dist"


def test_values_from_yaml(tmp_path):
    (tmp_path / "revsite.yaml").write_text(
        "output_dir: public\n"
        "root_url: https://example.com/\n"
        "port: '5000'\n"
        "minify_js: false\n"
        "asset_categories: [styles, scripts]\n"
        "passthrough: [images]\n"
        "feed:\n"
        "  path: blog/feed.xml\n"
        "  group: blog\n"
        "  limit: 5\n"
        "redirects:\n"
        "  /resume: /assets/resume.pdf\n"
        "headers:\n"
        "  '/*':\n"
        "    X-Frame-Options: DENY\n"
        "analytics_provider: plausible\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path, environ={})

    assert config.output_path == tmp_path / "public"
    assert config.root_url == "https://example.com"
    assert config.port == 5000
    assert config.minify_js is False
    assert config.asset_categories == ("styles", "scripts")
    assert config.passthrough == ("images",)
    assert config.feed == FeedConfig(path="blog/feed.xml", group="blog", limit=5)
    assert config.redirects == {"/resume": "/assets/resume.pdf"}
    assert config.headers == {"/*": {"X-Frame-Options": "DENY"}}
    assert config.extra == {"analytics_provider": "plausible"}


def test_environment_is_captured_once(tmp_path):
    (tmp_path / "revsite.yaml").write_text(
        "env:\n  - GOOGLE_ANALYTICS_ID\n  - CONTACT_EMAIL\n", encoding="utf-8"
    )
    environ = {"GOOGLE_ANALYTICS_ID": "UA-1", "UNRELATED": "x"}
    config = load_config(tmp_path, environ=environ)
    environ["GOOGLE_ANALYTICS_ID"] = "UA-2"

    assert config.env == {"GOOGLE_ANALYTICS_ID": "UA-1"}


def test_environment_defaults_to_os_environ(tmp_path, monkeypatch):
    (tmp_path / "revsite.yaml").write_text("env: [CONTACT_EMAIL]\n", encoding="utf-8")
    monkeypatch.setenv("CONTACT_EMAIL", "me@example.com")
    assert load_config(tmp_path).env == {"CONTACT_EMAIL": "me@example.com"}


def test_asset_root_override(tmp_path):
    (tmp_path / "revsite.yaml").write_text("asset_root: build\n", encoding="utf-8")
    config = load_config(tmp_path, environ={})
    assert config.asset_root_path == tmp_path / "build"
    assert config.category_dirs()["css"] == tmp_path / "build" / "css"


@pytest.mark.parametrize(
    "text, key",
    [
        ("redirects: [a, b]\n", "redirects"),
        ("headers: nope\n", "headers"),
        ("env: GOOGLE_ANALYTICS_ID\n", "env"),
        ("port: abc\n", "port"),
        ("feed: [1]\n", "feed"),
        ("feed:\n  limit: many\n", "feed.limit"),
    ],
)
def test_invalid_values_raise(tmp_path, text, key):
    (tmp_path / "revsite.yaml").write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as exc_info:
        load_config(tmp_path, environ={})
    assert exc_info.value.key == key
    assert key in str(exc_info.value)
