"""Unit tests for configuration loading."""

import pytest

from xpost_mcp.core.exceptions import ConfigurationError
from xpost_mcp.utils.config import (
    CREDENTIAL_VARS,
    Config,
    credential_report,
    load_config,
    require_env,
)


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for name in (
        "XPOST_CONFIG",
        "XPOST_SERVER_HOST",
        "XPOST_SERVER_PORT",
        "XPOST_CACHE_PATH",
        "XPOST_LOG_LEVEL",
        "XPOST_POSTING_PROVIDER",
        "XPOST_GENERATION_PROVIDER",
        "XPOST_SERVER_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def test_file_merged_over_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("server:\n  port: 4000\ngeneration:\n  max_retries: 5\n")

    config = load_config(str(path))

    assert config["server"]["port"] == 4000
    assert config["server"]["sse_path"] == "/sse"
    assert config["generation"]["max_retries"] == 5
    assert config["generation"]["top_k"] == 40
    assert config["cache"]["page_size"] == 20


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("server:\n  port: 4000\n")
    monkeypatch.setenv("XPOST_SERVER_PORT", "5000")
    monkeypatch.setenv("XPOST_CACHE_PATH", "/tmp/posts.json")
    monkeypatch.setenv("XPOST_GENERATION_PROVIDER", "mock")

    config = load_config(str(path))

    assert config["server"]["port"] == 5000
    assert config["cache"]["path"] == "/tmp/posts.json"
    assert config["generation"]["provider"] == "mock"


def test_invalid_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("server: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "absent.yaml"))


def test_non_mapping_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_config_file_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("cache:\n  min_entries: 3\n")
    monkeypatch.setenv("XPOST_CONFIG", str(path))

    assert load_config()["cache"]["min_entries"] == 3


def test_require_env(monkeypatch):
    monkeypatch.setenv("X_USERNAME", "alice")
    assert require_env("X_USERNAME") == "alice"

    monkeypatch.delenv("X_USERNAME")
    with pytest.raises(ConfigurationError, match="X_USERNAME not found in environment variables"):
        require_env("X_USERNAME")


def test_credential_report_hides_values(monkeypatch):
    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "super-secret")

    report = credential_report()

    assert report["GEMINI_API_KEY"] is True
    assert report["X_API_KEY"] is False
    assert "super-secret" not in repr(report)


def test_config_attribute_access(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("{}\n")

    config = Config(load_config(str(path)))

    assert config.server.port == 3001
    assert config.generation.model.startswith("gemini")
    with pytest.raises(AttributeError):
        config.nothing
