"""Tests for configuration loading."""

from pathlib import Path

import pytest

from glance.config import DEFAULT_SUPPORTED_BROWSERS, GlanceConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and home config."""
    for name in [
        "GLANCE_CONFIG",
        "GLANCE_CAPTURE_DIR",
        "GLANCE_SCREENSHOTS_DIR",
        "GLANCE_SUPPORTED_BROWSERS",
        "GLANCE_SCREENSHOT_FORMAT",
        "GLANCE_JOURNAL_ENABLED",
        "GLANCE_CLEANUP_ORPHANED_SCREENSHOTS",
        "GLANCE_SELECTION_FALLBACK_TO_CLIPBOARD",
        "GLANCE_PROVIDER_TIMEOUT_SECONDS",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


def write_config(tmp_path, text):
    config_file = tmp_path / "config.toml"
    config_file.write_text(text)
    return config_file


def test_defaults(tmp_path):
    config = load_config(config_file=tmp_path / "missing.toml")

    assert config.capture_dir == tmp_path / "home" / "Documents" / "Glance" / "captures"
    assert config.screenshots_dir == tmp_path / "home" / "Desktop" / "Screenshots"
    assert config.supported_browsers == DEFAULT_SUPPORTED_BROWSERS
    assert config.screenshot_format == "png"
    assert config.journal_enabled is True
    assert config.cleanup_orphaned_screenshots is True
    assert config.provider_timeout_seconds == 10.0


def test_config_file_values(tmp_path):
    config_file = write_config(
        tmp_path,
        """
[directories]
captures = "/data/captures"
screenshots = "/data/shots"

[capture]
supported_browsers = ["Arc", "Vivaldi"]
screenshot_format = ".JPG"
journal_enabled = false
provider_timeout_seconds = 2.5
""",
    )

    config = load_config(config_file=config_file)

    assert config.capture_dir == Path("/data/captures")
    assert config.screenshots_dir == Path("/data/shots")
    assert config.supported_browsers == ["Arc", "Vivaldi"]
    assert config.screenshot_format == "jpg"
    assert config.journal_enabled is False
    assert config.provider_timeout_seconds == 2.5


def test_precedence_cli_over_env_over_file(tmp_path, monkeypatch):
    """Test that CLI beats environment and environment beats the file."""
    config_file = write_config(
        tmp_path,
        '[directories]\ncaptures = "/from/file"\nscreenshots = "/shots/file"\n',
    )
    monkeypatch.setenv("GLANCE_CAPTURE_DIR", "/from/env")
    monkeypatch.setenv("GLANCE_SCREENSHOTS_DIR", "/shots/env")

    config = load_config(cli_capture_dir="/from/cli", config_file=config_file)

    assert config.capture_dir == Path("/from/cli")
    assert config.screenshots_dir == Path("/shots/env")


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("GLANCE_SUPPORTED_BROWSERS", "Arc, Safari ,")
    monkeypatch.setenv("GLANCE_JOURNAL_ENABLED", "0")
    monkeypatch.setenv("GLANCE_CLEANUP_ORPHANED_SCREENSHOTS", "no")
    monkeypatch.setenv("GLANCE_PROVIDER_TIMEOUT_SECONDS", "3")

    config = load_config(config_file=tmp_path / "missing.toml")

    assert config.supported_browsers == ["Arc", "Safari"]
    assert config.journal_enabled is False
    assert config.cleanup_orphaned_screenshots is False
    assert config.provider_timeout_seconds == 3.0


def test_glance_config_env_selects_file(tmp_path, monkeypatch):
    config_file = write_config(tmp_path, '[directories]\ncaptures = "/picked/up"\n')
    monkeypatch.setenv("GLANCE_CONFIG", str(config_file))

    assert load_config().capture_dir == Path("/picked/up")


def test_malformed_config_file_falls_back(tmp_path, caplog):
    config_file = write_config(tmp_path, "[directories\ncaptures = ")

    config = load_config(config_file=config_file)

    assert config.capture_dir.name == "captures"
    assert "Ignoring unreadable config file" in caplog.text


def test_invalid_provider_timeout_env_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("GLANCE_PROVIDER_TIMEOUT_SECONDS", "soon")

    config = load_config()

    assert config.provider_timeout_seconds == 10.0
    assert "Ignoring invalid provider_timeout_seconds 'soon'" in caplog.text


def test_invalid_provider_timeout_in_file_falls_back(tmp_path, caplog):
    config_file = write_config(tmp_path, '[capture]\nprovider_timeout_seconds = "ten"\n')

    config = load_config(config_file=config_file)

    assert config.provider_timeout_seconds == 10.0
    assert "Ignoring invalid provider_timeout_seconds" in caplog.text


def test_non_positive_provider_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("GLANCE_PROVIDER_TIMEOUT_SECONDS", "0")
    assert load_config().provider_timeout_seconds == 10.0


def test_directories_expanded(tmp_path):
    config = GlanceConfig(capture_dir="~/captures", screenshots_dir="relative/shots")

    assert config.capture_dir == tmp_path / "home" / "captures"
    assert config.screenshots_dir.is_absolute()


def test_to_toml_str_roundtrips(tmp_path):
    original = GlanceConfig(capture_dir=tmp_path / "c", screenshots_dir=tmp_path / "s", journal_enabled=False)
    config_file = write_config(tmp_path, original.to_toml_str())

    loaded = load_config(config_file=config_file)

    assert loaded.capture_dir == original.capture_dir
    assert loaded.screenshots_dir == original.screenshots_dir
    assert loaded.journal_enabled is False
