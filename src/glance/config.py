"""Configuration management for Glance."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_DIR = "~/Documents/Glance/captures"
DEFAULT_SCREENSHOTS_DIR = "~/Desktop/Screenshots"
DEFAULT_SUPPORTED_BROWSERS = ["Arc", "Brave", "Chrome", "Safari", "Firefox", "Orion"]


def _default_config_file() -> Path:
    """Location of the user config file (GLANCE_CONFIG overrides)."""
    env_file = os.environ.get("GLANCE_CONFIG")
    if env_file:
        return Path(env_file).expanduser()
    return Path.home() / ".config" / "glance" / "config.toml"


def _load_config_file_data(config_file: Path) -> Optional[dict]:
    """Load TOML config data if the file exists."""
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        # A malformed config file must not block a capture
        logger.warning(f"Ignoring unreadable config file {config_file}: {e}")
        return None


def _get_config_value(data: Optional[dict], keys: list[str]):
    """Safely get a nested config value."""
    if not data:
        return None
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _positive_float(name: str, value, default: float) -> float:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or number <= 0:
        logger.warning(f"Ignoring invalid {name} {value!r}; using {default}")
        return default
    return number


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


class GlanceConfig(BaseModel):
    """Configuration for capture storage and providers.

    Passed explicitly to every component that touches the filesystem or
    a provider; nothing reads preferences at import time.
    """

    capture_dir: Path = Field(default=Path(DEFAULT_CAPTURE_DIR))
    screenshots_dir: Path = Field(default=Path(DEFAULT_SCREENSHOTS_DIR))
    supported_browsers: list[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_BROWSERS))
    screenshot_format: str = Field(default="png")
    journal_enabled: bool = Field(default=True)
    cleanup_orphaned_screenshots: bool = Field(default=True)
    selection_fallback_to_clipboard: bool = Field(default=True)
    provider_timeout_seconds: float = Field(default=10.0)

    model_config = {"frozen": False}

    @field_validator("capture_dir", "screenshots_dir", mode="before")
    @classmethod
    def _expand_directory(cls, value):
        return Path(str(value)).expanduser().absolute()

    @field_validator("screenshot_format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        return value.lower().lstrip(".")

    def to_toml_str(self) -> str:
        """Render the effective configuration as TOML."""
        browsers = ", ".join(f'"{b}"' for b in self.supported_browsers)
        return f"""# Glance configuration

[directories]
captures = "{self.capture_dir}"
screenshots = "{self.screenshots_dir}"

[capture]
supported_browsers = [{browsers}]
screenshot_format = "{self.screenshot_format}"
journal_enabled = {str(self.journal_enabled).lower()}
cleanup_orphaned_screenshots = {str(self.cleanup_orphaned_screenshots).lower()}
selection_fallback_to_clipboard = {str(self.selection_fallback_to_clipboard).lower()}
provider_timeout_seconds = {self.provider_timeout_seconds}
"""


def load_config(
    cli_capture_dir: Optional[str] = None,
    cli_screenshots_dir: Optional[str] = None,
    config_file: Optional[Path] = None,
) -> GlanceConfig:
    """Resolve configuration with the following precedence:

    1. CLI options (--capture-dir, --screenshots-dir)
    2. Environment variables (GLANCE_*)
    3. TOML config file (GLANCE_CONFIG or ~/.config/glance/config.toml)
    4. Built-in defaults

    Args:
        cli_capture_dir: Capture directory from the CLI
        cli_screenshots_dir: Screenshots directory from the CLI
        config_file: Explicit config file path (tests, --config)

    Returns:
        GlanceConfig with expanded, absolute directories
    """
    data = _load_config_file_data(config_file or _default_config_file())

    capture_dir = _first(
        cli_capture_dir,
        os.environ.get("GLANCE_CAPTURE_DIR"),
        _get_config_value(data, ["directories", "captures"]),
        DEFAULT_CAPTURE_DIR,
    )
    screenshots_dir = _first(
        cli_screenshots_dir,
        os.environ.get("GLANCE_SCREENSHOTS_DIR"),
        _get_config_value(data, ["directories", "screenshots"]),
        DEFAULT_SCREENSHOTS_DIR,
    )

    browsers = _get_config_value(data, ["capture", "supported_browsers"])
    env_browsers = os.environ.get("GLANCE_SUPPORTED_BROWSERS")
    if env_browsers:
        browsers = [b.strip() for b in env_browsers.split(",") if b.strip()]
    if not isinstance(browsers, list) or not browsers:
        browsers = list(DEFAULT_SUPPORTED_BROWSERS)

    def file_bool(key: str, default: bool) -> bool:
        value = _get_config_value(data, ["capture", key])
        return value if isinstance(value, bool) else default

    return GlanceConfig(
        capture_dir=capture_dir,
        screenshots_dir=screenshots_dir,
        supported_browsers=browsers,
        screenshot_format=_first(
            os.environ.get("GLANCE_SCREENSHOT_FORMAT"),
            _get_config_value(data, ["capture", "screenshot_format"]),
            "png",
        ),
        journal_enabled=_env_bool("GLANCE_JOURNAL_ENABLED", file_bool("journal_enabled", True)),
        cleanup_orphaned_screenshots=_env_bool(
            "GLANCE_CLEANUP_ORPHANED_SCREENSHOTS",
            file_bool("cleanup_orphaned_screenshots", True),
        ),
        selection_fallback_to_clipboard=_env_bool(
            "GLANCE_SELECTION_FALLBACK_TO_CLIPBOARD",
            file_bool("selection_fallback_to_clipboard", True),
        ),
        provider_timeout_seconds=_positive_float(
            "provider_timeout_seconds",
            _first(
                os.environ.get("GLANCE_PROVIDER_TIMEOUT_SECONDS"),
                _get_config_value(data, ["capture", "provider_timeout_seconds"]),
            ),
            10.0,
        ),
    )
