"""Path management for the capture and screenshot directories."""

from datetime import datetime
from pathlib import Path
from urllib.parse import unquote, urlparse

from .config import GlanceConfig

METADATA_DIRNAME = ".metadata"
JOURNAL_FILENAME = ".journal.jsonl"
RECORD_EXTENSION = ".json"


def sanitize_timestamp(timestamp: str) -> str:
    """Make an ISO-8601 timestamp safe for use in a file name.

    Colons are invalid in some filesystem path segments; they are replaced
    with dashes. The stored ``timestamp`` field keeps the original form.
    """
    return timestamp.replace(":", "-")


def iso_timestamp(moment: datetime) -> str:
    """Format an aware datetime as ISO-8601 UTC with microsecond precision."""
    return moment.isoformat(timespec="microseconds").replace("+00:00", "Z")


def to_file_uri(path: Path) -> str:
    """Return the file-scheme URI for an absolute path."""
    return path.absolute().as_uri()


def strip_file_scheme(value: str) -> Path:
    """Resolve a ``file://`` URI (or a plain path) to a filesystem path."""
    if value.startswith("file://"):
        return Path(unquote(urlparse(value).path))
    return Path(value)


def is_within(path: Path, directory: Path) -> bool:
    """Check whether ``path`` lives under ``directory``."""
    try:
        path.resolve().relative_to(directory.resolve())
        return True
    except ValueError:
        return False


class CapturePaths:
    """Manages paths for the capture store and the screenshots library."""

    def __init__(self, capture_dir: Path, screenshots_dir: Path):
        """Initialize paths from the two configured directories.

        Args:
            capture_dir: Directory holding capture records and owned images
            screenshots_dir: Directory of externally produced screenshots
        """
        self.captures = capture_dir
        self.screenshots = screenshots_dir
        self.metadata = screenshots_dir / METADATA_DIRNAME
        self.journal_file = capture_dir / JOURNAL_FILENAME

    @classmethod
    def from_config(cls, config: GlanceConfig) -> "CapturePaths":
        """Create CapturePaths from a GlanceConfig."""
        return cls(config.capture_dir, config.screenshots_dir)

    def record_path(self, name: str, timestamp: str) -> Path:
        """Path of a capture record: ``{name}-{sanitizedTimestamp}.json``."""
        return self.captures / f"{name}-{sanitize_timestamp(timestamp)}{RECORD_EXTENSION}"

    def image_path(self, timestamp: str, extension: str) -> Path:
        """Path of an owned screenshot image inside the capture directory.

        Args:
            timestamp: ISO-8601 timestamp the name is derived from
            extension: Image extension, with or without a leading dot
        """
        return self.captures / f"screenshot-{sanitize_timestamp(timestamp)}.{extension.lstrip('.')}"

    def sidecar_path(self, image_path: Path) -> Path:
        """Sidecar metadata path for an external image: ``.metadata/{filename}.json``."""
        return self.metadata / f"{image_path.name}{RECORD_EXTENSION}"
