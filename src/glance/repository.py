"""Flat-file storage for capture records."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import PersistenceError
from .journal import CaptureJournal
from .models.capture import CapturedData, StoredCapture
from .paths import RECORD_EXTENSION, CapturePaths

logger = logging.getLogger(__name__)

# Older record shapes mapped onto canonical field names
LEGACY_FIELD_MAP = {
    "activeAppName": "app",
    "frontAppName": "app",
    "activeAppBundleId": "bundleId",
    "activeURL": "url",
    "clipboardText": "selectedText",
    "browserTabHTML": "activeViewContent",
    "content": "selectedText",
    "text": "selectedText",
    "screenshotUrl": "screenshotPath",
    "pageContent": "activeViewContent",
    "windowTitle": "window",
    "pageTitle": "title",
}

LEGACY_GROUPS = ("content", "source", "metadata")


def migrate_record_data(data: dict) -> dict:
    """Map legacy record shapes onto the canonical field names.

    Handles the flat ``activeAppName``/``clipboardText`` shape, the
    ``content``/``pageContent``/``windowTitle`` shape and nested
    ``content``/``source``/``metadata`` groups. A canonical field that is
    already present always wins. Nothing is invented: a record without
    ``id``, ``type`` or ``timestamp`` stays invalid.
    """
    migrated = dict(data)

    for group in LEGACY_GROUPS:
        nested = migrated.get(group)
        if isinstance(nested, dict):
            del migrated[group]
            for key, value in nested.items():
                migrated.setdefault(key, value)

    for legacy_key, canonical_key in LEGACY_FIELD_MAP.items():
        if legacy_key not in migrated:
            continue
        value = migrated.pop(legacy_key)
        if isinstance(value, (dict, list)):
            continue
        if migrated.get(canonical_key) is None:
            migrated[canonical_key] = value

    return migrated


def parse_record(text: str) -> CapturedData:
    """Parse record JSON, migrating legacy shapes.

    Raises:
        ValueError: If the text is not a JSON object or fails validation
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return CapturedData.model_validate(migrate_record_data(data))


class CaptureRepository:
    """Reads and writes CapturedData records as individual JSON files.

    Records are named ``{type}-{sanitizedTimestamp}.json``. The timestamp
    carries sub-second precision; a name collision is not expected, but
    ``save`` refuses to replace an existing file rather than overwrite it.
    """

    def __init__(self, paths: CapturePaths, journal: Optional[CaptureJournal] = None):
        """Initialize repository.

        Args:
            paths: Capture/screenshot directory layout
            journal: Optional journal receiving CAPTURE_SAVED events
        """
        self.paths = paths
        self.journal = journal

    def ensure_directory(self, directory: Path) -> None:
        """Create a directory (and parents) if needed."""
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")
            raise PersistenceError(f"Failed to create directory {directory}: {e}", cause=e) from e

    def save(self, record: CapturedData) -> Path:
        """Persist a new record in the capture directory.

        Args:
            record: Fully assembled record

        Returns:
            Path of the written file

        Raises:
            PersistenceError: If the directory or file cannot be written,
                or a record with the same name already exists
        """
        path = self.paths.record_path(record.type, record.timestamp)
        self.write(path, record, overwrite=False)
        logger.debug(f"Saved {record.type} capture {record.id} to {path}")

        if self.journal is not None:
            self.journal.append_event(
                event_type="CAPTURE_SAVED",
                capture_id=record.id,
                payload={"type": record.type, "path": str(path)},
            )
        return path

    def write(self, path: Path, record: CapturedData, overwrite: bool = True) -> None:
        """Write a record atomically.

        The full document is composed in memory, written to a temporary file
        next to the target and moved into place in one step.

        Raises:
            PersistenceError: On any filesystem failure
        """
        self.ensure_directory(path.parent)

        if not overwrite and path.exists():
            raise PersistenceError(f"Refusing to overwrite existing capture: {path}")

        temp_file = path.with_name(path.name + ".tmp")
        try:
            temp_file.write_text(record.to_json() + "\n", encoding="utf-8")
            temp_file.replace(path)
        except OSError as e:
            logger.error(f"Failed to write capture to {path}: {e}")
            temp_file.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write capture to {path}: {e}", cause=e) from e

    def read(self, path: Path) -> CapturedData:
        """Read and validate a single record.

        Raises:
            PersistenceError: If the file is unreadable or not a valid record
        """
        try:
            return parse_record(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Invalid capture file {path}: {e}", cause=e) from e

    def load(self, directory: Optional[Path] = None) -> list[StoredCapture]:
        """Load every valid record from a directory, newest first.

        Files that fail to parse or lack ``id``/``type``/``timestamp`` are
        logged and skipped; they never abort the load.

        Args:
            directory: Directory to scan (default: the capture directory)

        Returns:
            StoredCapture list sorted by timestamp descending
        """
        directory = directory or self.paths.captures
        self.ensure_directory(directory)

        captures: list[StoredCapture] = []
        skipped = 0
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix != RECORD_EXTENSION:
                continue
            try:
                record = parse_record(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                skipped += 1
                reason = "missing or invalid fields" if isinstance(e, ValidationError) else str(e)
                logger.warning(f"Skipping invalid capture {path.name}: {reason}")
                continue
            captures.append(StoredCapture(path=path, record=record, timestamp=record.moment))

        if skipped:
            logger.warning(f"Skipped {skipped} invalid capture file(s) in {directory}")

        captures.sort(key=lambda c: c.timestamp, reverse=True)
        return captures

    def find(self, capture_id: str, directory: Optional[Path] = None) -> Optional[StoredCapture]:
        """Find a stored capture by id (or unique id prefix)."""
        matches = [c for c in self.load(directory) if c.record.id.startswith(capture_id)]
        if len(matches) == 1:
            return matches[0]
        exact = [c for c in matches if c.record.id == capture_id]
        return exact[0] if exact else None
