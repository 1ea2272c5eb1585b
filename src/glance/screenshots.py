"""External screenshot library with lazily created sidecar records."""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import PersistenceError
from .journal import CaptureJournal
from .models.capture import CapturedData, ScreenshotEntry
from .paths import CapturePaths, iso_timestamp, to_file_uri
from .repository import CaptureRepository

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".png", ".gif", ".mp4", ".jpg", ".jpeg", ".webp", ".heic"})


def is_image_file(path: Path) -> bool:
    return not path.name.startswith(".") and path.suffix.lower() in IMAGE_EXTENSIONS


class ScreenshotLibrary:
    """Images produced outside Glance (e.g. by the OS screenshot tool).

    Each image gets a sidecar record in ``.metadata/{filename}.json`` on
    first inspection. The images themselves are never modified.
    """

    def __init__(
        self,
        paths: CapturePaths,
        repository: CaptureRepository,
        journal: Optional[CaptureJournal] = None,
    ):
        self.paths = paths
        self.repository = repository
        self.journal = journal

    def list(self) -> list[ScreenshotEntry]:
        """List screenshots with their sidecar records, newest first."""
        self.repository.ensure_directory(self.paths.screenshots)
        self.repository.ensure_directory(self.paths.metadata)

        entries: list[ScreenshotEntry] = []
        for image in sorted(self.paths.screenshots.iterdir()):
            if not image.is_file() or not is_image_file(image):
                continue
            entry = self.entry_for(image)
            if entry is not None:
                entries.append(entry)

        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries

    def get(self, filename: str) -> Optional[ScreenshotEntry]:
        """Look up a screenshot by file name."""
        image = self.paths.screenshots / filename
        if not image.is_file() or not is_image_file(image):
            return None
        return self.entry_for(image)

    def entry_for(self, image: Path) -> Optional[ScreenshotEntry]:
        sidecar = self.paths.sidecar_path(image)
        record = self._load_sidecar(image, sidecar)
        if record is None:
            return None
        return ScreenshotEntry(path=image, metadata_path=sidecar, record=record, timestamp=record.moment)

    def _load_sidecar(self, image: Path, sidecar: Path) -> Optional[CapturedData]:
        if sidecar.exists():
            try:
                return self.repository.read(sidecar)
            except PersistenceError as e:
                # Keep the hand-edited file as is; work from a fresh record
                logger.warning(f"Ignoring unreadable sidecar {sidecar}: {e}")
                return self._synthesize(image)

        record = self._synthesize(image)
        if record is None:
            return None

        try:
            self.repository.write(sidecar, record, overwrite=False)
        except PersistenceError as e:
            logger.warning(f"Failed to create sidecar for {image.name}: {e}")
            return record

        logger.debug(f"Created sidecar {sidecar}")
        if self.journal is not None:
            self.journal.append_event(
                event_type="SIDECAR_CREATED",
                capture_id=record.id,
                payload={"image": str(image), "sidecar": str(sidecar)},
            )
        return record

    def _synthesize(self, image: Path) -> Optional[CapturedData]:
        """Build a sidecar record from the image file alone."""
        try:
            stats = image.stat()
        except OSError as e:
            logger.warning(f"Failed to stat {image}: {e}")
            return None

        created = getattr(stats, "st_birthtime", stats.st_mtime)
        return CapturedData(
            id=str(uuid.uuid4()),
            type="screenshot",
            timestamp=iso_timestamp(datetime.fromtimestamp(created, tz=timezone.utc)),
            screenshot_path=to_file_uri(image),
        )
