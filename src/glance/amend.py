"""Comments and tags on existing captures.

A record already in the capture directory is updated in place. A record
describing an image in the screenshots directory is promoted instead: the
image is copied into the capture directory and a new record is written,
leaving the original image and its sidecar untouched.
"""

import logging
import shutil
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .errors import AmendError, PersistenceError
from .journal import CaptureJournal
from .models.capture import CapturedData
from .paths import CapturePaths, iso_timestamp, is_within, strip_file_scheme, to_file_uri
from .repository import CaptureRepository

logger = logging.getLogger(__name__)


def parse_tags(tags: Union[str, list[str], None]) -> Optional[list[str]]:
    """Split comma-separated tags, trimming and dropping empties."""
    if tags is None:
        return None
    items = tags.split(",") if isinstance(tags, str) else tags
    return [tag.strip() for tag in items if tag and tag.strip()]


@dataclass
class AmendResult:
    path: Path
    record: CapturedData
    promoted: bool


class AmendmentService:
    """Applies user annotations to stored or external captures."""

    def __init__(
        self,
        paths: CapturePaths,
        repository: CaptureRepository,
        journal: Optional[CaptureJournal] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.paths = paths
        self.repository = repository
        self.journal = journal
        self.clock = clock

    def amend(
        self,
        record: CapturedData,
        path: Path,
        comment: Optional[str],
        tags: Union[str, list[str], None] = None,
    ) -> AmendResult:
        """Attach a comment (and optionally tags) to a capture.

        Args:
            record: The record as loaded
            path: File the record was loaded from, or its sidecar path
            comment: New comment text
            tags: Comma-separated string or list; None keeps existing tags

        Returns:
            AmendResult describing where the annotation was written

        Raises:
            AmendError: If an external record has no image to promote
            PersistenceError: If copying or writing fails
        """
        source = strip_file_scheme(record.screenshot_path) if record.screenshot_path else None

        if source is not None and is_within(source, self.paths.screenshots):
            return self._promote(record, source, comment, parse_tags(tags))

        if is_within(path, self.paths.screenshots):
            raise AmendError(f"Screenshot path is missing for {path.name}")

        return self._update_in_place(record, path, comment, parse_tags(tags))

    def _update_in_place(
        self,
        record: CapturedData,
        path: Path,
        comment: Optional[str],
        tags: Optional[list[str]],
    ) -> AmendResult:
        updates: dict = {"comment": comment}
        if tags is not None:
            updates["tags"] = tags
        updated = record.model_copy(update=updates)

        self.repository.write(path, updated)
        logger.debug(f"Updated capture {record.id} in place at {path}")

        if self.journal is not None:
            self.journal.append_event(
                event_type="CAPTURE_AMENDED",
                capture_id=record.id,
                payload={"path": str(path), "tags": tags},
            )
        return AmendResult(path=path, record=updated, promoted=False)

    def _promote(
        self,
        record: CapturedData,
        source: Path,
        comment: Optional[str],
        tags: Optional[list[str]],
    ) -> AmendResult:
        if not source.is_file():
            raise AmendError(f"Screenshot not found: {source}")

        timestamp = iso_timestamp(self.clock())
        image_copy = self.paths.image_path(timestamp, source.suffix or ".png")
        self.repository.ensure_directory(self.paths.captures)

        if image_copy.exists():
            raise PersistenceError(f"Refusing to overwrite existing screenshot: {image_copy}")
        try:
            shutil.copy2(source, image_copy)
        except OSError as e:
            logger.error(f"Failed to copy {source} to {image_copy}: {e}")
            image_copy.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to copy screenshot {source.name}: {e}", cause=e) from e

        promoted = CapturedData(
            id=str(uuid.uuid4()),
            type="screenshot",
            timestamp=timestamp,
            selected_text=record.selected_text,
            screenshot_path=to_file_uri(image_copy),
            active_view_content=record.active_view_content,
            comment=comment,
            tags=tags if tags is not None else record.tags,
            app=record.app,
            bundle_id=record.bundle_id,
            url=record.url,
            window=record.window,
            favicon=record.favicon,
            title=record.title,
        )

        try:
            path = self.repository.save(promoted)
        except PersistenceError:
            # The copy must not outlive a record that was never written
            image_copy.unlink(missing_ok=True)
            raise

        logger.debug(f"Promoted {source.name} to capture {promoted.id}")
        if self.journal is not None:
            self.journal.append_event(
                event_type="CAPTURE_PROMOTED",
                capture_id=promoted.id,
                payload={"source": str(source), "image": str(image_copy), "path": str(path)},
            )
        return AmendResult(path=path, record=promoted, promoted=True)
