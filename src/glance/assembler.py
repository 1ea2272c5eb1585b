"""Capture assembly: gather signals, reconcile them, persist once."""

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import GlanceConfig
from .errors import CaptureError, CaptureValidationError
from .journal import CaptureJournal
from .models.capture import CaptureContext, CapturedData, CaptureInput, CaptureType
from .notify import Notifier
from .paths import iso_timestamp, is_within, strip_file_scheme
from .producers import CaptureRequest, Producer, Validator
from .repository import CaptureRepository
from .resolver import ContextResolver

logger = logging.getLogger(__name__)


@dataclass
class CaptureOutcome:
    """Result reported back to the entry point."""

    success: bool
    record: Optional[CapturedData] = None
    path: Optional[Path] = None
    error: Optional[CaptureError] = None


class CaptureAssembler:
    """Orchestrates one capture from producer call to saved record.

    The timestamp is taken once on entry and reused for both the record
    and its file name. The type-specific producer and context resolution
    run concurrently.
    """

    def __init__(
        self,
        config: GlanceConfig,
        resolver: ContextResolver,
        repository: CaptureRepository,
        notifier: Optional[Notifier] = None,
        journal: Optional[CaptureJournal] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.resolver = resolver
        self.repository = repository
        self.notifier = notifier
        self.journal = journal
        self.clock = clock

    async def assemble(
        self,
        capture_type: CaptureType,
        produce: Producer,
        validate: Optional[Validator] = None,
    ) -> CapturedData:
        """Build a CapturedData record without persisting it.

        Args:
            capture_type: Capture method tag
            produce: Zero-argument coroutine function returning the payload
            validate: Optional predicate; anything but ``True`` rejects

        Raises:
            CaptureValidationError: If ``validate`` rejects the payload
        """
        timestamp = iso_timestamp(self.clock())
        context_task = asyncio.create_task(self.resolver.resolve())

        try:
            data = await produce()
            logger.debug(f"Raw {capture_type} capture data: {data!r}")
            self._validate(data, validate)
        except BaseException:
            context_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await context_task
            raise

        context = await context_task
        is_browser = self.resolver.is_supported_browser(context.app)

        content: Optional[str] = None
        if is_browser:
            content = data.active_view_content
            if content is None:
                content = await self.resolver.page_content(context)

        return CapturedData(
            id=str(uuid.uuid4()),
            type=capture_type,
            timestamp=timestamp,
            selected_text=data.selected_text,
            screenshot_path=data.screenshot_path,
            active_view_content=content,
            comment=data.comment,
            **self._context_fields(context, is_browser),
        )

    async def capture(
        self,
        capture_type: CaptureType,
        produce: Producer,
        validate: Optional[Validator] = None,
    ) -> CaptureOutcome:
        """Assemble, persist and notify.

        Capture errors are reported through the notifier and returned in the
        outcome rather than raised.
        """
        self._notify("capturing")
        try:
            record = await self.assemble(capture_type, produce, validate)
            path = await asyncio.to_thread(self.repository.save, record)
        except CaptureError as e:
            logger.error(f"{capture_type} capture failed: {e}")
            self._notify("failure", e)
            return CaptureOutcome(success=False, error=e)

        self._notify("success", f"Saved to {path.name}")
        return CaptureOutcome(success=True, record=record, path=path)

    async def run(self, request: CaptureRequest) -> CaptureOutcome:
        return await self.capture(request.type, request.produce, request.validate)

    def _validate(self, data: CaptureInput, validate: Optional[Validator]) -> None:
        if validate is None:
            return
        result = validate(data)
        if result is True:
            return

        self._discard_orphaned_screenshot(data)
        message = result if isinstance(result, str) else "Validation failed"
        raise CaptureValidationError(message)

    def _discard_orphaned_screenshot(self, data: CaptureInput) -> None:
        """Delete a screenshot taken for a capture that was then rejected."""
        if not self.config.cleanup_orphaned_screenshots or not data.screenshot_path:
            return

        image = strip_file_scheme(data.screenshot_path)
        # Only images this pipeline wrote into the capture directory
        if not is_within(image, self.config.capture_dir):
            return

        try:
            image.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove orphaned screenshot {image}: {e}")
            return

        logger.debug(f"Removed orphaned screenshot {image}")
        if self.journal is not None:
            self.journal.append_event(
                event_type="ORPHAN_SCREENSHOT_REMOVED",
                payload={"path": str(image)},
            )

    @staticmethod
    def _context_fields(context: CaptureContext, is_browser: bool) -> dict:
        fields = {
            "app": context.app,
            "bundle_id": context.bundle_id,
            "window": context.window,
            "url": None,
            "title": None,
            "favicon": None,
        }
        if is_browser:
            fields.update(url=context.url, title=context.title, favicon=context.favicon)
        return fields

    def _notify(self, event: str, *args) -> None:
        if self.notifier is not None:
            getattr(self.notifier, event)(*args)
