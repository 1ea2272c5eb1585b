"""Append-only JSONL journal of capture activity."""

import json
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models.journal import JournalEvent, JournalEventType

logger = logging.getLogger(__name__)


class CaptureJournal:
    """Records what happened to captures in ``<capture_dir>/.journal.jsonl``.

    Lines are only ever appended. The journal is an audit trail, not part
    of the capture itself, so a failed append is logged and swallowed.
    """

    def __init__(self, journal_path: Path, run_id: str | None = None, enabled: bool = True):
        """
        Args:
            journal_path: The .journal.jsonl file
            run_id: Identifier shared by every event of this invocation
            enabled: False turns append_event into a no-op
        """
        self.journal_path = journal_path
        self.run_id = run_id or str(uuid.uuid4())
        self.enabled = enabled

    def append_event(
        self,
        event_type: JournalEventType,
        payload: dict,
        capture_id: str | None = None,
    ) -> JournalEvent | None:
        """Write one event line.

        Returns:
            The event written, or None when disabled or the write failed
        """
        if not self.enabled:
            return None

        event = JournalEvent(
            event_id=str(uuid.uuid4()),
            run_id=self.run_id,
            ts=datetime.now(timezone.utc),
            event_type=event_type,
            capture_id=capture_id,
            payload=payload,
        )
        line = json.dumps(event.model_dump(mode="json"))

        try:
            self.journal_path.parent.mkdir(parents=True, exist_ok=True)
            with self.journal_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error(f"Failed to append {event_type} to journal {self.journal_path}: {e}")
            return None

        return event


def read_journal_tail(journal_path: Path, n: int = 20) -> list[JournalEvent]:
    """Return the events on the last ``n`` non-empty lines, oldest first.

    Lines that are not valid events are logged and left out.
    """
    if not journal_path.exists():
        return []

    with journal_path.open("r", encoding="utf-8") as f:
        tail = deque((line.strip() for line in f if line.strip()), maxlen=n)

    events: list[JournalEvent] = []
    skipped = 0
    for line in tail:
        try:
            events.append(JournalEvent.model_validate_json(line))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping malformed journal line: {e.errors()[0]['msg']}")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed journal line(s) in {journal_path}")

    return events
