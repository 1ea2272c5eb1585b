"""Pydantic models for capture journal events."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

JournalEventType = Literal[
    "CAPTURE_SAVED",
    "CAPTURE_AMENDED",
    "CAPTURE_PROMOTED",
    "SIDECAR_CREATED",
    "ORPHAN_SCREENSHOT_REMOVED",
]


class JournalEvent(BaseModel):
    """One line of ``<capture_dir>/.journal.jsonl``."""

    model_config = {"frozen": True}

    event_id: str = Field(description="uuid4 of this event")
    run_id: str = Field(description="uuid4 shared by all events of one invocation")
    ts: datetime = Field(description="When the event was written (UTC)")
    event_type: JournalEventType
    capture_id: str | None = Field(default=None, description="Capture the event refers to")
    payload: dict = Field(default_factory=dict, description="Paths and other event details")
