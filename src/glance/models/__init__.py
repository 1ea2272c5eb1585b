"""Pydantic models for Glance."""

from .capture import (
    CAPTURE_TYPES,
    SCHEMA_VERSION,
    CaptureContext,
    CapturedData,
    CaptureInput,
    CaptureType,
    ScreenshotEntry,
    StoredCapture,
    parse_timestamp,
)
from .journal import JournalEvent, JournalEventType

__all__ = [
    # Capture records
    "CAPTURE_TYPES",
    "SCHEMA_VERSION",
    "CaptureType",
    "CaptureContext",
    "CaptureInput",
    "CapturedData",
    "StoredCapture",
    "ScreenshotEntry",
    "parse_timestamp",
    # Journal
    "JournalEvent",
    "JournalEventType",
]
