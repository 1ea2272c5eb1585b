"""Pydantic models for capture records."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CaptureType = Literal["screenshot", "clipboard", "selection"]

CAPTURE_TYPES: tuple[str, ...] = ("screenshot", "clipboard", "selection")

SCHEMA_VERSION = 1


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO-8601 timestamp (accepts a trailing ``Z``).

    Naive values are taken as UTC so every record sorts on one axis.
    """
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class CaptureContext(BaseModel):
    """Desktop context at the moment of capture.

    ``url``, ``title`` and ``favicon`` are only ever populated when ``app``
    is a supported browser.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    app: Optional[str] = None
    bundle_id: Optional[str] = Field(default=None, alias="bundleId")
    window: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    favicon: Optional[str] = None


class CaptureInput(BaseModel):
    """Type-specific payload returned by a data producer."""

    model_config = ConfigDict(populate_by_name=True)

    selected_text: Optional[str] = Field(default=None, alias="selectedText")
    screenshot_path: Optional[str] = Field(default=None, alias="screenshotPath")
    active_view_content: Optional[str] = Field(default=None, alias="activeViewContent")
    comment: Optional[str] = None


class CapturedData(BaseModel):
    """A persisted capture record.

    Written as ``{type}-{sanitizedTimestamp}.json`` in the capture directory.
    Field names on disk are camelCase; unknown fields from hand edits are
    kept on rewrite.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(min_length=1, description="Unique capture identifier (uuid4)")
    type: CaptureType = Field(description="Capture method that produced the record")
    timestamp: str = Field(min_length=1, description="Creation instant (ISO-8601)")
    selected_text: Optional[str] = Field(default=None, alias="selectedText")
    screenshot_path: Optional[str] = Field(default=None, alias="screenshotPath")
    active_view_content: Optional[str] = Field(default=None, alias="activeViewContent")
    comment: Optional[str] = None
    tags: Optional[list[str]] = None
    app: Optional[str] = None
    bundle_id: Optional[str] = Field(default=None, alias="bundleId")
    url: Optional[str] = None
    window: Optional[str] = None
    favicon: Optional[str] = None
    title: Optional[str] = None
    schema_version: int = Field(default=SCHEMA_VERSION, alias="schemaVersion")

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value

    @property
    def moment(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @property
    def context(self) -> CaptureContext:
        return CaptureContext(
            app=self.app,
            bundle_id=self.bundle_id,
            window=self.window,
            url=self.url,
            title=self.title,
            favicon=self.favicon,
        )

    def to_json(self) -> str:
        """Serialize as pretty-printed JSON with on-disk field names."""
        return self.model_dump_json(by_alias=True, indent=2)


class StoredCapture(BaseModel):
    """A record loaded from the capture directory."""

    path: Path
    record: CapturedData
    timestamp: datetime


class ScreenshotEntry(BaseModel):
    """An external screenshot together with its sidecar record."""

    path: Path
    metadata_path: Path
    record: CapturedData
    timestamp: datetime
