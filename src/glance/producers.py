"""Type-specific data producers for each capture entry point.

A producer is a zero-argument coroutine function returning a CaptureInput.
Provider failures inside a producer degrade to None fields; only the
validation predicate decides whether the capture goes ahead.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional, Union

from .config import GlanceConfig
from .models.capture import CaptureInput, CaptureType
from .paths import CapturePaths, iso_timestamp, to_file_uri
from .providers.base import Providers

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[CaptureInput]]
Validator = Callable[[CaptureInput], Union[bool, str]]

CaptureKind = Literal["screenshot", "clipboard", "selection", "area"]
CAPTURE_KINDS: tuple[str, ...] = ("screenshot", "clipboard", "selection", "area")


def require_text(message: str) -> Validator:
    """Validator accepting payloads that carry selected/clipboard text."""

    def validate(data: CaptureInput) -> Union[bool, str]:
        return True if data.selected_text else message

    return validate


def require_screenshot(message: str) -> Validator:
    """Validator accepting payloads that carry a screenshot."""

    def validate(data: CaptureInput) -> Union[bool, str]:
        return True if data.screenshot_path else message

    return validate


@dataclass
class CaptureRequest:
    """Everything the assembler needs for one capture."""

    type: CaptureType
    produce: Producer
    validate: Optional[Validator] = None


class CaptureProducers:
    """Builds producers on top of the injected providers."""

    def __init__(
        self,
        providers: Providers,
        paths: CapturePaths,
        config: GlanceConfig,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.providers = providers
        self.paths = paths
        self.config = config
        self.clock = clock

    async def take_screenshot(self, interactive: bool = False) -> Optional[str]:
        """Capture an image into the capture directory.

        Returns:
            File URI of the written image, or None if capture failed or
            was cancelled
        """
        path = self.paths.image_path(iso_timestamp(self.clock()), self.config.screenshot_format)
        try:
            written = await self.providers.screenshot.capture(path, interactive=interactive)
        except Exception as e:
            logger.debug(f"Screenshot capture failed: {e}")
            return None

        if written is None or not written.exists():
            logger.debug(f"No screenshot written to {path}")
            return None
        return to_file_uri(written)

    async def read_clipboard(self) -> Optional[str]:
        try:
            return await self.providers.clipboard.read_text()
        except Exception as e:
            logger.debug(f"Clipboard read failed: {e}")
            return None

    async def read_selection(self) -> Optional[str]:
        try:
            return await self.providers.selection.read_selection()
        except Exception as e:
            logger.debug(f"Selection unavailable: {e}")
            return None

    def screenshot(self, comment: Optional[str] = None) -> CaptureRequest:
        """Full-screen screenshot, plus the current selection if any."""

        async def produce() -> CaptureInput:
            screenshot_path = await self.take_screenshot()
            selected_text = await self.read_selection()
            return CaptureInput(
                screenshot_path=screenshot_path,
                selected_text=selected_text,
                comment=comment,
            )

        return CaptureRequest(type="screenshot", produce=produce)

    def clipboard(self, comment: Optional[str] = None) -> CaptureRequest:
        """Clipboard text with a screenshot for context."""

        async def produce() -> CaptureInput:
            screenshot_path, clipboard_text = await asyncio.gather(
                self.take_screenshot(),
                self.read_clipboard(),
            )
            return CaptureInput(
                selected_text=clipboard_text,
                screenshot_path=screenshot_path,
                comment=comment,
            )

        return CaptureRequest(
            type="clipboard",
            produce=produce,
            validate=require_text("No text in clipboard"),
        )

    def selection(self, comment: Optional[str] = None) -> CaptureRequest:
        """Selected text; falls back to the clipboard when unavailable."""

        async def produce() -> CaptureInput:
            selected_text = await self.read_selection()
            if not selected_text and self.config.selection_fallback_to_clipboard:
                selected_text = await self.read_clipboard()
            return CaptureInput(selected_text=selected_text, comment=comment)

        return CaptureRequest(
            type="selection",
            produce=produce,
            validate=require_text("No text selected"),
        )

    def area(self, comment: Optional[str] = None) -> CaptureRequest:
        """Interactive region screenshot with an optional comment."""

        async def produce() -> CaptureInput:
            screenshot_path = await self.take_screenshot(interactive=True)
            return CaptureInput(screenshot_path=screenshot_path, comment=comment)

        return CaptureRequest(
            type="screenshot",
            produce=produce,
            validate=require_screenshot("Screenshot capture was cancelled or failed"),
        )

    def build(self, kind: CaptureKind, comment: Optional[str] = None) -> CaptureRequest:
        """Look up the request builder for a capture kind."""
        builders = {
            "screenshot": self.screenshot,
            "clipboard": self.clipboard,
            "selection": self.selection,
            "area": self.area,
        }
        if kind not in builders:
            raise ValueError(f"Unknown capture kind: {kind}")
        return builders[kind](comment)
