"""Provider contracts used by the capture pipeline.

Every provider call may raise ProviderError; callers absorb it and degrade
the corresponding field to None.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol


@dataclass(frozen=True)
class ForegroundApp:
    name: Optional[str]
    bundle_id: Optional[str]
    window: Optional[str]


@dataclass(frozen=True)
class BrowserTab:
    active: bool
    url: Optional[str] = None
    title: Optional[str] = None
    favicon: Optional[str] = None


class ForegroundAppProvider(Protocol):
    async def frontmost(self) -> ForegroundApp:
        ...


class BrowserTabProvider(Protocol):
    async def list_tabs(self, app: str) -> list[BrowserTab]:
        ...

    async def front_tab_title(self, app: str) -> Optional[str]:
        ...

    async def page_content(self, app: str) -> Optional[str]:
        ...


class ClipboardProvider(Protocol):
    async def read_text(self) -> Optional[str]:
        ...


class SelectionProvider(Protocol):
    async def read_selection(self) -> Optional[str]:
        ...


class ScreenshotProvider(Protocol):
    async def capture(self, path: Path, *, interactive: bool = False) -> Optional[Path]:
        ...


@dataclass
class Providers:
    """Bundle of capability providers injected into the pipeline."""

    foreground: ForegroundAppProvider
    browser: BrowserTabProvider
    clipboard: ClipboardProvider
    selection: SelectionProvider
    screenshot: ScreenshotProvider
