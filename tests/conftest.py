"""Pytest fixtures for Glance tests."""

from pathlib import Path
from typing import Optional

import pytest

from glance.config import GlanceConfig
from glance.errors import ProviderError
from glance.journal import CaptureJournal
from glance.paths import CapturePaths
from glance.providers.base import BrowserTab, ForegroundApp, Providers
from glance.repository import CaptureRepository

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"


class FakeForeground:
    def __init__(self, app: Optional[ForegroundApp] = None, error: Optional[Exception] = None):
        self.app = app
        self.error = error
        self.calls = 0

    async def frontmost(self) -> ForegroundApp:
        self.calls += 1
        if self.error:
            raise self.error
        return self.app


class FakeBrowser:
    def __init__(
        self,
        tabs: Optional[list[BrowserTab]] = None,
        front_title: Optional[str] = None,
        content: Optional[str] = None,
        tabs_error: Optional[Exception] = None,
        title_error: Optional[Exception] = None,
        content_error: Optional[Exception] = None,
    ):
        self.tabs = tabs or []
        self.front_title = front_title
        self.content = content
        self.tabs_error = tabs_error
        self.title_error = title_error
        self.content_error = content_error
        self.calls: list[str] = []

    async def list_tabs(self, app: str) -> list[BrowserTab]:
        self.calls.append("list_tabs")
        if self.tabs_error:
            raise self.tabs_error
        return self.tabs

    async def front_tab_title(self, app: str) -> Optional[str]:
        self.calls.append("front_tab_title")
        if self.title_error:
            raise self.title_error
        return self.front_title

    async def page_content(self, app: str) -> Optional[str]:
        self.calls.append("page_content")
        if self.content_error:
            raise self.content_error
        return self.content


class FakeClipboard:
    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None):
        self.text = text
        self.error = error

    async def read_text(self) -> Optional[str]:
        if self.error:
            raise self.error
        return self.text


class FakeSelection:
    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None):
        self.text = text
        self.error = error

    async def read_selection(self) -> Optional[str]:
        if self.error:
            raise self.error
        return self.text


class FakeScreenshot:
    """Writes a small PNG to the requested path."""

    def __init__(self, error: Optional[Exception] = None, cancel: bool = False):
        self.error = error
        self.cancel = cancel
        self.requests: list[tuple[Path, bool]] = []

    async def capture(self, path: Path, *, interactive: bool = False) -> Optional[Path]:
        self.requests.append((path, interactive))
        if self.error:
            raise self.error
        if self.cancel:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(PNG_BYTES)
        return path


class RecordingNotifier:
    def __init__(self):
        self.events: list[tuple[str, Optional[str]]] = []

    def capturing(self) -> None:
        self.events.append(("capturing", None))

    def success(self, message: Optional[str] = None) -> None:
        self.events.append(("success", message))

    def failure(self, error: BaseException, title: str = "Capture Failed") -> None:
        self.events.append(("failure", str(error)))


@pytest.fixture
def capture_dir(tmp_path):
    """Capture directory (not created up front)."""
    return tmp_path / "captures"


@pytest.fixture
def screenshots_dir(tmp_path):
    """External screenshots directory with its .metadata folder."""
    directory = tmp_path / "Screenshots"
    (directory / ".metadata").mkdir(parents=True)
    return directory


@pytest.fixture
def config(capture_dir, screenshots_dir):
    """GlanceConfig pointing at temporary directories."""
    return GlanceConfig(capture_dir=capture_dir, screenshots_dir=screenshots_dir)


@pytest.fixture
def paths(config):
    return CapturePaths.from_config(config)


@pytest.fixture
def journal(paths):
    return CaptureJournal(paths.journal_file)


@pytest.fixture
def repository(paths, journal):
    return CaptureRepository(paths, journal=journal)


@pytest.fixture
def browser_app():
    return ForegroundApp(name="Arc", bundle_id="company.thebrowser.Browser", window="Docs - Arc")


@pytest.fixture
def editor_app():
    return ForegroundApp(name="TextEdit", bundle_id="com.apple.TextEdit", window="notes.txt")


@pytest.fixture
def providers(editor_app):
    """Provider bundle for a non-browser foreground app."""
    return Providers(
        foreground=FakeForeground(editor_app),
        browser=FakeBrowser(),
        clipboard=FakeClipboard("copied text"),
        selection=FakeSelection(error=ProviderError("no selection")),
        screenshot=FakeScreenshot(),
    )
