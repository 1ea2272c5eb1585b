"""macOS capability providers built on osascript, screencapture and pbpaste."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Optional

from ..config import GlanceConfig
from ..errors import ProviderError
from .base import BrowserTab, ForegroundApp, Providers

logger = logging.getLogger(__name__)

# AppleScript field/record separators (ASCII unit and record separators)
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

FRONTMOST_SCRIPT = """
tell application "System Events"
  set frontAppProcess to first application process whose frontmost is true
  set frontAppName to name of frontAppProcess
  set bundleID to ""
  try
    set bundleID to bundle identifier of frontAppProcess
  end try
  set windowTitle to ""
  try
    set windowTitle to name of front window of frontAppProcess
  end try
  return frontAppName & (ASCII character 31) & bundleID & (ASCII character 31) & windowTitle
end tell
"""

SELECTION_SCRIPT = """
tell application "System Events"
  set frontAppProcess to first application process whose frontmost is true
  set focusedElement to value of attribute "AXFocusedUIElement" of frontAppProcess
  return value of attribute "AXSelectedText" of focusedElement
end tell
"""

CHROMIUM_TABS_SCRIPT = """
tell application "{app}"
  set output to ""
  repeat with w in windows
    set t to active tab of w
    set output to output & (URL of t) & (ASCII character 31) & (title of t) & (ASCII character 30)
  end repeat
  return output
end tell
"""

WEBKIT_TABS_SCRIPT = """
tell application "{app}"
  set output to ""
  repeat with w in windows
    set t to current tab of w
    set output to output & (URL of t) & (ASCII character 31) & (name of t) & (ASCII character 30)
  end repeat
  return output
end tell
"""

CHROMIUM_TITLE_SCRIPT = 'tell application "{app}" to return title of active tab of front window'
WEBKIT_TITLE_SCRIPT = 'tell application "{app}" to return name of current tab of front window'

CHROMIUM_CONTENT_SCRIPT = (
    'tell application "{app}" to execute active tab of front window '
    'javascript "document.body.innerText"'
)
WEBKIT_CONTENT_SCRIPT = (
    'tell application "{app}" to do JavaScript "document.body.innerText" '
    "in current tab of front window"
)


async def run_command(args: list[str], timeout: float) -> str:
    """Run a command and return its decoded stdout.

    Raises:
        ProviderError: If the command cannot start, times out or exits non-zero
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProviderError(f"Failed to run {args[0]}: {e}", cause=e) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(f"{args[0]} timed out after {timeout}s", cause=e) from e
    finally:
        # Timeout or cancellation of the awaiting task must not orphan the child
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise ProviderError(f"{args[0]} exited with status {process.returncode}: {detail}")

    return stdout.decode("utf-8", errors="replace")


async def run_applescript(script: str, timeout: float) -> str:
    output = await run_command(["osascript", "-e", script], timeout)
    return output.rstrip("\n")


def _browser_dialect(app: str) -> str:
    """Pick the AppleScript dictionary a browser speaks."""
    lowered = app.lower()
    if "firefox" in lowered:
        raise ProviderError(f"{app} does not expose tabs to AppleScript")
    if "safari" in lowered or "orion" in lowered:
        return "webkit"
    return "chromium"


class MacForegroundAppProvider:
    def __init__(self, timeout: float):
        self.timeout = timeout

    async def frontmost(self) -> ForegroundApp:
        output = await run_applescript(FRONTMOST_SCRIPT, self.timeout)
        parts = output.split(FIELD_SEP)
        if len(parts) != 3:
            raise ProviderError(f"Unexpected frontmost app output: {output!r}")
        name, bundle_id, window = (part.strip() or None for part in parts)
        return ForegroundApp(name=name, bundle_id=bundle_id, window=window)


class MacBrowserTabProvider:
    """Browser tabs via AppleScript.

    Each window contributes its own active tab, so several tabs may be
    flagged active at once.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout

    async def list_tabs(self, app: str) -> list[BrowserTab]:
        template = CHROMIUM_TABS_SCRIPT if _browser_dialect(app) == "chromium" else WEBKIT_TABS_SCRIPT
        output = await run_applescript(template.format(app=app), self.timeout)

        tabs: list[BrowserTab] = []
        for record in output.split(RECORD_SEP):
            if not record.strip():
                continue
            url, _, title = record.partition(FIELD_SEP)
            tabs.append(BrowserTab(active=True, url=url.strip() or None, title=title.strip() or None))
        return tabs

    async def front_tab_title(self, app: str) -> Optional[str]:
        template = CHROMIUM_TITLE_SCRIPT if _browser_dialect(app) == "chromium" else WEBKIT_TITLE_SCRIPT
        title = await run_applescript(template.format(app=app), self.timeout)
        return title.strip() or None

    async def page_content(self, app: str) -> Optional[str]:
        template = CHROMIUM_CONTENT_SCRIPT if _browser_dialect(app) == "chromium" else WEBKIT_CONTENT_SCRIPT
        content = await run_applescript(template.format(app=app), self.timeout)
        return content or None


class MacClipboardProvider:
    def __init__(self, timeout: float):
        self.timeout = timeout

    async def read_text(self) -> Optional[str]:
        text = await run_command(["pbpaste"], self.timeout)
        return text or None


class MacSelectionProvider:
    def __init__(self, timeout: float):
        self.timeout = timeout

    async def read_selection(self) -> Optional[str]:
        text = await run_applescript(SELECTION_SCRIPT, self.timeout)
        return text or None


class MacScreenshotProvider:
    """Screenshots via the ``screencapture`` utility."""

    def __init__(self, timeout: float):
        self.timeout = timeout

    async def capture(self, path: Path, *, interactive: bool = False) -> Optional[Path]:
        """Capture the screen (or a user-selected region) to ``path``.

        Returns:
            The written path, or None if the user cancelled the selection
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        args = ["screencapture", "-x"]
        if interactive:
            args.append("-i")
        args.append(str(path))

        # Interactive selection waits on the user, so no timeout applies
        timeout = 3600.0 if interactive else self.timeout
        await run_command(args, timeout)

        if not path.exists():
            logger.debug(f"Screenshot file not found after capture: {path}")
            return None
        return path


def build_macos_providers(config: GlanceConfig) -> Providers:
    """Create the default provider bundle for macOS."""
    timeout = config.provider_timeout_seconds
    return Providers(
        foreground=MacForegroundAppProvider(timeout),
        browser=MacBrowserTabProvider(timeout),
        clipboard=MacClipboardProvider(timeout),
        selection=MacSelectionProvider(timeout),
        screenshot=MacScreenshotProvider(timeout),
    )
