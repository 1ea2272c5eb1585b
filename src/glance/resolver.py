"""Context resolution: foreground app, window and active browser tab.

The resolver never raises. Any provider failure degrades the affected
fields to None.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from typing import Optional, TypeVar

from .models.capture import CaptureContext
from .providers.base import BrowserTab, BrowserTabProvider, ForegroundApp, ForegroundAppProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Schemes that never identify a navigable page worth recording
DENIED_URL_SCHEMES = frozenset(
    {
        "about",
        "arc",
        "blob",
        "brave",
        "chrome",
        "chrome-extension",
        "data",
        "edge",
        "favorites",
        "file",
        "javascript",
        "mailto",
        "moz-extension",
        "opera",
        "safari-web-extension",
        "tel",
        "view-source",
        "vivaldi",
    }
)

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_SCHEME_PREFIX_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


def is_navigable_url(url: Optional[str]) -> bool:
    """Check that a URL is present and not on the scheme denylist."""
    if not url:
        return False
    match = _SCHEME_RE.match(url.strip())
    if not match:
        return False
    return match.group(1).lower() not in DENIED_URL_SCHEMES


def strip_url_scheme(url: str) -> str:
    return _SCHEME_PREFIX_RE.sub("", url)


def match_supported_browser(app: Optional[str], supported: Iterable[str]) -> Optional[str]:
    """Return the supported browser name that ``app`` refers to, if any.

    Matches an exact name or a whole word of the process name, so
    "Google Chrome" resolves to "Chrome" and "Brave Browser" to "Brave".
    """
    if not app:
        return None
    for name in supported:
        if app == name or re.search(rf"\b{re.escape(name)}\b", app, re.IGNORECASE):
            return name
    return None


TabStrategy = Callable[[str, list[BrowserTab]], Awaitable[Optional[BrowserTab]]]


class ContextResolver:
    """Turns foreground-app and browser-tab signals into a CaptureContext.

    When several tabs report themselves active (one per window or profile),
    ``tab_strategies`` are applied in order and the first non-None result
    wins:

    1. exactly one active tab
    2. active tab whose title equals the browser's front-window tab title
    3. active tab whose URL, title or scheme-less URL appears in the
       rendered page content
    4. the first active tab
    """

    def __init__(
        self,
        foreground: ForegroundAppProvider,
        browser: BrowserTabProvider,
        supported_browsers: Iterable[str],
    ):
        self.foreground = foreground
        self.browser = browser
        self.supported_browsers = list(supported_browsers)
        # Content fetched while resolving, reused for the record of the same capture
        self._page_content: dict[str, str] = {}
        self.tab_strategies: list[TabStrategy] = [
            self._single_active_tab,
            self._match_front_window_title,
            self._match_page_content,
            self._first_active_tab,
        ]

    def is_supported_browser(self, app: Optional[str]) -> bool:
        return match_supported_browser(app, self.supported_browsers) is not None

    async def resolve(self) -> CaptureContext:
        """Resolve the current desktop context. Never raises."""
        self._page_content = {}
        front = await self._call("frontmost app", self.foreground.frontmost())
        if front is None:
            return CaptureContext()

        base = {"app": front.name, "bundle_id": front.bundle_id, "window": front.window}
        if not self.is_supported_browser(front.name):
            return CaptureContext(**base)

        tab = await self.resolve_active_tab(front)
        if tab is None:
            return CaptureContext(**base)

        url = tab.url if is_navigable_url(tab.url) else None
        if tab.url and url is None:
            logger.debug(f"Discarding non-navigable URL from {front.name}: {tab.url}")

        return CaptureContext(**base, url=url, title=tab.title, favicon=tab.favicon)

    async def resolve_active_tab(self, front: ForegroundApp) -> Optional[BrowserTab]:
        """Pick the tab the user is looking at, or None."""
        app = front.name
        tabs = await self._call(f"tabs for {app}", self.browser.list_tabs(app))
        if not tabs:
            return None

        active_tabs = [tab for tab in tabs if tab.active]
        if not active_tabs:
            return None

        for strategy in self.tab_strategies:
            tab = await strategy(app, active_tabs)
            if tab is not None:
                logger.debug(f"Active tab resolved by {strategy.__name__}: {tab.url}")
                return tab
        return None

    async def page_content(self, context: CaptureContext) -> Optional[str]:
        """Rendered content of the active tab; None outside supported browsers."""
        if not self.is_supported_browser(context.app):
            return None
        return await self._fetch_page_content(context.app)

    async def _single_active_tab(self, app: str, active_tabs: list[BrowserTab]) -> Optional[BrowserTab]:
        if len(active_tabs) == 1:
            return active_tabs[0]
        return None

    async def _match_front_window_title(
        self, app: str, active_tabs: list[BrowserTab]
    ) -> Optional[BrowserTab]:
        current_title = await self._call(f"front tab title for {app}", self.browser.front_tab_title(app))
        if not current_title:
            return None
        return next((tab for tab in active_tabs if tab.title == current_title), None)

    async def _match_page_content(self, app: str, active_tabs: list[BrowserTab]) -> Optional[BrowserTab]:
        content = await self._fetch_page_content(app)
        if not content:
            return None

        signatures: list[Callable[[BrowserTab], Optional[str]]] = [
            lambda tab: tab.url,
            lambda tab: tab.title,
            lambda tab: strip_url_scheme(tab.url) if tab.url else None,
        ]
        for signature in signatures:
            for tab in active_tabs:
                value = signature(tab)
                if value and value in content:
                    return tab
        return None

    async def _first_active_tab(self, app: str, active_tabs: list[BrowserTab]) -> Optional[BrowserTab]:
        return active_tabs[0]

    async def _fetch_page_content(self, app: str) -> Optional[str]:
        """Page content of ``app``, fetched at most once per ``resolve()``."""
        if app in self._page_content:
            return self._page_content[app]
        content = await self._call(f"page content for {app}", self.browser.page_content(app))
        if content is not None:
            self._page_content[app] = content
        return content

    async def _call(self, what: str, awaitable: Awaitable[T]) -> Optional[T]:
        """Await a provider call, absorbing any failure as "no data"."""
        try:
            return await awaitable
        except Exception as e:
            logger.debug(f"Provider call failed ({what}): {e}")
            return None
