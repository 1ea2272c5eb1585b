"""Capability providers for foreground app, browser, clipboard and screen."""

from .base import (
    BrowserTab,
    BrowserTabProvider,
    ClipboardProvider,
    ForegroundApp,
    ForegroundAppProvider,
    Providers,
    ScreenshotProvider,
    SelectionProvider,
)

__all__ = [
    "BrowserTab",
    "BrowserTabProvider",
    "ClipboardProvider",
    "ForegroundApp",
    "ForegroundAppProvider",
    "Providers",
    "ScreenshotProvider",
    "SelectionProvider",
]
