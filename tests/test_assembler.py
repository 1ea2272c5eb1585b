"""Tests for capture assembly, validation and persistence."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from conftest import (
    FakeBrowser,
    FakeClipboard,
    FakeForeground,
    FakeScreenshot,
    FakeSelection,
    RecordingNotifier,
)
from glance.assembler import CaptureAssembler
from glance.errors import CaptureValidationError, ProviderError
from glance.models.capture import CaptureInput
from glance.paths import CapturePaths, sanitize_timestamp, strip_file_scheme
from glance.producers import CaptureProducers, require_text
from glance.providers.base import BrowserTab, Providers
from glance.resolver import ContextResolver

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


def build(config, repository, providers, notifier=None, journal=None, clock=lambda: FIXED_NOW):
    resolver = ContextResolver(providers.foreground, providers.browser, config.supported_browsers)
    assembler = CaptureAssembler(
        config, resolver, repository, notifier=notifier, journal=journal, clock=clock
    )
    producers = CaptureProducers(providers, CapturePaths.from_config(config), config)
    return assembler, producers


def record_files(capture_dir):
    if not capture_dir.exists():
        return []
    return sorted(capture_dir.glob("*.json"))


@pytest.mark.asyncio
async def test_assemble_merges_payload_and_context(config, repository, providers):
    """Test that payload fields and context fields land in one record."""
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="hello", comment="first")

    record = await assembler.assemble("selection", produce)

    assert record.id
    assert record.type == "selection"
    assert record.timestamp == "2026-03-14T09:26:53.589000Z"
    assert record.selected_text == "hello"
    assert record.comment == "first"
    assert record.screenshot_path is None
    assert record.active_view_content is None
    assert record.app == "TextEdit"
    assert record.bundle_id == "com.apple.TextEdit"
    assert record.window == "notes.txt"


@pytest.mark.asyncio
async def test_assemble_assigns_unique_ids(config, repository, providers):
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x")

    first = await assembler.assemble("selection", produce)
    second = await assembler.assemble("selection", produce)
    assert first.id != second.id


@pytest.mark.asyncio
async def test_timestamp_taken_once_at_entry(config, repository, providers):
    """Test that the entry timestamp names the file and fills the field."""
    ticks = iter(
        [
            datetime(2026, 3, 14, 9, 0, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 14, 10, 0, 0, tzinfo=timezone.utc),
        ]
    )
    assembler, _ = build(config, repository, providers, clock=lambda: next(ticks))

    async def produce():
        return CaptureInput(selected_text="x")

    outcome = await assembler.capture("clipboard", produce)

    assert outcome.success
    stored = json.loads(outcome.path.read_text())
    assert outcome.path.name == f"clipboard-{sanitize_timestamp(stored['timestamp'])}.json"
    assert stored["timestamp"] == "2026-03-14T09:00:00.000000Z"


@pytest.mark.asyncio
async def test_browser_capture_includes_page_content(config, repository, browser_app):
    """Test that page content is fetched for supported browsers."""
    browser = FakeBrowser(
        tabs=[BrowserTab(active=True, url="https://example.com", title="Example", favicon="e.ico")],
        content="# Example page",
    )
    providers = Providers(
        foreground=FakeForeground(browser_app),
        browser=browser,
        clipboard=FakeClipboard("x"),
        selection=FakeSelection(),
        screenshot=FakeScreenshot(),
    )
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x")

    record = await assembler.assemble("clipboard", produce)

    assert record.url == "https://example.com"
    assert record.title == "Example"
    assert record.favicon == "e.ico"
    assert record.active_view_content == "# Example page"


@pytest.mark.asyncio
async def test_non_browser_record_has_no_browser_fields(config, repository, providers):
    """Test that browser-only fields are None for other apps, whatever the payload says."""
    providers.browser = FakeBrowser(
        tabs=[BrowserTab(active=True, url="https://example.com", title="Example")],
        content="# Example page",
    )
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x", active_view_content="<html>stale</html>")

    record = await assembler.assemble("clipboard", produce)

    assert record.url is None
    assert record.title is None
    assert record.favicon is None
    assert record.active_view_content is None
    assert providers.browser.calls == []


@pytest.mark.asyncio
async def test_page_content_failure_is_not_fatal(config, repository, browser_app):
    providers = Providers(
        foreground=FakeForeground(browser_app),
        browser=FakeBrowser(
            tabs=[BrowserTab(active=True, url="https://example.com", title="Example")],
            content_error=ProviderError("JavaScript from Apple Events disabled"),
        ),
        clipboard=FakeClipboard("x"),
        selection=FakeSelection(),
        screenshot=FakeScreenshot(),
    )
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x")

    record = await assembler.assemble("clipboard", produce)
    assert record.url == "https://example.com"
    assert record.active_view_content is None


@pytest.mark.asyncio
async def test_empty_clipboard_fails_validation_and_writes_nothing(config, repository, providers, capture_dir):
    """Test the empty clipboard scenario end to end."""
    providers.clipboard = FakeClipboard(None)
    notifier = RecordingNotifier()
    assembler, producers = build(config, repository, providers, notifier=notifier)

    outcome = await assembler.run(producers.clipboard())

    assert not outcome.success
    assert isinstance(outcome.error, CaptureValidationError)
    assert outcome.error.message == "No text in clipboard"
    assert notifier.events[0] == ("capturing", None)
    assert notifier.events[-1] == ("failure", "No text in clipboard")
    assert record_files(capture_dir) == []


@pytest.mark.asyncio
async def test_validation_failure_removes_orphaned_screenshot(config, repository, providers, capture_dir, journal):
    """Test that a screenshot taken before a rejected validation is deleted."""
    providers.clipboard = FakeClipboard("")
    assembler, producers = build(config, repository, providers, journal=journal)

    outcome = await assembler.run(producers.clipboard())

    assert not outcome.success
    assert providers.screenshot.requests
    image_path = providers.screenshot.requests[0][0]
    assert not image_path.exists()
    assert list(capture_dir.glob("*.png")) == []


@pytest.mark.asyncio
async def test_orphaned_screenshot_kept_when_cleanup_disabled(config, repository, providers):
    config.cleanup_orphaned_screenshots = False
    providers.clipboard = FakeClipboard(None)
    assembler, producers = build(config, repository, providers)

    outcome = await assembler.run(producers.clipboard())

    assert not outcome.success
    assert providers.screenshot.requests[0][0].exists()


@pytest.mark.asyncio
async def test_validator_false_uses_generic_message(config, repository, providers):
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput()

    with pytest.raises(CaptureValidationError, match="Validation failed"):
        await assembler.assemble("selection", produce, lambda data: False)


@pytest.mark.asyncio
async def test_validator_non_true_truthy_value_rejects(config, repository, providers):
    """Test that only boolean True passes validation."""
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x")

    with pytest.raises(CaptureValidationError):
        await assembler.assemble("selection", produce, lambda data: 1)


@pytest.mark.asyncio
async def test_screenshot_failure_keeps_context(config, repository, providers, capture_dir):
    """Test that a failing screenshot provider still yields a saved record."""
    providers.screenshot = FakeScreenshot(error=ProviderError("screen recording not permitted"))
    assembler, producers = build(config, repository, providers)

    outcome = await assembler.run(producers.clipboard())

    assert outcome.success
    assert outcome.record.screenshot_path is None
    assert outcome.record.app == "TextEdit"
    assert outcome.record.bundle_id == "com.apple.TextEdit"
    assert outcome.record.selected_text == "copied text"
    assert record_files(capture_dir) == [outcome.path]


@pytest.mark.asyncio
async def test_clipboard_capture_saves_screenshot_uri(config, repository, providers, capture_dir):
    """Test that the record points at an existing image via a file URI."""
    assembler, producers = build(config, repository, providers)

    outcome = await assembler.run(producers.clipboard())

    assert outcome.success
    stored = json.loads(outcome.path.read_text())
    assert stored["screenshotPath"].startswith("file://")
    image = strip_file_scheme(stored["screenshotPath"])
    assert image.exists()
    assert image.parent == capture_dir
    assert stored["selectedText"] == "copied text"
    assert stored["type"] == "clipboard"
    assert stored["schemaVersion"] == 1


@pytest.mark.asyncio
async def test_capture_writes_null_for_absent_fields(config, repository, providers):
    """Test that optional fields are written as null, not omitted."""
    assembler, _ = build(config, repository, providers)

    async def produce():
        return CaptureInput(selected_text="x")

    outcome = await assembler.capture("selection", produce)
    stored = json.loads(outcome.path.read_text())

    for key in ["screenshotPath", "activeViewContent", "url", "title", "favicon", "comment"]:
        assert key in stored
        assert stored[key] is None


@pytest.mark.asyncio
async def test_producer_and_context_run_concurrently(config, repository, providers):
    """Test that context resolution starts before the producer finishes."""
    started = asyncio.Event()

    class SlowForeground:
        async def frontmost(self):
            started.set()
            return providers.foreground.app

    providers.foreground = SlowForeground()
    assembler, _ = build(config, repository, providers)

    async def produce():
        await asyncio.wait_for(started.wait(), timeout=1)
        return CaptureInput(selected_text="x")

    record = await assembler.assemble("selection", produce, require_text("No text"))
    assert record.app == "TextEdit"


@pytest.mark.asyncio
async def test_capture_success_notifies_and_journals(config, repository, providers, journal):
    notifier = RecordingNotifier()
    assembler, producers = build(config, repository, providers, notifier=notifier, journal=journal)

    outcome = await assembler.run(producers.selection(comment="later"))

    assert outcome.success
    assert outcome.record.selected_text == "copied text"
    assert outcome.record.comment == "later"
    assert notifier.events[-1][0] == "success"
    lines = journal.journal_path.read_text().strip().split("\n")
    event = json.loads(lines[-1])
    assert event["event_type"] == "CAPTURE_SAVED"
    assert event["capture_id"] == outcome.record.id
