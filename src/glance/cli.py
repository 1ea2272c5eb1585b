"""Typer-based CLI for Glance."""

import asyncio
import json
import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import GlanceConfig, load_config
from .errors import CaptureError
from .journal import read_journal_tail
from .models.capture import CapturedData
from .notify import ConsoleNotifier
from .producers import CAPTURE_KINDS
from .providers.macos import build_macos_providers
from .services import Services, build_services

app = typer.Typer(
    name="glance",
    help="Glance - capture your desktop context for later review",
    add_completion=False,
)

console = Console()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _config(ctx: typer.Context) -> GlanceConfig:
    return ctx.obj


def _services(ctx: typer.Context, with_providers: bool = False) -> Services:
    config = _config(ctx)
    if not with_providers:
        return build_services(config)
    return build_services(
        config,
        providers=build_macos_providers(config),
        notifier=ConsoleNotifier(console),
    )


def _truncate(value: Optional[str], width: int) -> str:
    if not value:
        return "-"
    value = " ".join(value.split())
    return escape(value if len(value) <= width else value[: width - 3] + "...")


def _print_record(record: CapturedData) -> None:
    fields = [
        ("ID", record.id),
        ("Type", record.type),
        ("Timestamp", record.timestamp),
        ("App", f"{record.app or 'Unknown'} ({record.bundle_id or 'no bundle id'})"),
        ("Window", record.window),
        ("URL", record.url),
        ("Title", record.title),
        ("Screenshot", record.screenshot_path),
        ("Comment", record.comment),
        ("Tags", ", ".join(record.tags) if record.tags else None),
    ]
    for label, value in fields:
        if value:
            console.print(f"  [dim]{label + ':':<11}[/dim] {escape(value)}")
    if record.selected_text:
        console.print("  [dim]Text:[/dim]")
        for line in record.selected_text.splitlines():
            console.print(f"    {line}", markup=False)
    if record.active_view_content:
        console.print(f"  [dim]Page content:[/dim] {len(record.active_view_content)} characters")


@app.callback()
def main_options(
    ctx: typer.Context,
    capture_dir: str = typer.Option(
        None,
        "--capture-dir",
        help="Directory for capture records (default: GLANCE_CAPTURE_DIR or config file)",
    ),
    screenshots_dir: str = typer.Option(
        None,
        "--screenshots-dir",
        help="Directory of OS screenshots (default: GLANCE_SCREENSHOTS_DIR or config file)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
):
    """Glance - capture your desktop context for later review."""
    _configure_logging(debug)
    ctx.obj = load_config(cli_capture_dir=capture_dir, cli_screenshots_dir=screenshots_dir)


@app.command()
def capture(
    ctx: typer.Context,
    kind: str = typer.Argument(
        ...,
        help=f"What to capture: {', '.join(CAPTURE_KINDS)}",
    ),
    comment: str = typer.Option(
        None,
        "--comment",
        "-c",
        help="Initial comment for the capture",
    ),
):
    """Capture the current desktop context.

    Writes one {type}-{timestamp}.json record to the capture directory.
    """
    if kind not in CAPTURE_KINDS:
        console.print(f"[red]Error: Unknown capture kind '{escape(kind)}'[/red]")
        console.print(f"[dim]Choose one of: {', '.join(CAPTURE_KINDS)}[/dim]")
        raise typer.Exit(code=1)

    services = _services(ctx, with_providers=True)
    request = services.producers.build(kind, comment)

    try:
        outcome = asyncio.run(services.assembler.run(request))
    except Exception as e:
        console.print(f"[red]Error during capture: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if not outcome.success:
        raise typer.Exit(code=1)

    console.print(f"  ID:   {outcome.record.id}")
    console.print(f"  Path: {escape(str(outcome.path))}")


@app.command("list")
def list_captures(
    ctx: typer.Context,
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Number of captures to display",
    ),
):
    """List stored captures, newest first."""
    services = _services(ctx)
    try:
        captures = services.repository.load()
    except CaptureError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if not captures:
        console.print("[dim]No captures found[/dim]")
        return

    table = Table(title=f"{min(limit, len(captures))} of {len(captures)} Capture(s)")
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("ID", style="yellow", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("App")
    table.add_column("Content", style="dim")
    table.add_column("Comment")

    for stored in captures[:limit]:
        record = stored.record
        table.add_row(
            stored.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            record.id[:8],
            record.type,
            escape(record.app or "Unknown"),
            _truncate(record.selected_text or record.url or record.title, 40),
            _truncate(record.comment, 30),
        )

    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    capture_id: str = typer.Argument(..., help="Capture ID (or unique prefix)"),
    raw: bool = typer.Option(False, "--json", help="Print the stored JSON"),
):
    """Show a stored capture."""
    services = _services(ctx)
    stored = services.repository.find(capture_id)
    if stored is None:
        console.print(f"[red]Error: No capture matches '{escape(capture_id)}'[/red]")
        raise typer.Exit(code=1)

    if raw:
        console.print_json(stored.record.to_json())
        return

    console.print(f"[bold]{escape(stored.path.name)}[/bold]")
    _print_record(stored.record)


@app.command()
def comment(
    ctx: typer.Context,
    capture_id: str = typer.Argument(..., help="Capture ID (or unique prefix)"),
    text: str = typer.Option(..., "--comment", "-c", help="Comment text"),
    tags: str = typer.Option(None, "--tags", "-t", help="Comma-separated tags"),
):
    """Add or replace the comment on a stored capture."""
    services = _services(ctx)
    stored = services.repository.find(capture_id)
    if stored is None:
        console.print(f"[red]Error: No capture matches '{escape(capture_id)}'[/red]")
        raise typer.Exit(code=1)

    try:
        result = services.amendments.amend(stored.record, stored.path, text, tags)
    except CaptureError as e:
        console.print(f"[red]Failed to Save Comment: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]Comment saved[/green] {escape(result.path.name)}")


screenshots_app = typer.Typer(help="External screenshot commands")
app.add_typer(screenshots_app, name="screenshots")


@screenshots_app.command("list")
def screenshots_list(ctx: typer.Context):
    """List screenshots in the screenshots directory, newest first."""
    services = _services(ctx)
    try:
        entries = services.library.list()
    except CaptureError as e:
        console.print(f"[red]Failed to Load Screenshots: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if not entries:
        console.print(f"[dim]No screenshots found in {escape(str(services.paths.screenshots))}[/dim]")
        return

    table = Table(title=f"{len(entries)} Screenshot(s)")
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("File")
    table.add_column("Tags", style="magenta")
    table.add_column("Comment", style="dim")

    for entry in entries:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            escape(entry.path.name),
            escape(", ".join(entry.record.tags or [])) or "-",
            _truncate(entry.record.comment, 50),
        )

    console.print(table)


@screenshots_app.command("comment")
def screenshots_comment(
    ctx: typer.Context,
    filename: str = typer.Argument(..., help="Screenshot file name"),
    text: str = typer.Option(..., "--comment", "-c", help="Comment text"),
    tags: str = typer.Option(None, "--tags", "-t", help="Comma-separated tags"),
):
    """Comment on a screenshot, copying it into the capture directory."""
    services = _services(ctx)
    entry = services.library.get(filename)
    if entry is None:
        console.print(f"[red]Error: Screenshot not found: {escape(filename)}[/red]")
        raise typer.Exit(code=1)

    try:
        result = services.amendments.amend(entry.record, entry.metadata_path, text, tags)
    except CaptureError as e:
        console.print(f"[red]Failed to Save Comment: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print("[green]Added comment and copied to captures[/green]")
    console.print(f"  Path: {escape(str(result.path))}")


journal_app = typer.Typer(help="Journal commands")
app.add_typer(journal_app, name="journal")


@journal_app.command("tail")
def journal_tail(
    ctx: typer.Context,
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
):
    """Display the last N journal events."""
    services = _services(ctx)
    events = read_journal_tail(services.paths.journal_file, n=n)

    if not events:
        console.print("[dim]No events in journal[/dim]")
        return

    table = Table(title=f"Last {len(events)} Journal Event(s)")
    table.add_column("When (UTC)", style="cyan", no_wrap=True)
    table.add_column("Event", style="magenta")
    table.add_column("Capture", style="yellow", no_wrap=True)
    table.add_column("File", style="dim")

    for event in events:
        target = event.payload.get("path") or event.payload.get("sidecar") or json.dumps(event.payload)
        table.add_row(
            event.ts.strftime("%Y-%m-%d %H:%M:%S"),
            event.event_type,
            (event.capture_id or "-")[:8],
            _truncate(str(target), 60),
        )

    console.print(table)


@app.command("config")
def show_config(ctx: typer.Context):
    """Print the effective configuration as TOML."""
    console.print(_config(ctx).to_toml_str(), markup=False, highlight=False, soft_wrap=True)


@app.command()
def version():
    """Show Glance version."""
    from . import __version__
    console.print(f"Glance v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
