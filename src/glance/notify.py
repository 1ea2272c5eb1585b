"""User-facing capture notifications rendered on a rich console."""

from typing import Optional, Protocol

from rich.console import Console
from rich.markup import escape


class Notifier(Protocol):
    def capturing(self) -> None:
        ...

    def success(self, message: Optional[str] = None) -> None:
        ...

    def failure(self, error: BaseException, title: str = "Capture Failed") -> None:
        ...


class ConsoleNotifier:
    """Capturing / success / failure notices on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def capturing(self) -> None:
        self.console.print("[dim]Capturing context...[/dim]")

    def success(self, message: Optional[str] = None) -> None:
        self.console.print("[bold green]Context Captured[/bold green]")
        if message:
            self.console.print(f"  {escape(message)}")

    def failure(self, error: BaseException, title: str = "Capture Failed") -> None:
        self.console.print(f"[bold red]{escape(title)}:[/bold red] {escape(str(error))}")
