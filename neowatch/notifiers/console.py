"""Notifier that prints emails instead of sending them (dry runs)."""

from typing import Optional

from rich.console import Console


class ConsoleNotifier:
    """Prints each message to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> None:
        self.console.print(f"\n[yellow]DRY RUN - Would email {to}:[/yellow] {subject}")
        self.console.print("=" * 50)
        self.console.print(text, markup=False)
        self.console.print("=" * 50)
