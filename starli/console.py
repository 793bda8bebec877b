"""
console.py

Responsibility: user-facing progress output.

`Spinner` wraps `rich` status output with the start / succeed / fail
lifecycle the synchronizer uses for each long-running step. A spinner
created with `enabled=False` is silent, which is how background refreshes
stay invisible.
"""

from __future__ import annotations

from rich.console import Console
from rich.status import Status

SUCCESS_SYMBOL = "✅"
FAILURE_SYMBOL = "❌"


def make_console() -> Console:
    return Console(stderr=True, highlight=False)


class Spinner:
    def __init__(self, console: Console, text: str, *, enabled: bool = True) -> None:
        self._console = console
        self._text = text
        self._enabled = enabled
        self._status: Status | None = None

    def start(self) -> None:
        if not self._enabled or self._status is not None:
            return
        self._status = self._console.status(self._text)
        self._status.start()

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def succeed(self, message: str) -> None:
        self.stop()
        if self._enabled:
            self._console.print(f"{SUCCESS_SYMBOL} [green]{message}[/green]")

    def fail(self, message: str) -> None:
        self.stop()
        if self._enabled:
            self._console.print(f"{FAILURE_SYMBOL} [red]{message}[/red]")
