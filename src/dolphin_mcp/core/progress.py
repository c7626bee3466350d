"""User-facing console output for CLI commands.

Everything goes to stderr through one shared Rich console, so command output
never mixes with the stdio protocol stream.

Usage::

    from dolphin_mcp.core.progress import status, spinner

    status("Connected", style="success")  # ✓ Connected
    with spinner("Searching"):
        await run_search()
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Format a count with the right noun form.

    >>> pluralize(1, "result")
    '1 result'
    >>> pluralize(3, "repo")
    '3 repos'
    """
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """Show a spinner while the block runs (TTY only)."""
    if not _is_tty():
        yield
        return
    with _console.status(f"[cyan]{message}[/cyan]", spinner="dots"):
        yield
