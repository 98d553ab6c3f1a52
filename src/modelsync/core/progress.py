"""User-facing progress feedback for CLI operations.

Design principles:
- Show something if an operation takes noticeable time
- Single line updates, no spam
- Graceful degradation in non-TTY (CI, pipes, IDE plugins)
- Suppress structlog console output during spinners to avoid line collision

Usage::

    from modelsync.core.progress import status, spinner

    status("Loading code...")
    status("Ready", style="success")  # ✓ Ready

    with spinner("Analyzing schema"):
        do_work()  # structlog console output suppressed during this block

IDE plugins read stdout line by line. With ``set_decorated(True)`` every
message is prefixed with ``<|out,info|>`` / ``<|err,err|>`` instead of Rich
markup so the plugin can route it.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_DECORATIONS = {
    "success": "<|out,info|>",
    "info": "<|out,info|>",
    "none": "<|out,info|>",
    "warning": "<|out,warn|>",
    "error": "<|err,err|>",
}

# process-wide: worker threads log while the main thread owns the spinner
_console_suppressed = threading.Event()
_decorated = False


def is_console_suppressed() -> bool:
    """Check if console logging is currently suppressed."""
    return _console_suppressed.is_set()


def is_decorated() -> bool:
    return _decorated


def set_decorated(enabled: bool) -> None:
    """Switch status output to the plain, prefixed line protocol."""
    global _decorated
    _decorated = enabled


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Suppress structlog console output; file handlers still receive logs."""
    _console_suppressed.set()
    try:
        yield
    finally:
        _console_suppressed.clear()


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from modelsync.core.logging import get_logger

    return get_logger("progress")


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message."""
    if _decorated:
        print(f"{_DECORATIONS.get(style, '<|out,info|>')}{message}", flush=True)
    else:
        prefix = _STYLES.get(style, "")
        padding = " " * indent
        _console.print(f"{padding}{prefix}{message}", highlight=False)

    _get_logger().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return "1 file" / "3 files" style counts."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[None]:
    """Context manager for a spinner with log suppression."""
    padding = " " * indent
    if _is_tty() and not _decorated:
        with (
            suppress_console_logs(),
            _console.status(f"{padding}[cyan]{message}[/cyan]", spinner="dots"),
        ):
            yield
    else:
        status(f"{message}...", style="none", indent=indent)
        yield
