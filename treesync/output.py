"""Output formatting for the treesync CLI."""

import json
from typing import Any, Optional

from rich.console import Console

from .utils import format_size


class OutputFormatter:
    """Formats CLI output as human-readable text or JSON.

    Informational messages are suppressed in quiet mode and in JSON
    mode so that ``--json`` output stays machine-readable. Errors are
    always written to stderr.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.error_console = error_console or Console(stderr=True, highlight=False)

    @property
    def _silent(self) -> bool:
        return self.quiet or self.json_output

    def _emit(self, console: Console, message: str, style: Optional[str]) -> None:
        # Paths must never be re-wrapped onto several lines
        console.print(message, style=style, markup=False, soft_wrap=True)

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if not self._silent:
            self._emit(self.console, message, None)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self._silent:
            self._emit(self.console, message, None)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self._silent:
            self._emit(self.console, f"✓ {message}", "green")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        if not self._silent:
            self._emit(self.console, f"⚠ {message}", "yellow")

    def error(self, message: str) -> None:
        """Print an error message to stderr."""
        self._emit(self.error_console, f"✗ {message}", "red")

    def output_json(self, data: Any) -> None:
        """Print data as JSON."""
        self.console.print_json(json.dumps(data, default=str))

    def format_size(self, size_bytes: int) -> str:
        """Format a size in bytes for display."""
        return format_size(size_bytes)
