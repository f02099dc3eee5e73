"""
Formatted Console Output - status line renderer for the CLI.

One-line outcome messages for the command handlers. Tables and panels are
rendered by interface/formatters.py.
"""

import os
import sys


class ConsoleRenderer:
    """Renders icon-prefixed status lines, colored on a terminal."""

    RESET = "\033[0m"

    STYLES = {
        "success": ("\033[92m", "✅"),
        "warning": ("\033[93m", "⚠️"),
        "error": ("\033[91m", "❌"),
        "locked": ("\033[93m", "🔒"),
    }

    def __init__(self, use_color: bool = True, stream=None):
        self.stream = stream or sys.stdout
        self.use_color = use_color
        # NO_COLOR wins, and cron output is never a terminal
        if os.environ.get("NO_COLOR") or not getattr(self.stream, "isatty", lambda: False)():
            self.use_color = False

    def _print(self, style: str, message: str) -> None:
        color, icon = self.STYLES[style]
        if self.use_color:
            print(f"{color}{icon} {message}{self.RESET}", file=self.stream)
        else:
            print(f"{icon} {message}", file=self.stream)

    def success(self, message: str):
        self._print("success", message)

    def warning(self, message: str):
        self._print("warning", message)

    def error(self, message: str):
        self._print("error", message)

    def locked(self, message: str):
        """Lock contention: another run is in progress."""
        self._print("locked", message)
