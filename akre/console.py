"""Leveled console output shared by every build step."""
from __future__ import annotations

from typing import Protocol, TextIO
import sys


_GREEN = "\x1b[32m"
_RED = "\x1b[31m"
_RESET = "\x1b[0m"


class Diagnostics(Protocol):
    """Minimal console interface required by the build steps."""

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < info < debug
    Default: 'info'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(
        self,
        level: str = "info",
        *,
        color: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Choose from: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self.color = color
        self._stdout = stdout
        self._stderr = stderr

    def _tag(self, name: str, color: str) -> str:
        if self.color:
            return f"{color}[{name}]{_RESET}"
        return f"[{name}]"

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"{self._tag('INFO', _GREEN)} {message}", file=self._stdout or sys.stdout)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"{self._tag('ERROR', _RED)} {message}", file=self._stderr or sys.stderr)

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}", file=self._stdout or sys.stdout)
