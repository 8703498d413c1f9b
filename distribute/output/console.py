"""Console output abstraction.

Services print through ``ConsoleProtocol`` so they never depend on rich
directly; tests pass a ``MockConsole`` and inspect what would have been shown.
Tool output arrives through ``verbose`` (stdout lines, shown only in verbose
mode) and ``error`` (stderr lines, always shown).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles, valued by their rich style string."""

    DEFAULT = ""
    SUCCESS = "green"
    ERROR = "red bold"
    WARNING = "yellow"
    INFO = "cyan"
    DIM = "dim"
    HEADER = "blue bold"

    def __str__(self) -> str:
        return self.name.lower()


# level -> (prefix, style); shared so every console labels messages alike
_LEVELS: dict[str, tuple[str, Style]] = {
    "success": ("OK", Style.SUCCESS),
    "error": ("error:", Style.ERROR),
    "warning": ("warning:", Style.WARNING),
    "info": ("info:", Style.INFO),
}


class ConsoleProtocol(Protocol):
    """Styled text output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def verbose(self, message: str) -> None:
        """Print a detail line; hidden unless verbose output is enabled."""
        ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Terminal console. Errors go to stderr, everything else to stdout."""

    def __init__(self, *, verbose: bool = False) -> None:
        from rich.console import Console

        self.is_verbose = verbose
        self._out = Console(highlight=False)
        self._err = Console(stderr=True, highlight=False)

    def _level(self, level: str, message: str) -> None:
        from rich.text import Text

        prefix, style = _LEVELS[level]
        line = Text.assemble((prefix, style.value), " ", message)
        (self._err if style is Style.ERROR else self._out).print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._out.print(message, style=style.value or None, markup=False)

    def success(self, message: str) -> None:
        self._level("success", message)

    def error(self, message: str) -> None:
        self._level("error", message)

    def warning(self, message: str) -> None:
        self._level("warning", message)

    def info(self, message: str) -> None:
        self._level("info", message)

    def verbose(self, message: str) -> None:
        if self.is_verbose:
            self.print(message, Style.DIM)

    def header(self, message: str) -> None:
        self._out.print()
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self._out.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Captures output for tests. Verbose lines are always kept (``Style.DIM``)."""

    outputs: list[OutputRecord] = field(default_factory=list)

    def _level(self, level: str, message: str) -> None:
        prefix, style = _LEVELS[level]
        self.outputs.append(OutputRecord(f"{prefix} {message}", style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._level("success", message)

    def error(self, message: str) -> None:
        self._level("error", message)

    def warning(self, message: str) -> None:
        self._level("warning", message)

    def info(self, message: str) -> None:
        self._level("info", message)

    def verbose(self, message: str) -> None:
        self.print(message, Style.DIM)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self.print("")

    # Test helpers

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style is Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
