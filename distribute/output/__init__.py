"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
)
from .log_file import LogFile, TeeConsole

__all__ = [
    "ConsoleProtocol",
    "LogFile",
    "MockConsole",
    "RichConsole",
    "Style",
    "TeeConsole",
]
