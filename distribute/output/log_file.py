"""Run log sink (``distribution.log`` by default).

The file is truncated when a run starts and only appended to afterwards.
Lines from concurrently running jobs are written whole, one at a time.
"""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path

from .console import ConsoleProtocol, Style

__all__ = ["LogFile", "TeeConsole"]


class LogFile:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Create the file (and parents), dropping any previous content."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")

    def append(self, level: str, message: str) -> None:
        stamp = datetime.now().isoformat(timespec="seconds")
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(f"{stamp} [{level}] {message}\n")


class TeeConsole:
    """Console that also records every line in a ``LogFile``.

    Verbose lines are logged even when the console hides them.
    """

    def __init__(self, console: ConsoleProtocol, log: LogFile) -> None:
        self._console = console
        self._log = log

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._log.append(str(style).upper(), message)
        self._console.print(message, style)

    def success(self, message: str) -> None:
        self._log.append("OK", message)
        self._console.success(message)

    def error(self, message: str) -> None:
        self._log.append("ERROR", message)
        self._console.error(message)

    def warning(self, message: str) -> None:
        self._log.append("WARNING", message)
        self._console.warning(message)

    def info(self, message: str) -> None:
        self._log.append("INFO", message)
        self._console.info(message)

    def verbose(self, message: str) -> None:
        self._log.append("VERBOSE", message)
        self._console.verbose(message)

    def header(self, message: str) -> None:
        self._log.append("HEADER", message)
        self._console.header(message)

    def newline(self) -> None:
        self._console.newline()
