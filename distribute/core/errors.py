"""Exit codes and fatal error taxonomy.

Fatal conditions (a broken manifest, an unresolvable variable, an invalid
builder/publisher configuration, a dangling workflow reference) are raised as
``DistributeError`` subclasses and stop the run before any job starts.
Failures of individual build/publish steps are *not* raised; they travel as
values (see ``distribute.services.step_errors``).
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path

__all__ = [
    "ErrorCode",
    "DistributeError",
    "ManifestError",
    "VariableResolutionError",
    "ArgumentValidationError",
    "WorkflowReferenceError",
]


class ErrorCode(IntEnum):
    """Process exit codes.

    These values are used as process exit codes and should remain stable.
    """

    OK = 0
    FAILURE = 1

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


class DistributeError(Exception):
    """Base class for errors that abort the whole run."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ManifestError(DistributeError):
    """Manifest file missing, unreadable, or structurally invalid."""

    def __init__(self, message: str, *, path: Path | None = None, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.path = path


class VariableResolutionError(DistributeError):
    """A placeholder or shell-command directive could not be resolved."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class ArgumentValidationError(DistributeError):
    """A builder/publisher option is missing or invalid for its variant."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class WorkflowReferenceError(DistributeError):
    """A task's ``workflows`` entry names no task, or the graph has a cycle."""

    def __init__(self, message: str, *, task: str | None = None) -> None:
        super().__init__(message)
        self.task = task
