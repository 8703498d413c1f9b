from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

UNSUPPORTED_HOST_EXIT_CODE = 1


@dataclass(frozen=True, slots=True)
class ToolFailed:
    tool: str
    returncode: int


@dataclass(frozen=True, slots=True)
class SpawnFailed:
    tool: str
    reason: str


@dataclass(frozen=True, slots=True)
class UnsupportedHost:
    tool: str
    kind: str
    host: str
    returncode: int = UNSUPPORTED_HOST_EXIT_CODE


@dataclass(frozen=True, slots=True)
class OutputMissing:
    source: Path
    extension: str


@dataclass(frozen=True, slots=True)
class CopyFailed:
    source: Path
    destination: Path
    reason: str


@dataclass(frozen=True, slots=True)
class ArtifactMissing:
    path: Path
    extension: str


ProcessExecutionError = (
    ToolFailed | SpawnFailed | UnsupportedHost | OutputMissing | CopyFailed | ArtifactMissing
)
