"""Which host are we on?

Only macOS can run ``flutter build ipa`` and ``xcrun altool``; steps that need
it are reported as failed on any other host without spawning anything.
"""

from __future__ import annotations

import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

__all__ = [
    "Platform",
    "Arch",
    "PlatformInfo",
    "detect",
    "detect_arch",
    "detect_platform",
]


class Platform(Enum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class Arch(Enum):
    X64 = "x64"
    ARM64 = "arm64"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


# sys.platform prefix -> platform
_SYSTEMS: tuple[tuple[str, Platform], ...] = (
    ("linux", Platform.LINUX),
    ("darwin", Platform.MACOS),
    ("win32", Platform.WINDOWS),
    ("cygwin", Platform.WINDOWS),
    ("msys", Platform.WINDOWS),
)

_MACHINES: dict[str, Arch] = {
    "x86_64": Arch.X64,
    "amd64": Arch.X64,
    "aarch64": Arch.ARM64,
    "arm64": Arch.ARM64,
}


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    platform: Platform
    arch: Arch

    @property
    def is_macos(self) -> bool:
        return self.platform is Platform.MACOS

    def can_run(self, *, requires_macos: bool) -> bool:
        """True when a step with the given host requirement may run here."""
        return self.is_macos or not requires_macos

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    system = _sys.platform.lower()
    for prefix, platform in _SYSTEMS:
        if system.startswith(prefix):
            return platform
    return Platform.UNKNOWN


@lru_cache(maxsize=1)
def detect_arch() -> Arch:
    return _MACHINES.get(_platform.machine().lower(), Arch.UNKNOWN)


@lru_cache(maxsize=1)
def detect() -> PlatformInfo:
    """Host information for the current process (cached)."""
    return PlatformInfo(platform=detect_platform(), arch=detect_arch())
