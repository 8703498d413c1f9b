"""Platform abstraction layer."""

from .detection import (
    Arch,
    Platform,
    PlatformInfo,
    detect,
)
from .process import (
    LineSink,
    MockToolRunner,
    ProcessError,
    ProcessRunner,
    ToolRunner,
    capture,
    run_streaming,
)

__all__ = [
    # detection
    "Arch",
    "Platform",
    "PlatformInfo",
    "detect",
    # process
    "LineSink",
    "MockToolRunner",
    "ProcessError",
    "ProcessRunner",
    "ToolRunner",
    "capture",
    "run_streaming",
]
