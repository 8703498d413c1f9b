"""Error and run-summary presentation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from distribute.core.errors import DistributeError, ManifestError
from distribute.output.console import Style
from distribute.services.step_errors import (
    ArtifactMissing,
    CopyFailed,
    OutputMissing,
    ProcessExecutionError,
    SpawnFailed,
    ToolFailed,
    UnsupportedHost,
)

if TYPE_CHECKING:
    from distribute.output.console import ConsoleProtocol
    from distribute.services.orchestrator import RunReport

__all__ = ["describe_step_error", "print_fatal_error", "print_run_report"]


def describe_step_error(error: ProcessExecutionError) -> str:
    """One-line description of a failed build or publish step."""
    match error:
        case ToolFailed(tool=tool, returncode=rc):
            return f"{tool} failed (exit {rc})"
        case SpawnFailed(tool=tool, reason=reason):
            return f"could not start {tool}: {reason}"
        case UnsupportedHost(tool=tool, kind=kind, host=host):
            return f"{kind} via {tool} requires macOS (host: {host})"
        case OutputMissing(source=source, extension=ext):
            return f"no .{ext} produced in {source}"
        case CopyFailed(source=source, destination=destination, reason=reason):
            return f"could not copy {source} to {destination}: {reason}"
        case ArtifactMissing(path=path, extension=ext):
            return f"no .{ext} to upload at {path}"


def print_fatal_error(error: DistributeError, console: ConsoleProtocol) -> None:
    """Print an error that stopped the run before any job started."""
    console.error(error.message)
    if isinstance(error, ManifestError) and error.path is not None:
        console.print(f"manifest: {error.path}", Style.DIM)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def print_run_report(report: RunReport, console: ConsoleProtocol) -> None:
    """Per-job summary, printed after every run."""
    console.header("Summary")
    for task in report.tasks:
        if task.skipped:
            console.print(f"{task.key}: skipped (blocked by {', '.join(task.blocked_by)})", Style.WARNING)
        for job in task.jobs:
            line = f"{task.key}.{job.key}: {job.state}"
            if job.error is not None:
                line += f" - {describe_step_error(job.error)}"
            if job.failed:
                console.print(line, Style.ERROR)
            elif job.succeeded:
                console.print(line, Style.SUCCESS)
            else:
                console.print(line, Style.DIM)

    failed = sum(1 for j in report.jobs if j.failed)
    skipped = sum(1 for j in report.jobs if not j.failed and not j.succeeded)
    total = len(report.jobs)
    if report.succeeded:
        console.success(f"{total} job(s) completed")
    else:
        console.error(f"{failed} failed, {skipped} skipped, {total - failed - skipped} succeeded")
