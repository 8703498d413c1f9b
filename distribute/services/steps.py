"""Build and publish steps for a single job.

Each step renders its spec into an invocation, spawns the tool through the
shared runner and reports the outcome as a value. Nothing here raises for a
failing tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from distribute.core.manifest import Job
from distribute.core.result import Err, Ok, Result, is_err
from distribute.core.variables import substitute
from distribute.output.console import ConsoleProtocol, Style
from distribute.platform.detection import PlatformInfo
from distribute.platform.process import ToolRunner
from distribute.specs import (
    AndroidBuilder,
    BuilderSpec,
    GithubPublisher,
    Invocation,
    PublisherSpec,
    builder_source,
    render_command,
    render_invocation,
)

from .artifacts import DEBUG_SYMBOLS_ARCHIVE, archive_debug_symbols, collect_artifacts, resolve_artifact
from .step_errors import ProcessExecutionError, SpawnFailed, ToolFailed, UnsupportedHost

__all__ = ["StepContext", "preview", "run_build", "run_publish"]


@dataclass(frozen=True, slots=True)
class StepContext:
    runner: ToolRunner
    console: ConsoleProtocol
    host: PlatformInfo
    cwd: Path | None = None

    def resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if self.cwd is not None and not path.is_absolute():
            return self.cwd / path
        return path


def _child_env(job: Job, invocation: Invocation) -> dict[str, str]:
    env = dict(job.environment)
    env.update(invocation.env)
    return env


async def _execute(
    invocation: Invocation, job: Job, ctx: StepContext
) -> Result[None, ProcessExecutionError]:
    label = job.key
    ctx.console.verbose(f"[{label}] $ {invocation.command_line()}")
    result = await ctx.runner.run(
        invocation.tool,
        invocation.args,
        env=_child_env(job, invocation),
        cwd=ctx.cwd,
        on_verbose=lambda line: ctx.console.verbose(f"[{label}] {line}"),
        on_error=lambda line: ctx.console.print(f"[{label}] {line}", Style.ERROR),
    )
    match result:
        case Err(error=error):
            return Err(SpawnFailed(tool=invocation.tool, reason=error.stderr))
        case Ok(value=0):
            return Ok(None)
        case Ok(value=code):
            return Err(ToolFailed(tool=invocation.tool, returncode=code))


def _host_check(spec: BuilderSpec | PublisherSpec, ctx: StepContext) -> UnsupportedHost | None:
    if not ctx.host.can_run(requires_macos=spec.requires_macos):
        return UnsupportedHost(tool=spec.tool, kind=spec.kind, host=str(ctx.host))
    return None


async def run_build(job: Job, spec: BuilderSpec, ctx: StepContext) -> Result[None, ProcessExecutionError]:
    """Run ``flutter build`` and, when ``output`` is set, collect artifacts
    (plus the zipped ``split-debug-info`` symbols for Android)."""
    unsupported = _host_check(spec, ctx)
    if unsupported is not None:
        return Err(unsupported)

    invocation = render_invocation(spec, job.package_name, job.environment)
    result = await _execute(invocation, job, ctx)
    if is_err(result):
        return result

    if spec.options.output is None:
        return Ok(None)

    source, extension = builder_source(spec)
    destination = ctx.resolve_path(substitute(spec.options.output, job.environment))
    collected = collect_artifacts(ctx.resolve_path(source), destination, extension)
    match collected:
        case Ok(value=paths):
            for path in paths:
                ctx.console.verbose(f"[{job.key}] artifact: {path}")
        case Err(error=error):
            return Err(error)

    if isinstance(spec, AndroidBuilder) and spec.generate_debug_symbols and spec.split_debug_info:
        symbols_dir = ctx.resolve_path(substitute(spec.split_debug_info, job.environment))
        match archive_debug_symbols(symbols_dir, destination / DEBUG_SYMBOLS_ARCHIVE):
            case Ok(value=archive):
                ctx.console.verbose(f"[{job.key}] debug symbols: {archive}")
            case Err(error=error):
                return Err(error)
    return Ok(None)


async def run_publish(
    job: Job, spec: PublisherSpec, ctx: StepContext
) -> Result[None, ProcessExecutionError]:
    """Resolve the artifact to upload and run the publisher tool."""
    unsupported = _host_check(spec, ctx)
    if unsupported is not None:
        return Err(unsupported)

    raw_path = substitute(spec.artifact.file_path, job.environment)
    match resolve_artifact(ctx.resolve_path(raw_path), spec.artifact.binary_type):
        case Err(error=error):
            return Err(error)
        case Ok(value=artifact):
            resolved = spec.with_file(str(artifact))

    if isinstance(resolved, GithubPublisher):
        ensured = await _ensure_release(job, resolved, ctx)
        if is_err(ensured):
            return ensured

    ctx.console.verbose(f"[{job.key}] uploading {artifact}")
    invocation = render_invocation(resolved, job.package_name, job.environment)
    return await _execute(invocation, job, ctx)


async def _ensure_release(
    job: Job, spec: GithubPublisher, ctx: StepContext
) -> Result[None, ProcessExecutionError]:
    """Create the release as a draft unless ``gh release view`` finds it."""
    view = render_command(spec, spec.view_release_vector(), job.environment)
    ctx.console.verbose(f"[{job.key}] $ {view.command_line()}")
    found = await ctx.runner.run(
        view.tool,
        view.args,
        env=_child_env(job, view),
        cwd=ctx.cwd,
        # "release not found" is the expected answer here, not an error
        on_verbose=lambda line: ctx.console.verbose(f"[{job.key}] {line}"),
        on_error=lambda line: ctx.console.verbose(f"[{job.key}] {line}"),
    )
    match found:
        case Err(error=error):
            return Err(SpawnFailed(tool=view.tool, reason=error.stderr))
        case Ok(value=0):
            return Ok(None)
        case Ok():
            ctx.console.print(f"[{job.key}] creating draft release {view.args[2]}", Style.INFO)
            create = render_command(spec, spec.create_release_vector(), job.environment)
            return await _execute(create, job, ctx)


def preview(job: Job, spec: BuilderSpec | PublisherSpec) -> Invocation:
    """Render ``spec`` without running it (fails fast on unknown variables)."""
    return render_invocation(spec, job.package_name, job.environment)
