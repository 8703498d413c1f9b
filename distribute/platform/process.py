"""Async subprocess execution with Result-based error handling.

Two entry points:

- ``run_streaming`` spawns an external tool and forwards its output line by
  line to two sinks while it runs. It resolves with the real exit code; a
  non-zero code is *not* an error here, interpretation is left to the caller.
- ``capture`` runs a short command and returns its stdout (used for
  ``%{command}`` directives in manifest variables).

``ProcessRunner`` wraps ``run_streaming`` with a bound on the number of
subprocesses alive at the same time.

Usage:
    runner = ProcessRunner(max_concurrency=2)
    result = await runner.run("flutter", ["build", "apk"], env=env)
    match result:
        case Ok(0):
            print("built")
        case Ok(code):
            print(f"flutter exited with {code}")
        case Err(error):
            print(f"could not start: {error.stderr}")
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from distribute.core.result import Err, Ok, Result

__all__ = [
    "LineSink",
    "MockToolRunner",
    "ProcessError",
    "ProcessRunner",
    "ToolCall",
    "ToolRunner",
    "capture",
    "run_streaming",
]

LineSink = Callable[[str], None]

_CHUNK_SIZE = 64 * 1024
# A partial line longer than this is flushed as is (progress bars redrawn with \r).
_LINE_LIMIT = 1024 * 1024
_TERMINATE_GRACE_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a subprocess that failed to start or (for capture) failed.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 when the process never started.
        stdout: Standard output (may be empty).
        stderr: Standard error or the OS error message.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if self.returncode == -1:
            return f"{cmd_str} could not be started: {self.stderr}"
        return f"{cmd_str} failed (exit {self.returncode})"


class ToolRunner(Protocol):
    """Anything able to run one external tool invocation."""

    async def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        on_verbose: LineSink | None = None,
        on_error: LineSink | None = None,
    ) -> Result[int, ProcessError]: ...


def _emit(sink: LineSink | None, line: bytes) -> None:
    if sink is not None:
        sink(line.decode("utf-8", errors="replace").rstrip("\r"))


async def _pump(stream: asyncio.StreamReader | None, sink: LineSink | None) -> None:
    if stream is None:
        return
    pending = b""
    while chunk := await stream.read(_CHUNK_SIZE):
        *lines, pending = (pending + chunk).split(b"\n")
        if len(pending) > _LINE_LIMIT:
            lines.append(pending)
            pending = b""
        for line in lines:
            _emit(sink, line)
    if pending:
        _emit(sink, pending)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_GRACE_SECONDS)
    except TimeoutError:
        proc.kill()
        await proc.wait()


async def run_streaming(
    tool: str,
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    on_verbose: LineSink | None = None,
    on_error: LineSink | None = None,
) -> Result[int, ProcessError]:
    """Run ``tool`` with ``args``, streaming stdout/stderr lines to the sinks.

    Args:
        tool: Executable name or path.
        args: Arguments, passed verbatim (no shell).
        env: Complete child environment (inherits ours if None).
        cwd: Working directory.
        on_verbose: Called with each stdout line as it arrives.
        on_error: Called with each stderr line as it arrives.

    Returns:
        Ok(exit_code) once the process exits, whatever the code.
        Err(ProcessError) if the process could not be spawned.

    If the awaiting task is cancelled, or a sink raises, the child is
    terminated (then killed after a grace period) before the exception
    propagates. Output without a newline is flushed every ``_LINE_LIMIT`` bytes.
    """
    cmd = (tool, *args)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            env=dict(env) if env is not None else None,
            cwd=str(cwd) if cwd is not None else None,
        )
    except OSError as e:
        return Err(ProcessError(command=cmd, returncode=-1, stdout="", stderr=str(e)))

    try:
        await asyncio.gather(
            _pump(proc.stdout, on_verbose),
            _pump(proc.stderr, on_error),
        )
        code = await proc.wait()
    finally:
        # no-op once the child has exited
        await _terminate(proc)

    return Ok(code)


async def capture(
    cmd: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` to completion and return its stdout.

    Returns:
        Ok(stdout) on exit code 0, Err(ProcessError) otherwise.
    """
    command = tuple(cmd)
    if not command:
        return Err(ProcessError(command=command, returncode=-1, stdout="", stderr="empty command"))
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            env=dict(env) if env is not None else None,
        )
    except OSError as e:
        return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

    try:
        out, err = await proc.communicate()
    except asyncio.CancelledError:
        await _terminate(proc)
        raise

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=command,
                returncode=proc.returncode if proc.returncode is not None else -1,
                stdout=stdout,
                stderr=stderr,
            )
        )
    return Ok(stdout)


class ProcessRunner:
    """Runs external tools with at most ``max_concurrency`` alive at once."""

    def __init__(self, max_concurrency: int = 1) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self._slots = asyncio.Semaphore(max_concurrency)
        self._active = 0
        self._peak = 0

    @property
    def peak(self) -> int:
        """Highest number of simultaneously running subprocesses seen."""
        return self._peak

    async def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        on_verbose: LineSink | None = None,
        on_error: LineSink | None = None,
    ) -> Result[int, ProcessError]:
        async with self._slots:
            self._active += 1
            self._peak = max(self._peak, self._active)
            try:
                return await run_streaming(
                    tool,
                    args,
                    env=env,
                    cwd=cwd,
                    on_verbose=on_verbose,
                    on_error=on_error,
                )
            finally:
                self._active -= 1


@dataclass(frozen=True, slots=True)
class ToolCall:
    """One recorded ``MockToolRunner.run`` call."""

    tool: str
    args: tuple[str, ...]
    env: Mapping[str, str]
    cwd: Path | None


class MockToolRunner:
    """Mock tool runner for testing.

    Every call is recorded; the exit code comes from ``set_exit_code`` (0 by
    default). ``on_call`` hooks let a test fake a tool's side effects, such as
    writing build outputs.

    Usage:
        runner = MockToolRunner()
        runner.set_exit_code("fastlane", 1)
        result = await runner.run("fastlane", ["run", "upload_to_play_store"])
        assert result == Ok(1)
    """

    def __init__(self, *, delay: float = 0.0, max_concurrency: int | None = None) -> None:
        self._exit_codes: dict[tuple[str, ...], int | ProcessError] = {}
        self._output: dict[str, tuple[list[str], list[str]]] = {}
        self._hooks: dict[str, Callable[[ToolCall], None]] = {}
        self._slots = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._delay = delay
        self._active = 0
        self.peak = 0
        self.calls: list[ToolCall] = []

    def set_exit_code(self, tool: str, code: int | ProcessError, *, args: Sequence[str] = ()) -> None:
        """Exit code for ``tool``, or a ProcessError to simulate a spawn failure.

        With ``args``, only calls whose arguments start with them are affected;
        the longest matching prefix wins.
        """
        self._exit_codes[(tool, *args)] = code

    def _exit_code(self, call: ToolCall) -> int | ProcessError:
        key = (call.tool, *call.args)
        while key:
            if key in self._exit_codes:
                return self._exit_codes[key]
            key = key[:-1]
        return 0

    def set_output(self, tool: str, *, stdout: Sequence[str] = (), stderr: Sequence[str] = ()) -> None:
        self._output[tool] = (list(stdout), list(stderr))

    def on_call(self, tool: str, hook: Callable[[ToolCall], None]) -> None:
        self._hooks[tool] = hook

    def tools(self) -> list[str]:
        return [c.tool for c in self.calls]

    async def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        on_verbose: LineSink | None = None,
        on_error: LineSink | None = None,
    ) -> Result[int, ProcessError]:
        if self._slots is None:
            return await self._run(tool, args, env, cwd, on_verbose, on_error)
        async with self._slots:
            return await self._run(tool, args, env, cwd, on_verbose, on_error)

    async def _run(
        self,
        tool: str,
        args: Sequence[str],
        env: Mapping[str, str] | None,
        cwd: Path | None,
        on_verbose: LineSink | None,
        on_error: LineSink | None,
    ) -> Result[int, ProcessError]:
        call = ToolCall(tool=tool, args=tuple(args), env=dict(env or {}), cwd=cwd)
        self.calls.append(call)
        self._active += 1
        self.peak = max(self.peak, self._active)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            stdout, stderr = self._output.get(tool, ([], []))
            for line in stdout:
                if on_verbose is not None:
                    on_verbose(line)
            for line in stderr:
                if on_error is not None:
                    on_error(line)
            hook = self._hooks.get(tool)
            if hook is not None:
                hook(call)
        finally:
            self._active -= 1

        code = self._exit_code(call)
        if isinstance(code, ProcessError):
            return Err(code)
        return Ok(code)
