"""Runs a loaded manifest: tasks in workflow order, jobs within a task in order.

Every task becomes an asyncio task that first waits for the tasks listed in
its ``workflows``. If one of them did not succeed, the task and all its jobs
are reported as skipped; unrelated tasks carry on. Tasks without a dependency
between them run side by side, with the number of live subprocesses bounded
by the ``ProcessRunner``.

Inside a task, jobs run one after the other. A failed job marks the task as
failed but does not stop the jobs after it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from distribute.core.errors import ErrorCode
from distribute.core.manifest import Job, Manifest, Task
from distribute.core.result import is_err
from distribute.core.variables import substitute
from distribute.output.console import ConsoleProtocol
from distribute.output.report import describe_step_error
from distribute.platform.detection import PlatformInfo, detect
from distribute.platform.process import ToolRunner

from .step_errors import ProcessExecutionError
from .steps import StepContext, preview, run_build, run_publish
from .workflow import WorkflowGraph, build_graph

__all__ = [
    "JobReport",
    "JobState",
    "Orchestrator",
    "RunReport",
    "StepMode",
    "TaskReport",
]


class JobState(Enum):
    PENDING = "pending"
    BUILDING = "building"
    BUILT = "built"
    BUILD_FAILED = "build-failed"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish-failed"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


class StepMode(Enum):
    """Which steps of each job to execute."""

    RUN = "run"
    BUILD = "build"
    PUBLISH = "publish"

    @property
    def builds(self) -> bool:
        return self in (StepMode.RUN, StepMode.BUILD)

    @property
    def publishes(self) -> bool:
        return self in (StepMode.RUN, StepMode.PUBLISH)


@dataclass(frozen=True, slots=True)
class JobReport:
    task: str
    key: str
    name: str
    state: JobState
    history: tuple[JobState, ...] = ()
    error: ProcessExecutionError | None = None

    @property
    def failed(self) -> bool:
        return self.state in (JobState.BUILD_FAILED, JobState.PUBLISH_FAILED)

    @property
    def succeeded(self) -> bool:
        return not self.failed and self.state != JobState.SKIPPED


@dataclass(frozen=True, slots=True)
class TaskReport:
    key: str
    name: str
    jobs: tuple[JobReport, ...]
    blocked_by: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        return bool(self.blocked_by)

    @property
    def succeeded(self) -> bool:
        return not self.skipped and all(j.succeeded for j in self.jobs)


@dataclass(frozen=True, slots=True)
class RunReport:
    tasks: tuple[TaskReport, ...]

    @property
    def jobs(self) -> list[JobReport]:
        return [job for task in self.tasks for job in task.jobs]

    @property
    def succeeded(self) -> bool:
        return all(t.succeeded for t in self.tasks)

    @property
    def exit_code(self) -> ErrorCode:
        return ErrorCode.OK if self.succeeded else ErrorCode.FAILURE


def _runnable(job: Job, mode: StepMode) -> bool:
    return (mode.builds and job.builder is not None) or (mode.publishes and job.publisher is not None)


class Orchestrator:
    def __init__(
        self,
        runner: ToolRunner,
        console: ConsoleProtocol,
        *,
        host: PlatformInfo | None = None,
        cwd: Path | None = None,
    ) -> None:
        self._console = console
        self._ctx = StepContext(runner=runner, console=console, host=host or detect(), cwd=cwd)

    def prepare(self, manifest: Manifest, mode: StepMode = StepMode.RUN) -> WorkflowGraph:
        """Validate everything that can fail before the first tool starts.

        Raises:
            WorkflowReferenceError: Unknown workflow key or cycle.
            VariableResolutionError: A job option references an unknown variable.
        """
        graph = build_graph(manifest.tasks)
        for task in manifest.tasks:
            for job in task.jobs:
                if mode.builds and job.builder is not None:
                    preview(job, job.builder)
                    if job.builder.options.output is not None:
                        substitute(job.builder.options.output, job.environment)
                if mode.publishes and job.publisher is not None:
                    preview(job, job.publisher)
        return graph

    async def run(self, manifest: Manifest, mode: StepMode = StepMode.RUN) -> RunReport:
        graph = self.prepare(manifest, mode)
        by_key = {t.key: t for t in manifest.tasks}
        pending: dict[str, asyncio.Task[TaskReport]] = {}

        async def _run_task(task: Task) -> TaskReport:
            needed = [pending[k] for k in graph.needs[task.key]]
            reports = await asyncio.gather(*needed)
            blocked = tuple(r.key for r in reports if not r.succeeded)
            if blocked:
                return self._skip(task, mode, blocked)
            return await self._run_jobs(task, mode)

        for key in graph.order:
            pending[key] = asyncio.create_task(_run_task(by_key[key]), name=f"task:{key}")

        await asyncio.gather(*pending.values())
        return RunReport(tasks=tuple(pending[t.key].result() for t in manifest.tasks))

    def _skip(self, task: Task, mode: StepMode, blocked: tuple[str, ...]) -> TaskReport:
        self._console.warning(f"{task.key}: skipped, waiting on failed task(s) {', '.join(blocked)}")
        jobs = tuple(
            JobReport(
                task=task.key,
                key=job.key,
                name=job.name,
                state=JobState.SKIPPED,
                history=(JobState.PENDING, JobState.SKIPPED),
            )
            for job in task.jobs
            if _runnable(job, mode)
        )
        return TaskReport(key=task.key, name=task.name, jobs=jobs, blocked_by=blocked)

    async def _run_jobs(self, task: Task, mode: StepMode) -> TaskReport:
        self._console.header(f"{task.name} ({task.key})")
        reports: list[JobReport] = []
        for job in task.jobs:
            if not _runnable(job, mode):
                continue
            reports.append(await self._run_job(task, job, mode))
        return TaskReport(key=task.key, name=task.name, jobs=tuple(reports))

    async def _run_job(self, task: Task, job: Job, mode: StepMode) -> JobReport:
        label = f"{task.key}.{job.key}"
        history = [JobState.PENDING]

        def _report(state: JobState, error: ProcessExecutionError | None = None) -> JobReport:
            history.append(state)
            return JobReport(
                task=task.key,
                key=job.key,
                name=job.name,
                state=state,
                history=tuple(history),
                error=error,
            )

        if mode.builds and job.builder is not None:
            history.append(JobState.BUILDING)
            self._console.info(f"{label}: building {job.builder.kind} ({job.builder.options.binary_type})")
            result = await run_build(job, job.builder, self._ctx)
            if is_err(result):
                self._console.error(f"{label}: {describe_step_error(result.error)}")
                return _report(JobState.BUILD_FAILED, result.error)
            self._console.success(f"{label}: built")
            if not (mode.publishes and job.publisher is not None):
                return _report(JobState.BUILT)
            history.append(JobState.BUILT)

        if mode.publishes and job.publisher is not None:
            history.append(JobState.PUBLISHING)
            self._console.info(f"{label}: publishing with {job.publisher.kind}")
            result = await run_publish(job, job.publisher, self._ctx)
            if is_err(result):
                self._console.error(f"{label}: {describe_step_error(result.error)}")
                return _report(JobState.PUBLISH_FAILED, result.error)
            self._console.success(f"{label}: published")
            return _report(JobState.PUBLISHED)

        return _report(JobState.BUILT)
