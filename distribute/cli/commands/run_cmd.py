"""run / build / publish commands."""

from __future__ import annotations

import asyncio

import typer

from distribute.cli.commands._helpers import exit_with_code, global_options
from distribute.cli.context import CLIContext, build_context
from distribute.core.errors import DistributeError, ErrorCode
from distribute.core.manifest import load_manifest, select
from distribute.output.report import print_fatal_error, print_run_report
from distribute.platform.process import ProcessRunner
from distribute.services.orchestrator import Orchestrator, RunReport, StepMode


async def _execute(ctx: CLIContext, target: str | None, mode: StepMode) -> RunReport:
    manifest = await load_manifest(ctx.settings.manifest, on_verbose=ctx.console.verbose)
    selected = select(manifest, target)
    ctx.console.info(
        f"{manifest.name}: {mode.value} "
        f"({len(selected.tasks)} task(s), up to {ctx.settings.max_concurrency} tool(s) at once)"
    )
    orchestrator = Orchestrator(
        ProcessRunner(max_concurrency=ctx.settings.max_concurrency),
        ctx.console,
        host=ctx.platform,
    )
    return await orchestrator.run(selected, mode)


def _dispatch(typer_ctx: typer.Context, target: str | None, mode: StepMode) -> None:
    ctx = build_context(global_options(typer_ctx))
    try:
        report = asyncio.run(_execute(ctx, target, mode))
    except DistributeError as e:
        print_fatal_error(e, ctx.console)
        exit_with_code(int(ErrorCode.FAILURE))
    except KeyboardInterrupt:
        ctx.console.error("interrupted")
        exit_with_code(int(ErrorCode.FAILURE))

    print_run_report(report, ctx.console)
    exit_with_code(int(report.exit_code))


def run(
    ctx: typer.Context,
    target: str | None = typer.Argument(
        None, help="Task key or task.job key (default: every task)", show_default=False
    ),
) -> None:
    """Build, then publish, every selected job."""
    _dispatch(ctx, target, StepMode.RUN)


def build(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Task key or task.job key"),
) -> None:
    """Run only the build step of the selected jobs."""
    _dispatch(ctx, target, StepMode.BUILD)


def publish(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Task key or task.job key"),
) -> None:
    """Run only the publish step of the selected jobs."""
    _dispatch(ctx, target, StepMode.PUBLISH)
