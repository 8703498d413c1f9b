from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from distribute.core.config import DEFAULT_SETTINGS_FILE, Settings, load_settings, load_settings_or_default
from distribute.core.errors import ErrorCode
from distribute.core.result import Err
from distribute.output.console import ConsoleProtocol, RichConsole
from distribute.output.log_file import LogFile, TeeConsole
from distribute.platform.detection import PlatformInfo, detect


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options given before the command name; None means "not given"."""

    verbose: bool = False
    manifest: Path | None = None
    log_file: Path | None = None
    jobs: int | None = None
    settings: Path | None = None


@dataclass(frozen=True, slots=True)
class CLIContext:
    settings: Settings
    platform: PlatformInfo
    console: ConsoleProtocol
    log: LogFile


def resolve_settings(options: GlobalOptions) -> Settings:
    """Settings file values with command line flags applied on top."""
    if options.settings is not None:
        result = load_settings(options.settings)
    else:
        result = load_settings_or_default(Path(DEFAULT_SETTINGS_FILE))
    if isinstance(result, Err):
        typer.echo(f"error: {result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return result.value.override(
        manifest=options.manifest,
        log_file=options.log_file,
        max_concurrency=options.jobs,
        verbose=True if options.verbose else None,
    )


def build_context(options: GlobalOptions | None) -> CLIContext:
    settings = resolve_settings(options or GlobalOptions())

    log = LogFile(settings.log_file)
    try:
        log.reset()
    except OSError as e:
        typer.echo(f"error: cannot write log file {settings.log_file}: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return CLIContext(
        settings=settings,
        platform=detect(),
        console=TeeConsole(RichConsole(verbose=settings.verbose), log),
        log=log,
    )
