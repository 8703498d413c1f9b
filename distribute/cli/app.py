from __future__ import annotations

from pathlib import Path

import typer

from distribute import __version__
from distribute.cli.commands.run_cmd import build, publish, run
from distribute.cli.context import GlobalOptions

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Build and publish Flutter apps from a distribution manifest.",
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


# Commands
app.command()(run)
app.command()(build)
app.command()(publish)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show tool output and resolved variables."),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Manifest path [default: distribution.yaml]",
        show_default=False,
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        help="Run log path [default: distribution.log]",
        show_default=False,
    ),
    jobs: int | None = typer.Option(
        None,
        "--jobs",
        "-j",
        min=1,
        help="Max tools running at once [default: 1]",
        show_default=False,
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        help="Settings file [default: distribute.toml when present]",
        show_default=False,
    ),
) -> None:
    ctx.obj = GlobalOptions(
        verbose=verbose,
        manifest=config,
        log_file=log_file,
        jobs=jobs,
        settings=settings,
    )


def main() -> None:
    app()
