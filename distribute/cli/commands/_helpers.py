"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from distribute.cli.context import GlobalOptions

__all__ = ["exit_with_code", "global_options"]


def global_options(ctx: typer.Context) -> GlobalOptions:
    """Options stored by the app callback (defaults when invoked directly)."""
    obj = ctx.find_root().obj
    if isinstance(obj, GlobalOptions):
        return obj
    return GlobalOptions()


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
