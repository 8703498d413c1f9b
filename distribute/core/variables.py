"""Manifest variable resolution and placeholder substitution.

Manifest values may contain two kinds of markers:

- placeholders ``${NAME}`` / ``${{NAME}}``, replaced by the value of ``NAME``
  from the environment;
- command directives ``%{command}`` / ``%{{command}}``, replaced by the
  trimmed stdout of ``command`` (split like a shell would, run without one).

``resolve`` turns the raw ``variables`` block into an immutable
``Environment``: the OS environment overlaid with the manifest variables, each
expanded exactly once. A manifest variable that refers to itself
(``PATH: ${PATH}:/opt/bin``) sees the OS value underneath.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Awaitable, Mapping, Sequence
from types import MappingProxyType
from typing import Protocol

from distribute.platform.process import LineSink, ProcessError, capture

from .errors import VariableResolutionError
from .ordering import topological_order
from .result import Err, Ok, Result

__all__ = [
    "CommandRunner",
    "Environment",
    "build_environment",
    "find_placeholders",
    "has_placeholders",
    "render_scalar",
    "resolve",
    "substitute",
]

type Environment = Mapping[str, str]


class CommandRunner(Protocol):
    """Runs a directive's argv with the run's OS environment; ``capture`` fits."""

    def __call__(
        self, cmd: Sequence[str], *, env: Mapping[str, str] | None = None
    ) -> Awaitable[Result[str, ProcessError]]: ...


_PLACEHOLDER = re.compile(r"\$\{\{(\w+)\}\}|\$\{(\w+)\}")
_DIRECTIVE = re.compile(r"%\{\{([^}]+)\}\}|%\{([^}]+)\}")


def build_environment(values: Mapping[str, str]) -> Environment:
    """Freeze ``values`` into a read-only Environment."""
    return MappingProxyType(dict(values))


def render_scalar(value: object) -> str:
    """Render a YAML scalar the way it should appear on a command line."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def find_placeholders(text: str) -> list[str]:
    """Names referenced by ``text``, in first-seen order, without duplicates."""
    names = [m.group(1) or m.group(2) for m in _PLACEHOLDER.finditer(text)]
    return list(dict.fromkeys(names))


def has_placeholders(text: str) -> bool:
    return _PLACEHOLDER.search(text) is not None


def substitute(template: str, environment: Environment) -> str:
    """Replace every placeholder in ``template`` in a single pass.

    Replacement values are inserted verbatim; markers they may contain are not
    expanded again.

    Raises:
        VariableResolutionError: A referenced name is not in ``environment``.
    """
    for name in find_placeholders(template):
        if name not in environment:
            raise VariableResolutionError(
                f"Unknown variable '{name}' referenced in '{template}'",
                key=name,
            )
    return _PLACEHOLDER.sub(lambda m: environment[m.group(1) or m.group(2)], template)


async def _expand_directives(
    key: str, value: str, runner: CommandRunner, env: Mapping[str, str]
) -> str:
    out: list[str] = []
    pos = 0
    for match in _DIRECTIVE.finditer(value):
        command = (match.group(1) or match.group(2)).strip()
        try:
            argv = shlex.split(command)
        except ValueError as e:
            raise VariableResolutionError(
                f"Variable '{key}': cannot parse command '{command}': {e}", key=key
            ) from e
        if not argv:
            raise VariableResolutionError(f"Variable '{key}': empty command directive", key=key)

        result = await runner(argv, env=env)
        match result:
            case Ok(value=stdout):
                out.append(value[pos : match.start()])
                out.append(stdout.strip())
                pos = match.end()
            case Err(error=error):
                detail = error.stderr.strip() or str(error)
                raise VariableResolutionError(
                    f"Variable '{key}': command '{command}' failed: {detail}", key=key
                )
    out.append(value[pos:])
    return "".join(out)


def _expansion_order(values: Mapping[str, str]) -> list[str]:
    deps = {
        key: [name for name in find_placeholders(value) if name != key]
        for key, value in values.items()
    }
    match topological_order(deps):
        case Ok(value=order):
            return order
        case Err(error=cycle):
            raise VariableResolutionError(
                f"Circular variable reference: {' -> '.join(cycle)}",
                key=cycle[0] if cycle else None,
            )


async def resolve(
    raw_variables: Mapping[str, object],
    os_env: Mapping[str, str],
    *,
    command_runner: CommandRunner = capture,
    on_verbose: LineSink | None = None,
) -> Environment:
    """Build the run's Environment from the manifest ``variables`` block.

    Steps: run command directives (with ``os_env`` as their environment),
    expand placeholders in dependency order (each value once), then check
    that no marker survived.

    Raises:
        VariableResolutionError: Unknown reference, reference cycle, failing
            command, or a leftover marker.
    """
    evaluated: dict[str, str] = {}
    for key, raw in raw_variables.items():
        evaluated[key] = await _expand_directives(key, render_scalar(raw), command_runner, os_env)

    resolved: dict[str, str] = dict(os_env)
    for key in _expansion_order(evaluated):
        scope: dict[str, str] = dict(resolved)
        if key in os_env:
            scope[key] = os_env[key]
        else:
            scope.pop(key, None)
        try:
            resolved[key] = substitute(evaluated[key], scope)
        except VariableResolutionError as e:
            raise VariableResolutionError(f"Variable '{key}': {e.message}", key=key) from e

    for key in evaluated:
        leftover = find_placeholders(resolved[key])
        if leftover or _DIRECTIVE.search(resolved[key]):
            raise VariableResolutionError(
                f"Variable '{key}' still contains unresolved markers: {resolved[key]}",
                key=key,
            )

    if on_verbose is not None:
        for key in evaluated:
            on_verbose(f"{key}={resolved[key]}")

    return build_environment(resolved)
