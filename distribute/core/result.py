"""Ok/Err values for per-step outcomes.

Build and publish steps never raise for a failing tool. They hand back
``Ok(value)`` or ``Err(error)`` and callers branch with ``match``, so jobs
running side by side can be aggregated without exceptions crossing task
boundaries:

    match await run_build(job, spec, ctx):
        case Ok():
            ...
        case Err(error=ToolFailed(returncode=rc)):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeGuard


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
