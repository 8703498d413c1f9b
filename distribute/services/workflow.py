"""Task dependency graph built from each task's ``workflows`` list."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from distribute.core.errors import WorkflowReferenceError
from distribute.core.manifest import Task
from distribute.core.ordering import topological_order
from distribute.core.result import Err, Ok

__all__ = ["WorkflowGraph", "build_graph"]


@dataclass(frozen=True, slots=True)
class WorkflowGraph:
    """Validated, acyclic task graph.

    Attributes:
        order: Task keys, dependencies first; ties keep declaration order.
        needs: For each task key, the keys it waits for.
    """

    order: tuple[str, ...]
    needs: dict[str, tuple[str, ...]]


def build_graph(tasks: Sequence[Task]) -> WorkflowGraph:
    """Check every workflow reference and order the tasks.

    Raises:
        WorkflowReferenceError: A workflow names no known task, or the graph
            has a cycle.
    """
    known = {t.key for t in tasks}
    needs: dict[str, tuple[str, ...]] = {}
    for task in tasks:
        for dep in task.workflows:
            if dep not in known:
                raise WorkflowReferenceError(
                    f"Task '{task.key}' depends on unknown task '{dep}' "
                    f"(known tasks: {', '.join(sorted(known)) or 'none'})",
                    task=task.key,
                )
        needs[task.key] = tuple(dict.fromkeys(task.workflows))

    match topological_order(needs):
        case Ok(value=order):
            return WorkflowGraph(order=tuple(order), needs=needs)
        case Err(error=cycle):
            raise WorkflowReferenceError(
                f"Workflow cycle: {' -> '.join(cycle)}",
                task=cycle[0] if cycle else None,
            )
