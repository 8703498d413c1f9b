"""Stable topological ordering over named nodes.

Shared by variable expansion and the task workflow graph. Ties are broken by
declaration order (the iteration order of the dependency map), so the same
input always yields the same order.
"""

from __future__ import annotations

import heapq
from collections.abc import Mapping, Sequence

from .result import Err, Ok, Result

__all__ = ["find_cycle", "topological_order"]


def find_cycle(dependency_map: Mapping[str, Sequence[str]]) -> list[str]:
    """Return one cycle as ``[a, b, ..., a]``, or an empty list if none."""
    visiting: set[str] = set()
    visited: set[str] = set()
    stack: list[str] = []

    def _dfs(node: str) -> list[str] | None:
        visiting.add(node)
        stack.append(node)
        for dep in dependency_map.get(node, ()):
            if dep not in dependency_map:
                continue
            if dep in visiting:
                return stack[stack.index(dep) :] + [dep]
            if dep not in visited:
                found = _dfs(dep)
                if found:
                    return found
        stack.pop()
        visiting.discard(node)
        visited.add(node)
        return None

    for node in dependency_map:
        if node not in visited:
            cycle = _dfs(node)
            if cycle:
                return cycle
    return []


def topological_order(dependency_map: Mapping[str, Sequence[str]]) -> Result[list[str], list[str]]:
    """Order nodes so that every node comes after its dependencies.

    Dependencies naming nodes outside the map are ignored.

    Returns:
        Ok(order), or Err(cycle) when the graph is not acyclic.
    """
    nodes = list(dependency_map.keys())
    position = {node: i for i, node in enumerate(nodes)}
    dependents: dict[str, list[str]] = {node: [] for node in nodes}
    indegree: dict[str, int] = {node: 0 for node in nodes}

    for node, deps in dependency_map.items():
        filtered = [dep for dep in dict.fromkeys(deps) if dep in dependency_map]
        indegree[node] = len(filtered)
        for dep in filtered:
            dependents[dep].append(node)

    ready = [(position[node], node) for node, degree in indegree.items() if degree == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                heapq.heappush(ready, (position[dependent], dependent))

    if len(order) != len(nodes):
        return Err(find_cycle(dependency_map))
    return Ok(order)
