from __future__ import annotations

import ast

from ._gate import require_arch_checks_enabled
from ._utils import source_files

_SPAWNERS = {
    "subprocess": {"run", "call", "check_call", "check_output", "Popen"},
    "asyncio": {"create_subprocess_exec", "create_subprocess_shell"},
    "os": {"system", "popen"},
}


def _direct_spawn_lines(tree: ast.AST) -> list[int]:
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        func = node.func
        if not isinstance(func, ast.Attribute) or not isinstance(func.value, ast.Name):
            continue
        if func.attr in _SPAWNERS.get(func.value.id, ()):
            lines.append(node.lineno)
    return lines


def test_tools_are_only_spawned_by_the_process_module() -> None:
    require_arch_checks_enabled()

    allowlist = {"platform/process.py"}
    offenders: list[str] = []
    for source in source_files():
        if source.rel in allowlist:
            continue
        for line in _direct_spawn_lines(source.tree()):
            offenders.append(f"{source.rel}:{line}: direct subprocess call outside allowlist")

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
