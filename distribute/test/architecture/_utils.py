from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


@dataclass(frozen=True, slots=True)
class SourceFile:
    path: Path
    rel: str  # posix path relative to the distribute package
    package: str  # dotted package that relative imports resolve against

    def imports(self) -> list[ImportRef]:
        return parse_imports(self.path, self.package)

    def tree(self) -> ast.AST:
        return read_tree(self.path)


def distribute_root() -> Path:
    return Path(__file__).resolve().parents[2]


def source_files(layer: str | None = None) -> list[SourceFile]:
    """Non-test modules, optionally only those under one layer (``core``, ``services``...)."""
    root = distribute_root()
    base = root / layer if layer else root
    files: list[SourceFile] = []
    for path in sorted(base.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        package = ".".join(("distribute", *rel.parent.parts))
        files.append(SourceFile(path=path, rel=rel.as_posix(), package=package))
    return files


def read_tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def _absolute(package: str, level: int, module: str | None) -> str:
    parts = package.split(".")
    if level > 1:
        parts = parts[: -(level - 1)]
    return ".".join([*parts, module] if module else parts)


def parse_imports(path: Path, package: str) -> list[ImportRef]:
    """Imported module names, with relative imports resolved against ``package``."""
    imports: list[ImportRef] = []
    for node in ast.walk(read_tree(path)):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(module=alias.name, line=node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            if not node.level:
                if node.module is not None:
                    imports.append(ImportRef(module=node.module, line=node.lineno))
                continue
            base = _absolute(package, node.level, node.module)
            if node.module is None:
                imports.extend(ImportRef(module=f"{base}.{a.name}", line=node.lineno) for a in node.names)
            else:
                imports.append(ImportRef(module=base, line=node.lineno))
    return imports


def matches_prefix(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")
