"""Pieces shared by every builder and publisher spec.

A spec is a frozen dataclass describing one external tool invocation. Specs
validate themselves on construction, so an invalid combination of options
(``split-per-abi`` on an app bundle, two xcrun auth methods, ...) is reported
while the manifest loads, before anything runs.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol

from distribute.core.errors import ArgumentValidationError
from distribute.core.structured import get_bool, get_float, get_int, get_int_list, get_str, get_str_list
from distribute.core.variables import Environment, substitute

__all__ = [
    "BUILD_MODES",
    "ArtifactOptions",
    "BuildOptions",
    "FieldReader",
    "Invocation",
    "ToolSpec",
    "drop_none",
    "render_command",
    "render_invocation",
]

BUILD_MODES = ("debug", "profile", "release")


class ToolSpec(Protocol):
    """What the orchestrator needs from any builder or publisher."""

    @property
    def tool(self) -> str: ...

    @property
    def kind(self) -> str: ...

    @property
    def requires_macos(self) -> bool: ...

    def validate(self) -> None: ...

    def build_argument_vector(self, package_name: str) -> list[str]: ...

    def child_env(self) -> Mapping[str, str]: ...

    def to_dict(self) -> dict[str, object]: ...


def drop_none(data: Mapping[str, object]) -> dict[str, object]:
    return {k: v for k, v in data.items() if v is not None}


class FieldReader:
    """Typed access to one variant's option mapping.

    Absent keys yield the default; present keys of the wrong type raise
    ``ArgumentValidationError`` naming the field. ``finish()`` rejects keys
    that were never read (typos in the manifest).

    With an ``environment``, options checked here (booleans, numbers and
    keywords such as ``binary-type``) have their placeholders expanded first,
    so ``split-per-abi: ${SPLIT}`` validates the final value. Free text keeps
    its placeholders until ``render_invocation``.
    """

    def __init__(
        self, kind: str, data: Mapping[str, object], environment: Environment | None = None
    ) -> None:
        self.kind = kind
        self._data = data
        self._environment = environment
        self._seen: set[str] = set()

    def _resolved(self, key: str) -> Mapping[str, object]:
        value = self._data.get(key)
        env = self._environment
        if env is not None:
            if isinstance(value, str):
                value = substitute(value, env)
            elif isinstance(value, list):
                value = [substitute(v, env) if isinstance(v, str) else v for v in value]
        return {key: value}

    def _present(self, key: str) -> bool:
        self._seen.add(key)
        return self._data.get(key) is not None

    def _invalid(self, key: str, expected: str) -> ArgumentValidationError:
        return ArgumentValidationError(
            f"{self.kind}: '{key}' must be {expected}, got {self._data.get(key)!r}",
            field=key,
        )

    def text(self, key: str, default: str | None = None) -> str | None:
        if not self._present(key):
            return default
        value = get_str(self._data, key)
        if value is None:
            raw = self._data.get(key)
            if isinstance(raw, str):
                return default
            raise self._invalid(key, "a string")
        return value

    def required_text(self, key: str) -> str:
        value = self.text(key)
        if value is None:
            raise ArgumentValidationError(f"{self.kind}: '{key}' is required", field=key)
        return value

    def choice(self, key: str, default: str | None = None) -> str | None:
        """A keyword option, expanded now so the spec can validate it."""
        if not self._present(key):
            return default
        value = get_str(self._resolved(key), key)
        if value is None:
            if isinstance(self._data.get(key), str):
                return default
            raise self._invalid(key, "a string")
        return value

    def boolean(self, key: str, default: bool | None = None) -> bool | None:
        if not self._present(key):
            return default
        value = get_bool(self._resolved(key), key)
        if value is None:
            raise self._invalid(key, "true or false")
        return value

    def flag(self, key: str, default: bool = False) -> bool:
        value = self.boolean(key, default)
        return default if value is None else value

    def integer(self, key: str, default: int | None = None) -> int | None:
        if not self._present(key):
            return default
        value = get_int(self._resolved(key), key)
        if value is None:
            raise self._invalid(key, "an integer")
        return value

    def number(self, key: str, default: float | None = None) -> float | None:
        if not self._present(key):
            return default
        value = get_float(self._resolved(key), key)
        if value is None:
            raise self._invalid(key, "a number")
        return value

    def str_tuple(self, key: str) -> tuple[str, ...]:
        if not self._present(key):
            return ()
        value = get_str_list(self._data, key)
        if value is None:
            raise self._invalid(key, "a list of strings")
        return tuple(value)

    def int_tuple(self, key: str) -> tuple[int, ...]:
        if not self._present(key):
            return ()
        value = get_int_list(self._resolved(key), key)
        if value is None:
            raise self._invalid(key, "a list of integers")
        return tuple(value)

    def args(self, key: str) -> tuple[str, ...]:
        """Free-form extra arguments: a list, or one string split like a shell."""
        if not self._present(key):
            return ()
        raw = self._data.get(key)
        if isinstance(raw, str):
            try:
                return tuple(shlex.split(raw))
            except ValueError as e:
                raise self._invalid(key, "a valid argument string") from e
        return self.str_tuple(key)

    def finish(self) -> None:
        unknown = [k for k in self._data if k not in self._seen]
        if unknown:
            raise ArgumentValidationError(
                f"{self.kind}: unknown option '{unknown[0]}'",
                field=unknown[0],
            )


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Options common to every ``flutter build`` invocation."""

    binary_type: str
    build_mode: str = "release"
    target: str | None = None
    flavor: str | None = None
    dart_defines: str | None = None
    dart_defines_file: str | None = None
    build_name: str | None = None
    build_number: str | None = None
    pub: bool = True
    custom_args: tuple[str, ...] = ()
    output: str | None = None

    def validate(self, kind: str) -> None:
        if not self.binary_type:
            raise ArgumentValidationError(f"{kind}: 'binary-type' is required", field="binary-type")
        if self.build_mode not in BUILD_MODES:
            raise ArgumentValidationError(
                f"{kind}: 'build-mode' must be one of {', '.join(BUILD_MODES)}, got '{self.build_mode}'",
                field="build-mode",
            )

    def arguments(self) -> list[str]:
        args = ["build", self.binary_type]
        if self.target:
            args.append(f"--target={self.target}")
        if self.build_mode:
            args.append(f"--{self.build_mode}")
        if self.flavor:
            args.append(f"--flavor={self.flavor}")
        if self.dart_defines:
            args.append(f"--dart-defines={self.dart_defines}")
        if self.dart_defines_file:
            args.append(f"--dart-defines-file={self.dart_defines_file}")
        if self.build_name:
            args.append(f"--build-name={self.build_name}")
        if self.build_number:
            args.append(f"--build-number={self.build_number}")
        args.append("--pub" if self.pub else "--no-pub")
        args.extend(self.custom_args)
        return args

    def to_dict(self) -> dict[str, object]:
        return drop_none(
            {
                "binary-type": self.binary_type,
                "build-mode": self.build_mode,
                "target": self.target,
                "flavor": self.flavor,
                "dart-defines": self.dart_defines,
                "dart-defines-file": self.dart_defines_file,
                "build-name": self.build_name,
                "build-number": self.build_number,
                "pub": self.pub,
                "arguments": list(self.custom_args) or None,
                "output": self.output,
            }
        )

    @classmethod
    def read(cls, fields: FieldReader, *, default_binary_type: str | None = None) -> BuildOptions:
        binary_type = fields.choice("binary-type", default_binary_type)
        if binary_type is None:
            raise ArgumentValidationError(f"{fields.kind}: 'binary-type' is required", field="binary-type")
        return cls(
            binary_type=binary_type,
            build_mode=fields.choice("build-mode", "release") or "release",
            target=fields.text("target"),
            flavor=fields.text("flavor"),
            dart_defines=fields.text("dart-defines"),
            dart_defines_file=fields.text("dart-defines-file"),
            build_name=fields.text("build-name"),
            build_number=fields.text("build-number"),
            pub=fields.flag("pub", True),
            custom_args=fields.args("arguments"),
            output=fields.text("output"),
        )


@dataclass(frozen=True, slots=True)
class ArtifactOptions:
    """Which file a publisher uploads."""

    file_path: str
    binary_type: str

    def validate(self, kind: str, allowed: Iterable[str]) -> None:
        allowed = tuple(allowed)
        if not self.file_path:
            raise ArgumentValidationError(f"{kind}: 'file-path' is required", field="file-path")
        if self.binary_type not in allowed:
            raise ArgumentValidationError(
                f"{kind}: 'binary-type' must be one of {', '.join(allowed)}, got '{self.binary_type}'",
                field="binary-type",
            )

    def to_dict(self) -> dict[str, object]:
        return {"file-path": self.file_path, "binary-type": self.binary_type}

    @classmethod
    def read(cls, fields: FieldReader, *, default_binary_type: str | None = None) -> ArtifactOptions:
        file_path = fields.required_text("file-path")
        binary_type = fields.choice("binary-type", default_binary_type)
        if binary_type is None:
            raise ArgumentValidationError(f"{fields.kind}: 'binary-type' is required", field="binary-type")
        return cls(file_path=file_path, binary_type=binary_type)


@dataclass(frozen=True, slots=True)
class Invocation:
    """A fully substituted command, ready to spawn."""

    tool: str
    args: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def command_line(self) -> str:
        """Printable command line. Extra env values never appear here."""
        return shlex.join([self.tool, *self.args])


def render_invocation(spec: ToolSpec, package_name: str, environment: Environment) -> Invocation:
    """Build ``spec``'s argument vector and substitute every token.

    Raises:
        VariableResolutionError: A token references an unknown variable.
    """
    return render_command(spec, spec.build_argument_vector(package_name), environment)


def render_command(spec: ToolSpec, argv: Sequence[str], environment: Environment) -> Invocation:
    """Substitute ``argv`` for a secondary call of ``spec``'s tool, such as a
    release lookup, with the same child environment."""
    args = tuple(substitute(arg, environment) for arg in argv)
    extra = {k: substitute(v, environment) for k, v in spec.child_env().items()}
    return Invocation(tool=spec.tool, args=args, env=MappingProxyType(extra))
