"""Narrowing helpers for untyped YAML/TOML values.

Used where a manifest or settings file is ingested. Every getter returns None
for a missing or mistyped value and never raises; callers decide whether that
is an error.

Manifest values often arrive as strings after ``${VAR}`` substitution, so the
scalar getters also accept the string spelling of their type
(``"true"``, ``" 42 "``).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]

_TRUE = frozenset({"true", "yes", "on"})
_FALSE = frozenset({"false", "no", "off"})


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    return isinstance(obj, dict) and all(isinstance(k, str) for k in cast(dict[object, object], obj))


def as_str_dict(obj: object) -> StrDict | None:
    return obj if is_str_dict(obj) else None


def as_obj_list(obj: object) -> ObjList | None:
    return cast(ObjList, obj) if isinstance(obj, list) else None


def _scalar[T](value: object, parse: Callable[[str], T]) -> T | None:
    # bool is an int subclass; YAML `true` is never a number here
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return parse(value.strip() if isinstance(value, str) else value)  # type: ignore[arg-type]
    except ValueError:
        return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """String value, stripped; ``build-number: 42`` comes back as ``"42"``.

    Empty strings count as missing.
    """
    value = _scalar(table.get(key), str)
    return value or None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE:
            return True
        if word in _FALSE:
            return False
    return None


def _to_int(value: int | float | str) -> int:
    if isinstance(value, float):
        raise ValueError(value)
    return int(value)


def get_int(table: Mapping[str, object], key: str) -> int | None:
    return _scalar(table.get(key), _to_int)


def get_float(table: Mapping[str, object], key: str) -> float | None:
    return _scalar(table.get(key), float)


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """List of strings; ``"a, b"`` is split on commas.

    None when the key is missing or any item is not a scalar.
    """
    value = table.get(key)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    items = as_obj_list(value)
    if items is None:
        return None
    out: list[str] = []
    for item in items:
        text = _scalar(item, str)
        if text is None:
            return None
        out.append(text)
    return out


def get_int_list(table: Mapping[str, object], key: str) -> list[int] | None:
    items = as_obj_list(table.get(key))
    if items is None:
        return None
    out: list[int] = []
    for item in items:
        number = _scalar(item, _to_int)
        if number is None:
            return None
        out.append(number)
    return out
