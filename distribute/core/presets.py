"""Named argument presets from the manifest's ``arguments`` block.

    arguments:
      release-apk:
        android:
          binary-type: apk
          build-mode: release

A job then writes ``builder: {android: {extends: release-apk, flavor: prod}}``.
Composition is per field: an explicit, non-null job value wins, everything
else comes from the preset.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .errors import ManifestError
from .structured import StrDict, as_str_dict

__all__ = ["EXTENDS_KEY", "Preset", "compose", "parse_presets"]

EXTENDS_KEY = "extends"


@dataclass(frozen=True, slots=True)
class Preset:
    name: str
    kind: str
    fields: Mapping[str, object]


def parse_presets(raw: object, *, known_kinds: tuple[str, ...]) -> dict[str, Preset]:
    """Read the ``arguments`` block.

    Raises:
        ManifestError: The block, or one of its presets, is malformed.
    """
    if raw is None:
        return {}
    table = as_str_dict(raw)
    if table is None:
        raise ManifestError("'arguments' must be a mapping of preset names")

    presets: dict[str, Preset] = {}
    for name, body in table.items():
        body_map = as_str_dict(body)
        if body_map is None or len(body_map) != 1:
            raise ManifestError(
                f"Preset '{name}' must contain exactly one variant",
                hint=f"Expected one of: {', '.join(known_kinds)}",
            )
        kind, fields = next(iter(body_map.items()))
        if kind not in known_kinds:
            raise ManifestError(
                f"Preset '{name}' has unknown variant '{kind}'",
                hint=f"Expected one of: {', '.join(known_kinds)}",
            )
        fields_map = as_str_dict(fields) if fields is not None else {}
        if fields_map is None:
            raise ManifestError(f"Preset '{name}': '{kind}' options must be a mapping")
        if EXTENDS_KEY in fields_map:
            raise ManifestError(f"Preset '{name}' cannot extend another preset")
        presets[name] = Preset(name=name, kind=kind, fields=MappingProxyType(dict(fields_map)))
    return presets


def compose(kind: str, fields: Mapping[str, object], presets: Mapping[str, Preset]) -> StrDict:
    """Resolve ``extends`` in one variant's option mapping.

    Raises:
        ManifestError: Unknown preset, or a preset of another variant.
    """
    ref = fields.get(EXTENDS_KEY)
    explicit = {k: v for k, v in fields.items() if k != EXTENDS_KEY}
    if ref is None:
        return explicit
    if not isinstance(ref, str):
        raise ManifestError(f"'{EXTENDS_KEY}' must be a preset name, got {ref!r}")

    preset = presets.get(ref)
    if preset is None:
        raise ManifestError(
            f"Unknown preset '{ref}'",
            hint=f"Defined presets: {', '.join(presets) or 'none'}",
        )
    if preset.kind != kind:
        raise ManifestError(f"Preset '{ref}' is a '{preset.kind}' preset and cannot be used for '{kind}'")

    merged: StrDict = dict(preset.fields)
    merged.update({k: v for k, v in explicit.items() if v is not None})
    return merged
