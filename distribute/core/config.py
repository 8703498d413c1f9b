"""Run settings loaded from an optional ``distribute.toml``.

Settings only cover how the orchestrator runs (which manifest, where to log,
how many tools at once). What to build lives in the YAML manifest.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str

__all__ = [
    "DEFAULT_LOG_FILE",
    "DEFAULT_MANIFEST",
    "DEFAULT_SETTINGS_FILE",
    "ConfigError",
    "Settings",
    "load_settings",
    "load_settings_or_default",
]

DEFAULT_MANIFEST = "distribution.yaml"
DEFAULT_LOG_FILE = "distribution.log"
DEFAULT_SETTINGS_FILE = "distribute.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when settings cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Settings:
    manifest: Path = Path(DEFAULT_MANIFEST)
    log_file: Path = Path(DEFAULT_LOG_FILE)
    max_concurrency: int = 1
    verbose: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path | None = None) -> Settings:
        """Create Settings from a mapping (parsed TOML).

        Relative paths are anchored at ``base_dir`` (the settings file's
        directory) when given.
        """
        manifest = get_str(data, "manifest")
        log_file = get_str(data, "log_file")
        max_concurrency = get_int(data, "max_concurrency")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        def _anchor(raw: str | None, default: str) -> Path:
            p = Path(raw or default)
            if raw and base_dir is not None and not p.is_absolute():
                return base_dir / p
            return p

        return cls(
            manifest=_anchor(manifest, DEFAULT_MANIFEST),
            log_file=_anchor(log_file, DEFAULT_LOG_FILE),
            max_concurrency=max_concurrency or 1,
            verbose=bool(get_bool(data, "verbose")),
        )

    def override(
        self,
        *,
        manifest: Path | None = None,
        log_file: Path | None = None,
        max_concurrency: int | None = None,
        verbose: bool | None = None,
    ) -> Settings:
        """Return a copy with every non-None argument applied (CLI flags win)."""
        changes: dict[str, object] = {}
        if manifest is not None:
            changes["manifest"] = manifest
        if log_file is not None:
            changes["log_file"] = log_file
        if max_concurrency is not None:
            changes["max_concurrency"] = max_concurrency
        if verbose is not None:
            changes["verbose"] = verbose
        return replace(self, **changes)  # type: ignore[arg-type]


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Settings root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Settings file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading settings: {e}", path=path))


def load_settings(path: Path) -> Result[Settings, ConfigError]:
    """Load run settings from a TOML file.

    The file may either hold the keys at top level or under a ``[distribute]``
    table.

    Args:
        path: Path to distribute.toml

    Returns:
        Ok(Settings) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    data = result.value
    section = as_str_dict(data.get("distribute"))
    if section is not None:
        data = section

    try:
        return Ok(Settings.from_dict(data, base_dir=path.parent))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid settings: {e}", path=path))


def load_settings_or_default(path: Path) -> Result[Settings, ConfigError]:
    """Like ``load_settings`` but a missing file yields default Settings."""
    if not path.exists():
        return Ok(Settings())
    return load_settings(path)
