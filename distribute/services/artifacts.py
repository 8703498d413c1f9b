"""Build artifact collection and publish-time artifact lookup."""

from __future__ import annotations

import shutil
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from distribute.core.result import Err, Ok, Result

from .step_errors import ArtifactMissing, CopyFailed, OutputMissing

__all__ = ["DEBUG_SYMBOLS_ARCHIVE", "archive_debug_symbols", "collect_artifacts", "resolve_artifact"]

DEBUG_SYMBOLS_ARCHIVE = "debug_symbols.zip"


def _matches(path: Path, extension: str) -> bool:
    return path.name.endswith(f".{extension}")


def collect_artifacts(
    source: Path, destination: Path, extension: str
) -> Result[list[Path], OutputMissing | CopyFailed]:
    """Copy every ``*.<extension>`` found under ``source`` into ``destination``.

    Matches are searched recursively and copied flat, in sorted order. A
    matching directory (``Runner.app``) is copied as a tree.

    Returns:
        Ok(copied paths), Err(OutputMissing) when nothing matched, or
        Err(CopyFailed) when the destination cannot be written.
    """
    if not source.is_dir():
        return Err(OutputMissing(source=source, extension=extension))

    found = sorted(p for p in source.rglob(f"*.{extension}") if _matches(p, extension))
    # Skip files nested inside a matched directory bundle.
    top_level = [p for p in found if not any(parent in found for parent in p.parents)]
    if not top_level:
        return Err(OutputMissing(source=source, extension=extension))

    copied: list[Path] = []
    item = source
    try:
        destination.mkdir(parents=True, exist_ok=True)
        for item in top_level:
            target = destination / item.name
            if item.is_dir():
                shutil.copytree(item, target, dirs_exist_ok=True)
            else:
                shutil.copy2(item, target)
            copied.append(target)
    except OSError as e:
        # shutil.Error and SameFileError are OSError subclasses
        return Err(CopyFailed(source=item, destination=destination, reason=str(e)))
    return Ok(copied)


def resolve_artifact(file_path: Path, extension: str) -> Result[Path, ArtifactMissing]:
    """Turn a publisher's ``file-path`` into the file to upload.

    A file is used as is. A directory resolves to its first (sorted) entry
    with the expected extension.
    """
    if file_path.is_file():
        return Ok(file_path)
    if file_path.is_dir():
        candidates = sorted(p for p in file_path.iterdir() if p.is_file() and _matches(p, extension))
        if candidates:
            return Ok(candidates[0])
    return Err(ArtifactMissing(path=file_path, extension=extension))


def archive_debug_symbols(symbols_dir: Path, zip_path: Path) -> Result[Path, OutputMissing | CopyFailed]:
    """Zip the ``--split-debug-info`` directory into ``zip_path``.

    Entries are stored relative to ``symbols_dir``, the layout the Play
    Console and Crashlytics expect for uploaded symbol archives.
    """
    files = sorted(p for p in symbols_dir.rglob("*") if p.is_file()) if symbols_dir.is_dir() else []
    if not files:
        return Err(OutputMissing(source=symbols_dir, extension="symbols"))

    try:
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        # split-debug-info output can carry mtime=0, which ZIP cannot store
        with ZipFile(zip_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
            for path in files:
                zf.write(path, arcname=path.relative_to(symbols_dir).as_posix())
    except OSError as e:
        return Err(CopyFailed(source=symbols_dir, destination=zip_path, reason=str(e)))
    return Ok(zip_path)
