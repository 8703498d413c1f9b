"""Manifest loading: ``distribution.yaml`` to an immutable Task/Job model.

    name: My app
    description: Release pipeline
    variables:
      BUILD_NUMBER: "%{git rev-list --count HEAD}"
    arguments:            # optional presets, see distribute.core.presets
      ...
    tasks:
      - name: Android
        key: android
        workflows: []     # keys of tasks that must succeed first
        jobs:
          - name: Play Store
            package_name: com.example.app
            builder:
              android: {binary-type: aab, build-number: "${BUILD_NUMBER}"}
            publisher:
              fastlane: {file-path: distribution/android/output}

Everything is validated here: a manifest that loads can be executed.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from distribute.platform.process import LineSink, capture
from distribute.specs import (
    BUILDER_KINDS,
    PUBLISHER_KINDS,
    BuilderSpec,
    PublisherSpec,
    parse_builder,
    parse_publisher,
)

from .errors import ArgumentValidationError, ManifestError, VariableResolutionError
from .presets import Preset, compose, parse_presets
from .structured import StrDict, as_obj_list, as_str_dict, get_str
from .variables import CommandRunner, Environment, resolve

__all__ = ["Job", "Manifest", "Task", "load_manifest", "parse_manifest", "select", "slugify"]


@dataclass(frozen=True, slots=True)
class Job:
    name: str
    key: str
    package_name: str
    environment: Environment
    description: str = ""
    builder: BuilderSpec | None = None
    publisher: PublisherSpec | None = None


@dataclass(frozen=True, slots=True)
class Task:
    name: str
    key: str
    jobs: tuple[Job, ...]
    description: str = ""
    workflows: tuple[str, ...] = ()

    def job(self, key: str) -> Job | None:
        return next((j for j in self.jobs if j.key == key), None)


@dataclass(frozen=True, slots=True)
class Manifest:
    name: str
    description: str
    path: Path
    environment: Environment
    tasks: tuple[Task, ...]

    def task(self, key: str) -> Task | None:
        return next((t for t in self.tasks if t.key == key), None)


def slugify(name: str) -> str:
    """Default key for a task or job: lowercase, dash-separated."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _read_yaml(path: Path) -> StrDict:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ManifestError(
            f"Manifest not found: {path}",
            path=path,
            hint="Pass --config PATH or create distribution.yaml",
        ) from None
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}", path=path) from e

    try:
        data_obj: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {path}: {e}", path=path) from e

    data = as_str_dict(data_obj)
    if data is None:
        raise ManifestError(f"Manifest root must be a mapping: {path}", path=path)
    return data


def _require_str(table: Mapping[str, object], key: str, where: str, path: Path) -> str:
    value = get_str(table, key)
    if value is None:
        raise ManifestError(f"Missing '{key}' in {where}", path=path)
    return value


def _variant(
    raw: object,
    *,
    role: str,
    kinds: tuple[str, ...],
    presets: Mapping[str, Preset],
    where: str,
    path: Path,
) -> StrDict:
    table = as_str_dict(raw)
    if table is None or len(table) != 1:
        raise ManifestError(
            f"{where}: '{role}' must contain exactly one of {', '.join(kinds)}",
            path=path,
        )
    kind, fields = next(iter(table.items()))
    if kind not in kinds:
        raise ManifestError(
            f"{where}: unknown {role} '{kind}'",
            path=path,
            hint=f"Expected one of: {', '.join(kinds)}",
        )
    fields_map = as_str_dict(fields) if fields is not None else {}
    if fields_map is None:
        raise ManifestError(f"{where}: '{kind}' options must be a mapping", path=path)
    return {kind: compose(kind, fields_map, presets)}


def _parse_job(
    raw: object,
    *,
    task_name: str,
    environment: Environment,
    presets: Mapping[str, Preset],
    path: Path,
) -> Job:
    table = as_str_dict(raw)
    if table is None:
        raise ManifestError(f"Task '{task_name}': each job must be a mapping", path=path)

    name = _require_str(table, "name", f"a job of task '{task_name}'", path)
    where = f"Task '{task_name}', job '{name}'"
    package_name = get_str(table, "package_name")
    if package_name is None:
        raise ManifestError(f"{where}: 'package_name' is required and must not be empty", path=path)

    builder_raw = table.get("builder")
    publisher_raw = table.get("publisher")
    if builder_raw is None and publisher_raw is None:
        raise ManifestError(f"{where}: needs a 'builder', a 'publisher', or both", path=path)

    try:
        builder = (
            parse_builder(
                _variant(
                    builder_raw,
                    role="builder",
                    kinds=BUILDER_KINDS,
                    presets=presets,
                    where=where,
                    path=path,
                ),
                environment,
            )
            if builder_raw is not None
            else None
        )
        publisher = (
            parse_publisher(
                _variant(
                    publisher_raw,
                    role="publisher",
                    kinds=PUBLISHER_KINDS,
                    presets=presets,
                    where=where,
                    path=path,
                ),
                environment,
            )
            if publisher_raw is not None
            else None
        )
    except ArgumentValidationError as e:
        raise ArgumentValidationError(f"{where}: {e.message}", field=e.field) from e
    except VariableResolutionError as e:
        raise VariableResolutionError(f"{where}: {e.message}", key=e.key) from e

    return Job(
        name=name,
        key=get_str(table, "key") or slugify(name),
        package_name=package_name,
        environment=environment,
        description=get_str(table, "description") or "",
        builder=builder,
        publisher=publisher,
    )


def _parse_workflows(raw: object, where: str, path: Path) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw.strip(),)
    items = as_obj_list(raw)
    if items is None or not all(isinstance(i, str) for i in items):
        raise ManifestError(f"{where}: 'workflows' must be a list of task keys", path=path)
    return tuple(str(i).strip() for i in items)


def _parse_task(
    raw: object,
    *,
    environment: Environment,
    presets: Mapping[str, Preset],
    path: Path,
) -> Task:
    table = as_str_dict(raw)
    if table is None:
        raise ManifestError("Each entry of 'tasks' must be a mapping", path=path)

    name = _require_str(table, "name", "a task", path)
    jobs_raw = as_obj_list(table.get("jobs"))
    if jobs_raw is None:
        raise ManifestError(f"Task '{name}': 'jobs' must be a list", path=path)

    jobs = tuple(
        _parse_job(j, task_name=name, environment=environment, presets=presets, path=path)
        for j in jobs_raw
    )
    seen: set[str] = set()
    for job in jobs:
        if job.key in seen:
            raise ManifestError(f"Task '{name}': duplicate job key '{job.key}'", path=path)
        seen.add(job.key)

    return Task(
        name=name,
        key=get_str(table, "key") or slugify(name),
        jobs=jobs,
        description=get_str(table, "description") or "",
        workflows=_parse_workflows(table.get("workflows"), f"Task '{name}'", path),
    )


async def parse_manifest(
    data: Mapping[str, object],
    *,
    path: Path,
    os_env: Mapping[str, str],
    on_verbose: LineSink | None = None,
    command_runner: CommandRunner = capture,
) -> Manifest:
    """Validate an already-parsed manifest mapping and build the model."""
    name = _require_str(data, "name", str(path), path)
    if data.get("description") is None:
        raise ManifestError(f"Missing 'description' in {path}", path=path)
    description = get_str(data, "description") or ""
    tasks_raw = as_obj_list(data.get("tasks"))
    if tasks_raw is None:
        raise ManifestError(f"Missing 'tasks' in {path}", path=path)

    variables_raw = data.get("variables")
    variables = as_str_dict(variables_raw) if variables_raw is not None else {}
    if variables is None:
        raise ManifestError("'variables' must be a mapping", path=path)
    for key, value in variables.items():
        if isinstance(value, (dict, list)):
            raise ManifestError(f"Variable '{key}' must be a scalar value", path=path)

    environment = await resolve(
        variables,
        os_env,
        command_runner=command_runner,
        on_verbose=on_verbose,
    )
    presets = parse_presets(data.get("arguments"), known_kinds=BUILDER_KINDS + PUBLISHER_KINDS)

    tasks = tuple(
        _parse_task(t, environment=environment, presets=presets, path=path) for t in tasks_raw
    )
    seen: set[str] = set()
    for task in tasks:
        if task.key in seen:
            raise ManifestError(f"Duplicate task key '{task.key}'", path=path)
        seen.add(task.key)

    return Manifest(
        name=name,
        description=description,
        path=path,
        environment=environment,
        tasks=tasks,
    )


async def load_manifest(
    path: Path,
    *,
    os_env: Mapping[str, str] | None = None,
    on_verbose: LineSink | None = None,
    command_runner: CommandRunner = capture,
) -> Manifest:
    """Read, resolve and validate the manifest at ``path``.

    Raises:
        ManifestError: Missing file, bad YAML, or invalid structure.
        VariableResolutionError: A variable cannot be resolved.
        ArgumentValidationError: A builder/publisher option is invalid.
    """
    data = _read_yaml(path)
    return await parse_manifest(
        data,
        path=path,
        os_env=dict(os.environ) if os_env is None else os_env,
        on_verbose=on_verbose,
        command_runner=command_runner,
    )


def select(manifest: Manifest, target: str | None) -> Manifest:
    """Restrict ``manifest`` to ``task`` or ``task.job``.

    Workflow edges pointing outside the selection are dropped.

    Raises:
        ManifestError: No task (or job) with that key.
    """
    if not target:
        return manifest

    task_key, _, job_key = target.partition(".")
    task = manifest.task(task_key)
    if task is None:
        raise ManifestError(
            f"No task with key '{task_key}'",
            path=manifest.path,
            hint=f"Available tasks: {', '.join(t.key for t in manifest.tasks) or 'none'}",
        )

    jobs = task.jobs
    if job_key:
        job = task.job(job_key)
        if job is None:
            raise ManifestError(
                f"No job with key '{job_key}' in task '{task_key}'",
                path=manifest.path,
                hint=f"Available jobs: {', '.join(j.key for j in task.jobs) or 'none'}",
            )
        jobs = (job,)

    return replace(manifest, tasks=(replace(task, jobs=jobs, workflows=()),))
