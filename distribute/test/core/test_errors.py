"""Tests for distribute.core.errors module."""

from __future__ import annotations

from pathlib import Path

from distribute.core.errors import (
    ArgumentValidationError,
    DistributeError,
    ErrorCode,
    ManifestError,
    VariableResolutionError,
    WorkflowReferenceError,
)


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert int(ErrorCode.OK) == 0
        assert int(ErrorCode.FAILURE) == 1

    def test_str(self) -> None:
        assert str(ErrorCode.FAILURE) == "failure"

    def test_is_success(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.FAILURE.is_success


class TestDistributeError:
    def test_all_fatal_errors_share_base(self) -> None:
        for cls in (ManifestError, VariableResolutionError, ArgumentValidationError, WorkflowReferenceError):
            assert issubclass(cls, DistributeError)

    def test_manifest_error_carries_path_and_hint(self) -> None:
        err = ManifestError("bad", path=Path("distribution.yaml"), hint="fix it")
        assert err.message == "bad"
        assert str(err) == "bad"
        assert err.path == Path("distribution.yaml")
        assert err.hint == "fix it"

    def test_variable_error_names_key(self) -> None:
        err = VariableResolutionError("unknown", key="API_KEY")
        assert err.key == "API_KEY"
        assert err.hint is None

    def test_argument_error_names_field(self) -> None:
        assert ArgumentValidationError("x", field="split-per-abi").field == "split-per-abi"

    def test_workflow_error_names_task(self) -> None:
        assert WorkflowReferenceError("x", task="ios").task == "ios"
