"""Core domain types and logic.

Only the dependency-free leaves are re-exported here; import the manifest,
variable and preset modules directly.
"""

from .errors import (
    ArgumentValidationError,
    DistributeError,
    ErrorCode,
    ManifestError,
    VariableResolutionError,
    WorkflowReferenceError,
)
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # errors
    "ArgumentValidationError",
    "DistributeError",
    "ErrorCode",
    "ManifestError",
    "VariableResolutionError",
    "WorkflowReferenceError",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
