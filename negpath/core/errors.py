"""Error hierarchy for the mutation engine.

Ineligibility and failed capability probes are ordinary outcomes and are
never raised. Only programmer errors and catalog problems surface here:

    {
        "error": {
            "code": "STRUCTURAL_VIOLATION",
            "message": "Human-readable description",
            "details": {...}
        }
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes carried by engine exceptions."""

    CATALOG_ERROR = "CATALOG_ERROR"
    STRUCTURAL_VIOLATION = "STRUCTURAL_VIOLATION"
    NO_ELIGIBLE_MUTATION = "NO_ELIGIBLE_MUTATION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class NegpathError(Exception):
    """Base class for engine errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class CatalogError(NegpathError):
    """The failure catalog is incomplete or inconsistent."""

    code = ErrorCode.CATALOG_ERROR


class StructuralViolationError(NegpathError):
    """An applicator was handed a target it cannot address."""

    code = ErrorCode.STRUCTURAL_VIOLATION


class NoEligibleMutationError(NegpathError):
    """No failure mode is eligible for the current scenario."""

    code = ErrorCode.NO_ELIGIBLE_MUTATION
