"""
Custom exception classes and error handling.

Provides consistent, presentable errors across the engine. Only two error
kinds are recoverable by a caller (ValidationError, ReversalNotFoundError);
InvariantViolation signals a defect.
"""
from typing import Optional, Dict, Any


class ProgressionError(Exception):
    """Base engine exception with consistent structure."""

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "error_code": self.error_code}


class ValidationError(ProgressionError):
    """Invalid caller input (duration, activity type, stat). Nothing was mutated."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(detail=detail, error_code=error_code)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class RecordNotFoundError(ProgressionError):
    """An activity record id is not in the subject's history."""

    def __init__(self, record_id: str):
        super().__init__(
            detail=f"Activity record not found: {record_id}",
            error_code="NOT_FOUND"
        )
        self.record_id = record_id


class ReversalNotFoundError(RecordNotFoundError):
    """The activity record to reverse is not in the subject's history."""


class InvariantViolation(ProgressionError):
    """Floor or level/exp inconsistency observed outside a mutation. A defect."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="INVARIANT_VIOLATION")


class SanitizationWarning(UserWarning):
    """NaN, infinite or below-floor stat input was replaced with the floor."""
