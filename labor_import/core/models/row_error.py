"""
RowError model: a diagnostic attached to an import run.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class DiagnosticCode:
    """Machine-readable diagnostic codes."""

    MISSING_NAME = "MISSING_NAME"
    DAILY_HOURS_EXCEEDED = "DAILY_HOURS_EXCEEDED"
    NEGATIVE_HOURS = "NEGATIVE_HOURS"
    DUPLICATE_ROW = "DUPLICATE_ROW"
    ZERO_RATE = "ZERO_RATE"
    INVALID_WORKER = "INVALID_WORKER"
    UNKNOWN_CRAFT_CODE = "UNKNOWN_CRAFT_CODE"
    PERSISTENCE = "PERSISTENCE"
    NO_HOURS = "NO_HOURS"
    FATAL = "FATAL"


class RowError(BaseModel):
    """
    Row-level (or row 0 = run-level) diagnostic.

    Attributes:
        row: 1-based sheet row; 0 for run-level diagnostics
        field: Offending field, if any
        message: Operator-facing message
        data: Optional context payload
        code: DiagnosticCode value
        severity: "error" counts toward the failure threshold; "warning" does not
    """

    row: int = Field(..., ge=0)
    field: str | None = None
    message: str = Field(..., min_length=1)
    data: dict[str, Any] | None = None
    code: str = DiagnosticCode.FATAL
    severity: Literal["error", "warning"] = "error"

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"row": self.row, "message": self.message, "code": self.code}
        if self.field is not None:
            payload["field"] = self.field
        if self.data is not None:
            payload["data"] = self.data
        if self.severity != "error":
            payload["severity"] = self.severity
        return payload
