"""
ImportResult model: what the caller gets back from a run.
"""

from datetime import date
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from labor_import.core.errors import ErrorKind

from .import_batch import ImportStatus
from .row_error import RowError


class ImportResult(BaseModel):
    """
    Result payload of one pipeline run.

    Attributes:
        success: True for success and partial outcomes
        status: Final ImportStatus
        imported: Detail lines inserted
        updated: Detail lines updated
        skipped: Rows skipped
        errors: Diagnostics, capped for display
        additional_errors: Diagnostics beyond the cap
        employee_count: Distinct workers persisted
        new_employees_created: Placeholder workers created this run
        zero_rate_employees: Rows skipped because the worker has no rate
        import_id: ImportBatch key when an audit record was written
        error: Terminal error message
        error_kind: Terminal error kind
        project_id: Resolved project, when known
        week_ending: Resolved week, when known
    """

    success: bool = False
    status: ImportStatus = ImportStatus.FAILED
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowError] = Field(default_factory=list)
    additional_errors: int = 0
    employee_count: int = 0
    new_employees_created: int | None = None
    zero_rate_employees: int | None = None
    import_id: UUID | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    project_id: UUID | None = None
    week_ending: date | None = None

    @property
    def total_errors(self) -> int:
        return len(self.errors) + self.additional_errors

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON payload consumed by import-history views."""
        payload: dict[str, Any] = {
            "success": self.success,
            "status": self.status.value,
            "imported": self.imported,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": [e.to_payload() for e in self.errors],
            "employeeCount": self.employee_count,
        }
        if self.additional_errors:
            payload["additionalErrors"] = self.additional_errors
        if self.new_employees_created is not None:
            payload["newEmployeesCreated"] = self.new_employees_created
        if self.zero_rate_employees is not None:
            payload["zeroRateEmployees"] = self.zero_rate_employees
        if self.import_id is not None:
            payload["import_id"] = str(self.import_id)
        if self.error is not None:
            payload["error"] = self.error
            payload["errorKind"] = self.error_kind.value if self.error_kind else None
        if self.week_ending is not None:
            payload["week_ending"] = self.week_ending.isoformat()
        return payload
