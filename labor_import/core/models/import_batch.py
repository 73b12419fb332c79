"""
ImportBatch model: the audit record of one submission attempt.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ImportStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    UNDONE = "undone"

    @property
    def is_terminal(self) -> bool:
        return self is not ImportStatus.PENDING

    @property
    def can_undo(self) -> bool:
        return self in (ImportStatus.SUCCESS, ImportStatus.PARTIAL)


class ImportBatch(BaseModel):
    """
    One submission attempt, persisted for audit and duplicate detection.

    Attributes:
        import_id: Generated key
        project_id: Resolved project
        import_type: Always "labor" for this pipeline
        status: pending until finalized
        imported_by: Actor who submitted the file
        file_name: Source file name
        file_hash: Content fingerprint
        week_ending: Resolved reporting week
        imported: Detail lines inserted
        updated: Detail lines updated in place
        skipped: Rows skipped (no hours, zero rate, or errored)
        errored: Error diagnostics recorded
        error_message: Terminal error, if any
        metadata: Free-form diagnostics (category counts, new workers, codes)
        imported_at: Submission time
    """

    import_id: UUID | None = None
    project_id: UUID
    import_type: str = "labor"
    status: ImportStatus = ImportStatus.PENDING
    imported_by: str = Field(..., min_length=1)
    file_name: str
    file_hash: str | None = None
    week_ending: date | None = None
    imported: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errored: int = Field(default=0, ge=0)
    error_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def records_processed(self) -> int:
        return self.imported + self.updated
