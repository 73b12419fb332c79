"""
ImportSubmission model: a file handed to the pipeline.
"""

from uuid import UUID

from pydantic import BaseModel, Field


class ImportSubmission(BaseModel):
    """
    One submitted workbook.

    Attributes:
        file_name: Original file name (for audit only)
        content: Raw workbook bytes
        project_id: Explicit project selection; None means auto-match by job number
        imported_by: Actor submitting the file
        force: Skip the duplicate-file check
    """

    file_name: str = Field(..., min_length=1)
    content: bytes
    project_id: UUID | None = None
    imported_by: str = Field(..., min_length=1)
    force: bool = False
