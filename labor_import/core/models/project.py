"""
Project model: the external project/contract registry as seen by the importer.
"""

from uuid import UUID

from pydantic import BaseModel, Field


class Project(BaseModel):
    """
    A construction project that labor is charged to.

    Attributes:
        project_id: Internal project key
        job_number: External job/contract number printed in import files
        name: Display name
        is_active: Inactive (deleted/closed) projects never auto-match
    """

    project_id: UUID
    job_number: str = Field(..., min_length=1, max_length=32)
    name: str
    is_active: bool = True

    class Config:
        json_schema_extra = {
            "example": {
                "project_id": "6f1c2a7e-8a55-4f7c-9c1e-5b0f5b8f2d11",
                "job_number": "5772",
                "name": "LS DOW Expansion",
                "is_active": True,
            }
        }
