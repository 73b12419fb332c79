"""
WorkerRecord model representing a person eligible to log labor.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from labor_import.core.categories import LaborCategory


class WorkerRecord(BaseModel):
    """
    A worker from the worker registry.

    Rate and category are owned by HR processes; the importer only ever
    creates placeholder records (rate 0) and never edits existing ones.

    Attributes:
        worker_id: Registry key (None until inserted)
        employee_number: Stable worker number from the timekeeping system
        first_name: Legal first name
        last_name: Legal last name
        category: direct, indirect or staff
        base_rate: Hourly pay rate; 0 marks a placeholder pending payroll data
        craft_code: Auxiliary craft/class code seen on the sheet
        is_active: Whether the worker can log labor
        created_at: When the record was created
    """

    worker_id: UUID | None = None
    employee_number: str = Field(..., min_length=1, max_length=32)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    category: LaborCategory = LaborCategory.DIRECT
    base_rate: Decimal = Field(default=Decimal("0"), ge=0)
    craft_code: str | None = Field(default=None, max_length=32)
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        return LaborCategory.parse(v)

    @property
    def has_rate(self) -> bool:
        return self.base_rate > 0

    @property
    def display_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"
