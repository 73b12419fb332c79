"""
RunningAverage model: recent weekly labor averages for one project and category.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from labor_import.core.categories import LaborCategory


class RunningAverage(BaseModel):
    """
    Keyed by (project_id, category); replaced after every import or undo.

    Attributes:
        project_id: Project key
        category: direct, indirect or staff
        avg_hours: Mean weekly hours over the included weeks
        avg_cost: Mean weekly unburdened wages over the included weeks
        week_count: Weeks included (0 when the category has no labor left)
        last_week_ending: Most recent week included
        updated_at: When the average was recomputed
    """

    project_id: UUID
    category: LaborCategory
    avg_hours: Decimal = Field(default=Decimal("0"), ge=0)
    avg_cost: Decimal = Field(default=Decimal("0"), ge=0)
    week_count: int = Field(default=0, ge=0)
    last_week_ending: date | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> tuple[UUID, LaborCategory]:
        return (self.project_id, self.category)
