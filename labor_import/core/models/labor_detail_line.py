"""
LaborDetailLine model: one worker's hours and wages for one project-week.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class LaborDetailLine(BaseModel):
    """
    Detail line keyed by (worker_id, project_id, week_ending).

    A later import for the same key supersedes the line in place.

    Attributes:
        worker_id: Worker registry key
        project_id: Project the hours are charged to
        week_ending: Reporting week
        st_hours: Straight-time hours as reported by the source
        ot_hours: Overtime hours as reported by the source
        st_wages: st_hours x worker rate
        ot_wages: ot_hours x worker rate x OT multiplier
        daily_hours: Weekday -> hours for days with hours logged (None if no breakdown)
    """

    worker_id: UUID
    project_id: UUID
    week_ending: date
    st_hours: Decimal = Field(default=Decimal("0"), ge=0)
    ot_hours: Decimal = Field(default=Decimal("0"), ge=0)
    st_wages: Decimal = Field(default=Decimal("0"), ge=0)
    ot_wages: Decimal = Field(default=Decimal("0"), ge=0)
    daily_hours: dict[str, Decimal] | None = None

    @property
    def key(self) -> tuple[UUID, UUID, date]:
        return (self.worker_id, self.project_id, self.week_ending)

    @property
    def total_hours(self) -> Decimal:
        return self.st_hours + self.ot_hours

    @property
    def total_wages(self) -> Decimal:
        return self.st_wages + self.ot_wages

    def daily_hours_json(self) -> dict[str, Any] | None:
        """daily_hours with JSON-serializable values."""
        if not self.daily_hours:
            return None
        return {day: float(hours) for day, hours in self.daily_hours.items()}
