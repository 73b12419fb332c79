"""
CategoryAggregate model: one category's weekly totals for one project.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from labor_import.core.categories import LaborCategory


class CategoryAggregate(BaseModel):
    """
    Snapshot keyed by (project_id, category, week_ending).

    Rebuilt from every stored detail line of the project-week after each
    run, never incremented.

    Attributes:
        project_id: Project key
        category: direct, indirect or staff
        week_ending: Reporting week
        total_hours: ST + OT hours
        total_wages: ST + OT wages, unburdened
        burden_rate: Rate applied to straight-time wages
        burden_amount: st_wages x burden_rate
        cost_with_burden: total_wages + burden_amount
        headcount: Distinct workers contributing
    """

    project_id: UUID
    category: LaborCategory
    week_ending: date
    total_hours: Decimal = Field(default=Decimal("0"), ge=0)
    total_wages: Decimal = Field(default=Decimal("0"), ge=0)
    burden_rate: Decimal = Field(default=Decimal("0"), ge=0)
    burden_amount: Decimal = Field(default=Decimal("0"), ge=0)
    cost_with_burden: Decimal = Field(default=Decimal("0"), ge=0)
    headcount: int = Field(default=0, ge=0)

    @property
    def key(self) -> tuple[UUID, LaborCategory, date]:
        return (self.project_id, self.category, self.week_ending)
