"""
CandidateRow model: one typed data row pulled off the sheet (ephemeral).
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class CandidateRow(BaseModel):
    """
    A data row whose worker-id cell matched the expected pattern.

    Values are coerced but not validated; negative or oversized hours are
    caught later by the wage calculator.

    Attributes:
        row_number: 1-based sheet row, used in diagnostics
        employee_number: Worker number cell (e.g. "T2005")
        name: Raw name cell
        craft_code: Auxiliary craft code cell
        st_hours: Straight-time hours column
        ot_hours: Overtime hours column
        daily_hours: Weekday name -> hours, all seven days present
        raw: Original cell values, kept for error payloads
    """

    row_number: int = Field(..., ge=1)
    employee_number: str = Field(..., min_length=1)
    name: str = ""
    craft_code: str = ""
    st_hours: Decimal = Decimal("0")
    ot_hours: Decimal = Decimal("0")
    daily_hours: dict[str, Decimal] = Field(default_factory=dict)
    raw: list[Any] = Field(default_factory=list)

    @property
    def has_hours(self) -> bool:
        return self.st_hours != 0 or self.ot_hours != 0

    def summary(self) -> dict[str, Any]:
        """Small JSON-safe payload for diagnostics."""
        return {
            "employee_number": self.employee_number,
            "name": self.name,
            "craft_code": self.craft_code,
            "st_hours": float(self.st_hours),
            "ot_hours": float(self.ot_hours),
        }
