"""
Wage calculation for resolved rows.

ST and OT hour totals are taken as reported by the source; they are not
re-derived from (or cross-checked against) the daily breakdown.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from labor_import.core.config import ImportSettings
from labor_import.core.errors import RowValidationError
from labor_import.core.models import (
    CandidateRow,
    DiagnosticCode,
    LaborDetailLine,
    Recoverable,
    RowError,
    WorkerRecord,
)
from labor_import.observability.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


class WageCalculator:
    """
    Turns a candidate row plus its worker into a LaborDetailLine.

    Rules:
    - workers with rate 0 produce no wage figures (warning diagnostic)
    - any weekday over the daily cap rejects the row
    - negative hours reject the row
    - st_wages = st_hours x rate, ot_wages = ot_hours x rate x ot_multiplier
    """

    def __init__(self, settings: ImportSettings):
        self.settings = settings

    def calculate(
        self,
        row: CandidateRow,
        worker: WorkerRecord,
        project_id: UUID,
        week_ending: date,
    ) -> LaborDetailLine | Recoverable:
        """
        Compute the detail line for one row.

        Args:
            row: Candidate row with hours
            worker: Resolved worker (stored rate is authoritative)
            project_id: Project the hours are charged to
            week_ending: Reporting week

        Returns:
            LaborDetailLine, or Recoverable carrying the row diagnostic
        """
        if not worker.has_rate:
            return Recoverable(error=RowError(
                row=row.row_number,
                field="base_rate",
                message=(
                    f"Worker {worker.employee_number} has no pay rate; "
                    "wages were not computed for this row"
                ),
                data=row.summary(),
                code=DiagnosticCode.ZERO_RATE,
                severity="warning",
            ))

        try:
            daily_hours = self._validate_hours(row)
        except RowValidationError as e:
            logger.warning(
                f"Row {row.row_number} rejected: {e.message}",
                extra={"row": row.row_number, "code": e.code, **e.details},
            )
            return Recoverable(error=RowError(
                row=row.row_number,
                field=e.field,
                message=e.message,
                data={**row.summary(), **e.details},
                code=e.code,
            ))

        if worker.worker_id is None:
            raise ValueError(f"Worker {worker.employee_number} has not been persisted")

        rate = worker.base_rate
        st_wages = row.st_hours * rate
        ot_wages = row.ot_hours * rate * self.settings.ot_multiplier

        return LaborDetailLine(
            worker_id=worker.worker_id,
            project_id=project_id,
            week_ending=week_ending,
            st_hours=row.st_hours,
            ot_hours=row.ot_hours,
            st_wages=st_wages,
            ot_wages=ot_wages,
            daily_hours=daily_hours or None,
        )

    def _validate_hours(self, row: CandidateRow) -> dict[str, Decimal]:
        """
        Check hour values and build the weekday breakdown.

        Returns:
            Weekday -> hours for days with hours logged

        Raises:
            RowValidationError: On negative hours or a day over the cap
        """
        for field_name, value in (("st_hours", row.st_hours), ("ot_hours", row.ot_hours)):
            if value < ZERO:
                raise RowValidationError(
                    f"{field_name} cannot be negative (got {value})",
                    field=field_name,
                    code=DiagnosticCode.NEGATIVE_HOURS,
                    details={"value": float(value)},
                )

        daily_hours: dict[str, Decimal] = {}
        for day, hours in row.daily_hours.items():
            if hours < ZERO:
                raise RowValidationError(
                    f"Hours for {day} cannot be negative (got {hours})",
                    field=day,
                    code=DiagnosticCode.NEGATIVE_HOURS,
                    details={"day": day, "value": float(hours)},
                )
            if hours > self.settings.max_daily_hours:
                raise RowValidationError(
                    f"{hours} hours logged on {day} exceeds the "
                    f"{self.settings.max_daily_hours}-hour daily limit",
                    field=day,
                    code=DiagnosticCode.DAILY_HOURS_EXCEEDED,
                    details={"day": day, "value": float(hours)},
                )
            if hours > ZERO:
                daily_hours[day] = hours

        return daily_hours
