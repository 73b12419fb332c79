"""
Per-category weekly aggregation and running averages.

A run keeps one LaborAggregator over the lines it persisted (for its own
worker counts). Stored aggregates come from a second LaborAggregator fed
with every detail line the project-week holds after the run.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from labor_import.core.categories import LaborCategory
from labor_import.core.models import CategoryAggregate, LaborDetailLine, RunningAverage

CENTS = Decimal("0.01")


@dataclass
class CategoryAccumulator:
    """Running totals for one category."""

    st_hours: Decimal = Decimal("0")
    ot_hours: Decimal = Decimal("0")
    st_wages: Decimal = Decimal("0")
    ot_wages: Decimal = Decimal("0")
    workers: set[UUID] = field(default_factory=set)

    def add(self, line: LaborDetailLine) -> None:
        self.st_hours += line.st_hours
        self.ot_hours += line.ot_hours
        self.st_wages += line.st_wages
        self.ot_wages += line.ot_wages
        self.workers.add(line.worker_id)

    @property
    def total_hours(self) -> Decimal:
        return self.st_hours + self.ot_hours

    @property
    def total_wages(self) -> Decimal:
        return self.st_wages + self.ot_wages


class LaborAggregator:
    """
    Sums detail lines per labor category.

    burden_amount = st_wages x burden_rate (overtime carries no burden)
    cost_with_burden = total_wages + burden_amount
    """

    def __init__(self, burden_rate: Decimal):
        self.burden_rate = burden_rate
        self._totals: dict[LaborCategory, CategoryAccumulator] = defaultdict(CategoryAccumulator)

    def add(self, line: LaborDetailLine, category: LaborCategory) -> None:
        """Fold one detail line into its category bucket."""
        self._totals[category].add(line)

    @property
    def categories(self) -> list[LaborCategory]:
        """Categories with at least one line."""
        return [c for c in LaborCategory if c in self._totals]

    @property
    def worker_counts(self) -> dict[str, int]:
        return {c.value: len(self._totals[c].workers) for c in self.categories}

    @property
    def employee_count(self) -> int:
        """Distinct workers across all categories."""
        workers: set[UUID] = set()
        for acc in self._totals.values():
            workers |= acc.workers
        return len(workers)

    def build(self, project_id: UUID, week_ending: date) -> list[CategoryAggregate]:
        """
        Produce one aggregate per category that received lines.

        Args:
            project_id: Project the run resolved to
            week_ending: Week the run resolved to

        Returns:
            List of CategoryAggregate in direct, indirect, staff order
        """
        aggregates = []
        for category in self.categories:
            acc = self._totals[category]
            burden_amount = acc.st_wages * self.burden_rate
            aggregates.append(CategoryAggregate(
                project_id=project_id,
                category=category,
                week_ending=week_ending,
                total_hours=acc.total_hours,
                total_wages=acc.total_wages,
                burden_rate=self.burden_rate,
                burden_amount=burden_amount,
                cost_with_burden=acc.total_wages + burden_amount,
                headcount=len(acc.workers),
            ))
        return aggregates


def running_average(
    project_id: UUID,
    category: LaborCategory,
    recent: list[CategoryAggregate],
) -> RunningAverage:
    """
    Average weekly hours and wages over a category's most recent weeks.

    Args:
        project_id: Project key
        category: Labor category
        recent: Aggregates for the weeks to include, newest first

    Returns:
        RunningAverage; all zeros with week_count 0 when ``recent`` is empty

    Examples:
        >>> from datetime import date
        >>> from uuid import uuid4
        >>> weeks = [
        ...     CategoryAggregate(project_id=uuid4(), category="direct", week_ending=date(2025, 1, d),
        ...                       total_hours=Decimal(h), total_wages=Decimal(h) * 30)
        ...     for d, h in ((19, "450"), (12, "400"))
        ... ]
        >>> avg = running_average(weeks[0].project_id, LaborCategory.DIRECT, weeks)
        >>> (avg.avg_hours, avg.avg_cost, avg.week_count)
        (Decimal('425.00'), Decimal('12750.00'), 2)
    """
    if not recent:
        return RunningAverage(project_id=project_id, category=category)

    count = Decimal(len(recent))
    hours = sum((a.total_hours for a in recent), Decimal("0"))
    wages = sum((a.total_wages for a in recent), Decimal("0"))
    return RunningAverage(
        project_id=project_id,
        category=category,
        avg_hours=(hours / count).quantize(CENTS, rounding=ROUND_HALF_UP),
        avg_cost=(wages / count).quantize(CENTS, rounding=ROUND_HALF_UP),
        week_count=len(recent),
        last_week_ending=max(a.week_ending for a in recent),
    )
