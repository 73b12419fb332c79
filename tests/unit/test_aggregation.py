"""
Unit tests for per-category aggregation.

Includes property-based testing with hypothesis for the burden formula.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from labor_import.core.aggregation import LaborAggregator, running_average
from labor_import.core.categories import LaborCategory
from labor_import.core.models import CategoryAggregate, LaborDetailLine

WEEK = date(2025, 1, 19)
BURDEN = Decimal("0.28")

money = st.decimals(min_value=0, max_value=100000, places=2, allow_nan=False, allow_infinity=False)
hours = st.decimals(min_value=0, max_value=80, places=2, allow_nan=False, allow_infinity=False)


def line(project_id, st_hours="40", ot_hours="5", st_wages="1200", ot_wages="225", worker_id=None):
    return LaborDetailLine(
        worker_id=worker_id or uuid4(),
        project_id=project_id,
        week_ending=WEEK,
        st_hours=Decimal(st_hours),
        ot_hours=Decimal(ot_hours),
        st_wages=Decimal(st_wages),
        ot_wages=Decimal(ot_wages),
    )


@pytest.mark.unit
class TestLaborAggregator:
    """Tests for LaborAggregator"""

    def test_ten_direct_workers(self):
        """40 ST + 5 OT at $30/hr for ten workers"""
        project_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        for _ in range(10):
            aggregator.add(line(project_id), LaborCategory.DIRECT)

        [direct] = aggregator.build(project_id, WEEK)

        assert direct.category is LaborCategory.DIRECT
        assert direct.total_hours == Decimal("450")
        assert direct.total_wages == Decimal("14250")
        assert direct.burden_amount == Decimal("3360")
        assert direct.cost_with_burden == Decimal("17610")
        assert direct.burden_rate == BURDEN
        assert direct.headcount == 10

    def test_only_categories_with_contributors_are_built(self):
        project_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        aggregator.add(line(project_id), LaborCategory.STAFF)

        aggregates = aggregator.build(project_id, WEEK)

        assert [a.category for a in aggregates] == [LaborCategory.STAFF]
        assert aggregator.categories == [LaborCategory.STAFF]

    def test_empty_aggregator_builds_nothing(self):
        aggregator = LaborAggregator(BURDEN)

        assert aggregator.build(uuid4(), WEEK) == []
        assert aggregator.employee_count == 0
        assert aggregator.worker_counts == {}

    def test_categories_in_fixed_order(self):
        project_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        aggregator.add(line(project_id), LaborCategory.STAFF)
        aggregator.add(line(project_id), LaborCategory.DIRECT)
        aggregator.add(line(project_id), LaborCategory.INDIRECT)

        categories = [a.category for a in aggregator.build(project_id, WEEK)]

        assert categories == [LaborCategory.DIRECT, LaborCategory.INDIRECT, LaborCategory.STAFF]

    def test_worker_counts_are_distinct(self):
        project_id = uuid4()
        worker_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        aggregator.add(line(project_id, worker_id=worker_id), LaborCategory.DIRECT)
        aggregator.add(line(project_id, worker_id=worker_id), LaborCategory.DIRECT)
        aggregator.add(line(project_id), LaborCategory.INDIRECT)

        assert aggregator.worker_counts == {"direct": 1, "indirect": 1}
        assert aggregator.employee_count == 2

    def test_overtime_carries_no_burden(self):
        project_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        aggregator.add(line(project_id, st_wages="0", ot_wages="500"), LaborCategory.DIRECT)

        [direct] = aggregator.build(project_id, WEEK)

        assert direct.burden_amount == Decimal("0")
        assert direct.cost_with_burden == Decimal("500")

    def test_separate_aggregators_do_not_share_state(self):
        project_id = uuid4()
        first = LaborAggregator(BURDEN)
        second = LaborAggregator(BURDEN)
        first.add(line(project_id), LaborCategory.DIRECT)

        assert second.build(project_id, WEEK) == []

    @given(st.lists(st.tuples(hours, hours, money, money), min_size=1, max_size=20))
    def test_burden_formula(self, entries):
        """burden = ST wages x rate exactly; cost = total wages + burden"""
        project_id = uuid4()
        aggregator = LaborAggregator(BURDEN)
        for st_h, ot_h, st_w, ot_w in entries:
            aggregator.add(
                line(project_id, str(st_h), str(ot_h), str(st_w), str(ot_w)),
                LaborCategory.DIRECT,
            )

        [direct] = aggregator.build(project_id, WEEK)

        st_wages = sum((e[2] for e in entries), Decimal("0"))
        ot_wages = sum((e[3] for e in entries), Decimal("0"))
        assert direct.burden_amount == st_wages * BURDEN
        assert direct.total_wages == st_wages + ot_wages
        assert direct.cost_with_burden == st_wages + ot_wages + st_wages * BURDEN
        assert direct.total_hours == sum((e[0] + e[1] for e in entries), Decimal("0"))


def week_total(project_id, weeks_back, total_hours, total_wages):
    return CategoryAggregate(
        project_id=project_id,
        category=LaborCategory.DIRECT,
        week_ending=WEEK - timedelta(weeks=weeks_back),
        total_hours=Decimal(total_hours),
        total_wages=Decimal(total_wages),
    )


@pytest.mark.unit
class TestRunningAverage:
    """Tests for running_average"""

    def test_averages_hours_and_unburdened_wages(self):
        project_id = uuid4()
        recent = [
            week_total(project_id, 0, "450", "14250"),
            week_total(project_id, 1, "370", "11850"),
            week_total(project_id, 2, "100", "3000.01"),
        ]

        average = running_average(project_id, LaborCategory.DIRECT, recent)

        assert average.avg_hours == Decimal("306.67")
        assert average.avg_cost == Decimal("9700.00")
        assert average.week_count == 3
        assert average.last_week_ending == WEEK
        assert average.key == (project_id, LaborCategory.DIRECT)

    def test_no_weeks_is_zero(self):
        project_id = uuid4()

        average = running_average(project_id, LaborCategory.STAFF, [])

        assert (average.avg_hours, average.avg_cost, average.week_count) == (0, 0, 0)
        assert average.last_week_ending is None
