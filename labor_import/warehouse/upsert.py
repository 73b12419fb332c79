"""
Detail line and category aggregate writes.

Detail lines are keyed by (worker_id, project_id, week_ending) and
aggregates by (project_id, category, week_ending); a later import for
the same key replaces the stored values rather than adding to them.
"""

from datetime import date
from uuid import UUID

from psycopg.types.json import Jsonb

from labor_import.core.categories import LaborCategory
from labor_import.core.models import CategoryAggregate, LaborDetailLine, RunningAverage

from .connection import DatabaseConnectionPool


def _detail_params(line: LaborDetailLine) -> dict:
    daily = line.daily_hours_json()
    return {
        "worker_id": line.worker_id,
        "project_id": line.project_id,
        "week_ending": line.week_ending,
        "st_hours": line.st_hours,
        "ot_hours": line.ot_hours,
        "st_wages": line.st_wages,
        "ot_wages": line.ot_wages,
        "daily_hours": Jsonb(daily) if daily is not None else None,
    }


class LaborWriter:
    """
    Writes detail lines and aggregates.

    All writes are idempotent: replaying the same lines leaves the same
    stored state.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def existing_worker_ids(
        self, project_id: UUID, week_ending: date, worker_ids: list[UUID]
    ) -> set[UUID]:
        """
        Return the workers that already have a line for this project-week.
        """
        if not worker_ids:
            return set()
        query = """
            SELECT worker_id
            FROM labor_detail_lines
            WHERE project_id = %s AND week_ending = %s AND worker_id = ANY(%s)
        """
        rows = self.pool.execute_query(query, (project_id, week_ending, list(worker_ids)))
        return {row["worker_id"] for row in rows}

    def insert_lines(self, lines: list[LaborDetailLine]) -> int:
        """
        Insert new detail lines.

        ON CONFLICT covers the race where a concurrent import inserted the
        same key between lookup and insert.

        Returns:
            Number of lines written
        """
        query = """
            INSERT INTO labor_detail_lines (
                worker_id, project_id, week_ending,
                st_hours, ot_hours, st_wages, ot_wages, daily_hours
            )
            VALUES (
                %(worker_id)s, %(project_id)s, %(week_ending)s,
                %(st_hours)s, %(ot_hours)s, %(st_wages)s, %(ot_wages)s, %(daily_hours)s
            )
            ON CONFLICT (worker_id, project_id, week_ending) DO UPDATE SET
                st_hours = EXCLUDED.st_hours,
                ot_hours = EXCLUDED.ot_hours,
                st_wages = EXCLUDED.st_wages,
                ot_wages = EXCLUDED.ot_wages,
                daily_hours = EXCLUDED.daily_hours,
                updated_at = NOW()
        """
        return self.pool.execute_batch(query, [_detail_params(line) for line in lines])

    def update_lines(self, lines: list[LaborDetailLine]) -> int:
        """
        Overwrite existing detail lines in place.

        Returns:
            Number of lines written
        """
        query = """
            UPDATE labor_detail_lines SET
                st_hours = %(st_hours)s,
                ot_hours = %(ot_hours)s,
                st_wages = %(st_wages)s,
                ot_wages = %(ot_wages)s,
                daily_hours = %(daily_hours)s,
                updated_at = NOW()
            WHERE worker_id = %(worker_id)s
              AND project_id = %(project_id)s
              AND week_ending = %(week_ending)s
        """
        return self.pool.execute_batch(query, [_detail_params(line) for line in lines])

    def upsert_aggregate(self, aggregate: CategoryAggregate) -> None:
        query = """
            INSERT INTO category_aggregates (
                project_id, category, week_ending, total_hours, total_wages,
                burden_rate, burden_amount, cost_with_burden, headcount
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (project_id, category, week_ending) DO UPDATE SET
                total_hours = EXCLUDED.total_hours,
                total_wages = EXCLUDED.total_wages,
                burden_rate = EXCLUDED.burden_rate,
                burden_amount = EXCLUDED.burden_amount,
                cost_with_burden = EXCLUDED.cost_with_burden,
                headcount = EXCLUDED.headcount,
                updated_at = NOW()
        """
        self.pool.execute_command(
            query,
            (
                aggregate.project_id,
                aggregate.category.value,
                aggregate.week_ending,
                aggregate.total_hours,
                aggregate.total_wages,
                aggregate.burden_rate,
                aggregate.burden_amount,
                aggregate.cost_with_burden,
                aggregate.headcount,
            ),
        )

    def fetch_aggregates(
        self, project_id: UUID, week_ending: date
    ) -> dict[LaborCategory, CategoryAggregate]:
        query = """
            SELECT project_id, category, week_ending, total_hours, total_wages,
                   burden_rate, burden_amount, cost_with_burden, headcount
            FROM category_aggregates
            WHERE project_id = %s AND week_ending = %s
        """
        rows = self.pool.execute_query(query, (project_id, week_ending))
        aggregates = [CategoryAggregate(**row) for row in rows]
        return {agg.category: agg for agg in aggregates}

    def fetch_lines(self, project_id: UUID, week_ending: date) -> list[LaborDetailLine]:
        query = """
            SELECT worker_id, project_id, week_ending, st_hours, ot_hours,
                   st_wages, ot_wages, daily_hours
            FROM labor_detail_lines
            WHERE project_id = %s AND week_ending = %s
            ORDER BY line_id
        """
        rows = self.pool.execute_query(query, (project_id, week_ending))
        return [LaborDetailLine(**row) for row in rows]

    def fetch_lines_with_category(
        self, project_id: UUID, week_ending: date
    ) -> list[tuple[LaborDetailLine, LaborCategory]]:
        """
        Return every stored line of a project-week with its worker's category.
        """
        query = """
            SELECT d.worker_id, d.project_id, d.week_ending, d.st_hours, d.ot_hours,
                   d.st_wages, d.ot_wages, d.daily_hours, w.category
            FROM labor_detail_lines d
            JOIN workers w ON w.worker_id = d.worker_id
            WHERE d.project_id = %s AND d.week_ending = %s
            ORDER BY d.line_id
        """
        rows = self.pool.execute_query(query, (project_id, week_ending))
        lines = []
        for row in rows:
            category = LaborCategory.parse(row.pop("category"))
            lines.append((LaborDetailLine(**row), category))
        return lines

    def recent_aggregates(
        self, project_id: UUID, category: LaborCategory, limit: int
    ) -> list[CategoryAggregate]:
        """
        Return a category's latest weeks that carry hours, newest first.
        """
        query = """
            SELECT project_id, category, week_ending, total_hours, total_wages,
                   burden_rate, burden_amount, cost_with_burden, headcount
            FROM category_aggregates
            WHERE project_id = %s AND category = %s AND total_hours > 0
            ORDER BY week_ending DESC
            LIMIT %s
        """
        rows = self.pool.execute_query(query, (project_id, category.value, limit))
        return [CategoryAggregate(**row) for row in rows]

    def upsert_running_average(self, average: RunningAverage) -> None:
        query = """
            INSERT INTO labor_running_averages (
                project_id, category, avg_hours, avg_cost, week_count, last_week_ending, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (project_id, category) DO UPDATE SET
                avg_hours = EXCLUDED.avg_hours,
                avg_cost = EXCLUDED.avg_cost,
                week_count = EXCLUDED.week_count,
                last_week_ending = EXCLUDED.last_week_ending,
                updated_at = EXCLUDED.updated_at
        """
        self.pool.execute_command(
            query,
            (
                average.project_id,
                average.category.value,
                average.avg_hours,
                average.avg_cost,
                average.week_count,
                average.last_week_ending,
                average.updated_at,
            ),
        )

    def fetch_running_averages(self, project_id: UUID) -> dict[LaborCategory, RunningAverage]:
        query = """
            SELECT project_id, category, avg_hours, avg_cost, week_count,
                   last_week_ending, updated_at
            FROM labor_running_averages
            WHERE project_id = %s
        """
        rows = self.pool.execute_query(query, (project_id,))
        averages = [RunningAverage(**row) for row in rows]
        return {avg.category: avg for avg in averages}

    def delete_week(self, project_id: UUID, week_ending: date) -> tuple[int, int]:
        """
        Remove every detail line and aggregate for a project-week.

        Returns:
            (detail lines deleted, aggregates deleted)
        """
        with self.pool.get_cursor() as cur:
            cur.execute(
                "DELETE FROM labor_detail_lines WHERE project_id = %s AND week_ending = %s",
                (project_id, week_ending),
            )
            lines = cur.rowcount
            cur.execute(
                "DELETE FROM category_aggregates WHERE project_id = %s AND week_ending = %s",
                (project_id, week_ending),
            )
            aggregates = cur.rowcount
        return lines, aggregates
