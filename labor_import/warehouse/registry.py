"""
Project and worker registry access.

The importer only reads projects and only creates placeholder workers;
rates and categories of existing workers are never modified here.
"""

from typing import Iterable
from uuid import UUID

from labor_import.core.models import Project, WorkerRecord
from labor_import.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

WORKER_COLUMNS = """
    worker_id, employee_number, first_name, last_name, category,
    base_rate, craft_code, is_active, created_at
"""


class ProjectRegistry:
    """Read access to the project registry."""

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def get(self, project_id: UUID) -> Project | None:
        """
        Fetch a project by key, active or not.

        Args:
            project_id: Project key

        Returns:
            Project or None
        """
        query = """
            SELECT project_id, job_number, name, is_active
            FROM projects
            WHERE project_id = %s
        """
        rows = self.pool.execute_query(query, (project_id,))
        return Project(**rows[0]) if rows else None

    def find_active_by_job_number(self, job_number: str) -> Project | None:
        """
        Find the active project carrying a job number.

        When several active projects share a job number the oldest wins.
        """
        query = """
            SELECT project_id, job_number, name, is_active
            FROM projects
            WHERE job_number = %s AND is_active
            ORDER BY created_at
            LIMIT 1
        """
        rows = self.pool.execute_query(query, (job_number,))
        return Project(**rows[0]) if rows else None

    def create(self, job_number: str, name: str, is_active: bool = True) -> Project:
        """Register a project (used by setup scripts and tests)."""
        query = """
            INSERT INTO projects (job_number, name, is_active)
            VALUES (%s, %s, %s)
            RETURNING project_id, job_number, name, is_active
        """
        rows = self.pool.execute_query(query, (job_number, name, is_active))
        return Project(**rows[0])


class WorkerRegistry:
    """Worker lookups and placeholder creation."""

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def fetch_by_employee_numbers(self, employee_numbers: Iterable[str]) -> dict[str, WorkerRecord]:
        """
        Batch-fetch workers.

        Args:
            employee_numbers: Worker numbers to look up

        Returns:
            employee_number -> WorkerRecord for the numbers that exist
        """
        numbers = sorted(set(employee_numbers))
        if not numbers:
            return {}
        query = f"""
            SELECT {WORKER_COLUMNS}
            FROM workers
            WHERE employee_number = ANY(%s)
        """
        rows = self.pool.execute_query(query, (numbers,))
        return {row["employee_number"]: WorkerRecord(**row) for row in rows}

    def insert_placeholders(self, workers: list[WorkerRecord]) -> dict[str, WorkerRecord]:
        """
        Batch-insert workers discovered in a sheet.

        Numbers that already exist (for example created by a concurrent
        import) are left as they are; the stored record is returned.

        Args:
            workers: Unsaved WorkerRecords

        Returns:
            employee_number -> stored WorkerRecord for every input worker
        """
        if not workers:
            return {}
        query = """
            INSERT INTO workers (
                employee_number, first_name, last_name, category,
                base_rate, craft_code, is_active, created_at
            )
            VALUES (
                %(employee_number)s, %(first_name)s, %(last_name)s, %(category)s,
                %(base_rate)s, %(craft_code)s, %(is_active)s, %(created_at)s
            )
            ON CONFLICT (employee_number) DO NOTHING
        """
        params = [
            {
                "employee_number": w.employee_number,
                "first_name": w.first_name,
                "last_name": w.last_name,
                "category": w.category.value,
                "base_rate": w.base_rate,
                "craft_code": w.craft_code,
                "is_active": w.is_active,
                "created_at": w.created_at,
            }
            for w in workers
        ]
        self.pool.execute_batch(query, params)
        logger.info(f"Inserted {len(workers)} placeholder workers")
        return self.fetch_by_employee_numbers(w.employee_number for w in workers)

    def delete_unused_placeholders(self, employee_numbers: list[str]) -> int:
        """
        Delete rate-0 workers that no detail line references anymore.

        Args:
            employee_numbers: Candidates (usually the workers an import created)

        Returns:
            Number of workers deleted
        """
        if not employee_numbers:
            return 0
        query = """
            DELETE FROM workers w
            WHERE w.employee_number = ANY(%s)
              AND w.base_rate = 0
              AND NOT EXISTS (
                  SELECT 1 FROM labor_detail_lines d WHERE d.worker_id = w.worker_id
              )
        """
        return self.pool.execute_command(query, (list(employee_numbers),))
