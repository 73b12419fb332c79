"""
PostgreSQL-backed LaborStore.

Delegates to the registry, writer and audit modules and converts driver
errors into PersistenceError so pipeline stages see a single error type.
"""

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterable
from uuid import UUID

import psycopg

from labor_import.core.categories import LaborCategory
from labor_import.core.errors import PersistenceError
from labor_import.core.models import (
    AuditEntry,
    CategoryAggregate,
    ImportBatch,
    LaborDetailLine,
    Project,
    RunningAverage,
    WorkerRecord,
)
from labor_import.observability.logger import get_logger

from . import audit
from .connection import DatabaseConnectionPool
from .registry import ProjectRegistry, WorkerRegistry
from .upsert import LaborWriter

logger = get_logger(__name__)


@contextmanager
def _translate_errors(operation: str, **context: Any):
    try:
        yield
    except psycopg.Error as e:
        logger.error(
            f"Warehouse operation failed: {operation}: {e}",
            extra={"operation": operation, **{k: str(v) for k, v in context.items()}},
        )
        raise PersistenceError(f"{operation} failed: {e}", details={"operation": operation}) from e


class PostgresLaborStore:
    """LaborStore over a shared DatabaseConnectionPool."""

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool
        self.projects = ProjectRegistry(pool)
        self.workers = WorkerRegistry(pool)
        self.writer = LaborWriter(pool)

    # Project registry

    def get_project(self, project_id: UUID) -> Project | None:
        with _translate_errors("get project", project_id=project_id):
            return self.projects.get(project_id)

    def find_project_by_job_number(self, job_number: str) -> Project | None:
        with _translate_errors("find project", job_number=job_number):
            return self.projects.find_active_by_job_number(job_number)

    # Worker registry

    def fetch_workers(self, employee_numbers: Iterable[str]) -> dict[str, WorkerRecord]:
        with _translate_errors("fetch workers"):
            return self.workers.fetch_by_employee_numbers(employee_numbers)

    def insert_workers(self, workers: list[WorkerRecord]) -> dict[str, WorkerRecord]:
        with _translate_errors("insert workers", count=len(workers)):
            return self.workers.insert_placeholders(workers)

    def delete_placeholder_workers(self, employee_numbers: list[str]) -> int:
        with _translate_errors("delete placeholder workers"):
            return self.workers.delete_unused_placeholders(employee_numbers)

    # Detail lines and aggregates

    def fetch_existing_detail_workers(
        self, project_id: UUID, week_ending: date, worker_ids: list[UUID]
    ) -> set[UUID]:
        with _translate_errors("fetch existing detail lines", project_id=project_id):
            return self.writer.existing_worker_ids(project_id, week_ending, worker_ids)

    def insert_detail_lines(self, lines: list[LaborDetailLine]) -> int:
        with _translate_errors("insert detail lines", count=len(lines)):
            return self.writer.insert_lines(lines)

    def update_detail_lines(self, lines: list[LaborDetailLine]) -> int:
        with _translate_errors("update detail lines", count=len(lines)):
            return self.writer.update_lines(lines)

    def upsert_aggregate(self, aggregate: CategoryAggregate) -> None:
        with _translate_errors("upsert aggregate", category=aggregate.category.value):
            self.writer.upsert_aggregate(aggregate)

    def fetch_aggregates(
        self, project_id: UUID, week_ending: date
    ) -> dict[LaborCategory, CategoryAggregate]:
        with _translate_errors("fetch aggregates", project_id=project_id):
            return self.writer.fetch_aggregates(project_id, week_ending)

    def fetch_detail_lines(self, project_id: UUID, week_ending: date) -> list[LaborDetailLine]:
        with _translate_errors("fetch detail lines", project_id=project_id):
            return self.writer.fetch_lines(project_id, week_ending)

    def fetch_week_lines(
        self, project_id: UUID, week_ending: date
    ) -> list[tuple[LaborDetailLine, LaborCategory]]:
        with _translate_errors("fetch week lines", project_id=project_id, week_ending=week_ending):
            return self.writer.fetch_lines_with_category(project_id, week_ending)

    def fetch_recent_aggregates(
        self, project_id: UUID, category: LaborCategory, limit: int
    ) -> list[CategoryAggregate]:
        with _translate_errors("fetch recent aggregates", category=category.value):
            return self.writer.recent_aggregates(project_id, category, limit)

    def upsert_running_average(self, average: RunningAverage) -> None:
        with _translate_errors("upsert running average", category=average.category.value):
            self.writer.upsert_running_average(average)

    def fetch_running_averages(self, project_id: UUID) -> dict[LaborCategory, RunningAverage]:
        with _translate_errors("fetch running averages", project_id=project_id):
            return self.writer.fetch_running_averages(project_id)

    def delete_week(self, project_id: UUID, week_ending: date) -> tuple[int, int]:
        with _translate_errors("delete week", project_id=project_id, week_ending=week_ending):
            return self.writer.delete_week(project_id, week_ending)

    # Import batches and audit log

    def find_successful_import(
        self, project_id: UUID, week_ending: date, file_hash: str
    ) -> ImportBatch | None:
        with _translate_errors("find successful import", project_id=project_id):
            return audit.find_successful_batch(self.pool, project_id, week_ending, file_hash)

    def record_import(self, batch: ImportBatch) -> UUID:
        with _translate_errors("record import", project_id=batch.project_id):
            return audit.insert_import_batch(self.pool, batch)

    def get_import(self, import_id: UUID) -> ImportBatch | None:
        with _translate_errors("get import", import_id=import_id):
            return audit.get_import_batch(self.pool, import_id)

    def update_import_status(self, import_id: UUID, status: str, metadata: dict) -> None:
        with _translate_errors("update import status", import_id=import_id):
            audit.update_batch_status(self.pool, import_id, status, metadata)

    def list_imports(self, project_id: UUID, limit: int = 10) -> list[ImportBatch]:
        with _translate_errors("list imports", project_id=project_id):
            return audit.list_import_batches(self.pool, project_id, limit)

    def append_audit(self, entry: AuditEntry) -> int:
        with _translate_errors("append audit entry", action=entry.action):
            return audit.insert_audit_entry(self.pool, entry)

    def audit_entries(self, entity_type: str, entity_id: str, limit: int = 100) -> list[AuditEntry]:
        with _translate_errors("query audit entries"):
            return audit.query_audit_entries(self.pool, entity_type, entity_id, limit)
