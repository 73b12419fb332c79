"""
Backing-store interface consumed by the pipeline.

The PostgreSQL implementation lives in labor_import.warehouse.store.
Implementations raise PersistenceError for backend failures.
"""

from datetime import date
from typing import Iterable, Protocol
from uuid import UUID

from labor_import.core.categories import LaborCategory
from labor_import.core.models import (
    AuditEntry,
    CategoryAggregate,
    ImportBatch,
    LaborDetailLine,
    Project,
    RunningAverage,
    WorkerRecord,
)


class LaborStore(Protocol):
    # Project registry
    def get_project(self, project_id: UUID) -> Project | None: ...

    def find_project_by_job_number(self, job_number: str) -> Project | None: ...

    # Worker registry
    def fetch_workers(self, employee_numbers: Iterable[str]) -> dict[str, WorkerRecord]: ...

    def insert_workers(self, workers: list[WorkerRecord]) -> dict[str, WorkerRecord]: ...

    # Detail lines and aggregates
    def fetch_existing_detail_workers(
        self, project_id: UUID, week_ending: date, worker_ids: list[UUID]
    ) -> set[UUID]: ...

    def insert_detail_lines(self, lines: list[LaborDetailLine]) -> int: ...

    def update_detail_lines(self, lines: list[LaborDetailLine]) -> int: ...

    def fetch_week_lines(
        self, project_id: UUID, week_ending: date
    ) -> list[tuple[LaborDetailLine, LaborCategory]]: ...

    def upsert_aggregate(self, aggregate: CategoryAggregate) -> None: ...

    def delete_week(self, project_id: UUID, week_ending: date) -> tuple[int, int]: ...

    def delete_placeholder_workers(self, employee_numbers: list[str]) -> int: ...

    def fetch_aggregates(
        self, project_id: UUID, week_ending: date
    ) -> dict[LaborCategory, CategoryAggregate]: ...

    def fetch_recent_aggregates(
        self, project_id: UUID, category: LaborCategory, limit: int
    ) -> list[CategoryAggregate]: ...

    def upsert_running_average(self, average: RunningAverage) -> None: ...

    # Import batches and audit log
    def find_successful_import(
        self, project_id: UUID, week_ending: date, file_hash: str
    ) -> ImportBatch | None: ...

    def record_import(self, batch: ImportBatch) -> UUID: ...

    def get_import(self, import_id: UUID) -> ImportBatch | None: ...

    def update_import_status(self, import_id: UUID, status: str, metadata: dict) -> None: ...

    def list_imports(self, project_id: UUID, limit: int = 10) -> list[ImportBatch]: ...

    def append_audit(self, entry: AuditEntry) -> int: ...
