"""
Undo of a completed labor import.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from labor_import.core.categories import LaborCategory
from labor_import.core.errors import PersistenceError
from labor_import.core.models import AuditEntry, ImportStatus
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger, log_operation

from .averages import DEFAULT_WEEKS, RunningAverageUpdater

logger = get_logger(__name__)


class UndoRejected(Exception):
    """The import cannot be undone (unknown, wrong type or wrong status)."""


@dataclass
class UndoResult:
    """
    Outcome of an undo.

    Attributes:
        import_id: Import that was undone
        detail_lines_deleted: Detail lines removed for the project-week
        aggregates_deleted: Category aggregates removed for the project-week
        workers_deleted: Placeholder workers removed
        errors: Deletion steps that failed (reported, not raised)
    """

    import_id: UUID
    detail_lines_deleted: int = 0
    aggregates_deleted: int = 0
    workers_deleted: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "import_id": str(self.import_id),
            "deleted": {
                "labor_detail_lines": self.detail_lines_deleted,
                "category_aggregates": self.aggregates_deleted,
                "workers": self.workers_deleted,
            },
            "errors": list(self.errors),
        }


class ImportUndoService:
    """
    Reverts the ledger effect of a successful or partial labor import.

    Removes every detail line and aggregate for the import's project-week,
    removes the placeholder workers that import created when nothing else
    references them, refreshes the project's running averages without
    that week, and marks the batch ``undone``.
    """

    def __init__(self, store: LaborStore, running_average_weeks: int = DEFAULT_WEEKS):
        self.store = store
        self.averages = RunningAverageUpdater(store, running_average_weeks)

    def undo(self, import_id: UUID, actor: str) -> UndoResult:
        """
        Undo one import.

        Args:
            import_id: ImportBatch key
            actor: Who is undoing the import

        Returns:
            UndoResult with deletion counts and any step failures

        Raises:
            UndoRejected: If the import does not exist, is not a labor
                import, is not success/partial, or lacks a week-ending date
        """
        batch = self.store.get_import(import_id)
        if batch is None or batch.import_type != "labor":
            raise UndoRejected(f"Import record not found: {import_id}")
        if not batch.status.can_undo:
            raise UndoRejected("Only successful or partial imports can be undone")

        week_ending = batch.week_ending or _week_from_metadata(batch.metadata)
        if week_ending is None:
            raise UndoRejected("Cannot undo import: missing week ending date")

        result = UndoResult(import_id=import_id)
        new_numbers = [
            entry["employee_number"]
            for entry in batch.metadata.get("newEmployees", [])
            if entry.get("employee_number")
        ]

        with log_operation(
            "Undo labor import",
            logger=logger,
            import_id=str(import_id),
            project_id=str(batch.project_id),
            week_ending=week_ending.isoformat(),
        ):
            try:
                result.detail_lines_deleted, result.aggregates_deleted = self.store.delete_week(
                    batch.project_id, week_ending
                )
            except PersistenceError as e:
                result.errors.append(f"Failed to delete labor records: {e.message}")
            else:
                self.averages.refresh(batch.project_id, LaborCategory)

            if new_numbers:
                try:
                    result.workers_deleted = self.store.delete_placeholder_workers(new_numbers)
                except PersistenceError as e:
                    result.errors.append(f"Failed to delete workers: {e.message}")

            metadata = {
                **batch.metadata,
                "undone_at": datetime.now(timezone.utc).isoformat(),
                "undone_by": actor,
                "deletion_results": result.to_payload()["deleted"] | {"errors": list(result.errors)},
            }
            try:
                self.store.update_import_status(import_id, ImportStatus.UNDONE.value, metadata)
            except PersistenceError as e:
                result.errors.append(f"Failed to update import status: {e.message}")

            try:
                self.store.append_audit(AuditEntry(
                    actor=actor,
                    action="undo_import",
                    entity_type="labor_import",
                    entity_id=str(import_id),
                    changes={
                        "project_id": str(batch.project_id),
                        "week_ending": week_ending.isoformat(),
                        "file_name": batch.file_name,
                        **result.to_payload()["deleted"],
                    },
                ))
            except PersistenceError as e:
                logger.error(f"Failed to log undo audit entry: {e.message}", exc_info=True)

        if result.errors:
            logger.warning(
                "Import undone with errors",
                extra={"import_id": str(import_id), "errors": result.errors},
            )
        return result


def _week_from_metadata(metadata: dict[str, Any]) -> date | None:
    raw = metadata.get("week_ending")
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        return None
