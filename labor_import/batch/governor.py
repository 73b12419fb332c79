"""
Run outcome classification and audit recording.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from labor_import.core.config import ImportSettings
from labor_import.core.errors import PersistenceError, ThresholdError
from labor_import.core.models import (
    AuditEntry,
    DiagnosticCode,
    Fatal,
    ImportBatch,
    ImportResult,
    ImportStatus,
    ImportSubmission,
    RowError,
    WorkerRecord,
)
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger

from .metadata import ResolvedMetadata

logger = get_logger(__name__)


@dataclass
class RunTally:
    """
    Everything a run produced, as seen by the governor.

    Attributes:
        processed: Candidate rows read from the sheet
        imported: Detail lines inserted
        updated: Detail lines updated
        skipped: Rows not persisted (no hours, zero rate, rejected, failed writes)
        zero_rate: Rows skipped because the worker has no rate
        diagnostics: All diagnostics in the order they were raised
        new_workers: Placeholder workers created
        unknown_craft_codes: Unrecognized craft codes seen on new workers
        worker_counts: Category -> distinct persisted workers
        employee_count: Distinct persisted workers
    """

    processed: int = 0
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    zero_rate: int = 0
    diagnostics: list[RowError] = field(default_factory=list)
    new_workers: list[WorkerRecord] = field(default_factory=list)
    unknown_craft_codes: list[str] = field(default_factory=list)
    worker_counts: dict[str, int] = field(default_factory=dict)
    employee_count: int = 0

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.is_error)

    @property
    def written(self) -> int:
        return self.imported + self.updated


class OutcomeGovernor:
    """
    Classifies a run and writes its ImportBatch and audit entry.

    States: pending -> success | partial | failed.

    A run fails when errors exceed both the absolute floor and the error
    ratio over processed rows, or when nothing was written. Threshold
    failures are a reporting decision only: lines written by earlier
    chunks stay persisted.
    """

    def __init__(self, store: LaborStore, settings: ImportSettings):
        self.store = store
        self.settings = settings

    def exceeds_threshold(self, error_count: int, processed: int) -> bool:
        """
        Check the failure threshold.

        Args:
            error_count: Error-severity diagnostics
            processed: Candidate rows read

        Returns:
            True when errors exceed both the floor and the ratio
        """
        if processed <= 0 or error_count <= self.settings.error_floor:
            return False
        return Decimal(error_count) / Decimal(processed) > self.settings.error_ratio

    def classify(self, tally: RunTally) -> ImportStatus:
        if self.exceeds_threshold(tally.error_count, tally.processed):
            return ImportStatus.FAILED
        if tally.written == 0:
            return ImportStatus.FAILED
        if tally.error_count:
            return ImportStatus.PARTIAL
        return ImportStatus.SUCCESS

    def finalize(
        self,
        submission: ImportSubmission,
        metadata: ResolvedMetadata,
        file_hash: str,
        tally: RunTally,
    ) -> ImportResult:
        """
        Decide the outcome and record it.

        Args:
            submission: The submitted file
            metadata: Resolved project and week
            file_hash: File fingerprint
            tally: Run counts and diagnostics

        Returns:
            ImportResult for the caller
        """
        project = metadata.project
        week_ending = metadata.week_ending
        threshold_failed = self.exceeds_threshold(tally.error_count, tally.processed)
        status = self.classify(tally)

        error_message = None
        error_kind = None
        if threshold_failed:
            threshold = ThresholdError(
                f"Too many errors: {tally.error_count} of {tally.processed} rows failed",
                details={"errors": tally.error_count, "processed": tally.processed},
            )
            error_kind = threshold.kind
            error_message = threshold.message
        elif tally.written == 0:
            tally.diagnostics.append(RowError(
                row=0,
                message="No employees with hours were imported from the file",
                code=DiagnosticCode.NO_HOURS,
            ))
            error_message = "No labor records were imported"

        batch = ImportBatch(
            project_id=project.project_id,
            status=status,
            imported_by=submission.imported_by,
            file_name=submission.file_name,
            file_hash=file_hash,
            week_ending=week_ending,
            imported=tally.imported,
            updated=tally.updated,
            skipped=tally.skipped,
            errored=tally.error_count,
            error_message=error_message,
            metadata=self._batch_metadata(metadata, file_hash, tally),
        )
        import_id = self._record_batch(batch, tally)
        self._append_audit(submission, project.project_id, week_ending, status, import_id, tally)

        logger.info(
            f"Import finished with status {status.value}",
            extra={
                "project_id": str(project.project_id),
                "week_ending": week_ending.isoformat(),
                "import_id": str(import_id) if import_id else None,
                "status": status.value,
                "processed": tally.processed,
                "imported": tally.imported,
                "updated": tally.updated,
                "skipped": tally.skipped,
                "errors": tally.error_count,
            },
        )

        shown, hidden = self._cap(tally.diagnostics)
        if threshold_failed:
            # Caller gets the diagnostics only; committed counts live on the batch
            return ImportResult(
                success=False,
                status=status,
                errors=shown,
                additional_errors=hidden,
                import_id=import_id,
                error=error_message,
                error_kind=error_kind,
                project_id=project.project_id,
                week_ending=week_ending,
            )

        return ImportResult(
            success=status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL),
            status=status,
            imported=tally.imported,
            updated=tally.updated,
            skipped=tally.skipped,
            errors=shown,
            additional_errors=hidden,
            employee_count=tally.employee_count,
            new_employees_created=len(tally.new_workers) if tally.new_workers else None,
            zero_rate_employees=tally.zero_rate if tally.zero_rate else None,
            import_id=import_id,
            error=error_message,
            project_id=project.project_id,
            week_ending=week_ending,
        )

    def record_rejection(
        self,
        submission: ImportSubmission,
        project_id: UUID,
        fatal: Fatal,
        file_hash: str,
        week_ending: date | None = None,
    ) -> UUID | None:
        """
        Write a failed ImportBatch for a terminal error once the project is known.

        Returns:
            import_id, or None if the record could not be written
        """
        details = {k: v for k, v in fatal.details.items() if k != "project_id"}
        batch = ImportBatch(
            project_id=project_id,
            status=ImportStatus.FAILED,
            imported_by=submission.imported_by,
            file_name=submission.file_name,
            file_hash=file_hash,
            week_ending=week_ending,
            error_message=fatal.message,
            metadata={
                "error_type": fatal.kind.value,
                "file_hash": file_hash,
                **details,
            },
        )
        try:
            return self.store.record_import(batch)
        except PersistenceError as e:
            logger.error(f"Failed to record failed import: {e.message}", exc_info=True)
            return None

    def _cap(self, diagnostics: list[RowError]) -> tuple[list[RowError], int]:
        limit = self.settings.max_returned_errors
        return diagnostics[:limit], max(len(diagnostics) - limit, 0)

    def _batch_metadata(
        self, metadata: ResolvedMetadata, file_hash: str, tally: RunTally
    ) -> dict:
        codes = Counter(d.code for d in tally.diagnostics)
        unknown = list(dict.fromkeys(tally.unknown_craft_codes))
        return {
            "week_ending": metadata.week_ending.isoformat(),
            "file_hash": file_hash,
            "job_number": metadata.project.job_number,
            "contractor_number": metadata.contractor_cell,
            "processed": tally.processed,
            "imported": tally.imported,
            "updated": tally.updated,
            "skipped": tally.skipped,
            "employee_count": tally.employee_count,
            "worker_counts": dict(tally.worker_counts),
            "newEmployees": [
                {
                    "employee_number": w.employee_number,
                    "name": w.display_name,
                    "category": w.category.value,
                }
                for w in tally.new_workers
            ],
            "diagnostic_codes": dict(codes),
            "unknown_craft_codes": unknown[: self.settings.max_diagnostic_codes],
        }

    def _record_batch(self, batch: ImportBatch, tally: RunTally) -> UUID | None:
        try:
            return self.store.record_import(batch)
        except PersistenceError as e:
            logger.error(f"Failed to record import batch: {e.message}", exc_info=True)
            tally.diagnostics.append(RowError(
                row=0,
                message=f"Import completed but its audit record could not be saved: {e.message}",
                code=DiagnosticCode.PERSISTENCE,
                severity="warning",
            ))
            return None

    def _append_audit(
        self,
        submission: ImportSubmission,
        project_id: UUID,
        week_ending: date,
        status: ImportStatus,
        import_id: UUID | None,
        tally: RunTally,
    ) -> None:
        entry = AuditEntry(
            actor=submission.imported_by,
            action="import",
            entity_type="labor_actuals",
            entity_id=str(project_id),
            changes={
                "filename": submission.file_name,
                "week_ending": week_ending.isoformat(),
                "status": status.value,
                "import_id": str(import_id) if import_id else None,
                "imported": tally.imported,
                "updated": tally.updated,
                "skipped": tally.skipped,
                "errors": tally.error_count,
                "employeeCount": tally.employee_count,
            },
        )
        try:
            self.store.append_audit(entry)
        except PersistenceError as e:
            logger.error(f"Failed to log audit entry: {e.message}", exc_info=True)
