"""
Labor import pipeline orchestration.

Coordinates the flow: read → extract → resolve → dedup → reconcile →
calculate → persist/aggregate → govern
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Iterable
from uuid import UUID

from labor_import.core.aggregation import LaborAggregator
from labor_import.core.categories import LaborCategory
from labor_import.core.config import ImportSettings
from labor_import.core.errors import ErrorKind, FormatError, LaborImportError
from labor_import.core.models import (
    CandidateRow,
    DiagnosticCode,
    Fatal,
    ImportResult,
    ImportStatus,
    ImportSubmission,
    LaborDetailLine,
    Recoverable,
)
from labor_import.core.store import LaborStore
from labor_import.core.wages import WageCalculator
from labor_import.observability import metrics
from labor_import.observability.logger import get_logger, log_operation

from .dedup import DuplicateDetector, fingerprint
from .extractor import ExtractedSheet, RowExtractor
from .governor import OutcomeGovernor, RunTally
from .metadata import MetadataResolver, ResolvedMetadata
from .readers import WorkbookReader
from .reconciler import EmployeeReconciler
from .writer import PersistenceWriter

logger = get_logger(__name__)


class LaborImportPipeline:
    """
    Runs one weekly labor file through every stage.

    Flow:
    1. Open the workbook and extract the preamble and candidate rows
    2. Resolve project and week-ending date
    3. Reject identical resubmissions
    4. Reconcile workers (bulk lookup, placeholder creation)
    5. Compute wages per row
    6. Write detail lines in chunks and upsert category aggregates
    7. Classify the run and record the import batch and audit entry

    Steps 1-3 can only end the run with a Fatal outcome before anything
    is written. From step 4 on, problems are row diagnostics.

    One instance may serve many runs; all per-run state is local to run().
    """

    def __init__(self, store: LaborStore, settings: ImportSettings | None = None):
        """
        Initialize the pipeline.

        Args:
            store: Backing store (PostgresLaborStore in production)
            settings: Import settings; defaults apply when omitted
        """
        self.store = store
        self.settings = settings or ImportSettings()

        self.reader = WorkbookReader(self.settings.layout.sheet_name)
        self.extractor = RowExtractor(self.settings.layout)
        self.resolver = MetadataResolver(store)
        self.detector = DuplicateDetector(store)
        self.reconciler = EmployeeReconciler(store, self.settings.craft_prefixes)
        self.calculator = WageCalculator(self.settings)
        self.writer = PersistenceWriter(
            store, self.settings.chunk_size, self.settings.running_average_weeks
        )
        self.governor = OutcomeGovernor(store, self.settings)

    def run(self, submission: ImportSubmission) -> ImportResult:
        """
        Import one submitted workbook.

        Args:
            submission: File bytes plus actor and optional project

        Returns:
            ImportResult; terminal errors are reported, never raised
        """
        with log_operation(
            "Labor import",
            logger=logger,
            file_name=submission.file_name,
            actor=submission.imported_by,
        ) as operation:
            result, tally = self._run(submission)

        status = result.status.value
        if result.error_kind is ErrorKind.DUPLICATE:
            status = "duplicate"
        counts = {}
        if tally is not None:
            # Threshold failures report no counts, but their lines were committed
            counts = dict(
                imported=tally.imported,
                updated=tally.updated,
                skipped=tally.skipped,
                errored=tally.error_count,
            )
        metrics.record_run(status, operation.elapsed, **counts)
        return result

    def run_many(
        self, submissions: Iterable[ImportSubmission], max_workers: int = 4
    ) -> list[ImportResult]:
        """
        Import several different files concurrently, one thread per file.

        No locking is taken between runs; two files for the same
        project-week race on the aggregate snapshot (last write wins).

        A backend failure that aborts one file becomes a failed result for
        that file only; the other files keep their own outcomes.

        Returns:
            Results in submission order
        """
        submissions = list(submissions)
        if not submissions:
            return []
        workers = max(1, min(max_workers, len(submissions)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="labor-import") as executor:
            futures = [executor.submit(self.run, submission) for submission in submissions]

        results = []
        for submission, future in zip(submissions, futures):
            try:
                results.append(future.result())
            except LaborImportError as e:
                logger.error(
                    f"Import of {submission.file_name} aborted: {e.message}",
                    extra={"file_name": submission.file_name, "error_kind": e.kind.value},
                    exc_info=e,
                )
                results.append(self._terminal(Fatal.from_error(e)))
        return results

    def _run(self, submission: ImportSubmission) -> tuple[ImportResult, RunTally | None]:
        file_hash = fingerprint(submission.content)
        try:
            with self.reader.open_rows(submission.content) as grid:
                sheet = self.extractor.extract(grid)
                if isinstance(sheet, Fatal):
                    return self._terminal(sheet), None
                return self._process(submission, sheet, file_hash)
        except FormatError as e:
            logger.warning(f"Workbook rejected: {e.message}", extra=e.details)
            return self._terminal(Fatal.from_error(e)), None

    def _process(
        self, submission: ImportSubmission, sheet: ExtractedSheet, file_hash: str
    ) -> tuple[ImportResult, RunTally | None]:
        resolved = self.resolver.resolve(sheet, submission.project_id)
        if isinstance(resolved, Fatal):
            return self._metadata_rejected(submission, resolved, file_hash), None

        project_id = resolved.project.project_id
        duplicate = self.detector.check(
            project_id, resolved.week_ending, file_hash, force=submission.force
        )
        if duplicate is not None:
            return self._terminal(duplicate, project_id=project_id, week_ending=resolved.week_ending), None

        tally = RunTally()
        candidates = []
        for row in sheet.rows:
            tally.processed += 1
            if not row.has_hours:
                tally.skipped += 1
                continue
            candidates.append(row)

        logger.info(
            "Extracted candidate rows",
            extra={
                "project_id": str(project_id),
                "week_ending": resolved.week_ending.isoformat(),
                "processed": tally.processed,
                "with_hours": len(candidates),
            },
        )

        lines = self._reconcile_and_price(candidates, resolved, tally)

        aggregator = LaborAggregator(self.settings.burden_rate)
        written = self.writer.write(lines, aggregator, project_id, resolved.week_ending)
        tally.imported = written.imported
        tally.updated = written.updated
        tally.skipped += written.failed_lines
        tally.diagnostics.extend(written.errors)
        tally.worker_counts = aggregator.worker_counts
        tally.employee_count = aggregator.employee_count

        for diagnostic in tally.diagnostics:
            metrics.record_row_error(diagnostic.code)

        return self.governor.finalize(submission, resolved, file_hash, tally), tally

    def _reconcile_and_price(
        self, candidates: list[CandidateRow], resolved: ResolvedMetadata, tally: RunTally
    ) -> list[tuple[LaborDetailLine, LaborCategory]]:
        reconciliation = self.reconciler.reconcile(candidates)
        tally.diagnostics.extend(r.error for r in reconciliation.rejected)
        tally.skipped += len(reconciliation.rejected) + reconciliation.unresolved
        if reconciliation.failure is not None:
            tally.diagnostics.append(reconciliation.failure)
        tally.new_workers = reconciliation.new_workers
        tally.unknown_craft_codes = reconciliation.unknown_craft_codes
        tally.diagnostics.extend(reconciliation.warnings)
        metrics.record_workers_created(len(reconciliation.new_workers))

        lines = []
        for bound in reconciliation.resolved:
            outcome = self.calculator.calculate(
                bound.row, bound.worker, resolved.project.project_id, resolved.week_ending
            )
            if isinstance(outcome, Recoverable):
                tally.diagnostics.append(outcome.error)
                tally.skipped += 1
                if outcome.error.code == DiagnosticCode.ZERO_RATE:
                    tally.zero_rate += 1
                continue
            lines.append((outcome, bound.category))
        return lines

    def _metadata_rejected(
        self, submission: ImportSubmission, fatal: Fatal, file_hash: str
    ) -> ImportResult:
        raw_project = fatal.details.get("project_id")
        if raw_project is None:
            return self._terminal(fatal)

        project_id = UUID(raw_project)
        raw_week = fatal.details.get("week_ending")
        week_ending = date.fromisoformat(raw_week) if raw_week else None
        import_id = self.governor.record_rejection(
            submission, project_id, fatal, file_hash, week_ending=week_ending
        )
        return self._terminal(
            fatal, project_id=project_id, import_id=import_id, week_ending=week_ending
        )

    def _terminal(self, fatal: Fatal, **context: Any) -> ImportResult:
        return ImportResult(
            success=False,
            status=ImportStatus.FAILED,
            error=fatal.message,
            error_kind=fatal.kind,
            **context,
        )
