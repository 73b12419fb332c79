"""
Persistence of detail lines, category aggregates and running averages.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from labor_import.core.aggregation import LaborAggregator
from labor_import.core.categories import LaborCategory
from labor_import.core.errors import PersistenceError
from labor_import.core.models import DiagnosticCode, LaborDetailLine, RowError
from labor_import.core.store import LaborStore
from labor_import.observability import metrics
from labor_import.observability.logger import get_logger

from .averages import DEFAULT_WEEKS, RunningAverageUpdater

logger = get_logger(__name__)


@dataclass
class WriteOutcome:
    """
    Counts and diagnostics from one persistence pass.

    Attributes:
        imported: Detail lines inserted
        updated: Detail lines updated in place
        failed_lines: Detail lines lost to backend failures
        errors: Row-0 persistence diagnostics
    """

    imported: int = 0
    updated: int = 0
    failed_lines: int = 0
    errors: list[RowError] = field(default_factory=list)


class PersistenceWriter:
    """
    Writes detail lines in bounded chunks, then category aggregates.

    Each chunk looks up which keys already exist and splits into an
    update batch and an insert batch. Only lines whose batch succeeded are
    fed to the run aggregator. Once anything was written, the aggregates
    are recomputed from every line stored for the project-week, so lines
    from earlier imports of the same week still count, and the running
    averages of those categories are refreshed. A failing batch or
    aggregate is reported as a row-0 diagnostic and the remaining work
    continues; nothing already written is rolled back.
    """

    def __init__(
        self,
        store: LaborStore,
        chunk_size: int = 100,
        running_average_weeks: int = DEFAULT_WEEKS,
    ):
        self.store = store
        self.chunk_size = chunk_size
        self.averages = RunningAverageUpdater(store, running_average_weeks)

    def write(
        self,
        lines: list[tuple[LaborDetailLine, LaborCategory]],
        aggregator: LaborAggregator,
        project_id: UUID,
        week_ending: date,
    ) -> WriteOutcome:
        """
        Persist detail lines, then rebuild the week's aggregates from storage.

        Args:
            lines: (detail line, category) pairs in sheet order
            aggregator: Run-scoped aggregator receiving persisted lines
            project_id: Resolved project
            week_ending: Resolved week

        Returns:
            WriteOutcome
        """
        outcome = WriteOutcome()

        for start in range(0, len(lines), self.chunk_size):
            chunk = lines[start:start + self.chunk_size]
            self._write_chunk(chunk, aggregator, project_id, week_ending, outcome, start // self.chunk_size)

        if outcome.imported + outcome.updated > 0:
            categories = self._rebuild_aggregates(aggregator.burden_rate, project_id, week_ending, outcome)
            if categories:
                self.averages.refresh(project_id, categories)

        logger.info(
            "Persisted labor detail",
            extra={
                "project_id": str(project_id),
                "week_ending": week_ending.isoformat(),
                "imported": outcome.imported,
                "updated": outcome.updated,
                "failed_lines": outcome.failed_lines,
            },
        )
        return outcome

    def _rebuild_aggregates(
        self,
        burden_rate: Decimal,
        project_id: UUID,
        week_ending: date,
        outcome: WriteOutcome,
    ) -> list[LaborCategory]:
        """
        Replace the project-week's aggregates with totals over every stored line.

        Returns:
            Categories whose aggregate was rebuilt
        """
        try:
            stored = self.store.fetch_week_lines(project_id, week_ending)
        except PersistenceError as e:
            logger.error(
                f"Failed to read stored labor for aggregation: {e.message}",
                extra={"project_id": str(project_id), "week_ending": week_ending.isoformat()},
                exc_info=True,
            )
            outcome.errors.append(RowError(
                row=0,
                message=f"Failed to rebuild labor totals: {e.message}",
                code=DiagnosticCode.PERSISTENCE,
            ))
            return []

        snapshot = LaborAggregator(burden_rate)
        for line, category in stored:
            snapshot.add(line, category)

        for aggregate in snapshot.build(project_id, week_ending):
            try:
                self.store.upsert_aggregate(aggregate)
            except PersistenceError as e:
                logger.error(
                    f"Failed to save {aggregate.category.value} aggregate: {e.message}",
                    extra={"project_id": str(project_id), "category": aggregate.category.value},
                    exc_info=True,
                )
                outcome.errors.append(RowError(
                    row=0,
                    field="category",
                    message=f"Failed to save {aggregate.category.value} labor totals: {e.message}",
                    data={"category": aggregate.category.value},
                    code=DiagnosticCode.PERSISTENCE,
                ))
        return snapshot.categories

    def _write_chunk(
        self,
        chunk: list[tuple[LaborDetailLine, LaborCategory]],
        aggregator: LaborAggregator,
        project_id: UUID,
        week_ending: date,
        outcome: WriteOutcome,
        chunk_index: int,
    ) -> None:
        try:
            existing = self.store.fetch_existing_detail_workers(
                project_id, week_ending, [line.worker_id for line, _ in chunk]
            )
        except PersistenceError as e:
            self._chunk_failed(outcome, chunk_index, len(chunk), "lookup", e)
            return

        updates = [(line, cat) for line, cat in chunk if line.worker_id in existing]
        inserts = [(line, cat) for line, cat in chunk if line.worker_id not in existing]

        for operation, batch in (("update", updates), ("insert", inserts)):
            if not batch:
                continue
            batch_lines = [line for line, _ in batch]
            try:
                if operation == "update":
                    outcome.updated += self.store.update_detail_lines(batch_lines)
                else:
                    outcome.imported += self.store.insert_detail_lines(batch_lines)
            except PersistenceError as e:
                self._chunk_failed(outcome, chunk_index, len(batch), operation, e)
                continue

            metrics.record_detail_writes(operation, len(batch))
            for line, category in batch:
                aggregator.add(line, category)

    def _chunk_failed(
        self,
        outcome: WriteOutcome,
        chunk_index: int,
        size: int,
        operation: str,
        error: PersistenceError,
    ) -> None:
        logger.error(
            f"Detail line {operation} failed for chunk {chunk_index}: {error.message}",
            extra={"chunk": chunk_index, "operation": operation, "lines": size},
            exc_info=True,
        )
        outcome.failed_lines += size
        outcome.errors.append(RowError(
            row=0,
            message=f"Failed to {operation} {size} labor records: {error.message}",
            data={"chunk": chunk_index, "operation": operation, "lines": size},
            code=DiagnosticCode.PERSISTENCE,
        ))
