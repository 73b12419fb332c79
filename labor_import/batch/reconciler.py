"""
Employee reconciliation.

Maps each row's worker number to a registry record, creating rate-0
placeholder workers for numbers the registry has never seen.
"""

from dataclasses import dataclass, field
from typing import Mapping

from pydantic import ValidationError

from labor_import.core.categories import LaborCategory, classify_craft_code
from labor_import.core.errors import PersistenceError, RowValidationError
from labor_import.core.models import (
    CandidateRow,
    DiagnosticCode,
    Recoverable,
    RowError,
    WorkerRecord,
)
from labor_import.core.names import parse_worker_name
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ReconciledRow:
    """A candidate row bound to its (persisted) worker."""

    row: CandidateRow
    worker: WorkerRecord

    @property
    def category(self) -> LaborCategory:
        return self.worker.category


@dataclass
class Reconciliation:
    """
    Result of reconciling a sheet's rows.

    Attributes:
        resolved: Rows bound to a worker, in sheet order
        rejected: Row-level outcomes for rows that could not be bound
        new_workers: Placeholder workers created this run
        unknown_craft_codes: Non-blank craft codes that matched no prefix
        warnings: Warning diagnostics for unrecognized craft codes
        unresolved: Rows dropped because worker creation failed
        failure: Row-0 diagnostic when worker creation failed
    """

    resolved: list[ReconciledRow] = field(default_factory=list)
    rejected: list[Recoverable] = field(default_factory=list)
    new_workers: list[WorkerRecord] = field(default_factory=list)
    unknown_craft_codes: list[str] = field(default_factory=list)
    warnings: list[RowError] = field(default_factory=list)
    unresolved: int = 0
    failure: RowError | None = None


class EmployeeReconciler:
    """
    Resolves workers with one bulk lookup and one bulk insert per run.

    Existing workers keep their stored rate and category. A second row
    for the same worker number in one sheet is rejected.
    """

    def __init__(self, store: LaborStore, craft_prefixes: Mapping[str, LaborCategory] | None = None):
        self.store = store
        self.craft_prefixes = craft_prefixes

    def reconcile(self, rows: list[CandidateRow]) -> Reconciliation:
        """
        Bind rows to workers.

        Args:
            rows: Candidate rows with hours, in sheet order

        Returns:
            Reconciliation
        """
        result = Reconciliation()
        known = self.store.fetch_workers({row.employee_number for row in rows})

        seen: set[str] = set()
        placeholders: dict[str, WorkerRecord] = {}
        # Rows kept in sheet order; None marks a row waiting on a placeholder
        bound: list[tuple[CandidateRow, WorkerRecord | None]] = []

        for row in rows:
            try:
                if row.employee_number in seen:
                    raise RowValidationError(
                        f"Worker {row.employee_number} appears more than once in this file",
                        field="employee_number",
                        code=DiagnosticCode.DUPLICATE_ROW,
                    )
                seen.add(row.employee_number)

                worker = known.get(row.employee_number)
                if worker is None:
                    placeholders[row.employee_number] = self._placeholder(row, result)
                bound.append((row, worker))
            except RowValidationError as e:
                logger.warning(
                    f"Row {row.row_number} rejected: {e.message}",
                    extra={"row": row.row_number, "code": e.code},
                )
                result.rejected.append(Recoverable(error=RowError(
                    row=row.row_number,
                    field=e.field,
                    message=e.message,
                    data=row.summary(),
                    code=e.code,
                )))

        created = self._create_placeholders(list(placeholders.values()), result)
        known.update(created)
        result.new_workers = [created[n] for n in placeholders if n in created]

        for row, worker in bound:
            worker = worker or known.get(row.employee_number)
            if worker is None or worker.worker_id is None:
                result.unresolved += 1
                continue
            result.resolved.append(ReconciledRow(row=row, worker=worker))

        logger.info(
            "Reconciled workers",
            extra={
                "rows": len(rows),
                "resolved": len(result.resolved),
                "rejected": len(result.rejected),
                "new_workers": len(result.new_workers),
            },
        )
        return result

    def _placeholder(self, row: CandidateRow, result: Reconciliation) -> WorkerRecord:
        """
        Build an unsaved placeholder worker for an unseen number.

        Raises:
            RowValidationError: If the row carries no usable name or the
                worker record would be invalid (e.g. an over-long number)
        """
        if not row.name:
            raise RowValidationError(
                f"New worker {row.employee_number} has no name",
                field="name",
                code=DiagnosticCode.MISSING_NAME,
            )
        try:
            name = parse_worker_name(row.name)
        except ValueError as e:
            raise RowValidationError(str(e), field="name", code=DiagnosticCode.MISSING_NAME) from e

        classification = classify_craft_code(row.craft_code, self.craft_prefixes)
        try:
            worker = WorkerRecord(
                employee_number=row.employee_number,
                first_name=name.first_name,
                last_name=name.last_name,
                category=classification.category,
                craft_code=row.craft_code or None,
            )
        except ValidationError as e:
            problem = e.errors()[0]
            raise RowValidationError(
                f"New worker {row.employee_number} cannot be created: {problem['msg']}",
                field=str(problem["loc"][0]) if problem["loc"] else None,
                code=DiagnosticCode.INVALID_WORKER,
            ) from e

        if not classification.recognized:
            logger.warning(
                f"Unrecognized craft code {row.craft_code!r}; defaulting to direct",
                extra={"row": row.row_number, "craft_code": row.craft_code},
            )
            result.unknown_craft_codes.append(row.craft_code)
            result.warnings.append(RowError(
                row=row.row_number,
                field="craft_code",
                message=f"Unrecognized craft code {row.craft_code!r}; worker filed as direct labor",
                data={"employee_number": row.employee_number, "craft_code": row.craft_code},
                code=DiagnosticCode.UNKNOWN_CRAFT_CODE,
                severity="warning",
            ))
        return worker

    def _create_placeholders(
        self, workers: list[WorkerRecord], result: Reconciliation
    ) -> dict[str, WorkerRecord]:
        if not workers:
            return {}
        try:
            created = self.store.insert_workers(workers)
        except PersistenceError as e:
            logger.error(
                f"Failed to create {len(workers)} placeholder workers: {e.message}",
                exc_info=True,
            )
            result.failure = RowError(
                row=0,
                message=f"Failed to create new workers: {e.message}",
                data={"employee_numbers": [w.employee_number for w in workers]},
                code=DiagnosticCode.PERSISTENCE,
            )
            return {}

        logger.info(
            f"Created {len(created)} placeholder workers",
            extra={"employee_numbers": sorted(created)},
        )
        return created
