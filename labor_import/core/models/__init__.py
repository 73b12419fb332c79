"""
Core data models for the labor import pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .audit_entry import AuditEntry
from .candidate_row import CandidateRow
from .category_aggregate import CategoryAggregate
from .import_batch import ImportBatch, ImportStatus
from .import_result import ImportResult
from .labor_detail_line import LaborDetailLine
from .outcome import Fatal, Recoverable
from .project import Project
from .row_error import DiagnosticCode, RowError
from .running_average import RunningAverage
from .submission import ImportSubmission
from .worker_record import WorkerRecord

__all__ = [
    "AuditEntry",
    "CandidateRow",
    "CategoryAggregate",
    "DiagnosticCode",
    "Fatal",
    "ImportBatch",
    "ImportResult",
    "ImportStatus",
    "ImportSubmission",
    "LaborDetailLine",
    "Project",
    "Recoverable",
    "RowError",
    "RunningAverage",
    "WorkerRecord",
]
