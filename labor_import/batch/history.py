"""
Import history and labor data freshness for a project.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from labor_import.core.models import ImportBatch, ImportStatus
from labor_import.core.store import LaborStore

FRESHNESS_CURRENT = "current"
FRESHNESS_STALE = "stale"
FRESHNESS_MISSING = "missing"


@dataclass
class Freshness:
    """
    Labor data freshness.

    Attributes:
        status: current, stale or missing
        last_import: Most recent successful or partial import, if any
        age_days: Whole days since that import
    """

    status: str
    last_import: ImportBatch | None = None
    age_days: int | None = None


class ImportHistory:
    """Read-side view of a project's labor imports."""

    def __init__(self, store: LaborStore):
        self.store = store

    def recent(self, project_id: UUID, limit: int = 10) -> list[ImportBatch]:
        """Most recent imports for a project, newest first."""
        return self.store.list_imports(project_id, limit)

    def freshness(
        self,
        project_id: UUID,
        now: datetime | None = None,
        stale_after_days: int = 7,
        scan_limit: int = 50,
    ) -> Freshness:
        """
        Classify how current a project's labor data is.

        Args:
            project_id: Project key
            now: Reference time (defaults to the current UTC time)
            stale_after_days: Age after which data counts as stale
            scan_limit: Number of recent imports inspected

        Returns:
            Freshness
        """
        now = now or datetime.now(timezone.utc)
        landed = [
            batch for batch in self.store.list_imports(project_id, scan_limit)
            if batch.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL)
        ]
        if not landed:
            return Freshness(status=FRESHNESS_MISSING)

        last = max(landed, key=lambda batch: batch.imported_at)
        age = now - last.imported_at
        status = FRESHNESS_STALE if age > timedelta(days=stale_after_days) else FRESHNESS_CURRENT
        return Freshness(status=status, last_import=last, age_days=age.days)
