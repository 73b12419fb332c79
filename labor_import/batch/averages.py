"""
Running averages of weekly labor per project and category.
"""

from typing import Iterable
from uuid import UUID

from labor_import.core.aggregation import running_average
from labor_import.core.categories import LaborCategory
from labor_import.core.errors import PersistenceError
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WEEKS = 8


class RunningAverageUpdater:
    """
    Recomputes average weekly hours and wages over the most recent weeks
    that carry hours, and replaces the stored average.

    A failure is logged and skipped; the labor rows it summarizes are
    already committed.
    """

    def __init__(self, store: LaborStore, weeks: int = DEFAULT_WEEKS):
        self.store = store
        self.weeks = weeks

    def refresh(self, project_id: UUID, categories: Iterable[LaborCategory]) -> int:
        """
        Refresh the averages of the given categories.

        Returns:
            Number of averages written
        """
        written = 0
        for category in categories:
            try:
                recent = self.store.fetch_recent_aggregates(project_id, category, self.weeks)
                self.store.upsert_running_average(running_average(project_id, category, recent))
            except PersistenceError as e:
                logger.error(
                    f"Failed to refresh {category.value} running average: {e.message}",
                    extra={"project_id": str(project_id), "category": category.value},
                    exc_info=True,
                )
                continue
            written += 1
        return written
