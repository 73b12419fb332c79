"""
Duplicate submission detection.

A file is a duplicate when identical bytes were already imported with
status ``success`` for the same project and week. Corrected files have a
different fingerprint and go through, overwriting via the upsert keys.
"""

import hashlib
from datetime import date
from uuid import UUID

from labor_import.core.errors import DuplicateError
from labor_import.core.models import Fatal
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger

logger = get_logger(__name__)


def fingerprint(content: bytes) -> str:
    """SHA-256 hex digest of the raw file bytes."""
    return hashlib.sha256(content).hexdigest()


class DuplicateDetector:
    """Checks prior successful imports for an identical file."""

    def __init__(self, store: LaborStore):
        self.store = store

    def check(
        self,
        project_id: UUID,
        week_ending: date,
        file_hash: str,
        force: bool = False,
    ) -> Fatal | None:
        """
        Look for a previous successful import of the same content.

        Args:
            project_id: Resolved project
            week_ending: Resolved week
            file_hash: Fingerprint of the submitted file
            force: Skip the check (reprocess on purpose)

        Returns:
            Fatal(DUPLICATE) carrying the original import time, or None
        """
        if force:
            logger.info(
                "Duplicate check bypassed",
                extra={"project_id": str(project_id), "file_hash": file_hash},
            )
            return None

        previous = self.store.find_successful_import(project_id, week_ending, file_hash)
        if previous is None:
            return None

        error = DuplicateError(
            f"This file was already imported on {previous.imported_at.isoformat()}",
            details={
                "import_id": str(previous.import_id) if previous.import_id else None,
                "imported_at": previous.imported_at.isoformat(),
                "week_ending": week_ending.isoformat(),
            },
        )
        logger.warning(error.message, extra={"project_id": str(project_id), **error.details})
        return Fatal.from_error(error)
