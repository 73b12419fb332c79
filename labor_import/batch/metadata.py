"""
Metadata resolution: job number, project and week-ending date.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from labor_import.core.errors import MetadataError
from labor_import.core.models import Fatal, Project
from labor_import.core.store import LaborStore
from labor_import.observability.logger import get_logger

from .extractor import ExtractedSheet, cell_text

logger = get_logger(__name__)

EXCEL_EPOCH = date(1899, 12, 30)
_JOB_NUMBER = re.compile(r"^(\d+)")


def extract_job_number(cell: Any) -> str | None:
    """
    Pull the leading numeric token out of the contractor cell.

    Examples:
        >>> extract_job_number("5772 LS DOW")
        '5772'
        >>> extract_job_number("LS DOW") is None
        True
    """
    match = _JOB_NUMBER.match(cell_text(cell))
    return match.group(1) if match else None


def excel_serial_to_date(value: Any) -> date:
    """
    Convert a spreadsheet date serial (or a date cell) to a calendar date.

    Serials count days from 1899-12-30; any fractional (time) part is
    ignored.

    Args:
        value: Serial number, numeric string, date or datetime

    Returns:
        Calendar date

    Raises:
        ValueError: If the value is blank, non-positive or not a date

    Examples:
        >>> excel_serial_to_date(45676)
        datetime.date(2025, 1, 19)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a date serial: {value!r}")

    if isinstance(value, str):
        try:
            serial = float(value.strip())
        except ValueError as e:
            raise ValueError(f"Not a date serial: {value!r}") from e
    elif isinstance(value, (int, float)):
        serial = float(value)
    else:
        raise ValueError(f"Not a date serial: {value!r}")

    if not serial > 0:
        raise ValueError(f"Date serial must be positive: {value!r}")

    try:
        return EXCEL_EPOCH + timedelta(days=int(serial))
    except OverflowError as e:
        raise ValueError(f"Date serial out of range: {value!r}") from e


@dataclass
class ResolvedMetadata:
    """
    Project and week a sheet belongs to.

    Attributes:
        project: Resolved project
        week_ending: Reporting week
        job_number: Job number embedded in the sheet (None if absent)
        contractor_cell: Raw contractor cell text
    """

    project: Project
    week_ending: date
    job_number: str | None
    contractor_cell: str


class MetadataResolver:
    """
    Resolves the sheet's project and week.

    An explicitly selected project wins over the auto-match, but the
    sheet's own job number must agree with it when the sheet carries one.
    Failures after the project is known carry ``project_id`` in their
    details so the caller can record a failed import.
    """

    def __init__(self, store: LaborStore):
        self.store = store

    def resolve(self, sheet: ExtractedSheet, project_id: UUID | None = None) -> ResolvedMetadata | Fatal:
        """
        Resolve project and week-ending date.

        Args:
            sheet: Extracted sheet
            project_id: Explicit project selection, or None to auto-match

        Returns:
            ResolvedMetadata, or Fatal(METADATA)
        """
        try:
            return self._resolve(sheet, project_id)
        except MetadataError as e:
            logger.warning(f"Metadata rejected: {e.message}", extra=e.details)
            return Fatal.from_error(e)

    def _resolve(self, sheet: ExtractedSheet, project_id: UUID | None) -> ResolvedMetadata:
        contractor = cell_text(sheet.job_cell)
        job_number = extract_job_number(contractor)

        # Project failures carry the week when it parses
        try:
            week_ending = excel_serial_to_date(sheet.week_cell)
            week_problem = None
        except ValueError as e:
            week_ending, week_problem = None, e

        try:
            project = self._resolve_project(job_number, contractor, project_id)
        except MetadataError as e:
            if week_ending is not None:
                e.details["week_ending"] = week_ending.isoformat()
            raise

        if week_problem is not None:
            raise MetadataError(
                "Invalid week ending date in file",
                details={
                    "project_id": str(project.project_id),
                    "week_cell": cell_text(sheet.week_cell),
                    "reason": str(week_problem),
                },
            ) from week_problem

        logger.info(
            "Resolved import metadata",
            extra={
                "project_id": str(project.project_id),
                "job_number": project.job_number,
                "week_ending": week_ending.isoformat(),
            },
        )
        return ResolvedMetadata(
            project=project,
            week_ending=week_ending,
            job_number=job_number,
            contractor_cell=contractor,
        )

    def _resolve_project(
        self, job_number: str | None, contractor: str, project_id: UUID | None
    ) -> Project:
        if project_id is None:
            if not job_number:
                raise MetadataError(
                    "No project selected and no job number found in file",
                    details={"contractor_cell": contractor},
                )
            project = self.store.find_project_by_job_number(job_number)
            if project is None:
                raise MetadataError(
                    f"No active project found for job number {job_number}",
                    details={"file_job_number": job_number, "contractor_cell": contractor},
                )
            return project

        project = self.store.get_project(project_id)
        if project is None:
            raise MetadataError(
                f"Project {project_id} not found",
                details={"requested_project_id": str(project_id)},
            )

        if job_number and job_number != project.job_number.strip():
            raise MetadataError(
                f"Job number mismatch. File contains data for job {job_number}, "
                f"but selected project is {project.job_number}",
                details={
                    "project_id": str(project.project_id),
                    "file_job_number": job_number,
                    "project_job_number": project.job_number,
                    "contractor_cell": contractor,
                },
            )
        if not job_number:
            logger.warning(
                "File carries no job number; using selected project",
                extra={"project_id": str(project.project_id), "contractor_cell": contractor},
            )
        return project
