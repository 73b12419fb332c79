"""
Error taxonomy for the labor import pipeline.

Every error carries an ErrorKind so callers can branch on the discriminant
instead of on exception class.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    FORMAT = "format"
    METADATA = "metadata"
    DUPLICATE = "duplicate"
    ROW = "row"
    PERSISTENCE = "persistence"
    THRESHOLD = "threshold"

    @property
    def is_terminal(self) -> bool:
        """Terminal kinds abort a run before anything is written."""
        return self in (ErrorKind.FORMAT, ErrorKind.METADATA, ErrorKind.DUPLICATE)


class LaborImportError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind = ErrorKind.FORMAT

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FormatError(LaborImportError):
    """Unreadable workbook, missing sheet, or malformed header."""

    kind = ErrorKind.FORMAT


class MetadataError(LaborImportError):
    """Unresolvable or mismatched job number, or unparseable week-ending date."""

    kind = ErrorKind.METADATA


class DuplicateError(LaborImportError):
    """The identical file was already imported successfully for this project/week."""

    kind = ErrorKind.DUPLICATE


class RowValidationError(LaborImportError):
    """A single row failed validation; the run continues without it."""

    kind = ErrorKind.ROW

    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: str = "ROW_INVALID",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.code = code


class PersistenceError(LaborImportError):
    """A backend write or lookup failed."""

    kind = ErrorKind.PERSISTENCE


class ThresholdError(LaborImportError):
    """Too many row errors; the run is reported as failed."""

    kind = ErrorKind.THRESHOLD
