"""
Stage outcome types.

Pre-flight stages return either their value or Fatal; row-level stages
return either their value or Recoverable. The pipeline driver branches on
the type instead of catching exceptions across stages.
"""

from typing import Any

from pydantic import BaseModel, Field

from labor_import.core.errors import ErrorKind, LaborImportError

from .row_error import RowError


class Fatal(BaseModel):
    """Terminal outcome: the run stops here."""

    kind: ErrorKind
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: LaborImportError) -> "Fatal":
        return cls(kind=error.kind, message=error.message, details=dict(error.details))


class Recoverable(BaseModel):
    """Row-level outcome: the row is dropped, the run continues."""

    error: RowError

    @property
    def is_warning(self) -> bool:
        return not self.error.is_error
