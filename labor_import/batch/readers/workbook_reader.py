"""
Workbook reader for timekeeping exports using openpyxl.
"""

from contextlib import contextmanager
from io import BytesIO
from typing import Any, Iterator
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from labor_import.core.errors import FormatError

Row = tuple[Any, ...]


class WorkbookReader:
    """
    Opens an .xlsx payload and streams one sheet's rows as value tuples.

    The workbook is opened read-only with cached formula values, so rows
    are produced lazily and memory stays flat for large exports.
    """

    def __init__(self, sheet_name: str):
        """
        Initialize workbook reader.

        Args:
            sheet_name: Sheet holding the labor data
        """
        self.sheet_name = sheet_name

    @contextmanager
    def open_rows(self, content: bytes) -> Iterator[Iterator[Row]]:
        """
        Yield an iterator over the sheet's rows.

        Args:
            content: Raw workbook bytes

        Yields:
            Iterator of row value tuples (rows may be ragged)

        Raises:
            FormatError: If the payload is not a readable workbook or the
                sheet is missing
        """
        try:
            workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
            raise FormatError(
                f"Unable to read workbook: {e}",
                details={"reason": type(e).__name__},
            ) from e

        try:
            if self.sheet_name not in workbook.sheetnames:
                raise FormatError(
                    f"Sheet '{self.sheet_name}' not found in workbook",
                    details={"sheet": self.sheet_name, "available": list(workbook.sheetnames)},
                )
            worksheet = workbook[self.sheet_name]
            # Exported files often carry a stale <dimension>; read every row
            worksheet.reset_dimensions()
            yield worksheet.iter_rows(values_only=True)
        finally:
            workbook.close()
