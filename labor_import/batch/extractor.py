"""
Row extraction from the timekeeping sheet.

Checks the fixed-position preamble and header, then exposes the data
rows as a lazy iterator that stops at the grand-totals row.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from itertools import chain, islice, takewhile
from typing import Any, Iterable, Iterator

from labor_import.core.config import SheetLayout
from labor_import.core.errors import FormatError
from labor_import.core.models import CandidateRow, Fatal
from labor_import.observability.logger import get_logger

logger = get_logger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def cell_at(cells: tuple[Any, ...], index: int) -> Any:
    """Cell value at a column index; None past the end of a ragged row."""
    return cells[index] if index < len(cells) else None


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def coerce_decimal(value: Any) -> Decimal:
    """
    Coerce a cell value to Decimal.

    Numbers are used as-is. Strings are stripped of everything except
    digits, '.' and '-' and parsed. Blanks and unparseable values read as 0.

    Examples:
        >>> coerce_decimal("40.5 hrs")
        Decimal('40.5')
        >>> coerce_decimal(None)
        Decimal('0')
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, float) and not math.isfinite(value):
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        if not cleaned:
            return Decimal("0")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


@dataclass
class ExtractedSheet:
    """
    Output of the row extractor.

    Attributes:
        job_cell: Raw job/contract metadata cell
        week_cell: Raw week-ending metadata cell
        rows: Lazy iterator of candidate rows, in sheet order
    """

    job_cell: Any
    week_cell: Any
    rows: Iterator[CandidateRow]


class RowExtractor:
    """
    Turns the raw row grid into metadata cells plus candidate rows.

    Row iteration is lazy; the caller must consume ``rows`` while the
    underlying workbook is still open.
    """

    def __init__(self, layout: SheetLayout):
        self.layout = layout
        self._worker_id = re.compile(layout.worker_id_pattern)

    def extract(self, grid: Iterable[tuple[Any, ...]]) -> ExtractedSheet | Fatal:
        """
        Validate the preamble and return the sheet's rows.

        Args:
            grid: Row value tuples from the reader

        Returns:
            ExtractedSheet, or Fatal(FORMAT) when the sheet is too short or
            the header labels are wrong
        """
        try:
            return self._extract(grid)
        except FormatError as e:
            logger.warning(f"Sheet rejected: {e.message}", extra=e.details)
            return Fatal.from_error(e)

    def _extract(self, grid: Iterable[tuple[Any, ...]]) -> ExtractedSheet:
        layout = self.layout
        source = iter(grid)
        preamble = list(islice(source, layout.min_rows))
        if len(preamble) < layout.min_rows:
            raise FormatError(
                f"Sheet has {len(preamble)} rows; at least {layout.min_rows} are required",
                details={"rows": len(preamble), "min_rows": layout.min_rows},
            )

        self._check_header(preamble[layout.header_row])

        job_cell = cell_at(preamble[layout.job_row], layout.job_column)
        week_cell = cell_at(preamble[layout.week_row], layout.week_column)

        data = chain(preamble[layout.header_row + 1:], source)
        # Sheet row numbers are 1-based
        numbered = enumerate(data, start=layout.header_row + 2)
        bounded = takewhile(lambda item: not self._is_totals_row(item[1]), numbered)
        rows = (
            self._to_candidate(row_number, cells)
            for row_number, cells in bounded
            if self._is_worker_row(cells)
        )
        return ExtractedSheet(job_cell=job_cell, week_cell=week_cell, rows=rows)

    def _check_header(self, header: tuple[Any, ...]) -> None:
        for column, label in self.layout.header_labels.items():
            found = cell_text(cell_at(header, column))
            if found.lower() != label.strip().lower():
                raise FormatError(
                    f"Invalid file format: expected '{label}' in header column {column}, "
                    f"found '{found}'",
                    details={"column": column, "expected": label, "found": found},
                )

    def _is_totals_row(self, cells: tuple[Any, ...]) -> bool:
        marker = cell_text(cell_at(cells, self.layout.worker_id_column)).lower()
        return self.layout.totals_marker.lower() in marker

    def _is_worker_row(self, cells: tuple[Any, ...]) -> bool:
        worker_id = cell_text(cell_at(cells, self.layout.worker_id_column))
        return bool(worker_id) and self._worker_id.match(worker_id) is not None

    def _to_candidate(self, row_number: int, cells: tuple[Any, ...]) -> CandidateRow:
        layout = self.layout
        return CandidateRow(
            row_number=row_number,
            employee_number=cell_text(cell_at(cells, layout.worker_id_column)),
            name=cell_text(cell_at(cells, layout.name_column)),
            craft_code=cell_text(cell_at(cells, layout.craft_code_column)),
            st_hours=coerce_decimal(cell_at(cells, layout.st_hours_column)),
            ot_hours=coerce_decimal(cell_at(cells, layout.ot_hours_column)),
            daily_hours={
                day: coerce_decimal(cell_at(cells, column))
                for day, column in layout.weekday_columns.items()
            },
            raw=[_json_safe(value) for value in cells],
        )


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
