"""
Batch data source readers.
"""

from .workbook_reader import WorkbookReader

__all__ = [
    "WorkbookReader",
]
