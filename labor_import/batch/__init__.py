"""
Labor import pipeline stages and orchestration.
"""

from .averages import RunningAverageUpdater
from .history import Freshness, ImportHistory
from .pipeline import LaborImportPipeline
from .undo import ImportUndoService, UndoRejected, UndoResult

__all__ = [
    "Freshness",
    "ImportHistory",
    "ImportUndoService",
    "LaborImportPipeline",
    "RunningAverageUpdater",
    "UndoRejected",
    "UndoResult",
]
