"""Structural models and diagrams derived from source trees."""

from .coordinator import AnalysisCoordinator
from .models import CodebaseModel, DiagramRecord, DiagramSet, FileRecord

__version__ = "0.1.0"

__all__ = [
    "AnalysisCoordinator",
    "CodebaseModel",
    "DiagramRecord",
    "DiagramSet",
    "FileRecord",
    "__version__",
]
