"""Diagram projection, catalogue and markup helpers."""

from .catalog import DIAGRAM_TYPES, DiagramError, create_diagram_record, delete_diagram, merge_diagram
from .projector import DiagramProjector

__all__ = [
    "DIAGRAM_TYPES",
    "DiagramError",
    "DiagramProjector",
    "create_diagram_record",
    "delete_diagram",
    "merge_diagram",
]
