"""Catalogue of externally supplied diagram types plus merge/delete operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import DiagramRecord
from .mermaid import detect_dialect, strip_fences


class DiagramError(ValueError):
    """Raised when a caller-supplied diagram is rejected."""


@dataclass(frozen=True)
class DiagramType:
    label: str
    category: str
    dialect: str


DIAGRAM_TYPES: Dict[str, DiagramType] = {
    "architecture": DiagramType("Architecture Overview", "architecture", "flowchart"),
    "dataflow": DiagramType("Data Flow", "flows", "flowchart"),
    "sequence": DiagramType("Key Sequences", "flows", "sequenceDiagram"),
    "class": DiagramType("Class Diagram", "patterns", "classDiagram"),
    "dependency": DiagramType("Dependencies", "dependencies", "flowchart"),
    "er": DiagramType("Entity Relationships", "patterns", "erDiagram"),
    "state": DiagramType("State Machine", "flows", "stateDiagram-v2"),
}

_PRIORITIES = {"architecture": 95, "dataflow": 90}
DEFAULT_PRIORITY = 75


def priority_for(diagram_type: str) -> int:
    return _PRIORITIES.get(diagram_type, DEFAULT_PRIORITY)


def create_diagram_record(
    diagram_type: str, markup: str, description: Optional[str] = None
) -> DiagramRecord:
    """Validate caller-supplied markup and wrap it in a :class:`DiagramRecord`.

    The record id equals the type, so merging the same type twice replaces
    the earlier record.
    """

    spec = DIAGRAM_TYPES.get(diagram_type)
    if spec is None:
        known = ", ".join(sorted(DIAGRAM_TYPES))
        raise DiagramError(f"Unknown diagram type '{diagram_type}' (expected one of: {known})")

    cleaned = strip_fences(markup or "")
    if not cleaned:
        raise DiagramError("Diagram markup is empty")
    if detect_dialect(cleaned) is None:
        first_line = cleaned.splitlines()[0][:40]
        raise DiagramError(f"Unrecognised diagram dialect: '{first_line}'")

    return DiagramRecord(
        id=diagram_type,
        category=spec.category,
        title=spec.label,
        description=description or f"Generated {diagram_type} diagram",
        markup=cleaned,
        labels=[diagram_type, "generated"],
        priority=priority_for(diagram_type),
    )


def merge_diagram(diagrams: List[DiagramRecord], record: DiagramRecord) -> List[DiagramRecord]:
    """Return a new list with ``record`` spliced in.

    An existing record with the same id is replaced at its position. Otherwise
    the record goes before the first record of strictly lower priority. All
    other records keep their relative order.
    """

    merged = list(diagrams)
    for index, existing in enumerate(merged):
        if existing.id == record.id:
            merged[index] = record
            return merged
    for index, existing in enumerate(merged):
        if existing.priority < record.priority:
            merged.insert(index, record)
            return merged
    merged.append(record)
    return merged


def delete_diagram(diagrams: List[DiagramRecord], diagram_id: str) -> List[DiagramRecord]:
    """Return a new list without ``diagram_id``; raise KeyError when absent."""
    remaining = [record for record in diagrams if record.id != diagram_id]
    if len(remaining) == len(diagrams):
        raise KeyError(diagram_id)
    return remaining


__all__ = [
    "DIAGRAM_TYPES",
    "DiagramError",
    "DiagramType",
    "create_diagram_record",
    "delete_diagram",
    "merge_diagram",
    "priority_for",
]
