"""Helpers for emitting and recognising Mermaid markup."""

from __future__ import annotations

import re
from typing import Optional

DIALECTS = (
    "graph",
    "flowchart",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram-v2",
    "stateDiagram",
    "erDiagram",
)

_FENCE = re.compile(r"^```[ \t]*(?:mermaid)?[ \t]*\n?|\n?```[ \t]*$", re.IGNORECASE)
_NON_ID = re.compile(r"[^A-Za-z0-9]+")


def sanitize_id(name: str) -> str:
    """Return a Mermaid-safe node identifier for ``name``."""
    cleaned = _NON_ID.sub("_", name).strip("_")
    if not cleaned:
        return "node"
    if cleaned[0].isdigit():
        return f"n_{cleaned}"
    return cleaned


def escape_label(text: str) -> str:
    return text.replace('"', "'")


def strip_fences(markup: str) -> str:
    """Remove a surrounding ```mermaid fence, if present."""
    return _FENCE.sub("", markup.strip()).strip()


def detect_dialect(markup: str) -> Optional[str]:
    """Return the dialect keyword ``markup`` starts with, or ``None``."""
    text = markup.lstrip()
    for dialect in DIALECTS:
        if text.startswith(dialect):
            rest = text[len(dialect) : len(dialect) + 1]
            if not rest or not (rest.isalnum() or rest == "-"):
                return dialect
    return None


def capitalise(layer: str) -> str:
    return layer[:1].upper() + layer[1:]


__all__ = [
    "DIALECTS",
    "capitalise",
    "detect_dialect",
    "escape_label",
    "sanitize_id",
    "strip_fences",
]
