"""Tests for Mermaid markup helpers."""

from __future__ import annotations

import pytest

from cartograph.diagrams.mermaid import (
    capitalise,
    detect_dialect,
    escape_label,
    sanitize_id,
    strip_fences,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("src/api-users.ts", "src_api_users_ts"),
        ("users", "users"),
        ("404-page", "n_404_page"),
        ("---", "node"),
        ("", "node"),
    ],
)
def test_sanitize_id(name: str, expected: str) -> None:
    assert sanitize_id(name) == expected


@pytest.mark.parametrize(
    ("markup", "dialect"),
    [
        ("graph TD\n  A --> B", "graph"),
        ("  flowchart LR", "flowchart"),
        ("sequenceDiagram\n  A->>B: hi", "sequenceDiagram"),
        ("stateDiagram-v2\n  [*] --> Idle", "stateDiagram-v2"),
        ("stateDiagram\n  [*] --> Idle", "stateDiagram"),
        ("erDiagram", "erDiagram"),
        ("graphs TD", None),
        ("graph-like", None),
        ("pie title Pets", None),
    ],
)
def test_detect_dialect(markup: str, dialect: str | None) -> None:
    assert detect_dialect(markup) == dialect


def test_strip_fences() -> None:
    assert strip_fences("```mermaid\ngraph TD\n  A --> B\n```") == "graph TD\n  A --> B"
    assert strip_fences("```\nclassDiagram\n```\n") == "classDiagram"
    assert strip_fences("  graph LR  \n") == "graph LR"


def test_small_helpers() -> None:
    assert escape_label('say "hi"') == "say 'hi'"
    assert capitalise("service") == "Service"
