"""Persistent JSON snapshots of the live model and diagram set."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..logging import get_logger
from ..models import (
    AnalysisOutcome,
    CodebaseModel,
    DiagramRecord,
    DiagramSet,
    GraphView,
    format_timestamp,
)

_SNAPSHOT_VERSION = 1

MODEL_FILE = "model.json"
GRAPH_FILE = "graph.json"
DIAGRAMS_FILE = "diagrams.json"
MANIFEST_FILE = "manifest.json"

logger = get_logger("stores.snapshot")


class SnapshotStore:
    """Writes model, graph, diagram and manifest documents under one directory.

    Write failures are logged and swallowed: a snapshot that cannot be
    persisted must not invalidate the in-memory model that produced it.
    """

    def __init__(self, directory: Path | None) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path | None:
        return self._directory

    def save(
        self,
        model: CodebaseModel,
        graph: GraphView,
        diagrams: DiagramSet,
        outcome: Optional[AnalysisOutcome] = None,
    ) -> bool:
        """Persist all snapshot documents; return False when any write failed."""
        if self._directory is None:
            return False
        documents = {
            MODEL_FILE: model.to_dict(),
            GRAPH_FILE: graph.to_dict(),
            DIAGRAMS_FILE: diagrams.to_dict(),
            MANIFEST_FILE: _manifest(model, diagrams, outcome),
        }
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create snapshot directory %s: %s", self._directory, exc)
            return False
        ok = True
        for name, payload in documents.items():
            ok = self._write(self._directory / name, payload) and ok
        return ok

    def save_diagrams(self, diagrams: DiagramSet) -> bool:
        if self._directory is None:
            return False
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create snapshot directory %s: %s", self._directory, exc)
            return False
        return self._write(self._directory / DIAGRAMS_FILE, diagrams.to_dict())

    def load_diagrams(self) -> Optional[DiagramSet]:
        """Return the persisted diagram set, or None when absent or unreadable."""
        data = self._read(DIAGRAMS_FILE)
        if data is None:
            return None
        raw_records = data.get("diagrams")
        if not isinstance(raw_records, list):
            return None
        records = [record for record in map(_record_from_dict, raw_records) if record is not None]
        return DiagramSet(
            generated_at=_parse_timestamp(data.get("generated")),
            hash=str(data.get("hash") or ""),
            diagrams=records,
            summary=str(data.get("summary") or ""),
        )

    def load_manifest(self) -> Optional[Dict[str, Any]]:
        return self._read(MANIFEST_FILE)

    # ------------------------------------------------------------------
    # Internal helpers

    def _write(self, path: Path, payload: Dict[str, Any]) -> bool:
        document = {"version": _SNAPSHOT_VERSION, **payload}
        try:
            path.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to write %s: %s", path, exc)
            return False
        return True

    def _read(self, name: str) -> Optional[Dict[str, Any]]:
        if self._directory is None:
            return None
        path = self._directory / name
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Ignoring unreadable snapshot %s: %s", path, exc)
            return None
        if not isinstance(data, dict) or data.get("version") != _SNAPSHOT_VERSION:
            return None
        return data


def _manifest(
    model: CodebaseModel, diagrams: DiagramSet, outcome: Optional[AnalysisOutcome]
) -> Dict[str, Any]:
    manifest: Dict[str, Any] = {
        "root": model.root,
        "generated": format_timestamp(model.generated_at),
        "fileCount": len(model.files),
        "edgeCount": len(model.edges),
        "domainCount": len(model.domains),
        "hash": diagrams.hash,
        "diagrams": [record.id for record in diagrams.diagrams],
        "files": [MODEL_FILE, GRAPH_FILE, DIAGRAMS_FILE],
    }
    if outcome is not None:
        manifest["mode"] = outcome.mode
        manifest["skipped"] = outcome.skipped
    return manifest


def _record_from_dict(payload: object) -> Optional[DiagramRecord]:
    if not isinstance(payload, dict):
        return None
    record_id = payload.get("id")
    markup = payload.get("markup")
    if not isinstance(record_id, str) or not isinstance(markup, str):
        return None
    labels = payload.get("labels")
    if not isinstance(labels, list):
        labels = []
    priority = payload.get("priority")
    if not isinstance(priority, int) or isinstance(priority, bool):
        priority = 0
    return DiagramRecord(
        id=record_id,
        category=str(payload.get("category") or ""),
        title=str(payload.get("title") or record_id),
        description=str(payload.get("description") or ""),
        markup=markup,
        labels=[str(label) for label in labels],
        priority=priority,
    )


def _parse_timestamp(value: object) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


__all__ = ["DIAGRAMS_FILE", "GRAPH_FILE", "MANIFEST_FILE", "MODEL_FILE", "SnapshotStore"]
