"""Incremental analysis coordinator owning the live model and diagram set."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Callable, Collection, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .classifier import group_domains
from .collector import FileCollector
from .config import CartographConfig, ConfigError, load_config
from .diagrams.catalog import DiagramError, create_diagram_record, delete_diagram, merge_diagram
from .diagrams.projector import DiagramProjector
from .extractors import extract_file
from .graph import build_edges
from .logging import get_logger, log_duration
from .models import (
    AnalysisOutcome,
    CodebaseModel,
    DeleteResult,
    DiagramSet,
    FileRecord,
    GraphView,
    MergeResult,
)
from .stores.snapshot import SnapshotStore

FULL = "full"
INCREMENTAL = "incremental"

_RECENT_CHANGES_LIMIT = 50


class AnalysisCoordinator:
    """Keeps one :class:`CodebaseModel` per root current as files change.

    Only one analysis pass runs at a time. Requests that arrive while a pass
    is in flight are merged into a single follow-up pass, and readers always
    observe a fully published model and diagram set.
    """

    def __init__(
        self,
        root: str | Path,
        config: CartographConfig | None = None,
        collector: FileCollector | None = None,
        store: SnapshotStore | None = None,
        projector: DiagramProjector | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.logger = get_logger("coordinator")
        self.config = config or self._load_config(self.root)
        self.collector = collector or FileCollector(
            self.config.exclude_dirs, self.config.exclude_paths
        )
        self.store = store or SnapshotStore(self.root / self.config.output_dir)
        self.projector = projector or DiagramProjector.from_config(self.config.diagrams)
        self._clock = clock

        # Published state, guarded by _state_lock.
        self._state_lock = threading.Lock()
        self._model = CodebaseModel(root=str(self.root))
        self._graph = GraphView()
        self._diagrams = self._initial_diagrams()
        self._last_outcome: Optional[AnalysisOutcome] = None
        self._last_completed: Optional[float] = None
        self._recent_changes: deque[str] = deque(maxlen=_RECENT_CHANGES_LIMIT)

        # Held for the whole duration of a pass; makes passes single-flight.
        self._pass_lock = threading.Lock()
        self._persist_lock = threading.Lock()

        # Pending-work state machine, guarded by _cond.
        self._cond = threading.Condition()
        self._pending_paths: Set[str] = set()
        self._pending_full = False
        self._busy = False
        self._worker: Optional[threading.Thread] = None

    def __enter__(self) -> "AnalysisCoordinator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read access

    @property
    def model(self) -> CodebaseModel:
        with self._state_lock:
            return self._model

    @property
    def diagrams(self) -> DiagramSet:
        with self._state_lock:
            return self._diagrams

    @property
    def graph(self) -> GraphView:
        with self._state_lock:
            return self._graph

    @property
    def last_outcome(self) -> Optional[AnalysisOutcome]:
        with self._state_lock:
            return self._last_outcome

    @property
    def recent_changes(self) -> List[str]:
        with self._state_lock:
            return list(self._recent_changes)

    def is_stale(self) -> bool:
        """True when no pass has completed within ``stale_after_seconds``."""
        with self._state_lock:
            last = self._last_completed
        if last is None:
            return True
        return self._clock() - last > self.config.analysis.stale_after_seconds

    def choose_mode(self, paths: Sequence[str] | None, *, stale: bool = False) -> str:
        if stale or not paths:
            return FULL
        if len(paths) > self.config.analysis.incremental_threshold:
            return FULL
        return INCREMENTAL

    # ------------------------------------------------------------------
    # Synchronous passes

    def analyze_full(self) -> AnalysisOutcome:
        with self._pass_lock:
            return self._run_full()

    def analyze_incremental(self, paths: Iterable[str | Path]) -> AnalysisOutcome:
        with self._pass_lock:
            return self._run_incremental(paths)

    def analyze(self, paths: Sequence[str | Path] | None = None, *, stale: bool = False) -> AnalysisOutcome:
        """Run one pass in the mode :meth:`choose_mode` picks for ``paths``."""
        changed = [str(path) for path in paths or []]
        if self.choose_mode(changed, stale=stale) == FULL:
            return self.analyze_full()
        return self.analyze_incremental(changed)

    # ------------------------------------------------------------------
    # Background, coalescing passes

    def request_analysis(
        self, paths: Iterable[str | Path] | None = None, *, stale: bool = False
    ) -> str:
        """Queue a pass without blocking and return the mode it is expected to run in.

        If a pass is already running, the request joins the pending batch,
        which is handled by exactly one follow-up pass.
        """

        changed = [str(path) for path in paths or []]
        with self._cond:
            if stale or not changed:
                self._pending_full = True
            self._pending_paths.update(changed)
            mode = self.choose_mode(sorted(self._pending_paths), stale=self._pending_full)
            if not self._busy:
                self._busy = True
                self._worker = threading.Thread(
                    target=self._drain, name="cartograph-analysis", daemon=True
                )
                self._worker.start()
        self.logger.debug("Queued %s analysis (%d pending paths)", mode, len(changed))
        return mode

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no pass is running or pending; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._busy, timeout)

    def close(self) -> None:
        self.wait()
        with self._state_lock:
            completed = self._last_completed is not None
        if completed:
            self._persist()

    def _drain(self) -> None:
        debounce = self.config.analysis.debounce_seconds
        while True:
            with self._cond:
                if not self._pending_full and not self._pending_paths:
                    self._busy = False
                    self._worker = None
                    self._cond.notify_all()
                    return
            # Let a burst of change notifications settle into one batch.
            if debounce > 0:
                time.sleep(debounce)
            with self._cond:
                paths = sorted(self._pending_paths)
                full = self._pending_full
                self._pending_paths.clear()
                self._pending_full = False

            try:
                if self.choose_mode(paths, stale=full) == FULL:
                    self.analyze_full()
                else:
                    self.analyze_incremental(paths)
            except Exception as exc:  # pragma: no cover - background best effort
                self._log_exception("Background analysis failed", exc)

    # ------------------------------------------------------------------
    # Diagram merge and delete

    def merge_diagram(
        self, diagram_type: str, markup: str, description: str | None = None
    ) -> MergeResult:
        try:
            record = create_diagram_record(diagram_type, markup, description)
        except DiagramError as exc:
            self.logger.info("Rejected %s diagram: %s", diagram_type, exc)
            return MergeResult(ok=False, error=str(exc))

        with self._state_lock:
            current = self._diagrams
            self._diagrams = DiagramSet(
                generated_at=current.generated_at,
                hash=current.hash,
                diagrams=merge_diagram(current.diagrams, record),
                summary=current.summary,
            )
        self._persist_diagrams()
        self.logger.info("Merged %s diagram", record.id)
        return MergeResult(ok=True, record=record)

    def delete_diagram(self, diagram_id: str) -> DeleteResult:
        with self._state_lock:
            current = self._diagrams
            try:
                remaining = delete_diagram(current.diagrams, diagram_id)
            except KeyError:
                return DeleteResult(ok=False, error=f"Diagram '{diagram_id}' not found")
            self._diagrams = DiagramSet(
                generated_at=current.generated_at,
                hash=current.hash,
                diagrams=remaining,
                summary=current.summary,
            )
        self._persist_diagrams()
        self.logger.info("Deleted %s diagram", diagram_id)
        return DeleteResult(ok=True)

    # ------------------------------------------------------------------
    # Pass implementation

    def _run_full(self) -> AnalysisOutcome:
        with log_duration(self.logger, "Full analysis of %s", self.root):
            try:
                paths = self.collector.collect(self.root)
            except OSError as exc:
                return self._reject(FULL, f"Source root unreadable: {exc}")

            limit = self.config.analysis.max_files
            if len(paths) > limit:
                return self._reject(
                    FULL,
                    f"{len(paths)} files exceed the limit of {limit}; "
                    "check exclude_dirs for leaked dependency or build directories",
                )

            records, skipped = self._extract(paths)
            model = self._assemble(records.values())
            outcome = AnalysisOutcome(
                mode=FULL, accepted=True, file_count=len(model.files), skipped=skipped
            )
            self._publish(model, outcome)

        self.logger.info(
            "Analyzed %d files (%d edges, %d domains, %d skipped)",
            len(model.files),
            len(model.edges),
            len(model.domains),
            skipped,
        )
        return outcome

    def _run_incremental(self, paths: Iterable[str | Path]) -> AnalysisOutcome:
        with self._state_lock:
            current = self._model
            has_model = self._last_completed is not None
        if not has_model:
            self.logger.debug("No model yet; running a full pass instead of incremental")
            return self._run_full()

        changed = self._normalise_paths(paths, known=current.file_map())
        with log_duration(self.logger, "Incremental analysis of %d paths", len(changed)):
            existing = [path for path in changed if (self.root / path).is_file()]
            fresh, skipped = self._extract(existing)
            records = current.file_map()
            for path in changed:
                record = fresh.get(path)
                if record is None:
                    records.pop(path, None)
                else:
                    records[path] = record
            model = self._assemble(records.values())
            outcome = AnalysisOutcome(
                mode=INCREMENTAL, accepted=True, file_count=len(model.files), skipped=skipped
            )
            self._publish(model, outcome, changed=changed)

        self.logger.info(
            "Re-analyzed %d changed paths (%d files in model, %d skipped)",
            len(changed),
            len(model.files),
            skipped,
        )
        return outcome

    def _normalise_paths(
        self, paths: Iterable[str | Path], known: Collection[str] = ()
    ) -> List[str]:
        """Repo-relative changed files; a removed directory expands to the known files under it."""
        normalised: Set[str] = set()
        for raw in paths:
            path = Path(raw)
            if path.is_absolute():
                try:
                    rel = path.resolve().relative_to(self.root).as_posix()
                except ValueError:
                    self.logger.debug("Ignoring change outside root: %s", raw)
                    continue
            else:
                rel = PurePosixPath(path.as_posix()).as_posix()
            parts = [part for part in rel.split("/") if part not in ("", ".")]
            if not parts or ".." in parts:
                continue
            rel = "/".join(parts)
            if not self.collector.accepts(rel):
                removed = [known_path for known_path in known if known_path.startswith(f"{rel}/")]
                if removed and not (self.root / rel).exists():
                    self.logger.debug("Directory %s removed; dropping %d files", rel, len(removed))
                    normalised.update(removed)
                    continue
                self.logger.debug("Ignoring unsupported or excluded path: %s", rel)
                continue
            normalised.add(rel)
        return sorted(normalised)

    def _extract(self, paths: Sequence[str]) -> Tuple[Dict[str, FileRecord], int]:
        if not paths:
            return {}, 0
        workers = max(1, min(self.config.analysis.workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cartograph-extract") as pool:
            results = list(pool.map(self._extract_one, paths))

        records: Dict[str, FileRecord] = {}
        skipped = 0
        for path, record in zip(paths, results):
            if record is None:
                skipped += 1
            else:
                records[path] = record
        return records, skipped

    def _extract_one(self, rel_path: str) -> Optional[FileRecord]:
        try:
            return extract_file(self.root, rel_path)
        except OSError as exc:
            self.logger.debug("Skipping unreadable file %s: %s", rel_path, exc)
            return None

    def _assemble(self, records: Iterable[FileRecord]) -> CodebaseModel:
        files = sorted(records, key=lambda record: record.path)
        layers = {record.path: record.layer for record in files}
        return CodebaseModel(
            root=str(self.root),
            files=files,
            layers=layers,
            domains=group_domains(layers.keys(), layers),
            edges=build_edges(files),
            generated_at=datetime.now(UTC),
        )

    def _publish(
        self,
        model: CodebaseModel,
        outcome: AnalysisOutcome,
        *,
        changed: Sequence[str] = (),
    ) -> None:
        graph = self.projector.build_graph_view(model)
        with self._state_lock:
            self._diagrams = self.projector.project(model, existing=self._diagrams)
            self._model = model
            self._graph = graph
            self._last_outcome = outcome
            self._last_completed = self._clock()
            self._recent_changes.extend(changed)
        self._persist(outcome)

    def _reject(self, mode: str, reason: str) -> AnalysisOutcome:
        self.logger.warning("Analysis rejected; keeping previous model: %s", reason)
        outcome = AnalysisOutcome(mode=mode, accepted=False, reason=reason)
        with self._state_lock:
            self._last_outcome = outcome
        return outcome

    def _persist(self, outcome: Optional[AnalysisOutcome] = None) -> None:
        with self._persist_lock:
            with self._state_lock:
                model, graph, diagrams = self._model, self._graph, self._diagrams
                outcome = outcome or self._last_outcome
            self.store.save(model, graph, diagrams, outcome)

    def _persist_diagrams(self) -> None:
        with self._persist_lock:
            with self._state_lock:
                diagrams = self._diagrams
            self.store.save_diagrams(diagrams)

    def _initial_diagrams(self) -> DiagramSet:
        saved = self.store.load_diagrams()
        if saved is None:
            return DiagramSet()
        external = [record for record in saved.diagrams if not record.is_auto]
        if external:
            self.logger.debug("Restored %d external diagrams", len(external))
        return DiagramSet(diagrams=external)

    def _load_config(self, root: Path) -> CartographConfig:
        try:
            return load_config(root)
        except ConfigError as exc:
            self.logger.warning("Ignoring invalid configuration: %s", exc)
            return CartographConfig(root=root)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["AnalysisCoordinator", "FULL", "INCREMENTAL"]
