"""Projection of a :class:`CodebaseModel` into Mermaid diagram records."""

from __future__ import annotations

import hashlib
import re
from collections import Counter
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..classifier import LAYER_PRIORITY, dominant_layer
from ..config import DiagramConfig
from ..graph import resolve_targets
from ..logging import get_logger
from ..models import (
    CodebaseModel,
    DiagramRecord,
    DiagramSet,
    FileRecord,
    GraphEdge,
    GraphNode,
    GraphView,
)
from .mermaid import capitalise, escape_label, sanitize_id

logger = get_logger("diagrams")

LAYER_ICONS = {
    "api": "🌐",
    "service": "⚙️",
    "model": "📊",
    "util": "🔧",
    "ui": "🎨",
    "config": "🛠️",
    "test": "🧪",
    "other": "📁",
}
LAYER_COLORS = {
    "api": "#3b82f6",
    "service": "#10b981",
    "model": "#f59e0b",
    "util": "#6b7280",
    "ui": "#8b5cf6",
}

# Conventional call direction between layers; only drawn when the two layers
# sit next to each other among the non-empty ones.
TYPICAL_LAYER_FLOW = frozenset(
    {("api", "service"), ("service", "model"), ("model", "util"), ("ui", "api")}
)

HANDLER_PATTERN = re.compile(r"^(get|post|put|patch|delete|handle|create|update|list|fetch)", re.IGNORECASE)
_VERB_PREFIX = re.compile(r"^(get|post|put|patch|delete|handle)", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_ROUTE_SKIP = frozenset({"src", "api", "routes", "handlers"})

ROOT_GROUP = "(root)"
OVERFLOW_GROUP = "(other)"


class DiagramProjector:
    """Regenerates the model-derived ("auto") diagrams of a :class:`DiagramSet`."""

    def __init__(
        self,
        display_ceiling: int = 200,
        top_domains: int = 6,
        max_flows: int = 3,
        flow_fan_out: int = 3,
    ) -> None:
        # An overflow node plus at least one group must fit below the ceiling.
        self.display_ceiling = max(display_ceiling, 3)
        self.top_domains = top_domains
        self.max_flows = max_flows
        self.flow_fan_out = flow_fan_out

    @classmethod
    def from_config(cls, config: DiagramConfig) -> "DiagramProjector":
        return cls(
            display_ceiling=config.display_ceiling,
            top_domains=config.top_domains,
            max_flows=config.max_flows,
            flow_fan_out=config.flow_fan_out,
        )

    # ------------------------------------------------------------------
    # Public API

    def project(self, model: CodebaseModel, existing: Optional[DiagramSet] = None) -> DiagramSet:
        """Return a new diagram set for ``model``.

        Auto diagrams are regenerated from scratch; records without the
        ``auto`` label are carried over from ``existing`` unchanged.
        """

        auto = self.auto_diagrams(model)
        kept = [record for record in existing.diagrams if not record.is_auto] if existing else []
        diagrams = auto + kept
        diagrams.sort(key=lambda record: -record.priority)
        logger.debug("Projected %d auto diagrams, kept %d external", len(auto), len(kept))
        return DiagramSet(
            generated_at=model.generated_at,
            hash=model_hash(model),
            diagrams=diagrams,
            summary=self.summary(model),
        )

    def auto_diagrams(self, model: CodebaseModel) -> List[DiagramRecord]:
        candidates = [
            self.layer_diagram(model),
            self.domain_diagram(model),
            self.layer_dependency_diagram(model),
            self.dependency_graph_diagram(model),
        ]
        records = [record for record in candidates if record is not None]
        records.extend(self.flow_diagrams(model))
        return records

    def summary(self, model: CodebaseModel) -> str:
        if not model.files:
            return "No analysable source files found."
        languages = "/".join(sorted({record.language for record in model.files}))
        text = (
            f"A {languages} project with {len(model.files)} files "
            "organized in a layered architecture."
        )
        if model.domains:
            names = ", ".join(domain.name for domain in model.domains[:5])
            text += f" Main domains: {names}."
        return text

    # ------------------------------------------------------------------
    # Layer and domain overviews

    def layer_diagram(self, model: CodebaseModel) -> Optional[DiagramRecord]:
        counts = model.layer_counts()
        if not counts:
            return None
        layers = list(counts)

        lines = ["graph TD"]
        for layer in layers:
            node = capitalise(layer)
            icon = LAYER_ICONS.get(layer, LAYER_ICONS["other"])
            lines.append(f'    {node}["{icon} {node}<br/>{counts[layer]} files"]')
        for upper, lower in zip(layers, layers[1:]):
            if (upper, lower) in TYPICAL_LAYER_FLOW:
                lines.append(f"    {capitalise(upper)} --> {capitalise(lower)}")
            elif (lower, upper) in TYPICAL_LAYER_FLOW:
                lines.append(f"    {capitalise(lower)} --> {capitalise(upper)}")
        for layer in layers:
            color = LAYER_COLORS.get(layer)
            if color:
                lines.append(f"    style {capitalise(layer)} fill:{color},color:#fff")

        return DiagramRecord(
            id="layer-overview",
            category="layers",
            title="Layer Architecture",
            description=f"{len(model.files)} files across {len(layers)} layers",
            markup=_join(lines),
            labels=["architecture", "layers", "auto"],
            priority=100,
        )

    def domain_diagram(self, model: CodebaseModel) -> Optional[DiagramRecord]:
        if not model.domains:
            return None
        top = model.domains[: self.top_domains]
        ids = _unique_ids(f"d_{sanitize_id(domain.name)}" for domain in top)

        lines = ["graph LR"]
        for node, domain in zip(ids, top):
            icon = LAYER_ICONS.get(domain.layer, LAYER_ICONS["other"])
            label = escape_label(domain.name)
            lines.append(f'    {node}["{icon} {label}<br/>{domain.file_count} files"]')
        for index in range(len(top) - 1):
            if top[index].layer != top[index + 1].layer:
                lines.append(f"    {ids[index]} -.-> {ids[index + 1]}")

        return DiagramRecord(
            id="domain-overview",
            category="domains",
            title="Domain Structure",
            description=f"{len(model.domains)} domains detected",
            markup=_join(lines),
            labels=["domains", "structure", "auto"],
            priority=90,
        )

    def layer_dependency_diagram(self, model: CodebaseModel) -> Optional[DiagramRecord]:
        relations: Set[Tuple[str, str]] = set()
        for edge in model.edges:
            source_layer = model.layers.get(edge.source, "other")
            target_layer = model.layers.get(edge.target, "other")
            if source_layer != target_layer:
                relations.add((source_layer, target_layer))
        if not relations:
            return None

        participating = {layer for relation in relations for layer in relation}
        ordered = [layer for layer in LAYER_PRIORITY if layer in participating]
        lines = ["graph LR"]
        for layer in ordered:
            node = capitalise(layer)
            lines.append(f"    {node}(({node}))")
        for source, target in sorted(relations, key=lambda pair: (_rank(pair[0]), _rank(pair[1]))):
            lines.append(f"    {capitalise(source)} --> {capitalise(target)}")

        return DiagramRecord(
            id="layer-dependencies",
            category="dependencies",
            title="Layer Dependencies",
            description="How layers depend on each other",
            markup=_join(lines),
            labels=["dependencies", "layers", "auto"],
            priority=80,
        )

    # ------------------------------------------------------------------
    # Graph view and aggregation for scale

    def build_graph_view(self, model: CodebaseModel) -> GraphView:
        """Return per-file nodes, or directory groups once the ceiling is exceeded.

        The aggregated view always holds fewer nodes than ``display_ceiling``.
        """

        files = sorted(model.files, key=lambda record: record.path)
        if len(files) <= self.display_ceiling:
            nodes = [
                GraphNode(
                    id=record.path,
                    label=PurePosixPath(record.path).name,
                    layer=record.layer,
                    functions=len(record.functions),
                    classes=len(record.classes),
                    exports=len(record.exports),
                )
                for record in files
            ]
            edges = [GraphEdge(edge.source, edge.target) for edge in model.edges]
            return GraphView(nodes=nodes, edges=edges, aggregated=False)

        membership = self._group_membership(files)
        grouped: Dict[str, List[FileRecord]] = {}
        for record in files:
            grouped.setdefault(membership[record.path], []).append(record)

        nodes = [
            GraphNode(
                id=f"group:{name}",
                label=name if name in (ROOT_GROUP, OVERFLOW_GROUP) else f"{name}/",
                layer=dominant_layer(record.layer for record in members),
                functions=sum(len(record.functions) for record in members),
                classes=sum(len(record.classes) for record in members),
                exports=sum(len(record.exports) for record in members),
                file_count=len(members),
            )
            for name, members in sorted(grouped.items())
        ]
        group_edges: Set[Tuple[str, str]] = set()
        for edge in model.edges:
            source = membership.get(edge.source)
            target = membership.get(edge.target)
            if source is None or target is None or source == target:
                continue
            group_edges.add((f"group:{source}", f"group:{target}"))
        edges = [GraphEdge(source, target) for source, target in sorted(group_edges)]
        logger.debug("Aggregated %d files into %d groups", len(files), len(nodes))
        return GraphView(nodes=nodes, edges=edges, aggregated=True)

    def _group_membership(self, files: List[FileRecord]) -> Dict[str, str]:
        for depth in (2, 1):
            membership = {record.path: _prefix(record.path, depth) for record in files}
            if len(set(membership.values())) < self.display_ceiling:
                return membership

        sizes = Counter(membership.values())
        keep_count = self.display_ceiling - 2
        ranked = sorted(sizes, key=lambda name: (-sizes[name], name))
        kept = set(ranked[:keep_count])
        return {
            path: group if group in kept else OVERFLOW_GROUP
            for path, group in membership.items()
        }

    def dependency_graph_diagram(self, model: CodebaseModel) -> Optional[DiagramRecord]:
        if not model.files:
            return None
        view = self.build_graph_view(model)
        ids = {node.id: f"n{index}" for index, node in enumerate(view.nodes)}

        lines = ["graph LR"]
        for node in view.nodes:
            label = escape_label(node.label)
            if view.aggregated:
                label = f"{label}<br/>{node.file_count} files"
            lines.append(f'    {ids[node.id]}["{label}"]')
        for edge in view.edges:
            lines.append(f"    {ids[edge.source]} --> {ids[edge.target]}")
        by_layer: Dict[str, List[str]] = {}
        for node in view.nodes:
            by_layer.setdefault(node.layer, []).append(ids[node.id])
        for layer in LAYER_PRIORITY:
            color = LAYER_COLORS.get(layer)
            if color and layer in by_layer:
                lines.append(f"    classDef {layer} fill:{color},color:#fff")
                lines.append(f"    class {','.join(by_layer[layer])} {layer}")

        description = f"{len(view.nodes)} nodes, {len(view.edges)} edges"
        if view.aggregated:
            description += f" (aggregated from {len(model.files)} files by directory)"
        return DiagramRecord(
            id="dependency-graph",
            category="dependencies",
            title="Dependency Graph",
            description=description,
            markup=_join(lines),
            labels=["dependencies", "graph", "auto"],
            priority=70,
        )

    # ------------------------------------------------------------------
    # Request flows

    def flow_diagrams(self, model: CodebaseModel) -> List[DiagramRecord]:
        known = {record.path for record in model.files}
        records: List[DiagramRecord] = []
        used_ids: Set[str] = set()
        for record, function_name in self.entry_points(model):
            if len(records) >= self.max_flows:
                break
            diagram_id = f"flow-{sanitize_id(function_name)}"
            if diagram_id in used_ids:
                diagram_id = f"flow-{sanitize_id(_stem(record.path))}-{sanitize_id(function_name)}"
            diagram_id = _unique_ids([diagram_id], reserved=used_ids)[0]
            used_ids.add(diagram_id)
            records.append(self._flow_diagram(diagram_id, record, function_name, known))
        return records

    def entry_points(self, model: CodebaseModel) -> List[Tuple[FileRecord, str]]:
        """Exported handler-like functions in ``api``-layer files, in path order."""
        entries: List[Tuple[FileRecord, str]] = []
        for record in sorted(model.files, key=lambda item: item.path):
            if model.layers.get(record.path, record.layer) != "api":
                continue
            for function in record.functions:
                if function.is_exported and HANDLER_PATTERN.match(function.name):
                    entries.append((record, function.name))
        return entries

    def _flow_diagram(
        self, diagram_id: str, record: FileRecord, function_name: str, known: Set[str]
    ) -> DiagramRecord:
        dependencies: List[str] = []
        for imp in record.relative_imports:
            for target in resolve_targets(record.path, imp, known):
                if target != record.path and target not in dependencies:
                    dependencies.append(target)
            if len(dependencies) >= self.flow_fan_out:
                break
        dependencies = dependencies[: self.flow_fan_out]

        method = infer_method(function_name)
        route = infer_route(function_name, record.path)
        component = _stem(record.path)
        ids = _unique_ids(
            [sanitize_id(component)] + [sanitize_id(_stem(path)) for path in dependencies],
            reserved={"Client"},
        )
        entry_id = ids[0]

        lines = ["sequenceDiagram", "    participant Client"]
        lines.append(f"    participant {entry_id} as {component}")
        for node, path in zip(ids[1:], dependencies):
            lines.append(f"    participant {node} as {_stem(path)}")
        lines.append(f"    Client->>{entry_id}: {method} {route}")
        for node in ids[1:]:
            lines.append(f"    {entry_id}->>{node}: process()")
            lines.append(f"    {node}-->>{entry_id}: result")
        lines.append(f"    {entry_id}-->>Client: response")

        labels = ["flow", method.lower(), "sequence", "auto"] if dependencies else ["flow", method.lower(), "auto"]
        return DiagramRecord(
            id=diagram_id,
            category="flows",
            title=flow_title(function_name),
            description=f"{method} {route}",
            markup=_join(lines),
            labels=labels,
            priority=80 if dependencies else 60,
        )


def model_hash(model: CodebaseModel) -> str:
    """Short content hash over each file's path and symbol counts."""
    fingerprint = "|".join(
        sorted(f"{record.path}:{len(record.functions)}:{len(record.classes)}" for record in model.files)
    )
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:16]


def infer_method(function_name: str) -> str:
    lower = function_name.lower()
    if lower.startswith(("get", "list", "fetch")):
        return "GET"
    if lower.startswith(("post", "create")):
        return "POST"
    if lower.startswith(("put", "update")):
        return "PUT"
    if lower.startswith("patch"):
        return "PATCH"
    if lower.startswith("delete"):
        return "DELETE"
    return "GET"


def infer_route(function_name: str, path: str) -> str:
    """Guess a route such as ``/api/users/by-id`` from a handler name and its file."""
    name = _VERB_PREFIX.sub("", function_name)
    slug = _CAMEL_BOUNDARY.sub("-", name).replace("_", "-").lower().strip("-")
    parts = path.split("/")[:-1]
    domain = next((part for part in parts if part not in _ROUTE_SKIP and "." not in part), "")
    return "/" + "/".join(part for part in ("api", domain, slug) if part)


def flow_title(function_name: str) -> str:
    name = _VERB_PREFIX.sub("", function_name)
    words = _CAMEL_BOUNDARY.sub(" ", name).replace("_", " ").strip()
    return " ".join(words.split()) or function_name


def _stem(path: str) -> str:
    return PurePosixPath(path).stem or path


def _prefix(path: str, depth: int) -> str:
    directories = path.split("/")[:-1]
    if not directories:
        return ROOT_GROUP
    return "/".join(directories[:depth])


def _rank(layer: str) -> int:
    return LAYER_PRIORITY.index(layer) if layer in LAYER_PRIORITY else len(LAYER_PRIORITY)


def _unique_ids(names: Iterable[str], reserved: Iterable[str] = ()) -> List[str]:
    used = set(reserved)
    ids: List[str] = []
    for name in names:
        candidate = name
        suffix = 2
        while candidate in used:
            candidate = f"{name}_{suffix}"
            suffix += 1
        used.add(candidate)
        ids.append(candidate)
    return ids


def _join(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"


__all__ = [
    "DiagramProjector",
    "HANDLER_PATTERN",
    "LAYER_COLORS",
    "LAYER_ICONS",
    "flow_title",
    "infer_method",
    "infer_route",
    "model_hash",
]
