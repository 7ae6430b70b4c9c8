"""Core data models shared across cartograph components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ImportRef:
    """A single import statement, normalised across languages."""

    source: str
    specifiers: List[str] = field(default_factory=list)
    is_relative: bool = False


@dataclass
class ExportRef:
    """A symbol explicitly marked as externally visible."""

    name: str
    kind: str


@dataclass
class FunctionInfo:
    name: str
    line: int
    params: List[str] = field(default_factory=list)
    is_async: bool = False
    is_exported: bool = False


@dataclass
class ClassInfo:
    name: str
    line: int
    is_exported: bool = False
    methods: List[str] = field(default_factory=list)


@dataclass
class FileSymbols:
    """Raw extractor output for one file."""

    imports: List[ImportRef] = field(default_factory=list)
    exports: List[ExportRef] = field(default_factory=list)
    functions: List[FunctionInfo] = field(default_factory=list)
    classes: List[ClassInfo] = field(default_factory=list)


@dataclass
class FileRecord:
    """Everything cartograph knows about one analysable file."""

    path: str
    language: str
    layer: str = "other"
    imports: List[ImportRef] = field(default_factory=list)
    exports: List[ExportRef] = field(default_factory=list)
    functions: List[FunctionInfo] = field(default_factory=list)
    classes: List[ClassInfo] = field(default_factory=list)

    @property
    def relative_imports(self) -> List[ImportRef]:
        return [imp for imp in self.imports if imp.is_relative]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, order=True)
class DependencyEdge:
    """A resolved relative import between two files of the same model."""

    source: str
    target: str


@dataclass
class DomainGroup:
    """Files sharing a top-level, non-scaffolding path segment."""

    name: str
    file_count: int
    layer: str
    files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "fileCount": self.file_count, "layer": self.layer}


@dataclass
class CodebaseModel:
    """Aggregate root describing one analysed source tree."""

    root: str
    files: List[FileRecord] = field(default_factory=list)
    layers: Dict[str, str] = field(default_factory=dict)
    domains: List[DomainGroup] = field(default_factory=list)
    edges: List[DependencyEdge] = field(default_factory=list)
    generated_at: Optional[datetime] = None

    def file_map(self) -> Dict[str, FileRecord]:
        return {record.path: record for record in self.files}

    def layer_counts(self) -> Dict[str, int]:
        from .classifier import layer_counts

        return layer_counts(self.layers)

    def to_dict(self) -> Dict[str, Any]:
        """Return the serialisable snapshot document."""
        return {
            "root": self.root,
            "generated": format_timestamp(self.generated_at),
            "files": [
                {
                    "path": record.path,
                    "language": record.language,
                    "layer": record.layer,
                    "imports": [imp.source for imp in record.imports],
                    "exports": [exp.name for exp in record.exports],
                    "functions": [fn.name for fn in record.functions],
                    "classes": [cls.name for cls in record.classes],
                }
                for record in self.files
            ],
            "layers": self.layer_counts(),
            "domains": [domain.to_dict() for domain in self.domains],
            "edges": [{"source": edge.source, "target": edge.target} for edge in self.edges],
        }


@dataclass
class DiagramRecord:
    """A named, categorised unit of projected diagram markup."""

    id: str
    category: str
    title: str
    description: str
    markup: str
    labels: List[str] = field(default_factory=list)
    priority: int = 0

    @property
    def is_auto(self) -> bool:
        return "auto" in self.labels

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DiagramSet:
    """Ordered collection of diagram records plus a content hash."""

    generated_at: Optional[datetime] = None
    hash: str = ""
    diagrams: List[DiagramRecord] = field(default_factory=list)
    summary: str = ""

    def get(self, diagram_id: str) -> Optional[DiagramRecord]:
        for record in self.diagrams:
            if record.id == diagram_id:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated": format_timestamp(self.generated_at),
            "hash": self.hash,
            "summary": self.summary,
            "diagrams": [record.to_dict() for record in self.diagrams],
        }


@dataclass
class GraphNode:
    id: str
    label: str
    layer: str
    functions: int = 0
    classes: int = 0
    exports: int = 0
    file_count: int = 1


@dataclass
class GraphEdge:
    source: str
    target: str


@dataclass
class GraphView:
    """Node/edge projection handed to an external graph renderer."""

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    aggregated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aggregated": self.aggregated,
            "nodes": [asdict(node) for node in self.nodes],
            "edges": [asdict(edge) for edge in self.edges],
        }


@dataclass
class AnalysisOutcome:
    """Result of one analysis pass as reported to callers."""

    mode: str
    accepted: bool
    file_count: int = 0
    skipped: int = 0
    reason: Optional[str] = None


@dataclass
class MergeResult:
    ok: bool
    record: Optional[DiagramRecord] = None
    error: Optional[str] = None


@dataclass
class DeleteResult:
    ok: bool
    error: Optional[str] = None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
