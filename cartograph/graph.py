"""Dependency graph construction from resolved relative imports."""

from __future__ import annotations

import posixpath
from typing import Collection, Iterable, List, Optional, Set

from .collector import LANGUAGE_BY_SUFFIX
from .models import DependencyEdge, FileRecord, ImportRef

SOURCE_EXTENSIONS = tuple(LANGUAGE_BY_SUFFIX)
INDEX_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
PACKAGE_FILES = tuple(f"index{ext}" for ext in INDEX_EXTENSIONS) + ("__init__.py", "mod.rs")


def candidate_paths(base: str) -> List[str]:
    """Candidate file paths for an import that normalised to ``base``, in order."""
    if base in ("", "."):
        return list(PACKAGE_FILES)
    candidates = [base]
    candidates.extend(base + ext for ext in SOURCE_EXTENSIONS)
    candidates.extend(f"{base}/{name}" for name in PACKAGE_FILES)
    return candidates


def python_relative_to_path(source: str) -> str:
    """Translate a dotted relative module (``..core.models``) into path form."""
    stripped = source.lstrip(".")
    depth = len(source) - len(stripped)
    prefix = "./" if depth == 1 else "../" * (depth - 1)
    return prefix + stripped.replace(".", "/")


def resolve_import(source_path: str, import_source: str, known_paths: Collection[str]) -> Optional[str]:
    """Resolve a relative import written in ``source_path`` to a known file.

    Returns ``None`` for non-relative imports, imports that climb above the
    root, and imports with no matching file.
    """

    spec = import_source.strip()
    if not spec.startswith((".", "/")):
        return None
    if source_path.endswith(".py") and not spec.lstrip(".").startswith("/"):
        spec = python_relative_to_path(spec)

    if spec.startswith("/"):
        joined = spec.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(source_path), spec)
    base = posixpath.normpath(joined) if joined else ""
    if base == ".." or base.startswith("../"):
        return None

    for candidate in candidate_paths(base):
        if candidate in known_paths:
            return candidate
    return None


def resolve_targets(source_path: str, imp: ImportRef, known_paths: Collection[str]) -> List[str]:
    """Files an import statement in ``source_path`` depends on.

    Python ``from . import name`` names modules rather than symbols, so when the
    package itself resolves to nothing or only to its ``__init__.py`` each
    imported name is tried as a submodule.
    """
    target = resolve_import(source_path, imp.source, known_paths)
    if not source_path.endswith(".py") or not imp.source.startswith("."):
        return [target] if target else []
    if target is not None and not target.endswith("__init__.py"):
        return [target]

    submodules: List[str] = []
    for name in imp.specifiers:
        if name == "*":
            continue
        dotted = imp.source + name if imp.source.endswith(".") else f"{imp.source}.{name}"
        found = resolve_import(source_path, dotted, known_paths)
        if found is not None and found not in submodules:
            submodules.append(found)
    if submodules:
        return submodules
    return [target] if target else []


def build_edges(files: Iterable[FileRecord]) -> List[DependencyEdge]:
    """Return deduplicated edges between files of ``files``, sorted by (source, target)."""
    records = sorted(files, key=lambda record: record.path)
    known = {record.path for record in records}
    edges: Set[DependencyEdge] = set()
    for record in records:
        for imp in record.relative_imports:
            for target in resolve_targets(record.path, imp, known):
                if target != record.path:
                    edges.add(DependencyEdge(record.path, target))
    return sorted(edges)


__all__ = [
    "build_edges",
    "candidate_paths",
    "python_relative_to_path",
    "resolve_import",
    "resolve_targets",
]
