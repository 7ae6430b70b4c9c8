"""Tests for cartograph.graph."""

from __future__ import annotations

from typing import List

from cartograph.extractors import extract
from cartograph.graph import build_edges, python_relative_to_path, resolve_import, resolve_targets
from cartograph.models import DependencyEdge, FileRecord, ImportRef


def _record(path: str, *sources: str) -> FileRecord:
    imports: List[ImportRef] = [
        ImportRef(source, [], source.startswith(".") or source.startswith("/")) for source in sources
    ]
    return FileRecord(path=path, language="typescript", imports=imports)


def test_import_resolution_scenario() -> None:
    files = [
        _record("src/index.ts", "./utils", "./missing", "react"),
        _record("src/utils.ts"),
    ]

    assert build_edges(files) == [DependencyEdge("src/index.ts", "src/utils.ts")]


def test_resolution_prefers_exact_path_then_extensions_then_index() -> None:
    known = {"src/a.ts", "src/a.js", "src/lib/index.tsx", "src/lib.d/x.ts"}

    assert resolve_import("src/main.ts", "./a.js", known) == "src/a.js"
    assert resolve_import("src/main.ts", "./a", known) == "src/a.ts"
    assert resolve_import("src/main.ts", "./lib", known) == "src/lib/index.tsx"
    assert resolve_import("src/main.ts", "./nothing", known) is None


def test_non_relative_imports_never_resolve() -> None:
    known = {"react.ts", "src/react.ts"}

    assert resolve_import("src/main.ts", "react", known) is None
    assert resolve_import("src/main.ts", "@scope/react", known) is None


def test_parent_directory_imports_resolve() -> None:
    known = {"src/shared/types.ts"}

    assert resolve_import("src/api/users.ts", "../shared/types", known) == "src/shared/types.ts"


def test_imports_climbing_above_root_are_dropped() -> None:
    known = {"outside.ts", "src/a.ts"}

    assert resolve_import("src/a.ts", "../../outside", known) is None


def test_python_dotted_imports() -> None:
    known = {"pkg/api/helpers.py", "pkg/core/models.py", "pkg/api/__init__.py"}

    assert python_relative_to_path(".helpers") == "./helpers"
    assert python_relative_to_path("..core.models") == "../core/models"
    assert resolve_import("pkg/api/views.py", ".helpers", known) == "pkg/api/helpers.py"
    assert resolve_import("pkg/api/views.py", "..core.models", known) == "pkg/core/models.py"
    assert resolve_import("pkg/api/views.py", ".", known) == "pkg/api/__init__.py"


def test_rust_module_files() -> None:
    known = {"src/handlers/mod.rs", "src/routes.rs"}

    assert resolve_import("src/lib.rs", "./handlers", known) == "src/handlers/mod.rs"
    assert resolve_import("src/lib.rs", "./routes", known) == "src/routes.rs"


def test_edges_are_deduplicated_sorted_and_never_self_referential() -> None:
    files = [
        _record("src/b.ts", "./a", "./a.ts", "./b"),
        _record("src/a.ts", "./c"),
        _record("src/c.ts"),
    ]

    edges = build_edges(files)

    assert edges == [
        DependencyEdge("src/a.ts", "src/c.ts"),
        DependencyEdge("src/b.ts", "src/a.ts"),
    ]
    assert build_edges(reversed(files)) == edges


def test_edges_only_reference_known_files() -> None:
    files = [
        _record("src/index.ts", "./a", "./b", "../x", "./dir"),
        _record("src/a.ts", "./index"),
        _record("src/dir/index.ts", "../a"),
    ]
    known = {record.path for record in files}

    edges = build_edges(files)

    assert edges
    for edge in edges:
        assert edge.source in known
        assert edge.target in known


def test_python_from_package_import_links_submodules() -> None:
    symbols = extract("from . import utils, models\nfrom .. import settings\n", "pkg/api/main.py")
    files = [
        FileRecord(path="pkg/api/main.py", language="python", imports=symbols.imports),
        FileRecord(path="pkg/api/__init__.py", language="python"),
        FileRecord(path="pkg/api/utils.py", language="python"),
        FileRecord(path="pkg/api/models/__init__.py", language="python"),
        FileRecord(path="pkg/__init__.py", language="python"),
    ]

    assert build_edges(files) == [
        DependencyEdge("pkg/api/main.py", "pkg/__init__.py"),
        DependencyEdge("pkg/api/main.py", "pkg/api/models/__init__.py"),
        DependencyEdge("pkg/api/main.py", "pkg/api/utils.py"),
    ]


def test_python_submodule_fallback_only_applies_to_python_sources() -> None:
    known = {"src/utils.ts", "src/index.ts"}
    imp = ImportRef(".", ["utils"], True)

    assert resolve_targets("src/main.ts", imp, known) == ["src/index.ts"]
    assert resolve_targets("src/main.py", ImportRef(".", ["*"], True), {"src/__init__.py"}) == [
        "src/__init__.py"
    ]
    assert resolve_targets("src/main.py", ImportRef(".models", ["User"], True), {"src/models.py"}) == [
        "src/models.py"
    ]
