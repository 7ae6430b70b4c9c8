"""Tests for cartograph.diagrams.projector."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Sequence, Tuple

from cartograph.classifier import classify_layer, group_domains
from cartograph.diagrams import DiagramProjector
from cartograph.diagrams.projector import infer_method, infer_route, model_hash
from cartograph.graph import build_edges
from cartograph.models import (
    CodebaseModel,
    DiagramRecord,
    DiagramSet,
    FileRecord,
    FunctionInfo,
    ImportRef,
)

GENERATED_AT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _file(
    path: str,
    imports: Sequence[str] = (),
    functions: Iterable[Tuple[str, bool]] = (),
) -> FileRecord:
    return FileRecord(
        path=path,
        language="typescript",
        layer=classify_layer(path),
        imports=[ImportRef(source, [], source.startswith(".")) for source in imports],
        functions=[
            FunctionInfo(name=name, line=index + 1, is_exported=exported)
            for index, (name, exported) in enumerate(functions)
        ],
    )


def _model(files: List[FileRecord]) -> CodebaseModel:
    layers = {record.path: record.layer for record in files}
    return CodebaseModel(
        root="/repo",
        files=sorted(files, key=lambda record: record.path),
        layers=layers,
        domains=group_domains(layers.keys(), layers),
        edges=build_edges(files),
        generated_at=GENERATED_AT,
    )


def _sample_model() -> CodebaseModel:
    return _model(
        [
            _file("src/auth/login.ts"),
            _file("src/auth/session.ts"),
            _file(
                "src/users/api/list.ts",
                imports=["../models/user", "react"],
                functions=[("listUsers", True), ("helper", False)],
            ),
            _file("src/users/api/create.ts"),
            _file("src/users/models/user.ts"),
            _file("src/services/billing.ts"),
        ]
    )


def test_layer_overview_lists_layers_with_counts() -> None:
    model = _model(
        [
            _file("src/api/routes.ts"),
            _file("src/services/user.ts"),
            _file("src/models/user.ts"),
        ]
    )

    record = DiagramProjector().layer_diagram(model)

    assert record is not None
    assert record.id == "layer-overview"
    assert record.priority == 100
    assert record.labels == ["architecture", "layers", "auto"]
    lines = record.markup.splitlines()
    assert lines[0] == "graph TD"
    assert '    Api["🌐 Api<br/>1 files"]' in lines
    assert '    Service["⚙️ Service<br/>1 files"]' in lines
    assert '    Model["📊 Model<br/>1 files"]' in lines
    assert "    Api --> Service" in lines
    assert "    Service --> Model" in lines
    assert "    style Api fill:#3b82f6,color:#fff" in lines


def test_domain_overview_links_domains_with_different_layers() -> None:
    record = DiagramProjector().domain_diagram(_sample_model())

    assert record is not None
    lines = record.markup.splitlines()
    assert lines[0] == "graph LR"
    assert '    d_users["🌐 users<br/>3 files"]' in lines
    assert '    d_auth["📁 auth<br/>2 files"]' in lines
    assert "    d_users -.-> d_auth" in lines
    assert record.description == "2 domains detected"


def test_layer_dependencies_follow_cross_layer_edges() -> None:
    record = DiagramProjector().layer_dependency_diagram(_sample_model())

    assert record is not None
    assert record.markup == "graph LR\n    Api((Api))\n    Model((Model))\n    Api --> Model\n"


def test_no_cross_layer_edges_means_no_layer_dependency_diagram() -> None:
    model = _model([_file("src/a.ts", imports=["./b"]), _file("src/b.ts")])

    assert DiagramProjector().layer_dependency_diagram(model) is None


def test_per_file_graph_below_ceiling() -> None:
    model = _sample_model()

    view = DiagramProjector().build_graph_view(model)

    assert not view.aggregated
    assert [node.id for node in view.nodes] == [record.path for record in model.files]
    assert [(edge.source, edge.target) for edge in view.edges] == [
        ("src/users/api/list.ts", "src/users/models/user.ts")
    ]
    list_node = next(node for node in view.nodes if node.id == "src/users/api/list.ts")
    assert list_node.label == "list.ts"
    assert list_node.functions == 2


def test_large_models_are_aggregated_by_directory_prefix() -> None:
    files = [
        _file(f"pkg{index % 15}/mod{index // 15 % 3}/file{index}.ts", functions=[("run", True)])
        for index in range(450)
    ]
    files[0] = _file("pkg0/mod0/file0.ts", imports=["../../pkg1/mod0/file1"])
    model = _model(files)

    view = DiagramProjector(display_ceiling=200).build_graph_view(model)

    assert view.aggregated
    assert len(view.nodes) == 45
    assert len(view.nodes) < 200
    assert sum(node.file_count for node in view.nodes) == 450
    assert sum(node.functions for node in view.nodes) == 449
    assert all(node.id.startswith("group:") for node in view.nodes)
    assert [(edge.source, edge.target) for edge in view.edges] == [
        ("group:pkg0/mod0", "group:pkg1/mod0")
    ]


def test_aggregation_overflow_keeps_node_count_below_ceiling() -> None:
    files = [_file(f"dir{index:03d}/file.ts") for index in range(450)]
    files.append(_file("main.ts"))
    model = _model(files)

    view = DiagramProjector(display_ceiling=200).build_graph_view(model)

    assert view.aggregated
    assert len(view.nodes) == 199
    assert sum(node.file_count for node in view.nodes) == 451
    overflow = next(node for node in view.nodes if node.id == "group:(other)")
    assert overflow.label == "(other)"
    assert overflow.file_count == 451 - 198


def test_dependency_graph_diagram_uses_short_ids_and_layer_classes() -> None:
    record = DiagramProjector().dependency_graph_diagram(_sample_model())

    assert record is not None
    assert record.id == "dependency-graph"
    lines = record.markup.splitlines()
    assert '    n2["billing.ts"]' in lines
    assert "    n4 --> n5" in lines
    assert "    classDef api fill:#3b82f6,color:#fff" in lines
    assert "    class n3,n4 api" in lines
    assert record.description == "6 nodes, 1 edges"


def test_flow_diagram_traces_entry_point_dependencies() -> None:
    model = _model(
        [
            _file(
                "src/api/users.ts",
                imports=["../services/user", "../models/user", "express"],
                functions=[("getUsers", True), ("internalHelper", True), ("createUser", False)],
            ),
            _file("src/services/user.ts"),
            _file("src/models/user.ts"),
        ]
    )

    (record,) = DiagramProjector().flow_diagrams(model)

    assert record.id == "flow-getUsers"
    assert record.title == "Users"
    assert record.priority == 80
    assert record.labels == ["flow", "get", "sequence", "auto"]
    assert record.markup.splitlines() == [
        "sequenceDiagram",
        "    participant Client",
        "    participant users as users",
        "    participant user as user",
        "    participant user_2 as user",
        "    Client->>users: GET /api/users",
        "    users->>user: process()",
        "    user-->>users: result",
        "    users->>user_2: process()",
        "    user_2-->>users: result",
        "    users-->>Client: response",
    ]


def test_flow_without_dependencies_is_minimal() -> None:
    model = _model([_file("src/api/health.ts", functions=[("getHealth", True)])])

    (record,) = DiagramProjector().flow_diagrams(model)

    assert record.priority == 60
    assert record.labels == ["flow", "get", "auto"]
    assert record.markup.splitlines() == [
        "sequenceDiagram",
        "    participant Client",
        "    participant health as health",
        "    Client->>health: GET /api/health",
        "    health-->>Client: response",
    ]


def test_flow_ids_stay_unique_and_bounded() -> None:
    model = _model(
        [
            _file("src/api/a.ts", functions=[("listItems", True), ("deleteItem", True)]),
            _file("src/api/b.ts", functions=[("listItems", True), ("updateItem", True)]),
        ]
    )

    records = DiagramProjector(max_flows=3).flow_diagrams(model)

    assert [record.id for record in records] == [
        "flow-listItems",
        "flow-deleteItem",
        "flow-b-listItems",
    ]


def test_flow_ids_stay_unique_when_file_stems_repeat() -> None:
    model = _model(
        [
            _file(f"src/api/{team}/users.ts", functions=[("getUser", True)])
            for team in ("a", "b", "c")
        ]
    )

    records = DiagramProjector().flow_diagrams(model)

    assert [record.id for record in records] == [
        "flow-getUser",
        "flow-users-getUser",
        "flow-users-getUser_2",
    ]
    ids = [record.id for record in DiagramProjector().project(model).diagrams]
    assert len(ids) == len(set(ids))


def test_project_regenerates_auto_and_keeps_external_records() -> None:
    external = DiagramRecord(
        id="architecture",
        category="architecture",
        title="Architecture Overview",
        description="hand-written",
        markup="flowchart TD\n  A --> B",
        labels=["architecture", "generated"],
        priority=95,
    )
    stale = DiagramRecord(
        id="flow-removed",
        category="flows",
        title="Removed",
        description="",
        markup="sequenceDiagram",
        labels=["flow", "auto"],
        priority=80,
    )
    existing = DiagramSet(diagrams=[external, stale])

    result = DiagramProjector().project(_sample_model(), existing)

    ids = [record.id for record in result.diagrams]
    assert "flow-removed" not in ids
    assert ids[:3] == ["layer-overview", "architecture", "domain-overview"]
    assert result.get("architecture") is external
    priorities = [record.priority for record in result.diagrams]
    assert priorities == sorted(priorities, reverse=True)
    assert result.generated_at == GENERATED_AT


def test_project_is_deterministic() -> None:
    projector = DiagramProjector()

    first = projector.project(_sample_model())
    second = projector.project(_sample_model())

    assert first.to_dict() == second.to_dict()


def test_summary_mentions_languages_and_domains() -> None:
    projector = DiagramProjector()

    assert projector.summary(_model([])) == "No analysable source files found."
    assert projector.summary(_sample_model()) == (
        "A typescript project with 6 files organized in a layered architecture."
        " Main domains: users, auth."
    )


def test_empty_model_has_no_auto_diagrams() -> None:
    assert DiagramProjector().project(_model([])).diagrams == []


def test_model_hash_tracks_symbol_counts_not_order() -> None:
    files = [_file("src/a.ts", functions=[("a", True)]), _file("src/b.ts")]
    base = model_hash(_model(files))

    assert model_hash(_model(list(reversed(files)))) == base
    assert len(base) == 16

    files[1] = _file("src/b.ts", functions=[("b", True)])
    assert model_hash(_model(files)) != base


def test_infer_method_and_route() -> None:
    assert infer_method("getUser") == "GET"
    assert infer_method("listUsers") == "GET"
    assert infer_method("createOrder") == "POST"
    assert infer_method("updateOrder") == "PUT"
    assert infer_method("patchOrder") == "PATCH"
    assert infer_method("deleteOrder") == "DELETE"
    assert infer_method("handleWebhook") == "GET"

    assert infer_route("getUserById", "src/orders/api/users.ts") == "/api/orders/user-by-id"
    assert infer_route("post_comment", "api/comments.py") == "/api/comment"
