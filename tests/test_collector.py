"""Tests for cartograph.collector."""

from __future__ import annotations

from pathlib import Path

import pytest

from cartograph.collector import FileCollector, build_ignore_rule, detect_language, is_supported
from cartograph.config import DEFAULT_EXCLUDE_DIRS


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_collect_returns_sorted_supported_paths(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "app.ts")
    _write(tmp_path / "src" / "util.py")
    _write(tmp_path / "lib" / "x.rs")
    _write(tmp_path / "cmd" / "main.go")
    _write(tmp_path / "README.md")
    _write(tmp_path / "src" / "styles.css")

    paths = FileCollector().collect(tmp_path)

    assert paths == ["cmd/main.go", "lib/x.rs", "src/app.ts", "src/util.py"]


@pytest.mark.parametrize("excluded", sorted(DEFAULT_EXCLUDE_DIRS))
def test_collect_never_descends_into_excluded_directories(tmp_path: Path, excluded: str) -> None:
    for suffix in (".ts", ".tsx", ".js", ".py", ".go", ".rs"):
        _write(tmp_path / excluded / f"module{suffix}")
        _write(tmp_path / "src" / excluded / "nested" / f"module{suffix}")
    _write(tmp_path / "src" / "kept.ts")

    paths = FileCollector().collect(tmp_path)

    assert paths == ["src/kept.ts"]


def test_collect_skips_hidden_directories(tmp_path: Path) -> None:
    _write(tmp_path / ".github" / "scripts" / "release.js")
    _write(tmp_path / "src" / ".generated" / "client.ts")
    _write(tmp_path / "src" / "index.ts")

    assert FileCollector().collect(tmp_path) == ["src/index.ts"]


def test_collect_honours_configured_exclusions(tmp_path: Path) -> None:
    _write(tmp_path / "vendor" / "lib.go")
    _write(tmp_path / "src" / "generated" / "api.ts")
    _write(tmp_path / "src" / "app.spec.ts")
    _write(tmp_path / "src" / "app.ts")

    collector = FileCollector(
        exclude_dirs=DEFAULT_EXCLUDE_DIRS | {"vendor"},
        exclude_paths=["generated/", "*.spec.ts"],
    )

    assert collector.collect(tmp_path) == ["src/app.ts"]


def test_collect_rejects_missing_root(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    with pytest.raises(FileNotFoundError) as excinfo:
        FileCollector().collect(missing)
    assert str(missing) in str(excinfo.value)


def test_collect_rejects_file_root(tmp_path: Path) -> None:
    target = tmp_path / "file.ts"
    _write(target)
    with pytest.raises(NotADirectoryError):
        FileCollector().collect(target)


def test_accepts_mirrors_collection_rules() -> None:
    collector = FileCollector(exclude_paths=["/scripts"])

    assert collector.accepts("src/a.ts")
    assert not collector.accepts("src/a.md")
    assert not collector.accepts("node_modules/pkg/index.js")
    assert not collector.accepts(".cache/a.py")
    assert not collector.accepts("scripts/deploy.py")
    assert collector.accepts("tools/scripts/deploy.py")


def test_language_detection() -> None:
    assert detect_language("src/App.tsx") == "tsx"
    assert detect_language("src/app.ts") == "typescript"
    assert detect_language("index.mjs") == "javascript"
    assert detect_language("main.go") == "go"
    assert detect_language("lib.rs") == "rust"
    assert detect_language("setup.py") == "python"
    assert detect_language("notes.txt") is None
    assert is_supported("a/b/c.jsx")
    assert not is_supported("Makefile")


def test_build_ignore_rule_skips_comments_and_blank_lines() -> None:
    assert build_ignore_rule("") is None
    assert build_ignore_rule("# comment") is None
    assert build_ignore_rule("/") is None

    rule = build_ignore_rule("/dist/")
    assert rule is not None
    assert rule.anchored and rule.directory_only
    assert rule.matches("dist", True)
    assert not rule.matches("dist", False)
    assert not rule.matches("pkg/dist", True)
