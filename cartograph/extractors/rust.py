"""Rust extraction profile."""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .base import LanguageProfile, block_after, line_of, split_params, unique
from ..models import ClassInfo, ExportRef, FunctionInfo, ImportRef

_USE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?use[ \t]+(?P<path>[^;]+);", re.MULTILINE)
_MOD = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?mod[ \t]+(?P<name>\w+)[ \t]*;", re.MULTILINE)
_FN = re.compile(
    r"^[ \t]*(?P<pub>pub(?:\([^)]*\))?[ \t]+)?(?:const[ \t]+)?(?P<async>async[ \t]+)?"
    r"(?:unsafe[ \t]+)?(?:extern[ \t]+\"[^\"]*\"[ \t]+)?fn[ \t]+(?P<name>\w+)[ \t]*(?:<[^(]*>)?\((?P<params>[^)]*)\)",
    re.MULTILINE,
)
_TYPE = re.compile(
    r"^[ \t]*(?P<pub>pub(?:\([^)]*\))?[ \t]+)?(?P<kind>struct|enum|trait)[ \t]+(?P<name>\w+)",
    re.MULTILINE,
)
_PUB_ITEM = re.compile(r"^[ \t]*pub(?:\([^)]*\))?[ \t]+(?:const|static)[ \t]+(?:mut[ \t]+)?(?P<name>\w+)", re.MULTILINE)
_IMPL = re.compile(r"^[ \t]*impl(?:<[^>]*>)?[ \t]+(?:[\w:<>, ]+[ \t]+for[ \t]+)?(?P<name>\w+)", re.MULTILINE)
_METHOD = re.compile(r"\bfn[ \t]+(?P<name>\w+)")


def _param_name(raw: str) -> str:
    # "&mut self" -> "self", "mut count" -> "count"
    name = raw.lstrip("&").strip()
    if name.startswith("mut "):
        name = name[4:].strip()
    return name


def _use_specifiers(path: str) -> Tuple[str, List[str]]:
    path = " ".join(path.split())
    if "{" in path:
        head, _, rest = path.partition("{")
        names = [part.strip().split(" as ", 1)[0].strip() for part in rest.rstrip("}").split(",")]
        return head.rstrip(":").strip(), [name for name in names if name]
    head, _, last = path.rpartition("::")
    return head or last, [last.split(" as ", 1)[0].strip()]


class RustProfile(LanguageProfile):
    """Rust crates; ``pub`` marks visibility and ``mod x;`` links sibling files."""

    name = "rust"
    extensions = frozenset({".rs"})

    def parse_imports(self, text: str) -> List[ImportRef]:
        found: List[Tuple[int, ImportRef]] = []
        for match in _USE.finditer(text):
            source, specifiers = _use_specifiers(match.group("path"))
            found.append((match.start(), ImportRef(source, specifiers, False)))
        for match in _MOD.finditer(text):
            name = match.group("name")
            found.append((match.start(), ImportRef(f"./{name}", [name], True)))
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    def parse_exports(self, text: str) -> List[ExportRef]:
        exports: List[Tuple[int, ExportRef]] = []
        for match in _FN.finditer(text):
            if match.group("pub"):
                exports.append((match.start(), ExportRef(match.group("name"), "function")))
        for match in _TYPE.finditer(text):
            if match.group("pub"):
                exports.append((match.start(), ExportRef(match.group("name"), "class")))
        for match in _PUB_ITEM.finditer(text):
            exports.append((match.start(), ExportRef(match.group("name"), "variable")))
        exports.sort(key=lambda item: item[0])
        return [ref for _, ref in exports]

    def parse_functions(self, text: str) -> List[FunctionInfo]:
        return [
            FunctionInfo(
                name=match.group("name"),
                line=line_of(text, match.start("name")),
                params=[_param_name(p) for p in split_params(match.group("params"), separators=":")],
                is_async=bool(match.group("async")),
                is_exported=bool(match.group("pub")),
            )
            for match in _FN.finditer(text)
        ]

    def parse_classes(self, text: str) -> List[ClassInfo]:
        methods: Dict[str, List[str]] = {}
        for match in _IMPL.finditer(text):
            body = block_after(text, match.end()) or ""
            methods.setdefault(match.group("name"), []).extend(
                m.group("name") for m in _METHOD.finditer(body)
            )
        return [
            ClassInfo(
                name=match.group("name"),
                line=line_of(text, match.start("name")),
                is_exported=bool(match.group("pub")),
                methods=unique(methods.get(match.group("name"), [])),
            )
            for match in _TYPE.finditer(text)
        ]


__all__ = ["RustProfile"]
