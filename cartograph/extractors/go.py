"""Go extraction profile."""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .base import LanguageProfile, line_of, split_params, unique
from ..models import ClassInfo, ExportRef, FunctionInfo, ImportRef

_SINGLE_IMPORT = re.compile(r"""^[ \t]*import[ \t]+(?:(?P<alias>[\w.]+)[ \t]+)?"(?P<source>[^"]+)\"""", re.MULTILINE)
_IMPORT_BLOCK = re.compile(r"^[ \t]*import[ \t]*\((?P<body>[^)]*)\)", re.MULTILINE)
_BLOCK_ENTRY = re.compile(r"""^[ \t]*(?:(?P<alias>[\w.]+)[ \t]+)?"(?P<source>[^"]+)\"""", re.MULTILINE)
_FUNC = re.compile(
    r"^func[ \t]*(?:\((?P<receiver>[^)]*)\)[ \t]*)?(?P<name>\w+)[ \t]*(?:\[[^\]]*\])?\((?P<params>[^)]*)\)",
    re.MULTILINE,
)
_TYPE = re.compile(r"^type[ \t]+(?P<name>\w+)(?:\[[^\]]*\])?[ \t]+(?P<kind>struct|interface)\b", re.MULTILINE)
_DECL = re.compile(r"^(?:var|const)[ \t]+(?P<name>\w+)", re.MULTILINE)


def _capitalised(name: str) -> bool:
    return name[:1].isupper()


def _receiver_type(receiver: str) -> str:
    # "s *Server" / "*Server" / "s Store[T]"
    parts = receiver.replace("*", " ").split()
    if not parts:
        return ""
    return parts[-1].split("[", 1)[0]


def _import_ref(alias: str | None, source: str) -> ImportRef:
    name = alias if alias and alias not in ("_", ".") else source.rsplit("/", 1)[-1]
    return ImportRef(source, [name], source.startswith("."))


class GoProfile(LanguageProfile):
    """Go packages; visibility follows identifier capitalisation."""

    name = "go"
    extensions = frozenset({".go"})

    def parse_imports(self, text: str) -> List[ImportRef]:
        found: List[Tuple[int, ImportRef]] = []
        for block in _IMPORT_BLOCK.finditer(text):
            offset = block.start("body")
            for entry in _BLOCK_ENTRY.finditer(block.group("body")):
                found.append((offset + entry.start(), _import_ref(entry.group("alias"), entry.group("source"))))
        for match in _SINGLE_IMPORT.finditer(text):
            found.append((match.start(), _import_ref(match.group("alias"), match.group("source"))))
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    def parse_exports(self, text: str) -> List[ExportRef]:
        exports: List[Tuple[int, ExportRef]] = []
        for match in _FUNC.finditer(text):
            if not match.group("receiver") and _capitalised(match.group("name")):
                exports.append((match.start(), ExportRef(match.group("name"), "function")))
        for match in _TYPE.finditer(text):
            if _capitalised(match.group("name")):
                exports.append((match.start(), ExportRef(match.group("name"), "class")))
        for match in _DECL.finditer(text):
            if _capitalised(match.group("name")):
                exports.append((match.start(), ExportRef(match.group("name"), "variable")))
        exports.sort(key=lambda item: item[0])
        return [ref for _, ref in exports]

    def parse_functions(self, text: str) -> List[FunctionInfo]:
        return [
            FunctionInfo(
                name=match.group("name"),
                line=line_of(text, match.start("name")),
                params=split_params(match.group("params"), separators=" "),
                is_async=False,
                is_exported=_capitalised(match.group("name")),
            )
            for match in _FUNC.finditer(text)
        ]

    def parse_classes(self, text: str) -> List[ClassInfo]:
        methods: Dict[str, List[str]] = {}
        for match in _FUNC.finditer(text):
            receiver = match.group("receiver")
            if receiver:
                methods.setdefault(_receiver_type(receiver), []).append(match.group("name"))
        return [
            ClassInfo(
                name=match.group("name"),
                line=line_of(text, match.start("name")),
                is_exported=_capitalised(match.group("name")),
                methods=unique(methods.get(match.group("name"), [])),
            )
            for match in _TYPE.finditer(text)
        ]


__all__ = ["GoProfile"]
