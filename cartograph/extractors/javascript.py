"""JavaScript and TypeScript extraction profile."""

from __future__ import annotations

import re
from typing import List, Tuple

from .base import LanguageProfile, block_after, line_of, split_params, unique
from ..models import ClassInfo, ExportRef, FunctionInfo, ImportRef

_ES_IMPORT = re.compile(
    r"""\bimport\s+(?:type\s+)?(?P<clause>[^;'"`()]*?)\s+from\s+["'](?P<source>[^"']+)["']"""
)
_SIDE_EFFECT_IMPORT = re.compile(r"""^\s*import\s+["'](?P<source>[^"']+)["']""", re.MULTILINE)
_DYNAMIC_IMPORT = re.compile(r"""\bimport\(\s*["'](?P<source>[^"']+)["']\s*\)""")
_RE_EXPORT = re.compile(
    r"""\bexport\s+(?:type\s+)?(?P<clause>\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s+from\s+["'](?P<source>[^"']+)["']"""
)
_REQUIRE = re.compile(
    r"""\b(?:const|let|var)\s+(?P<binding>\{[^}]*\}|[\w$]+)\s*=\s*require\(\s*["'](?P<source>[^"']+)["']\s*\)"""
)

_EXPORT_DECL = re.compile(
    r"\bexport\s+(?:declare\s+)?(?:async\s+)?"
    r"(?P<kind>function\*?|abstract\s+class|class|const|let|var|interface|type|enum)\s+(?P<name>[\w$]+)"
)
_EXPORT_LIST = re.compile(r"\bexport\s+\{(?P<names>[^}]*)\}(?!\s*from)")
_EXPORT_DEFAULT = re.compile(r"\bexport\s+default\b")

_FUNCTION_DECL = re.compile(
    r"(?P<export>\bexport\s+(?:default\s+)?)?(?P<async>\basync\s+)?\bfunction\b\s*\*?\s*"
    r"(?P<name>[\w$]+)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)"
)
_BOUND_FUNCTION = re.compile(
    r"(?P<export>\bexport\s+)?\b(?:const|let|var)\s+(?P<name>[\w$]+)\s*(?::\s*[^=;]+?)?=\s*"
    r"(?P<async>async\s+)?(?:function\b\s*\*?\s*[\w$]*\s*\((?P<fparams>[^)]*)\)"
    r"|(?:<[^>]*>\s*)?\((?P<params>[^)]*)\)\s*(?::\s*[^=;{]+?)?\s*=>"
    r"|(?P<single>[\w$]+)\s*=>)"
)
_CLASS_DECL = re.compile(
    r"(?P<export>\bexport\s+(?:default\s+)?)?(?:abstract\s+)?\bclass\s+(?P<name>[\w$]+)"
)
_METHOD = re.compile(
    r"^\s*(?:(?:public|private|protected|static|async|readonly|override|get|set)\s+)*"
    r"(?P<name>[\w$#]+)\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?::\s*[^{;]+)?\{",
    re.MULTILINE,
)
_NOT_METHODS = frozenset({"if", "for", "while", "switch", "catch", "function", "return", "with"})


def _is_relative(source: str) -> bool:
    return source.startswith(".") or source.startswith("/")


def _clause_specifiers(clause: str) -> List[str]:
    specifiers: List[str] = []
    clause = clause.strip()
    named = ""
    if "{" in clause:
        head, _, rest = clause.partition("{")
        named = rest.rsplit("}", 1)[0]
        clause = head
    for part in clause.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("*"):
            specifiers.append("*")
        else:
            specifiers.append(part)
    for part in named.split(","):
        part = part.strip()
        if part.startswith("type "):
            part = part[5:].strip()
        name = part.split(" as ", 1)[0].strip()
        if name:
            specifiers.append(name)
    return specifiers


class JavaScriptProfile(LanguageProfile):
    """ES modules, CommonJS and TypeScript surface forms."""

    name = "javascript"
    extensions = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"})

    def parse_imports(self, text: str) -> List[ImportRef]:
        found: List[Tuple[int, ImportRef]] = []
        for match in _ES_IMPORT.finditer(text):
            source = match.group("source")
            found.append(
                (match.start(), ImportRef(source, _clause_specifiers(match.group("clause")), _is_relative(source)))
            )
        for pattern in (_SIDE_EFFECT_IMPORT, _DYNAMIC_IMPORT):
            for match in pattern.finditer(text):
                source = match.group("source")
                found.append((match.start("source"), ImportRef(source, [], _is_relative(source))))
        for match in _RE_EXPORT.finditer(text):
            source = match.group("source")
            found.append(
                (match.start(), ImportRef(source, _clause_specifiers(match.group("clause")), _is_relative(source)))
            )
        for match in _REQUIRE.finditer(text):
            source = match.group("source")
            binding = match.group("binding")
            specifiers = _clause_specifiers(binding) if binding.startswith("{") else [binding]
            found.append((match.start(), ImportRef(source, specifiers, _is_relative(source))))
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    def parse_exports(self, text: str) -> List[ExportRef]:
        exports: List[ExportRef] = []
        for match in _EXPORT_DECL.finditer(text):
            kind = match.group("kind")
            if kind.startswith("function"):
                export_kind = "function"
            elif kind.endswith("class"):
                export_kind = "class"
            else:
                export_kind = "variable"
            exports.append(ExportRef(match.group("name"), export_kind))
        for match in _EXPORT_LIST.finditer(text):
            for part in match.group("names").split(","):
                alias = part.strip().split(" as ")[-1].strip()
                if alias and alias != "default":
                    exports.append(ExportRef(alias, "variable"))
        if _EXPORT_DEFAULT.search(text):
            exports.append(ExportRef("default", "default"))
        return exports

    def parse_functions(self, text: str) -> List[FunctionInfo]:
        functions: List[Tuple[int, FunctionInfo]] = []
        for match in _FUNCTION_DECL.finditer(text):
            functions.append(
                (
                    match.start("name"),
                    FunctionInfo(
                        name=match.group("name"),
                        line=line_of(text, match.start("name")),
                        params=split_params(match.group("params")),
                        is_async=bool(match.group("async")),
                        is_exported=bool(match.group("export")),
                    ),
                )
            )
        for match in _BOUND_FUNCTION.finditer(text):
            raw = match.group("params")
            if raw is None:
                raw = match.group("fparams")
            if raw is None:
                raw = match.group("single") or ""
            functions.append(
                (
                    match.start("name"),
                    FunctionInfo(
                        name=match.group("name"),
                        line=line_of(text, match.start("name")),
                        params=split_params(raw),
                        is_async=bool(match.group("async")),
                        is_exported=bool(match.group("export")),
                    ),
                )
            )
        functions.sort(key=lambda item: item[0])
        return [info for _, info in functions]

    def parse_classes(self, text: str) -> List[ClassInfo]:
        classes: List[ClassInfo] = []
        for match in _CLASS_DECL.finditer(text):
            body = block_after(text, match.end()) or ""
            methods = [
                m.group("name") for m in _METHOD.finditer(body) if m.group("name") not in _NOT_METHODS
            ]
            classes.append(
                ClassInfo(
                    name=match.group("name"),
                    line=line_of(text, match.start("name")),
                    is_exported=bool(match.group("export")),
                    methods=unique(methods),
                )
            )
        return classes


__all__ = ["JavaScriptProfile"]
