"""Python extraction profile."""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .base import LanguageProfile, line_of, split_params, unique
from ..models import ClassInfo, ExportRef, FunctionInfo, ImportRef

_FROM_IMPORT = re.compile(
    r"^[ \t]*from[ \t]+(?P<source>\.+[\w.]*|[\w.]+)[ \t]+import[ \t]+(?P<names>\([^)]*\)?|[^\n#;]+)",
    re.MULTILINE,
)
_PLAIN_IMPORT = re.compile(r"^[ \t]*import[ \t]+(?P<names>[\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)", re.MULTILINE)
_ALL = re.compile(r"^__all__\s*(?:=|\+=)\s*[\[(](?P<body>[^\])]*)[\])]", re.MULTILINE)
_QUOTED_NAME = re.compile(r"""["'](\w+)["']""")
_DEF = re.compile(
    r"^(?P<indent>[ \t]*)(?P<async>async[ \t]+)?def[ \t]+(?P<name>\w+)\s*\((?P<params>[^)]*)\)",
    re.MULTILINE,
)
_CLASS = re.compile(r"^(?P<indent>[ \t]*)class[ \t]+(?P<name>\w+)", re.MULTILINE)


def _public(name: str) -> bool:
    return not name.startswith("_")


class PythonProfile(LanguageProfile):
    """Python modules: ``from``/``import`` statements, ``__all__``, defs and classes."""

    name = "python"
    extensions = frozenset({".py"})

    def parse_imports(self, text: str) -> List[ImportRef]:
        found: List[Tuple[int, ImportRef]] = []
        for match in _FROM_IMPORT.finditer(text):
            source = match.group("source")
            names = match.group("names").strip().strip("()\\")
            specifiers = []
            for part in names.replace("\\\n", " ").split(","):
                name = part.strip().split(" as ", 1)[0].strip()
                if name and name != "\\":
                    specifiers.append(name)
            found.append((match.start(), ImportRef(source, specifiers, source.startswith("."))))
        for match in _PLAIN_IMPORT.finditer(text):
            for part in match.group("names").split(","):
                module = part.strip().split(" as ", 1)[0].strip()
                if module:
                    found.append(
                        (match.start(), ImportRef(module, [module.rsplit(".", 1)[-1]], False))
                    )
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    def parse_exports(self, text: str) -> List[ExportRef]:
        kinds: Dict[str, str] = {}
        for match in _DEF.finditer(text):
            if not match.group("indent"):
                kinds.setdefault(match.group("name"), "function")
        for match in _CLASS.finditer(text):
            if not match.group("indent"):
                kinds.setdefault(match.group("name"), "class")

        names: List[str] = []
        for match in _ALL.finditer(text):
            names.extend(_QUOTED_NAME.findall(match.group("body")))
        return [ExportRef(name, kinds.get(name, "variable")) for name in unique(names)]

    def parse_functions(self, text: str) -> List[FunctionInfo]:
        return [
            FunctionInfo(
                name=match.group("name"),
                line=line_of(text, match.start("name")),
                params=[p for p in split_params(match.group("params")) if p not in ("*", "/")],
                is_async=bool(match.group("async")),
                is_exported=_public(match.group("name")),
            )
            for match in _DEF.finditer(text)
        ]

    def parse_classes(self, text: str) -> List[ClassInfo]:
        classes: List[ClassInfo] = []
        lines = text.splitlines()
        for match in _CLASS.finditer(text):
            if match.group("indent"):
                continue
            start_line = line_of(text, match.start("name"))
            classes.append(
                ClassInfo(
                    name=match.group("name"),
                    line=start_line,
                    is_exported=_public(match.group("name")),
                    methods=self._methods(lines, start_line),
                )
            )
        return classes

    @staticmethod
    def _methods(lines: List[str], class_line: int) -> List[str]:
        methods: List[str] = []
        method_indent = None
        for raw in lines[class_line:]:
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            indent = len(raw) - len(raw.lstrip())
            if indent == 0:
                break
            match = _DEF.match(raw)
            if match is None:
                continue
            if method_indent is None:
                method_indent = indent
            if indent == method_indent:
                methods.append(match.group("name"))
        return unique(methods)


__all__ = ["PythonProfile"]
