"""Base class for per-language symbol extraction profiles."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Callable, FrozenSet, List, Optional, TypeVar

from ..logging import get_logger
from ..models import ClassInfo, ExportRef, FileSymbols, FunctionInfo, ImportRef

T = TypeVar("T")

logger = get_logger("extractors")


class LanguageProfile(ABC):
    """Lexical extraction rules for one family of source languages.

    Each rule is a plain regex scan over the file text. A rule that trips over
    unexpected input contributes nothing instead of failing the whole file.
    """

    name: str = "base"
    extensions: FrozenSet[str] = frozenset()

    @abstractmethod
    def parse_imports(self, text: str) -> List[ImportRef]:
        """Return imports in source order."""

    @abstractmethod
    def parse_exports(self, text: str) -> List[ExportRef]:
        """Return explicitly exported symbols."""

    @abstractmethod
    def parse_functions(self, text: str) -> List[FunctionInfo]:
        """Return function declarations ordered by line."""

    @abstractmethod
    def parse_classes(self, text: str) -> List[ClassInfo]:
        """Return class-like declarations ordered by line."""

    def extract(self, text: str) -> FileSymbols:
        return FileSymbols(
            imports=self._guard(self.parse_imports, text),
            exports=self._guard(self.parse_exports, text),
            functions=self._guard(self.parse_functions, text),
            classes=self._guard(self.parse_classes, text),
        )

    def _guard(self, rule: Callable[[str], List[T]], text: str) -> List[T]:
        try:
            return rule(text)
        except (IndexError, ValueError, re.error, RecursionError) as exc:
            logger.debug("%s rule %s gave up: %s", self.name, rule.__name__, exc)
            return []


def line_of(text: str, index: int) -> int:
    """1-based line number of character ``index``."""
    return text.count("\n", 0, index) + 1


def split_params(raw: str, *, separators: str = ":=") -> List[str]:
    """Split a parameter list on top-level commas and keep only the names."""
    params: List[str] = []
    depth = 0
    current: List[str] = []
    for char in raw:
        if char in "([{<":
            depth += 1
        elif char in ")]}>" and depth:
            depth -= 1
        if char == "," and depth == 0:
            params.append("".join(current))
            current = []
            continue
        current.append(char)
    params.append("".join(current))

    names: List[str] = []
    for param in params:
        name = param.strip()
        for separator in separators:
            name = name.split(separator, 1)[0]
        name = " ".join(name.split())
        if name:
            names.append(name)
    return names


def block_after(text: str, index: int) -> Optional[str]:
    """Return the brace-delimited block that opens at or after ``index``.

    Quotes are not tracked, so braces inside string literals can cut the block
    short; callers only use it for best-effort method listing.
    """
    start = text.find("{", index)
    if start < 0:
        return None
    depth = 0
    for position in range(start, len(text)):
        char = text[position]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start + 1 : position]
    return text[start + 1 :]


def unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


__all__ = ["LanguageProfile", "block_after", "line_of", "split_params", "unique"]
