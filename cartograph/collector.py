"""File collection: enumerate analysable source files under a root."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional, Sequence

from .config import DEFAULT_EXCLUDE_DIRS
from .logging import get_logger

LANGUAGE_BY_SUFFIX = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
}

logger = get_logger("collector")


@dataclass
class IgnoreRule:
    """A gitignore-style exclusion pattern from .cartograph.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored or self.has_slash:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str) -> Optional[IgnoreRule]:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None
    directory_only = pattern.endswith("/")
    pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/")
    pattern = pattern.lstrip("/")
    if not pattern:
        return None
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        has_slash="/" in pattern,
    )


def detect_language(path: str) -> Optional[str]:
    """Return the language for ``path`` based on its suffix, if supported."""
    return LANGUAGE_BY_SUFFIX.get(PurePosixPath(path).suffix.lower())


def is_supported(path: str) -> bool:
    return detect_language(path) is not None


class FileCollector:
    """Walks a source tree and returns repo-relative paths of supported files."""

    def __init__(
        self,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.exclude_dirs = frozenset(exclude_dirs)
        self._rules: List[IgnoreRule] = [
            rule for rule in (build_ignore_rule(p) for p in exclude_paths) if rule is not None
        ]

    def collect(self, root: str | Path) -> List[str]:
        """Return sorted POSIX paths, relative to ``root``, of analysable files."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Source root not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {root}")

        return sorted(self._iter_files(root_path))

    def is_excluded(self, rel_path: str) -> bool:
        """True when any directory segment of ``rel_path`` is excluded or hidden."""
        parts = PurePosixPath(rel_path).parts
        for index, part in enumerate(parts[:-1]):
            if self._is_excluded_dir(part):
                return True
            if self._ignored("/".join(parts[: index + 1]), True):
                return True
        return self._ignored(rel_path, False)

    def accepts(self, rel_path: str) -> bool:
        """True when ``rel_path`` would be produced by :meth:`collect` if it existed."""
        return is_supported(rel_path) and not self.is_excluded(rel_path)

    def _iter_files(self, root: Path) -> Iterator[str]:
        def _on_error(exc: OSError) -> None:
            logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            current = Path(dirpath)
            rel_dir = current.relative_to(root).as_posix() if current != root else ""

            kept = []
            for name in dirnames:
                if self._is_excluded_dir(name):
                    continue
                rel = f"{rel_dir}/{name}" if rel_dir else name
                if self._ignored(rel, True):
                    continue
                kept.append(name)
            dirnames[:] = sorted(kept)

            for filename in filenames:
                if not is_supported(filename):
                    continue
                rel = f"{rel_dir}/{filename}" if rel_dir else filename
                if self._ignored(rel, False):
                    continue
                yield rel

    def _is_excluded_dir(self, name: str) -> bool:
        return name in self.exclude_dirs or name.startswith(".")

    def _ignored(self, rel_path: str, is_dir: bool) -> bool:
        return any(rule.matches(rel_path, is_dir) for rule in self._rules)


__all__ = [
    "FileCollector",
    "IgnoreRule",
    "LANGUAGE_BY_SUFFIX",
    "build_ignore_rule",
    "detect_language",
    "is_supported",
]
