"""Language profiles and per-file symbol extraction."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

from ..classifier import classify_layer
from ..collector import detect_language
from ..models import FileRecord, FileSymbols
from .base import LanguageProfile
from .go import GoProfile
from .javascript import JavaScriptProfile
from .python import PythonProfile
from .rust import RustProfile

PROFILES: List[LanguageProfile] = [
    JavaScriptProfile(),
    PythonProfile(),
    GoProfile(),
    RustProfile(),
]

_BY_EXTENSION: Dict[str, LanguageProfile] = {
    extension: profile for profile in PROFILES for extension in profile.extensions
}


def profile_for(path: str) -> Optional[LanguageProfile]:
    """Return the profile registered for the suffix of ``path``, if any."""
    return _BY_EXTENSION.get(PurePosixPath(path).suffix.lower())


def extract(text: str, path: str) -> FileSymbols:
    """Extract symbols from ``text``; unknown languages yield empty lists."""
    profile = profile_for(path)
    if profile is None:
        return FileSymbols()
    return profile.extract(text)


def extract_file(root: Path, rel_path: str) -> Optional[FileRecord]:
    """Read ``rel_path`` under ``root`` and build its :class:`FileRecord`.

    Returns ``None`` for unsupported files. Read failures propagate as
    :class:`OSError` so the caller can count the file as skipped.
    """

    language = detect_language(rel_path)
    if language is None:
        return None
    text = (root / rel_path).read_text(encoding="utf-8", errors="replace")
    symbols = extract(text, rel_path)
    return FileRecord(
        path=rel_path,
        language=language,
        layer=classify_layer(rel_path),
        imports=symbols.imports,
        exports=symbols.exports,
        functions=symbols.functions,
        classes=symbols.classes,
    )


__all__ = [
    "GoProfile",
    "JavaScriptProfile",
    "LanguageProfile",
    "PROFILES",
    "PythonProfile",
    "RustProfile",
    "extract",
    "extract_file",
    "profile_for",
]
