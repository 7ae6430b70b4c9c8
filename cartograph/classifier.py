"""Path-based layer and domain classification."""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Pattern, Tuple

from .models import DomainGroup

API = "api"
SERVICE = "service"
MODEL = "model"
UTIL = "util"
UI = "ui"
CONFIG = "config"
TEST = "test"
OTHER = "other"

LAYERS: Tuple[str, ...] = (API, SERVICE, MODEL, UTIL, UI, CONFIG, TEST, OTHER)

# Display order and tie-break order for dominant-layer votes.
LAYER_PRIORITY: Tuple[str, ...] = LAYERS


def _segment(alternatives: str) -> Pattern[str]:
    return re.compile(rf"/(?:{alternatives})/", re.IGNORECASE)


# Evaluated in order against "/" + path; the first match wins.
LAYER_RULES: Tuple[Tuple[Pattern[str], str], ...] = (
    (_segment(r"api|routes?|handlers?|controllers?"), API),
    (_segment(r"services?|usecases?|use-cases?|domain"), SERVICE),
    (_segment(r"models?|entities|entity|schemas?|types?"), MODEL),
    (_segment(r"utils?|helpers?|lib"), UTIL),
    (_segment(r"components?|views?|pages?|ui"), UI),
    (_segment(r"config|configs|settings?"), CONFIG),
    (_segment(r"tests?|__tests__|specs?"), TEST),
)

SCAFFOLDING_DIRS = frozenset({"src", "lib", "app", "internal", "pkg", "cmd"})

ROOT_DOMAIN = "root"
MIN_DOMAIN_FILES = 2


def classify_layer(path: str) -> str:
    """Return the architectural layer for a repo-relative ``path``."""
    candidate = "/" + path.lstrip("/")
    for pattern, layer in LAYER_RULES:
        if pattern.search(candidate):
            return layer
    return OTHER


def derive_domain(path: str) -> str:
    """Return the first non-scaffolding directory segment of ``path``."""
    for part in path.split("/")[:-1]:
        if not part or part in SCAFFOLDING_DIRS or part.startswith(("_", ".")):
            continue
        return part
    return ROOT_DOMAIN


def dominant_layer(layers: Iterable[str]) -> str:
    """Majority vote over ``layers``; ties go to the earlier entry of LAYER_PRIORITY."""
    counts = Counter(layers)
    if not counts:
        return OTHER
    return min(counts, key=lambda layer: (-counts[layer], _priority(layer)))


def group_domains(paths: Iterable[str], layers: Mapping[str, str]) -> List[DomainGroup]:
    """Group ``paths`` into domains with at least two members.

    Groups are sorted by descending file count, then by name.
    """

    members: Dict[str, List[str]] = {}
    for path in sorted(paths):
        members.setdefault(derive_domain(path), []).append(path)

    groups = [
        DomainGroup(
            name=name,
            file_count=len(files),
            layer=dominant_layer(layers.get(path, OTHER) for path in files),
            files=files,
        )
        for name, files in members.items()
        if len(files) >= MIN_DOMAIN_FILES
    ]
    groups.sort(key=lambda group: (-group.file_count, group.name))
    return groups


def layer_counts(layers: Mapping[str, str]) -> Dict[str, int]:
    """Count files per layer, in LAYER_PRIORITY order, omitting empty layers."""
    counts = Counter(layers.values())
    return {layer: counts[layer] for layer in LAYER_PRIORITY if counts[layer]}


def _priority(layer: str) -> int:
    try:
        return LAYER_PRIORITY.index(layer)
    except ValueError:
        return len(LAYER_PRIORITY)


__all__ = [
    "LAYERS",
    "LAYER_PRIORITY",
    "LAYER_RULES",
    "SCAFFOLDING_DIRS",
    "classify_layer",
    "derive_domain",
    "dominant_layer",
    "group_domains",
    "layer_counts",
]
