"""Configuration loading for cartograph (.cartograph.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".cartograph.yml"

DEFAULT_EXCLUDE_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        ".architecture",
        "dist",
        "build",
        "__pycache__",
        ".next",
        ".venv",
        "venv",
        ".cache",
    }
)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AnalysisConfig:
    """Limits and scheduling knobs for analysis passes."""

    max_files: int = 5000
    incremental_threshold: int = 20
    workers: int = field(default_factory=lambda: min(8, os.cpu_count() or 1))
    stale_after_seconds: float = 600.0
    debounce_seconds: float = 2.0


@dataclass
class DiagramConfig:
    """Size bounds for projected diagrams."""

    display_ceiling: int = 200
    top_domains: int = 6
    max_flows: int = 3
    flow_fan_out: int = 3


@dataclass
class ServiceConfig:
    host: str = "127.0.0.1"
    port: int = 3333


@dataclass
class CartographConfig:
    """Represents the settings defined in .cartograph.yml."""

    root: Path
    exclude_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS
    exclude_paths: List[str] = field(default_factory=list)
    output_dir: str = ".architecture"
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    diagrams: DiagramConfig = field(default_factory=DiagramConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)

    @property
    def output_path(self) -> Path:
        return self.root / self.output_dir


def load_config(config_path: Path) -> CartographConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CartographConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extra_dirs = _as_str_list(data.get("exclude_dirs"))
    exclude_dirs = DEFAULT_EXCLUDE_DIRS.union(extra_dirs)

    output_dir = _as_str(data.get("output_dir")) or ".architecture"
    # The output directory must never be analysed.
    exclude_dirs = exclude_dirs.union({Path(output_dir).name})

    analysis = AnalysisConfig()
    analysis_data = _as_dict(data.get("analysis"))
    if analysis_data:
        analysis.max_files = _positive_int(analysis_data.get("max_files"), analysis.max_files)
        analysis.incremental_threshold = _positive_int(
            analysis_data.get("incremental_threshold"), analysis.incremental_threshold
        )
        analysis.workers = _positive_int(analysis_data.get("workers"), analysis.workers)
        analysis.stale_after_seconds = _as_float(
            analysis_data.get("stale_after_seconds"), analysis.stale_after_seconds
        )
        analysis.debounce_seconds = _as_float(
            analysis_data.get("debounce_seconds"), analysis.debounce_seconds
        )

    diagrams = DiagramConfig()
    diagram_data = _as_dict(data.get("diagrams"))
    if diagram_data:
        diagrams.display_ceiling = _positive_int(
            diagram_data.get("display_ceiling"), diagrams.display_ceiling
        )
        diagrams.top_domains = _positive_int(diagram_data.get("top_domains"), diagrams.top_domains)
        diagrams.max_flows = _positive_int(diagram_data.get("max_flows"), diagrams.max_flows)
        diagrams.flow_fan_out = _positive_int(
            diagram_data.get("flow_fan_out"), diagrams.flow_fan_out
        )

    service = ServiceConfig()
    service_data = _as_dict(data.get("service"))
    if service_data:
        service.host = _as_str(service_data.get("host")) or service.host
        service.port = _positive_int(service_data.get("port"), service.port)

    return CartographConfig(
        root=root,
        exclude_dirs=exclude_dirs,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        output_dir=output_dir,
        analysis=analysis,
        diagrams=diagrams,
        service=service,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value)
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnalysisConfig",
    "CONFIG_FILENAME",
    "CartographConfig",
    "ConfigError",
    "DEFAULT_EXCLUDE_DIRS",
    "DiagramConfig",
    "ServiceConfig",
    "load_config",
]
