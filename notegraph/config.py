"""Engine configuration loaded from notegraph.yml."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .graph.builder import BuildOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "notegraph.yml"
STRICT_ENV = "NOTEGRAPH_STRICT"


class ConfigError(ValueError):
    """The configuration file exists but cannot be parsed."""


@dataclass
class EngineConfig:
    # build
    max_nodes: int | None = 1000
    max_distance: int = 3
    min_connections: int = 0
    include_orphans: bool = True
    # pagerank
    damping: float = 0.85
    iterations: int = 100
    redistribute_dangling: bool = False
    # communities
    max_iterations: int = 100
    resolution: float = 1.0
    min_cluster_size: int = 2
    # analytics
    path_sample_size: int = 200
    seed: int = 0
    top: int = 10
    low_degree: int = 1
    granularity: str = "day"
    window: int = 3
    strict: bool = False

    def build_options(self, center: str | None = None) -> BuildOptions:
        return BuildOptions(
            center=center,
            max_nodes=self.max_nodes,
            max_distance=self.max_distance,
            min_connections=self.min_connections,
            include_orphans=self.include_orphans,
        )


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int(value: Any, default: int, *, minimum: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return max(minimum, int(value))
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float, *, low: float, high: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if low < number <= high else default


def _bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
    return default


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """Build a config from parsed YAML; unknown keys and bad values fall back to defaults."""
    d = EngineConfig()
    build = _coerce_dict(data.get("build"))
    pagerank = _coerce_dict(data.get("pagerank"))
    communities = _coerce_dict(data.get("communities"))
    analytics = _coerce_dict(data.get("analytics"))

    max_nodes = build.get("max_nodes", d.max_nodes)
    granularity = str(analytics.get("granularity", d.granularity)).strip().lower()

    return EngineConfig(
        max_nodes=None if max_nodes is None else _int(max_nodes, d.max_nodes or 0),
        max_distance=_int(build.get("max_distance"), d.max_distance),
        min_connections=_int(build.get("min_connections"), d.min_connections),
        include_orphans=_bool(build.get("include_orphans"), d.include_orphans),
        damping=_float(pagerank.get("damping"), d.damping, low=0.0, high=1.0),
        iterations=_int(pagerank.get("iterations"), d.iterations),
        redistribute_dangling=_bool(pagerank.get("redistribute_dangling"), d.redistribute_dangling),
        max_iterations=_int(communities.get("max_iterations"), d.max_iterations),
        resolution=_float(communities.get("resolution"), d.resolution, low=0.0, high=float("inf")),
        min_cluster_size=_int(communities.get("min_cluster_size"), d.min_cluster_size, minimum=1),
        path_sample_size=_int(analytics.get("path_sample_size"), d.path_sample_size),
        seed=_int(analytics.get("seed"), d.seed),
        top=_int(analytics.get("top"), d.top),
        low_degree=_int(analytics.get("low_degree"), d.low_degree),
        granularity=granularity if granularity in ("day", "week", "month") else d.granularity,
        window=_int(analytics.get("window"), d.window, minimum=1),
        strict=_bool(data.get("strict"), d.strict),
    )


def load_config(path: Path | None = None, vault_path: Path | None = None) -> EngineConfig:
    """Load configuration from `path`, else `<vault>/notegraph.yml`, else defaults.

    NOTEGRAPH_STRICT in the environment overrides the `strict` setting.
    """
    if path is None and vault_path is not None:
        candidate = Path(vault_path) / CONFIG_FILENAME
        path = candidate if candidate.exists() else None

    data: dict[str, Any] = {}
    if path is not None:
        try:
            data = _coerce_dict(yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {})
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        logger.debug("Loaded config from %s", path)

    config = config_from_dict(data)
    env = os.environ.get(STRICT_ENV)
    if env is not None:
        config.strict = _bool(env, config.strict)
    return config
