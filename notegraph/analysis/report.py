"""Full analytics report for one graph snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import EngineConfig
from ..graph.algorithms import betweenness_centrality
from ..graph.model import Graph
from .bridges import BridgeNote, find_bridge_notes
from .clusters import Cluster, detect_clusters
from .gaps import CoverageGap, find_coverage_gaps
from .health import HealthMetrics, health_metrics, health_score
from .temporal import TemporalAnalysis, temporal_analysis


@dataclass(frozen=True)
class AnalyticsReport:
    health: HealthMetrics
    health_score: int
    clusters: list[Cluster] = field(default_factory=list)
    gaps: list[CoverageGap] = field(default_factory=list)
    temporal: TemporalAnalysis | None = None
    bridges: list[BridgeNote] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "health": self.health.to_dict(),
            "health_score": self.health_score,
            "clusters": [c.to_dict() for c in self.clusters],
            "gaps": [g.to_dict() for g in self.gaps],
            "temporal": self.temporal.to_dict() if self.temporal else None,
            "bridges": [b.to_dict() for b in self.bridges],
        }


def analyze(
    graph: Graph,
    config: EngineConfig | None = None,
    betweenness: dict[str, float] | None = None,
    clusters: list[Cluster] | None = None,
) -> AnalyticsReport:
    """Health, clusters, gaps, temporal cadence and bridges in one pass.

    Precomputed `betweenness` and `clusters` (e.g. from a GraphWorker) are
    used as given.
    """
    config = config or EngineConfig()
    if betweenness is None:
        betweenness = betweenness_centrality(graph)

    health = health_metrics(graph, sample_size=config.path_sample_size, seed=config.seed)
    if clusters is None:
        clusters = detect_clusters(
            graph,
            min_size=config.min_cluster_size,
            max_iterations=config.max_iterations,
            resolution=config.resolution,
        )
    all_gaps = find_coverage_gaps(graph, low_degree=config.low_degree)
    return AnalyticsReport(
        health=health,
        health_score=health_score(health, len(clusters), len(all_gaps)),
        clusters=clusters,
        gaps=all_gaps[: config.top],
        temporal=temporal_analysis(graph, granularity=config.granularity, window=config.window),
        bridges=find_bridge_notes(graph, top=config.top, betweenness=betweenness, clusters=clusters),
    )
