"""Derived analytics over graph snapshots.

All functions are pure: they take a Graph and parameters and return records.
"""

from .bridges import BridgeNote, find_bridge_notes
from .clusters import Cluster, detect_clusters
from .gaps import CoverageGap, GapKind, find_coverage_gaps
from .health import HealthMetrics, health_metrics, health_score
from .report import AnalyticsReport, analyze
from .temporal import TemporalAnalysis, TemporalBucket, temporal_analysis

__all__ = [
    "AnalyticsReport",
    "BridgeNote",
    "Cluster",
    "CoverageGap",
    "GapKind",
    "HealthMetrics",
    "TemporalAnalysis",
    "TemporalBucket",
    "analyze",
    "detect_clusters",
    "find_bridge_notes",
    "find_coverage_gaps",
    "health_metrics",
    "health_score",
    "temporal_analysis",
]
