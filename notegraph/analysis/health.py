"""Corpus-wide health summary."""

from __future__ import annotations

import random
import statistics
from dataclasses import asdict, dataclass

from ..graph.algorithms import adjacency, bfs_distances, connected_components
from ..graph.model import Graph


@dataclass(frozen=True)
class HealthMetrics:
    total_nodes: int
    total_edges: int
    avg_degree: float
    orphan_count: int
    orphan_ratio: float
    component_count: int
    largest_component: int
    connectivity_ratio: float  # largest component / all nodes
    avg_path_length: float | None
    median_path_length: float | None
    sampled_pairs: int

    def to_dict(self) -> dict:
        return asdict(self)


def _sample_pairs(ids: list[str], sample_size: int, seed: int) -> list[tuple[str, str]]:
    n = len(ids)
    total = n * (n - 1) // 2
    if total == 0 or sample_size <= 0:
        return []
    if total <= sample_size:
        return [(ids[i], ids[j]) for i in range(n) for j in range(i + 1, n)]

    rng = random.Random(seed)
    chosen: set[tuple[int, int]] = set()
    while len(chosen) < sample_size:
        i, j = rng.sample(range(n), 2)
        chosen.add((i, j) if i < j else (j, i))
    return [(ids[i], ids[j]) for i, j in sorted(chosen)]


def health_metrics(graph: Graph, sample_size: int = 200, seed: int = 0) -> HealthMetrics:
    """Summarize size, degree, fragmentation and typical path length.

    Path lengths come from at most `sample_size` node pairs drawn with a
    seeded generator; every pair is used when there are fewer. Unreachable
    pairs are skipped.
    """
    adj = adjacency(graph)
    n = len(adj)
    edge_count = sum(len(nbrs) for nbrs in adj.values()) // 2
    orphans = sum(1 for nbrs in adj.values() if not nbrs)
    components = connected_components(graph)
    largest = max((len(c) for c in components), default=0)

    lengths: list[int] = []
    pairs = _sample_pairs(list(adj), sample_size, seed)
    distances: dict[str, dict[str, int]] = {}
    for a, b in pairs:
        if a not in distances:
            distances[a] = bfs_distances(graph, a, adj=adj)
        d = distances[a].get(b)
        if d is not None:
            lengths.append(d)

    return HealthMetrics(
        total_nodes=n,
        total_edges=edge_count,
        avg_degree=round(2 * edge_count / n, 3) if n else 0.0,
        orphan_count=orphans,
        orphan_ratio=round(orphans / n, 3) if n else 0.0,
        component_count=len(components),
        largest_component=largest,
        connectivity_ratio=round(largest / n, 3) if n else 0.0,
        avg_path_length=round(statistics.fmean(lengths), 3) if lengths else None,
        median_path_length=float(statistics.median(lengths)) if lengths else None,
        sampled_pairs=len(pairs),
    )


def health_score(metrics: HealthMetrics, cluster_count: int, gap_count: int) -> int:
    """0-100 score: linked notes 40, average degree 30, clusters 20, few gaps 10."""
    if metrics.total_nodes == 0:
        return 0
    score = (1 - metrics.orphan_ratio) * 40
    score += min(metrics.avg_degree / 5, 1) * 30
    score += min(cluster_count / 10, 1) * 20
    score += max(0.0, 1 - gap_count / 20) * 10
    return round(score)
