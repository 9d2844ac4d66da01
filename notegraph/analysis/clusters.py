"""Cluster detection on top of label propagation."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from ..graph.algorithms import DEFAULT_MAX_PASSES, group_communities, label_propagation
from ..graph.model import Graph


@dataclass(frozen=True)
class Cluster:
    id: str
    label: str
    members: list[str] = field(default_factory=list)
    size: int = 0
    density: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "members": list(self.members),
            "size": self.size,
            "density": self.density,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Cluster:
        members = [str(m) for m in data.get("members") or []]
        return cls(
            id=str(data["id"]),
            label=str(data.get("label") or data["id"]),
            members=members,
            size=int(data.get("size") or len(members)),
            density=float(data.get("density") or 0.0),
        )


def _cluster_label(graph: Graph, members: list[str], position: int) -> str:
    """Most frequent member tag (alphabetical on ties), else folder, else a number."""
    nodes = graph.node_map()
    counts: Counter[str] = Counter()
    for node_id in members:
        counts.update(t.lower() for t in nodes[node_id].tags)
    if counts:
        return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]
    first = nodes[members[0]]
    return first.folder or f"Cluster {position + 1}"


def detect_clusters(
    graph: Graph,
    min_size: int = 2,
    max_iterations: int = DEFAULT_MAX_PASSES,
    resolution: float = 1.0,
    labels: dict[str, int] | None = None,
) -> list[Cluster]:
    """Communities of at least `min_size` members, largest first."""
    if labels is None:
        labels = label_propagation(graph, max_iterations=max_iterations, resolution=resolution)
    else:
        known = set(graph.node_ids)
        labels = {node: label for node, label in labels.items() if node in known}

    pairs = {e.pair for e in graph.edges if e.source != e.target}
    clusters: list[Cluster] = []
    for members in group_communities(labels):
        if len(members) < max(1, min_size):
            continue
        member_set = set(members)
        internal = sum(1 for a, b in pairs if a in member_set and b in member_set)
        possible = len(members) * (len(members) - 1) / 2
        clusters.append(
            Cluster(
                id=f"cluster-{len(clusters)}",
                label=_cluster_label(graph, members, len(clusters)),
                members=members,
                size=len(members),
                density=round(internal / possible, 3) if possible else 0.0,
            )
        )
    return clusters
