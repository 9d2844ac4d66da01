"""Bridge notes: structural cut points between parts of the graph."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..graph.algorithms import adjacency, articulation_points, betweenness_centrality
from ..graph.model import Graph
from .clusters import Cluster


@dataclass(frozen=True)
class BridgeNote:
    node_id: str
    name: str
    betweenness: float
    degree: int
    score: float  # betweenness per neighbour
    is_articulation: bool = False
    connects_clusters: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "name": self.name,
            "betweenness": self.betweenness,
            "degree": self.degree,
            "score": self.score,
            "is_articulation": self.is_articulation,
            "connects_clusters": list(self.connects_clusters),
        }


def find_bridge_notes(
    graph: Graph,
    top: int | None = None,
    betweenness: dict[str, float] | None = None,
    clusters: list[Cluster] | None = None,
) -> list[BridgeNote]:
    """Rank nodes with positive betweenness by betweenness / degree.

    Pass a precomputed `betweenness` map to avoid recomputing it; when
    `clusters` are given, each bridge lists the clusters it touches besides
    its own.
    """
    if betweenness is None:
        betweenness = betweenness_centrality(graph)
    adj = adjacency(graph)
    cut_points = articulation_points(graph)
    names = {n.id: n.name for n in graph.nodes}

    cluster_of: dict[str, str] = {}
    for cluster in clusters or []:
        for member in cluster.members:
            cluster_of[member] = cluster.id

    bridges: list[BridgeNote] = []
    for node_id, nbrs in adj.items():
        value = betweenness.get(node_id, 0.0)
        if value <= 0 or not nbrs:
            continue
        own = cluster_of.get(node_id)
        touched: list[str] = []
        for nbr in nbrs:
            other = cluster_of.get(nbr)
            if other is not None and other != own and other not in touched:
                touched.append(other)
        bridges.append(
            BridgeNote(
                node_id=node_id,
                name=names[node_id],
                betweenness=round(value, 4),
                degree=len(nbrs),
                score=round(value / len(nbrs), 4),
                is_articulation=node_id in cut_points,
                connects_clusters=touched,
            )
        )

    bridges.sort(key=lambda b: (-b.score, -b.betweenness))
    if top is not None:
        bridges = bridges[: max(0, top)]
    return bridges
