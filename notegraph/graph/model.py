"""Typed node/edge graph model and its integrity rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EdgeType(str, Enum):
    """Kinds of relationship between two notes."""

    WIKILINK = "wikilink"  # [[target]]
    BACKLINK = "backlink"  # [text](target.md)
    TAG_SHARED = "tag-shared"  # notes carrying a common tag

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]


_PRECEDENCE = {EdgeType.WIKILINK: 3, EdgeType.BACKLINK: 2, EdgeType.TAG_SHARED: 1}


class GraphIntegrityError(ValueError):
    """An edge references a missing node, loops on itself, or repeats a pair."""


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


@dataclass
class Node:
    id: str
    name: str
    folder: str | None = None
    tags: list[str] = field(default_factory=list)
    size: float = 5.0
    color: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    word_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "folder": self.folder,
            "tags": list(self.tags),
            "size": self.size,
            "color": self.color,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "word_count": self.word_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            folder=data.get("folder") or None,
            tags=[str(t) for t in data.get("tags") or []],
            size=float(data.get("size") or 5.0),
            color=data.get("color"),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            word_count=int(data.get("word_count") or 0),
        )


@dataclass
class Edge:
    """Undirected relationship; source/target order only matters to PageRank."""

    source: str
    target: str
    type: EdgeType = EdgeType.WIKILINK
    weight: int = 1

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target) if self.source <= self.target else (self.target, self.source)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        try:
            edge_type = EdgeType(data.get("type", EdgeType.WIKILINK.value))
        except ValueError:
            edge_type = EdgeType.WIKILINK
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            type=edge_type,
            weight=max(1, int(data.get("weight") or 1)),
        )


@dataclass
class Graph:
    """Ordered nodes plus edges between them.

    Iteration order of both lists is part of the contract: algorithms break
    ties by it, so the same snapshot always yields the same results.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @classmethod
    def empty(cls) -> Graph:
        return cls()

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def has_node(self, node_id: str) -> bool:
        return any(n.id == node_id for n in self.nodes)

    def degree(self) -> dict[str, int]:
        """Number of distinct neighbours per node."""
        deg = {n.id: 0 for n in self.nodes}
        for edge in self.edges:
            if edge.source in deg and edge.target in deg:
                deg[edge.source] += 1
                deg[edge.target] += 1
        return deg

    def weighted_degree(self) -> dict[str, int]:
        deg = {n.id: 0 for n in self.nodes}
        for edge in self.edges:
            if edge.source in deg and edge.target in deg:
                deg[edge.source] += edge.weight
                deg[edge.target] += edge.weight
        return deg

    def subgraph(self, keep: set[str] | list[str]) -> Graph:
        """Induced subgraph on `keep`, preserving node and edge order."""
        keep_set = set(keep)
        return Graph(
            nodes=[n for n in self.nodes if n.id in keep_set],
            edges=[e for e in self.edges if e.source in keep_set and e.target in keep_set],
        )

    def validate(self, *, strict: bool = False) -> Graph:
        """Check referential integrity; returns the (possibly repaired) graph.

        With strict=True any violation raises GraphIntegrityError. Otherwise
        dangling edges and self-loops are dropped and repeated pairs are merged
        into the first occurrence by summing weights.
        """
        ids: set[str] = set()
        nodes: list[Node] = []
        for node in self.nodes:
            if node.id in ids:
                if strict:
                    raise GraphIntegrityError(f"duplicate node id: {node.id}")
                logger.warning("Dropping duplicate node %s", node.id)
                continue
            ids.add(node.id)
            nodes.append(node)

        edges: list[Edge] = []
        by_pair: dict[tuple[str, str], Edge] = {}
        for edge in self.edges:
            problem = None
            if edge.source not in ids or edge.target not in ids:
                problem = f"edge {edge.source} -> {edge.target} references a missing node"
            elif edge.source == edge.target:
                problem = f"self-loop on {edge.source}"
            elif edge.pair in by_pair:
                problem = f"duplicate edge {edge.source} -- {edge.target}"

            if problem is None:
                kept = Edge(edge.source, edge.target, edge.type, max(1, edge.weight))
                by_pair[edge.pair] = kept
                edges.append(kept)
                continue
            if strict:
                raise GraphIntegrityError(problem)
            logger.warning("Repairing graph snapshot: %s", problem)
            existing = by_pair.get(edge.pair)
            if existing is not None and edge.source != edge.target:
                existing.weight += max(1, edge.weight)
                if edge.type.precedence > existing.type.precedence:
                    existing.type = edge.type

        return Graph(nodes=nodes, edges=edges)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, strict: bool = False) -> Graph:
        """Rebuild a snapshot from its dict form and validate it."""
        nodes = [Node.from_dict(n) for n in data.get("nodes") or [] if isinstance(n, dict) and "id" in n]
        edges = [
            Edge.from_dict(e)
            for e in data.get("edges") or []
            if isinstance(e, dict) and "source" in e and "target" in e
        ]
        return cls(nodes=nodes, edges=edges).validate(strict=strict)
