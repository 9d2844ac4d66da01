"""Graph construction from note records.

The builder owns the corpus indices (notes, link references, names, aliases,
tags). Edges are derived from those indices on demand and cached until the
next add_note/remove_note, so a note that arrives later resolves links that
were dangling before it existed.

Unresolved link targets are dropped, never materialized as placeholder
nodes; unresolved_links() reports them.
"""

from __future__ import annotations

import hashlib
import logging
from collections import deque
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping

from ..models import NoteRecord, note_id
from ..vault.parser import extract_link_references
from .model import Edge, EdgeType, Graph, Node

logger = logging.getLogger(__name__)

NODE_PALETTE = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#eab308",
    "#84cc16",
    "#22c55e",
    "#10b981",
    "#14b8a6",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#a855f7",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
)
DEFAULT_NODE_COLOR = "#6366f1"

_REFERENCE_TYPES = {"wikilink": EdgeType.WIKILINK, "markdown": EdgeType.BACKLINK}


@dataclass
class BuildOptions:
    """Bounds for a graph build.

    max_nodes=None means no cap. Negative numbers are treated as zero.
    """

    center: str | None = None
    max_nodes: int | None = 1000
    max_distance: int = 3
    min_connections: int = 0
    include_orphans: bool = True

    def normalized(self) -> BuildOptions:
        return BuildOptions(
            center=self.center or None,
            max_nodes=None if self.max_nodes is None else max(0, int(self.max_nodes)),
            max_distance=max(0, int(self.max_distance)),
            min_connections=max(0, int(self.min_connections)),
            include_orphans=bool(self.include_orphans),
        )


@dataclass
class GraphFilters:
    """Post-hoc filters applied to an already bounded graph."""

    folders: list[str] | None = None
    tags: list[str] | None = None
    query: str | None = None
    date_range: tuple[datetime, datetime] | None = None
    min_connections: int | None = None
    max_nodes: int | None = None

    def is_active(self) -> bool:
        return bool(
            self.folders
            or self.tags
            or self.query
            or self.date_range
            or self.min_connections
            or self.max_nodes is not None
        )


@dataclass(frozen=True)
class GraphStats:
    total_notes: int
    total_links: int
    avg_connections: float
    max_connections: int
    orphan_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ResolvedLink:
    source: str
    target: str
    type: EdgeType
    count: int = 1


@dataclass
class _Refs:
    """Raw link references of one note, in document order."""

    items: list[tuple[str, EdgeType]] = field(default_factory=list)


class GraphBuilder:
    """Incrementally maintained note corpus that produces bounded graphs."""

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict
        self._notes: dict[str, NoteRecord] = {}
        self._order: dict[str, int] = {}
        self._next_seq = 0
        self._refs: dict[str, _Refs] = {}
        self._tags: dict[str, list[str]] = {}  # note id -> lowercase tags
        self._by_name: dict[str, set[str]] = {}
        self._by_alias: dict[str, set[str]] = {}
        self._by_tag: dict[str, set[str]] = {}
        self._edge_cache: list[Edge] | None = None
        self._adjacency_cache: dict[str, list[str]] | None = None

    # ------------------------------------------------------------------
    # Corpus maintenance
    # ------------------------------------------------------------------

    @property
    def notes(self) -> Mapping[str, NoteRecord]:
        return MappingProxyType(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._notes

    def add_note(self, note: NoteRecord) -> None:
        """Register or replace a note and recompute its references."""
        if note.id in self._notes:
            previous = self._notes[note.id]
            if (previous.folder, previous.name) != (note.folder, note.name):
                logger.warning(
                    "Note %r in %s replaces %r: both map to id %s",
                    note.name,
                    note.folder or "vault root",
                    previous.name,
                    note.id,
                )
            self._unindex(note.id)
        else:
            self._order[note.id] = self._next_seq
            self._next_seq += 1

        self._notes[note.id] = note
        self._refs[note.id] = _Refs(
            [(ref.target, _REFERENCE_TYPES[ref.kind]) for ref in extract_link_references(note.content)]
        )

        tags: list[str] = []
        for tag in note.tags:
            key = tag.strip().lstrip("#").lower()
            if key and key not in tags:
                tags.append(key)
                self._by_tag.setdefault(key, set()).add(note.id)
        self._tags[note.id] = tags

        self._by_name.setdefault(note.name.lower(), set()).add(note.id)
        for alias in note.aliases:
            self._by_alias.setdefault(alias.strip().lower(), set()).add(note.id)

        self._invalidate()
        logger.debug("Indexed note %s (%d references, %d tags)", note.id, len(self._refs[note.id].items), len(tags))

    update_note = add_note

    def remove_note(self, node_id: str) -> None:
        """Delete a note and every edge touching it. Unknown ids are ignored."""
        if node_id not in self._notes:
            return
        self._unindex(node_id)
        del self._notes[node_id]
        del self._order[node_id]
        self._invalidate()
        logger.debug("Removed note %s", node_id)

    def rebuild(self, notes: Iterable[NoteRecord]) -> None:
        """Replace the whole corpus."""
        self.clear()
        for note in notes:
            self.add_note(note)

    def clear(self) -> None:
        self._notes.clear()
        self._order.clear()
        self._refs.clear()
        self._tags.clear()
        self._by_name.clear()
        self._by_alias.clear()
        self._by_tag.clear()
        self._invalidate()

    def _unindex(self, node_id: str) -> None:
        old = self._notes[node_id]
        self._refs.pop(node_id, None)
        for tag in self._tags.pop(node_id, []):
            _discard(self._by_tag, tag, node_id)
        _discard(self._by_name, old.name.lower(), node_id)
        for alias in old.aliases:
            _discard(self._by_alias, alias.strip().lower(), node_id)

    def _invalidate(self) -> None:
        self._edge_cache = None
        self._adjacency_cache = None

    # ------------------------------------------------------------------
    # Resolution and edges
    # ------------------------------------------------------------------

    def resolve(self, target: str) -> str | None:
        """Resolve a link target to a note id, or None if it dangles.

        Tries the id itself, the folder/name path, the bare name (first
        inserted note wins) and finally aliases.
        """
        key = target.strip().replace("\\", "/")
        while key.startswith("../"):
            key = key[3:]
        if key.lower().endswith(".md"):
            key = key[:-3]
        if not key:
            return None

        lowered = key.lower()
        if lowered in self._notes:
            return lowered

        folder, _, name = key.rpartition("/")
        candidate = note_id(name, folder or None)
        if candidate in self._notes:
            return candidate

        for index in (self._by_name, self._by_alias):
            ids = index.get(name.lower())
            if ids:
                return min(ids, key=self._order.__getitem__)
        return None

    def _edge_table(self) -> list[Edge]:
        if self._edge_cache is not None:
            return self._edge_cache

        by_pair: dict[tuple[str, str], Edge] = {}
        edges: list[Edge] = []

        def bump(src: str, dst: str, edge_type: EdgeType) -> None:
            key = (src, dst) if src <= dst else (dst, src)
            edge = by_pair.get(key)
            if edge is None:
                edge = Edge(src, dst, edge_type, 1)
                by_pair[key] = edge
                edges.append(edge)
                return
            edge.weight += 1
            if edge_type.precedence > edge.type.precedence:
                edge.type = edge_type

        for src in self._notes:
            for target, edge_type in self._refs[src].items:
                dst = self.resolve(target)
                if dst is not None and dst != src:
                    bump(src, dst, edge_type)

        # Tag co-occurrence; the earlier note is the source.
        members: dict[str, list[str]] = {}
        for nid in self._notes:
            for tag in self._tags[nid]:
                for other in members.get(tag, []):
                    bump(other, nid, EdgeType.TAG_SHARED)
                members.setdefault(tag, []).append(nid)

        self._edge_cache = edges
        return edges

    def _adjacency(self) -> dict[str, list[str]]:
        if self._adjacency_cache is not None:
            return self._adjacency_cache
        adjacency: dict[str, list[str]] = {nid: [] for nid in self._notes}
        for edge in self._edge_table():
            adjacency[edge.source].append(edge.target)
            adjacency[edge.target].append(edge.source)
        self._adjacency_cache = adjacency
        return adjacency

    def _resolved_links(self, src: str) -> list[ResolvedLink]:
        counts: dict[tuple[str, EdgeType], int] = {}
        for target, edge_type in self._refs.get(src, _Refs()).items:
            dst = self.resolve(target)
            if dst is not None and dst != src:
                counts[(dst, edge_type)] = counts.get((dst, edge_type), 0) + 1
        return [ResolvedLink(src, dst, t, c) for (dst, t), c in counts.items()]

    def get_outgoing_links(self, node_id: str) -> list[ResolvedLink]:
        """Resolved link references written in this note."""
        return self._resolved_links(node_id)

    def get_backlinks(self, node_id: str) -> list[ResolvedLink]:
        """Resolved link references from other notes pointing at this note."""
        result: list[ResolvedLink] = []
        for src in self._notes:
            if src != node_id:
                result.extend(link for link in self._resolved_links(src) if link.target == node_id)
        return result

    def unresolved_links(self) -> dict[str, list[str]]:
        """Link targets that match no note, per source note."""
        result: dict[str, list[str]] = {}
        for src, refs in self._refs.items():
            missing = []
            for target, _ in refs.items:
                if self.resolve(target) is None and target not in missing:
                    missing.append(target)
            if missing:
                result[src] = missing
        return result

    def find_notes_by_tag(self, tag: str) -> list[str]:
        ids = self._by_tag.get(tag.strip().lstrip("#").lower(), set())
        return sorted(ids, key=self._order.__getitem__)

    # ------------------------------------------------------------------
    # Graph production
    # ------------------------------------------------------------------

    def build_graph(self, options: BuildOptions | None = None, **overrides) -> Graph:
        """Return a bounded graph for visualization or analysis.

        Never raises for malformed options; an unknown center or a zero node
        cap yields an empty graph.
        """
        opts = replace(options or BuildOptions(), **overrides).normalized()
        if opts.max_nodes == 0:
            return Graph.empty()

        adjacency = self._adjacency()
        center = opts.center
        if center is not None:
            if center not in self._notes:
                logger.debug("Center %s not in corpus; returning empty graph", center)
                return Graph.empty()
            candidates = list(self._neighbourhood(center, opts.max_distance))
        else:
            candidates = list(self._notes)

        keep = set(candidates)

        def degrees(ids: set[str]) -> dict[str, int]:
            return {n: sum(1 for m in adjacency[n] if m in ids) for n in ids}

        deg = degrees(keep)
        orphans = {n for n in keep if deg[n] == 0 and n != center}
        exempt: set[str] = set()
        if opts.include_orphans:
            exempt = orphans
        else:
            keep -= orphans

        if opts.min_connections > 0:
            while True:
                deg = degrees(keep)
                drop = {
                    n for n in keep if n not in exempt and n != center and deg[n] < opts.min_connections
                }
                if center is not None:
                    rest = keep - drop
                    drop |= rest - self._neighbourhood(center, opts.max_distance, within=rest).keys()
                if not drop:
                    break
                keep -= drop

        ordered = [n for n in candidates if n in keep]

        if opts.max_nodes is not None and len(ordered) > opts.max_nodes:
            deg = degrees(keep)
            weight = self._weighted_degrees(keep)
            ranked = sorted(
                ordered,
                key=lambda n: (n != center, -deg[n], -weight[n], self._order[n]),
            )
            keep = set(ranked[: opts.max_nodes])
            if center is not None:
                # truncation can cut the only route back to the center
                keep = set(self._neighbourhood(center, opts.max_distance, within=keep))
            ordered = [n for n in ordered if n in keep]
            if not opts.include_orphans:
                deg = degrees(keep)
                ordered = [n for n in ordered if deg[n] > 0 or n == center]

        return self._materialize(ordered)

    def local_graph(self, center: str, depth: int = 2) -> Graph:
        """Neighbourhood of `center` up to `depth` hops, without a node cap."""
        return self.build_graph(BuildOptions(center=center, max_distance=depth, max_nodes=None))

    def snapshot(self) -> Graph:
        """The whole corpus as a graph."""
        return self.build_graph(BuildOptions(max_nodes=None))

    def filter(self, graph: Graph, filters: GraphFilters) -> Graph:
        return filter_graph(graph, filters, self._notes)

    def _neighbourhood(
        self, center: str, max_distance: int, within: set[str] | None = None
    ) -> dict[str, int]:
        """BFS distances from center, in discovery order, up to max_distance.

        With `within`, the walk only steps onto nodes in that set.
        """
        adjacency = self._adjacency()
        distances = {center: 0}
        queue = deque([center])
        while queue:
            current = queue.popleft()
            if distances[current] >= max_distance:
                continue
            for nbr in adjacency[current]:
                if nbr not in distances and (within is None or nbr in within):
                    distances[nbr] = distances[current] + 1
                    queue.append(nbr)
        return distances

    def _weighted_degrees(self, ids: set[str]) -> dict[str, int]:
        weight = {n: 0 for n in ids}
        for edge in self._edge_table():
            if edge.source in ids and edge.target in ids:
                weight[edge.source] += edge.weight
                weight[edge.target] += edge.weight
        return weight

    def _materialize(self, ordered: list[str]) -> Graph:
        ids = set(ordered)
        adjacency = self._adjacency()
        nodes = [self._make_node(self._notes[n], len(adjacency[n])) for n in ordered]
        edges = [
            Edge(e.source, e.target, e.type, e.weight)
            for e in self._edge_table()
            if e.source in ids and e.target in ids
        ]
        return Graph(nodes=nodes, edges=edges).validate(strict=self.strict)

    def _make_node(self, note: NoteRecord, corpus_degree: int) -> Node:
        size = max(5.0, min(50.0, corpus_degree * 3 + note.word_count / 100))
        return Node(
            id=note.id,
            name=note.name,
            folder=note.folder,
            tags=list(note.tags),
            size=round(size, 2),
            color=node_color(note),
            created_at=note.created_at,
            updated_at=note.updated_at,
            word_count=note.word_count,
        )

    def stats(self) -> GraphStats:
        """Corpus-wide link statistics."""
        adjacency = self._adjacency()
        connections = [len(nbrs) for nbrs in adjacency.values()]
        avg = sum(connections) / len(connections) if connections else 0.0
        return GraphStats(
            total_notes=len(self._notes),
            total_links=len(self._edge_table()),
            avg_connections=round(avg, 1),
            max_connections=max(connections, default=0),
            orphan_count=sum(1 for c in connections if c == 0),
        )


def _discard(index: dict[str, set[str]], key: str, node_id: str) -> None:
    ids = index.get(key)
    if ids is None:
        return
    ids.discard(node_id)
    if not ids:
        del index[key]


def node_color(note: NoteRecord) -> str:
    """Stable colour from the folder, else the first tag."""
    basis = note.folder or (note.tags[0] if note.tags else None)
    if not basis:
        return DEFAULT_NODE_COLOR
    digest = hashlib.md5(basis.encode("utf-8")).hexdigest()
    return NODE_PALETTE[int(digest[:8], 16) % len(NODE_PALETTE)]


def _comparable(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def filter_graph(graph: Graph, filters: GraphFilters, notes: Mapping[str, NoteRecord] | None = None) -> Graph:
    """Apply folder, tag, search, date and size filters to a built graph."""
    notes = notes or {}
    nodes = list(graph.nodes)

    if filters.date_range:
        start, end = (_comparable(d) for d in filters.date_range)
        nodes = [n for n in nodes if n.created_at is not None and start <= _comparable(n.created_at) <= end]

    if filters.folders:
        allowed = set(filters.folders)
        nodes = [n for n in nodes if (n.folder or "") in allowed]

    if filters.tags:
        wanted = {t.lower().lstrip("#") for t in filters.tags}
        nodes = [n for n in nodes if any(t.lower() in wanted for t in n.tags)]

    if filters.min_connections:
        deg = graph.subgraph({n.id for n in nodes}).degree()
        nodes = [n for n in nodes if deg[n.id] >= filters.min_connections]

    if filters.query:
        query = filters.query.lower()

        def matches(node: Node) -> bool:
            note = notes.get(node.id)
            return (
                query in node.name.lower()
                or (note is not None and query in note.content.lower())
                or any(query in t.lower() for t in node.tags)
            )

        nodes = [n for n in nodes if matches(n)]

    if filters.max_nodes is not None and len(nodes) > max(0, filters.max_nodes):
        deg = graph.subgraph({n.id for n in nodes}).degree()
        ranked = sorted(range(len(nodes)), key=lambda i: (-deg[nodes[i].id], i))
        kept = set(ranked[: max(0, filters.max_nodes)])
        nodes = [n for i, n in enumerate(nodes) if i in kept]

    return graph.subgraph({n.id for n in nodes})
