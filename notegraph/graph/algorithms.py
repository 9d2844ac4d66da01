"""Graph algorithms over a Graph snapshot.

Every function is pure: it reads the snapshot and returns a fresh value.
Results are deterministic for a fixed node and edge order; wherever several
answers are equally valid, the one reached first while walking nodes and
edges in storage order wins.
"""

from __future__ import annotations

import math
from collections import Counter, deque

from .model import Graph

DEFAULT_DAMPING = 0.85
DEFAULT_ITERATIONS = 100
DEFAULT_MAX_PASSES = 100


def adjacency(graph: Graph) -> dict[str, list[str]]:
    """Undirected neighbour lists, in edge storage order.

    Edges touching unknown nodes and self-loops are ignored.
    """
    adj: dict[str, list[str]] = {n.id: [] for n in graph.nodes}
    seen: dict[str, set[str]] = {n: set() for n in adj}
    for edge in graph.edges:
        a, b = edge.source, edge.target
        if a == b or a not in adj or b not in adj:
            continue
        if b not in seen[a]:
            seen[a].add(b)
            adj[a].append(b)
        if a not in seen[b]:
            seen[b].add(a)
            adj[b].append(a)
    return adj


def bfs_distances(graph: Graph, source: str, *, adj: dict[str, list[str]] | None = None) -> dict[str, int]:
    """Hop distance from `source` to every reachable node."""
    adj = adj if adj is not None else adjacency(graph)
    if source not in adj:
        return {}
    dist = {source: 0}
    queue = deque([source])
    while queue:
        current = queue.popleft()
        for nbr in adj[current]:
            if nbr not in dist:
                dist[nbr] = dist[current] + 1
                queue.append(nbr)
    return dist


def shortest_path(graph: Graph, source: str, target: str) -> list[str] | None:
    """One shortest path from source to target, or None if unreachable.

    Ties between equal-length paths go to the first-discovered parent, i.e.
    to the neighbour whose edge comes first in storage order.
    """
    adj = adjacency(graph)
    if source not in adj or target not in adj:
        return None
    if source == target:
        return [source]

    parent: dict[str, str | None] = {source: None}
    queue = deque([source])
    while queue:
        current = queue.popleft()
        for nbr in adj[current]:
            if nbr in parent:
                continue
            parent[nbr] = current
            if nbr == target:
                path = [target]
                step = current
                while step is not None:
                    path.append(step)
                    step = parent[step]
                return path[::-1]
            queue.append(nbr)
    return None


def _shortest_path_dag(
    adj: dict[str, list[str]], source: str
) -> tuple[list[str], dict[str, int], dict[str, float], dict[str, list[str]]]:
    """BFS from source recording every minimum-distance predecessor.

    Returns (visit order, distance, number of shortest paths, predecessors).
    """
    order: list[str] = []
    dist = {source: 0}
    sigma: dict[str, float] = {source: 1.0}
    preds: dict[str, list[str]] = {source: []}
    queue = deque([source])
    while queue:
        current = queue.popleft()
        order.append(current)
        for nbr in adj[current]:
            if nbr not in dist:
                dist[nbr] = dist[current] + 1
                sigma[nbr] = 0.0
                preds[nbr] = []
                queue.append(nbr)
            if dist[nbr] == dist[current] + 1:
                sigma[nbr] += sigma[current]
                preds[nbr].append(current)
    return order, dist, sigma, preds


def all_shortest_paths(graph: Graph, source: str, target: str) -> list[list[str]]:
    """Every distinct shortest path from source to target.

    Paths are rebuilt front to back over the predecessor DAG, one node at a
    time in BFS order, so each partial path is produced exactly once.
    """
    adj = adjacency(graph)
    if source not in adj or target not in adj:
        return []
    if source == target:
        return [[source]]

    order, dist, _, preds = _shortest_path_dag(adj, source)
    if target not in dist:
        return []

    # Only nodes that lie on some shortest path to target matter.
    relevant = {target}
    stack = [target]
    while stack:
        node = stack.pop()
        for pred in preds[node]:
            if pred not in relevant:
                relevant.add(pred)
                stack.append(pred)

    paths_to: dict[str, list[list[str]]] = {source: [[source]]}
    for node in order:
        if node == source or node not in relevant:
            continue
        paths_to[node] = [prefix + [node] for pred in preds[node] for prefix in paths_to[pred]]
        if node == target:
            break
    return paths_to[target]


def betweenness_centrality(graph: Graph) -> dict[str, float]:
    """Pair-normalized betweenness over unordered node pairs.

    For every pair {s, t}, each node strictly between them gains the share of
    shortest s-t paths running through it. Shares are accumulated from path
    counts on the predecessor DAG (Brandes), which equals enumerating every
    shortest path; each unordered pair is reached from both ends, hence the
    final halving.
    """
    adj = adjacency(graph)
    score = {n: 0.0 for n in adj}
    for source in adj:
        order, _, sigma, preds = _shortest_path_dag(adj, source)
        delta = {n: 0.0 for n in order}
        for node in reversed(order):
            for pred in preds[node]:
                delta[pred] += sigma[pred] / sigma[node] * (1.0 + delta[node])
            if node != source:
                score[node] += delta[node]
    return {n: s / 2.0 for n, s in score.items()}


def pagerank(
    graph: Graph,
    damping: float = DEFAULT_DAMPING,
    iterations: int = DEFAULT_ITERATIONS,
    *,
    redistribute_dangling: bool = False,
) -> dict[str, float]:
    """Damped PageRank with edges read as source -> target.

    Runs exactly `iterations` rounds. Nodes without outgoing edges leak their
    rank unless `redistribute_dangling` spreads it evenly over all nodes, so
    scores on graphs with such nodes sum to less than 1.
    """
    ids = graph.node_ids
    n = len(ids)
    if n == 0:
        return {}
    if not isinstance(damping, (int, float)) or not 0 < damping <= 1:
        damping = DEFAULT_DAMPING
    if iterations < 0:
        iterations = DEFAULT_ITERATIONS

    known = set(ids)
    out_degree = {node: 0 for node in ids}
    incoming: dict[str, list[str]] = {node: [] for node in ids}
    for edge in graph.edges:
        if edge.source == edge.target or edge.source not in known or edge.target not in known:
            continue
        out_degree[edge.source] += 1
        incoming[edge.target].append(edge.source)

    base = (1.0 - damping) / n
    rank = {node: 1.0 / n for node in ids}
    for _ in range(iterations):
        leaked = 0.0
        if redistribute_dangling:
            leaked = sum(rank[node] for node in ids if out_degree[node] == 0) / n
        rank = {
            node: base + damping * (sum(rank[src] / out_degree[src] for src in incoming[node]) + leaked)
            for node in ids
        }
    return rank


def label_propagation(
    graph: Graph,
    max_iterations: int = DEFAULT_MAX_PASSES,
    resolution: float = 1.0,
) -> dict[str, int]:
    """Deterministic label propagation on the undirected view.

    Labels start as node positions. Per pass, in node order, a node adopts the
    most frequent neighbour label only if its count beats `resolution` times
    the count of the node's current label; ties among candidate labels go to
    the one seen first. Stops after a pass without changes.
    """
    ids = graph.node_ids
    adj = adjacency(graph)
    if not isinstance(resolution, (int, float)) or math.isnan(resolution) or resolution < 0:
        resolution = 1.0
    labels = {node: i for i, node in enumerate(ids)}

    for _ in range(max(0, max_iterations)):
        changed = False
        for node in ids:
            nbrs = adj[node]
            if not nbrs:
                continue
            counts = Counter(labels[m] for m in nbrs)
            current = labels[node]
            best, best_count = None, 0
            for label, count in counts.items():
                if label != current and count > best_count:
                    best, best_count = label, count
            if best is not None and best_count > resolution * counts.get(current, 0):
                labels[node] = best
                changed = True
        if not changed:
            break
    return labels


def group_communities(labels: dict[str, int]) -> list[list[str]]:
    """Group node ids by label, largest group first, ties by first appearance."""
    groups: dict[int, list[str]] = {}
    for node, label in labels.items():
        groups.setdefault(label, []).append(node)
    return sorted(groups.values(), key=len, reverse=True)


def modularity(graph: Graph, labels: dict[str, int]) -> float:
    """Newman modularity of a node -> community partition."""
    adj = adjacency(graph)
    m = sum(len(nbrs) for nbrs in adj.values()) / 2
    if m <= 0:
        return 0.0

    internal: Counter[int] = Counter()
    degree_sum: Counter[int] = Counter()
    for node, nbrs in adj.items():
        group = labels.get(node)
        if group is None:
            continue
        degree_sum[group] += len(nbrs)
        internal[group] += sum(1 for other in nbrs if labels.get(other) == group)

    q = 0.0
    for group, total in degree_sum.items():
        q += (internal[group] / 2) / m - (total / (2 * m)) ** 2
    return q


def connection_heatmap(graph: Graph) -> dict[str, dict[str, int]]:
    """Summed edge weight between every node and each of its neighbours."""
    heat: dict[str, dict[str, int]] = {n.id: {} for n in graph.nodes}
    for edge in graph.edges:
        if edge.source in heat:
            heat[edge.source][edge.target] = heat[edge.source].get(edge.target, 0) + edge.weight
        if edge.target in heat:
            heat[edge.target][edge.source] = heat[edge.target].get(edge.source, 0) + edge.weight
    return heat


def connected_components(graph: Graph) -> list[list[str]]:
    """Components in order of their first node; members in BFS order."""
    adj = adjacency(graph)
    seen: set[str] = set()
    components: list[list[str]] = []
    for start in adj:
        if start in seen:
            continue
        seen.add(start)
        component = [start]
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nbr in adj[current]:
                if nbr not in seen:
                    seen.add(nbr)
                    component.append(nbr)
                    queue.append(nbr)
        components.append(component)
    return components


def articulation_points(graph: Graph) -> set[str]:
    """Nodes whose removal increases the number of connected components."""
    adj = adjacency(graph)
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    points: set[str] = set()
    counter = 0

    for root in adj:
        if root in index:
            continue
        index[root] = low[root] = counter
        counter += 1
        root_children = 0
        # Iterative DFS: (node, parent, neighbour iterator)
        stack = [(root, None, iter(adj[root]))]
        while stack:
            node, parent, nbrs = stack[-1]
            advanced = False
            for nbr in nbrs:
                if nbr == parent:
                    continue
                if nbr in index:
                    low[node] = min(low[node], index[nbr])
                    continue
                index[nbr] = low[nbr] = counter
                counter += 1
                if node == root:
                    root_children += 1
                stack.append((nbr, node, iter(adj[nbr])))
                advanced = True
                break
            if advanced:
                continue
            stack.pop()
            if parent is not None:
                low[parent] = min(low[parent], low[node])
                if parent != root and low[node] >= index[parent]:
                    points.add(parent)
        if root_children > 1:
            points.add(root)
    return points


def graph_density(graph: Graph) -> float:
    """Realized edges over possible undirected pairs."""
    n = len(graph.nodes)
    if n < 2:
        return 0.0
    m = sum(len(nbrs) for nbrs in adjacency(graph).values()) / 2
    return m / (n * (n - 1) / 2)
