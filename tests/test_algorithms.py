import pytest

from notegraph.graph.algorithms import (
    adjacency,
    all_shortest_paths,
    articulation_points,
    bfs_distances,
    betweenness_centrality,
    connected_components,
    connection_heatmap,
    graph_density,
    group_communities,
    label_propagation,
    modularity,
    pagerank,
    shortest_path,
)
from notegraph.graph.model import Graph

SQUARE = [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]


def test_betweenness_on_chain(chain: Graph) -> None:
    assert betweenness_centrality(chain) == pytest.approx({"a": 0, "b": 3, "c": 4, "d": 3, "e": 0})


def test_betweenness_on_star(star: Graph) -> None:
    scores = betweenness_centrality(star)
    assert scores["hub"] == pytest.approx(45.0)
    assert all(scores[f"leaf{i}"] == 0 for i in range(10))


def test_betweenness_splits_equal_paths(make_graph) -> None:
    scores = betweenness_centrality(make_graph(SQUARE))
    assert scores == pytest.approx({"a": 0.5, "b": 0.5, "c": 0.5, "d": 0.5})


def test_betweenness_empty_graph() -> None:
    assert betweenness_centrality(Graph.empty()) == {}


def test_shortest_path_prefers_first_stored_edge(make_graph) -> None:
    graph = make_graph(SQUARE)
    assert shortest_path(graph, "a", "d") == ["a", "b", "d"]
    assert shortest_path(graph, "a", "a") == ["a"]


def test_shortest_path_unreachable_or_unknown(make_graph) -> None:
    graph = make_graph([("a", "b")], nodes=["z"])
    assert shortest_path(graph, "a", "z") is None
    assert shortest_path(graph, "a", "nope") is None


def test_all_shortest_paths(make_graph) -> None:
    graph = make_graph(SQUARE)
    assert all_shortest_paths(graph, "a", "d") == [["a", "b", "d"], ["a", "c", "d"]]
    assert all_shortest_paths(graph, "a", "b") == [["a", "b"]]
    assert all_shortest_paths(graph, "a", "missing") == []


def test_all_shortest_paths_on_grid(make_graph) -> None:
    edges = []
    for r in range(3):
        for c in range(3):
            if c < 2:
                edges.append((f"{r}{c}", f"{r}{c + 1}"))
            if r < 2:
                edges.append((f"{r}{c}", f"{r + 1}{c}"))
    paths = all_shortest_paths(make_graph(edges), "00", "22")
    assert len(paths) == 6
    assert len({tuple(p) for p in paths}) == 6
    assert all(len(p) == 5 for p in paths)


def test_pagerank_on_cycle_sums_to_one(make_graph) -> None:
    ranks = pagerank(make_graph([("a", "b"), ("b", "c"), ("c", "a")]))
    assert sum(ranks.values()) == pytest.approx(1.0)
    assert ranks["a"] == pytest.approx(1 / 3)


def test_pagerank_leaks_dangling_mass_unless_redistributed(make_graph) -> None:
    graph = make_graph([("a", "b")])
    assert sum(pagerank(graph).values()) < 1.0
    assert sum(pagerank(graph, redistribute_dangling=True).values()) == pytest.approx(1.0)


def test_pagerank_ranks_link_targets_higher(make_graph) -> None:
    graph = make_graph([("a", "b"), ("b", "c"), ("e", "d"), ("d", "c")])
    ranks = pagerank(graph)
    assert ranks["c"] > ranks["b"] > ranks["a"]
    assert ranks["b"] == pytest.approx(ranks["d"])
    assert ranks["a"] == pytest.approx(ranks["e"])


def test_pagerank_falls_back_on_bad_parameters(make_graph) -> None:
    graph = make_graph([("a", "b"), ("b", "c")])
    expected = pagerank(graph)
    assert pagerank(graph, damping=0) == expected
    assert pagerank(graph, damping=1.5) == expected
    assert pagerank(graph, iterations=-1) == expected
    assert pagerank(graph, iterations=0) == pytest.approx({"a": 1 / 3, "b": 1 / 3, "c": 1 / 3})
    assert pagerank(Graph.empty()) == {}


def test_label_propagation_separates_triangles(two_triangles: Graph) -> None:
    labels = label_propagation(two_triangles)
    assert group_communities(labels) == [["a", "b", "c"], ["d", "e", "f"]]
    assert label_propagation(two_triangles) == labels


def test_label_propagation_resolution_and_zero_passes(two_triangles: Graph) -> None:
    # b holds one vote for its own label, so a strong retention bias keeps it put
    labels = label_propagation(two_triangles, resolution=5.0)
    assert labels["b"] == 1
    assert label_propagation(two_triangles, max_iterations=0) == {n: i for i, n in enumerate("abcdef")}


def test_modularity_of_two_triangles(two_triangles: Graph) -> None:
    labels = {"a": 0, "b": 0, "c": 0, "d": 1, "e": 1, "f": 1}
    assert modularity(two_triangles, labels) == pytest.approx(0.5)
    assert modularity(Graph.empty(), {}) == 0.0


def test_density(make_graph, chain: Graph) -> None:
    assert graph_density(make_graph([("a", "b"), ("b", "c"), ("a", "c")])) == pytest.approx(1.0)
    assert graph_density(chain) == pytest.approx(0.4)
    assert graph_density(Graph.empty()) == 0.0


def test_connection_heatmap(chain: Graph) -> None:
    heat = connection_heatmap(chain)
    assert heat["b"] == {"a": 1, "c": 1}
    assert heat["a"] == {"b": 1}


def test_connected_components(make_graph) -> None:
    graph = make_graph(
        [("a", "b"), ("b", "c"), ("a", "c"), ("d", "e"), ("e", "f"), ("d", "f")],
        nodes=["z"],
    )
    assert connected_components(graph) == [["z"], ["a", "b", "c"], ["d", "e", "f"]]


def test_articulation_points(make_graph, chain: Graph, star: Graph) -> None:
    assert articulation_points(chain) == {"b", "c", "d"}
    assert articulation_points(star) == {"hub"}
    assert articulation_points(make_graph([("a", "b"), ("b", "c"), ("a", "c")])) == set()

    joined = make_graph(
        [("a", "b"), ("b", "c"), ("a", "c"), ("c", "d"), ("d", "e"), ("e", "f"), ("d", "f")]
    )
    assert articulation_points(joined) == {"c", "d"}


def test_paths_match_bfs_distances(chain: Graph, make_graph) -> None:
    grid = make_graph(SQUARE + [("d", "e"), ("b", "e")])
    for graph in (chain, grid):
        for source in graph.node_ids:
            dist = bfs_distances(graph, source)
            for target, hops in dist.items():
                assert len(shortest_path(graph, source, target)) == hops + 1
                for path in all_shortest_paths(graph, source, target):
                    assert len(path) == hops + 1
                    assert all(b in adjacency(graph)[a] for a, b in zip(path, path[1:]))


def test_pagerank_on_chain_accumulates_at_the_sink(chain: Graph) -> None:
    ranks = pagerank(chain)
    assert ranks["a"] < ranks["b"] < ranks["c"] < ranks["d"] < ranks["e"]
    assert ranks["a"] == pytest.approx(0.15 / 5)


def test_label_propagation_is_stable_after_convergence(make_graph) -> None:
    joined = make_graph(
        [("a", "b"), ("b", "c"), ("a", "c"), ("c", "d"), ("d", "e"), ("e", "f"), ("d", "f")]
    )
    runs = [label_propagation(joined, max_iterations=k) for k in range(12)]
    settled = next(k for k in range(11) if runs[k] == runs[k + 1])
    assert settled > 0
    assert all(run == runs[settled] for run in runs[settled:])
    assert label_propagation(joined) == runs[settled]
