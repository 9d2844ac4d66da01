import logging
from datetime import datetime, timezone

from notegraph.graph.builder import (
    DEFAULT_NODE_COLOR,
    NODE_PALETTE,
    BuildOptions,
    GraphBuilder,
    GraphFilters,
    filter_graph,
)
from notegraph.graph.model import EdgeType
from notegraph.models import NoteRecord


def _edges(graph) -> dict[tuple[str, str], tuple[EdgeType, int]]:
    return {(e.source, e.target): (e.type, e.weight) for e in graph.edges}


def _chain_builder(n: int = 6) -> GraphBuilder:
    """n0 -> n1 -> ... -> n{n-1} via wikilinks."""
    builder = GraphBuilder(strict=True)
    for i in range(n):
        body = f"[[n{i + 1}]]" if i + 1 < n else ""
        builder.add_note(NoteRecord.create(f"n{i}", body))
    return builder


def test_links_resolve_by_name_alias_and_report_dangling() -> None:
    builder = GraphBuilder(strict=True)
    builder.add_note(NoteRecord.create("Alpha", "links [[beta]] and [[Gamma Ray]] and [[missing]]"))
    builder.add_note(NoteRecord.create("Beta", "see [[ALPHA]]"))
    builder.add_note(NoteRecord.create("Gamma", "", aliases=["Gamma Ray"]))

    graph = builder.snapshot()
    assert graph.node_ids == ["alpha", "beta", "gamma"]
    assert _edges(graph) == {
        ("alpha", "beta"): (EdgeType.WIKILINK, 2),
        ("alpha", "gamma"): (EdgeType.WIKILINK, 1),
    }
    assert builder.unresolved_links() == {"alpha": ["missing"]}


def test_link_resolves_once_target_arrives() -> None:
    builder = GraphBuilder()
    builder.add_note(NoteRecord.create("Alpha", "[[Beta]]"))
    assert builder.snapshot().edges == []
    assert builder.unresolved_links() == {"alpha": ["Beta"]}

    builder.add_note(NoteRecord.create("Beta", ""))
    assert _edges(builder.snapshot()) == {("alpha", "beta"): (EdgeType.WIKILINK, 1)}
    assert builder.unresolved_links() == {}


def test_remove_note_drops_touching_edges_and_ignores_unknown() -> None:
    builder = _chain_builder(3)
    builder.remove_note("n1")
    builder.remove_note("does-not-exist")

    graph = builder.snapshot()
    assert graph.node_ids == ["n0", "n2"]
    assert graph.edges == []
    assert builder.unresolved_links() == {"n0": ["n1"]}


def test_update_replaces_references_and_keeps_position() -> None:
    builder = _chain_builder(3)
    builder.update_note(NoteRecord.create("n0", "[[n2]]"))

    graph = builder.snapshot()
    assert graph.node_ids == ["n0", "n1", "n2"]
    assert set(_edges(graph)) == {("n1", "n2"), ("n0", "n2")}


def test_id_collision_between_different_notes_is_logged(caplog) -> None:
    builder = GraphBuilder()
    with caplog.at_level(logging.WARNING, logger="notegraph.graph.builder"):
        builder.add_note(NoteRecord.create("a b.md", "first", folder="inbox"))
        builder.add_note(NoteRecord.create("a b.md", "edited", folder="inbox"))
        assert caplog.records == []

        builder.add_note(NoteRecord.create("a_b.md", "second", folder="inbox"))

    assert [r.levelname for r in caplog.records] == ["WARNING"]
    assert "inbox/a_b" in caplog.records[0].getMessage()
    assert builder.notes["inbox/a_b"].content == "second"


def test_markdown_links_and_folder_paths() -> None:
    builder = GraphBuilder(strict=True)
    builder.add_note(NoteRecord.create("Index", "[[Projects/Beta]] and [b](../projects/beta.md) and [c](Gamma.md)"))
    builder.add_note(NoteRecord.create("Beta", "", folder="Projects"))
    builder.add_note(NoteRecord.create("Gamma", "", folder="Areas"))

    assert _edges(builder.snapshot()) == {
        ("index", "projects/beta"): (EdgeType.WIKILINK, 2),
        ("index", "areas/gamma"): (EdgeType.BACKLINK, 1),
    }


def test_shared_tags_create_edges_with_earlier_note_as_source() -> None:
    builder = GraphBuilder(strict=True)
    builder.add_note(NoteRecord.create("A", "", tags=["ML", "python"]))
    builder.add_note(NoteRecord.create("B", "", tags=["ml"]))
    builder.add_note(NoteRecord.create("C", "[[A]]", tags=["Python", "ml"]))

    assert _edges(builder.snapshot()) == {
        ("c", "a"): (EdgeType.WIKILINK, 3),  # one link + two shared tags
        ("a", "b"): (EdgeType.TAG_SHARED, 1),
        ("b", "c"): (EdgeType.TAG_SHARED, 1),
    }
    assert builder.find_notes_by_tag("#ML") == ["a", "b", "c"]


def test_backlinks_and_outgoing_links() -> None:
    builder = GraphBuilder()
    builder.add_note(NoteRecord.create("A", "[[B]] [[B]] [[C]]"))
    builder.add_note(NoteRecord.create("B", "[[C]]"))
    builder.add_note(NoteRecord.create("C", ""))

    outgoing = {(l.target, l.count) for l in builder.get_outgoing_links("a")}
    assert outgoing == {("b", 2), ("c", 1)}
    assert sorted(l.source for l in builder.get_backlinks("c")) == ["a", "b"]


def test_max_nodes_is_never_exceeded() -> None:
    builder = _chain_builder(6)
    for cap in range(0, 8):
        assert len(builder.build_graph(BuildOptions(max_nodes=cap))) <= cap


def test_center_bounds_distance() -> None:
    builder = _chain_builder(6)
    graph = builder.build_graph(BuildOptions(center="n2", max_distance=1))
    assert graph.node_ids == ["n2", "n1", "n3"]
    assert builder.local_graph("n0", depth=2).node_ids == ["n0", "n1", "n2"]


def test_malformed_options_never_raise() -> None:
    builder = _chain_builder(4)
    assert len(builder.build_graph(BuildOptions(center="nope"))) == 0
    assert len(builder.build_graph(BuildOptions(max_nodes=0))) == 0
    assert builder.build_graph(BuildOptions(center="n1", max_distance=-3)).node_ids == ["n1"]
    assert len(builder.build_graph(BuildOptions(max_nodes=-1))) == 0
    assert len(builder.build_graph(min_connections=-5)) == 4


def test_orphans_are_kept_or_dropped() -> None:
    builder = _chain_builder(3)
    builder.add_note(NoteRecord.create("loner", "no links"))

    assert "loner" in builder.build_graph(BuildOptions(include_orphans=True)).node_ids
    assert "loner" not in builder.build_graph(BuildOptions(include_orphans=False)).node_ids


def test_min_connections_prunes_repeatedly() -> None:
    builder = GraphBuilder(strict=True)
    builder.add_note(NoteRecord.create("a", "[[b]]"))
    builder.add_note(NoteRecord.create("b", "[[c]]"))
    builder.add_note(NoteRecord.create("c", ""))
    builder.add_note(NoteRecord.create("d", "[[e]] [[f]]"))
    builder.add_note(NoteRecord.create("e", "[[f]]"))
    builder.add_note(NoteRecord.create("f", ""))

    graph = builder.build_graph(BuildOptions(min_connections=2))
    assert graph.node_ids == ["d", "e", "f"]


def test_center_is_never_pruned() -> None:
    builder = _chain_builder(3)
    graph = builder.build_graph(BuildOptions(center="n0", min_connections=2))
    assert "n0" in graph.node_ids


def _center_behind_clique() -> GraphBuilder:
    """c - a - k1, with k1..k4 all linked to each other."""
    builder = GraphBuilder(strict=True)
    builder.add_note(NoteRecord.create("c", "[[a]]"))
    builder.add_note(NoteRecord.create("a", "[[k1]]"))
    builder.add_note(NoteRecord.create("k1", "[[k2]] [[k3]] [[k4]]"))
    builder.add_note(NoteRecord.create("k2", "[[k3]] [[k4]]"))
    builder.add_note(NoteRecord.create("k3", "[[k4]]"))
    builder.add_note(NoteRecord.create("k4", ""))
    return builder


def test_pruning_drops_nodes_cut_off_from_center() -> None:
    builder = _center_behind_clique()
    graph = builder.build_graph(BuildOptions(center="c", max_distance=3, min_connections=3))
    assert graph.node_ids == ["c"]

    full = builder.build_graph(BuildOptions(center="c", max_distance=3))
    assert full.node_ids == ["c", "a", "k1", "k2", "k3", "k4"]


def test_truncation_keeps_only_nodes_reachable_from_center() -> None:
    builder = _center_behind_clique()
    graph = builder.build_graph(BuildOptions(center="c", max_distance=3, max_nodes=3))
    assert graph.node_ids == ["c"]

    graph = builder.build_graph(BuildOptions(center="a", max_distance=3, max_nodes=3))
    assert graph.node_ids == ["a", "k1", "k2"]


def test_truncation_prefers_center_then_degree() -> None:
    builder = GraphBuilder()
    builder.add_note(NoteRecord.create("leaf1", ""))
    builder.add_note(NoteRecord.create("hub", "[[leaf1]] [[leaf2]] [[leaf3]]"))
    builder.add_note(NoteRecord.create("leaf2", ""))
    builder.add_note(NoteRecord.create("leaf3", ""))

    assert builder.build_graph(BuildOptions(max_nodes=2)).node_ids == ["leaf1", "hub"]
    assert builder.build_graph(BuildOptions(center="leaf3", max_nodes=2)).node_ids == ["leaf3", "hub"]


def test_node_size_and_colour() -> None:
    builder = GraphBuilder()
    builder.add_note(NoteRecord.create("big", "", word_count=1000))
    builder.add_note(NoteRecord.create("small", "[[big]]", folder="inbox"))
    builder.add_note(NoteRecord.create("huge", "", word_count=10_000))

    nodes = builder.snapshot().node_map()
    assert nodes["big"].size == 13.0  # 3 * 1 link + 1000 / 100
    assert nodes["inbox/small"].size == 5.0
    assert nodes["huge"].size == 50.0
    assert nodes["big"].color == DEFAULT_NODE_COLOR
    assert nodes["inbox/small"].color in NODE_PALETTE


def test_stats() -> None:
    builder = _chain_builder(3)
    builder.add_note(NoteRecord.create("loner", ""))
    stats = builder.stats()
    assert stats.total_notes == 4
    assert stats.total_links == 2
    assert stats.avg_connections == 1.0
    assert stats.max_connections == 2
    assert stats.orphan_count == 1


def test_filter_graph_criteria() -> None:
    builder = GraphBuilder()
    jan = datetime(2024, 1, 10, tzinfo=timezone.utc)
    mar = datetime(2024, 3, 10)
    builder.add_note(NoteRecord.create("a", "about cats [[b]]", folder="pets", tags=["animal"], created_at=jan))
    builder.add_note(NoteRecord.create("b", "about dogs [[c]]", folder="pets", tags=["animal", "dog"], created_at=mar))
    builder.add_note(NoteRecord.create("c", "about cars", folder="misc", created_at=mar))
    graph = builder.snapshot()
    notes = builder.notes

    assert filter_graph(graph, GraphFilters(folders=["pets"]), notes).node_ids == ["pets/a", "pets/b"]
    assert filter_graph(graph, GraphFilters(tags=["DOG"]), notes).node_ids == ["pets/b"]
    assert filter_graph(graph, GraphFilters(query="cars"), notes).node_ids == ["misc/c"]
    assert filter_graph(graph, GraphFilters(min_connections=2), notes).node_ids == ["pets/b"]

    feb = (datetime(2024, 2, 1), datetime(2024, 12, 31))
    filtered = filter_graph(graph, GraphFilters(date_range=feb), notes)
    assert filtered.node_ids == ["pets/b", "misc/c"]
    assert [(e.source, e.target) for e in filtered.edges] == [("pets/b", "misc/c")]

    assert filter_graph(graph, GraphFilters(max_nodes=1), notes).node_ids == ["pets/b"]
    assert not GraphFilters().is_active()
