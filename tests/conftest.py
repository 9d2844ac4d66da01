"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from notegraph.graph.model import Edge, Graph, Node


def _graph_from_edges(edges, nodes=None) -> Graph:
    ids = list(nodes or [])
    for a, b in edges:
        for node in (a, b):
            if node not in ids:
                ids.append(node)
    return Graph(nodes=[Node(id=i, name=i) for i in ids], edges=[Edge(a, b) for a, b in edges])


@pytest.fixture
def make_graph():
    """Factory: make_graph([("a", "b"), ...], nodes=[...]) -> Graph with unit weights."""
    return _graph_from_edges


@pytest.fixture
def chain() -> Graph:
    """A - B - C - D - E"""
    return _graph_from_edges([("a", "b"), ("b", "c"), ("c", "d"), ("d", "e")])


@pytest.fixture
def star() -> Graph:
    """One hub, ten leaves."""
    return _graph_from_edges([("hub", f"leaf{i}") for i in range(10)])


@pytest.fixture
def two_triangles() -> Graph:
    return _graph_from_edges(
        [("a", "b"), ("b", "c"), ("a", "c"), ("d", "e"), ("e", "f"), ("d", "f")],
    )


@pytest.fixture
def write_note():
    """Write a markdown note with optional YAML frontmatter lines."""

    def _write(path: Path, body: str = "", frontmatter: list[str] | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = []
        if frontmatter:
            lines += ["---", *frontmatter, "---", ""]
        lines.append(body)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
