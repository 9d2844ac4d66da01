import csv
import io
import json

from rich.console import Console

from notegraph.analysis import analyze
from notegraph.export import (
    print_summary,
    ranking_markdown,
    report_markdown,
    summary_markdown,
    summary_payload,
    to_csv,
    to_dot,
    to_json,
)
from notegraph.graph.model import Edge, EdgeType, Graph, Node


def _graph() -> Graph:
    return Graph(
        nodes=[
            Node(id="inbox/a", name='Say "hi"', folder="inbox", tags=["x", "y"], color="#ef4444"),
            Node(id="b", name="B"),
        ],
        edges=[Edge("inbox/a", "b", EdgeType.TAG_SHARED, 3)],
    )


def test_json_is_the_snapshot_dict() -> None:
    graph = _graph()
    assert json.loads(to_json(graph)) == graph.to_dict()
    assert Graph.from_dict(json.loads(to_json(graph))) == graph


def test_csv_has_node_and_edge_tables() -> None:
    rows = list(csv.reader(io.StringIO(to_csv(_graph()))))
    assert rows[0][0] == "Node ID"
    assert rows[1] == ["inbox/a", 'Say "hi"', "inbox", "x;y", "1", "5.0"]
    assert rows[3] == []
    assert rows[4] == ["Edge Source", "Edge Target", "Type", "Weight"]
    assert rows[5] == ["inbox/a", "b", "tag-shared", "3"]


def test_dot_escapes_and_styles() -> None:
    dot = to_dot(_graph(), title="My vault")
    assert dot.startswith("graph notes {")
    assert 'label="My vault";' in dot
    assert '"inbox/a" [label="Say \\"hi\\""; fillcolor="#ef4444"];' in dot
    assert '"inbox/a" -- "b" [style=dashed; penwidth=1.6];' in dot
    assert dot.rstrip().endswith("}")


def test_summary_ranks_most_connected(chain: Graph) -> None:
    payload = summary_payload(chain, title="Chain", top=2)
    assert payload["node_count"] == 5
    assert payload["edge_count"] == 4
    assert [r["id"] for r in payload["top_connected"]] == ["b", "c"]

    md = summary_markdown(payload)
    assert md.startswith("## Chain")
    assert "| `b` | 2 | 2 |" in md


def test_print_summary_renders_table(chain: Graph) -> None:
    console = Console(record=True, width=80)
    print_summary(summary_payload(chain, title="Chain"), console=console)
    text = console.export_text()
    assert "Most connected" in text
    assert "Nodes: 5" in text


def test_ranking_markdown_orders_by_score_then_id() -> None:
    md = ranking_markdown("PageRank", {"b": 0.2, "a": 0.2, "c": 0.5}, top=2)
    lines = md.splitlines()
    assert lines[0] == "## PageRank"
    assert lines[4:] == ["| `c` | 0.5000 |", "| `a` | 0.2000 |"]


def test_report_markdown_sections(chain: Graph) -> None:
    md = report_markdown(analyze(chain).to_dict())
    assert "- Health score:" in md
    assert "### Clusters" in md
    assert "| `c` | 4.0 | 2 | yes |" in md
    assert "### Coverage gaps" in md
