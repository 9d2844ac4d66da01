"""Render graphs and reports as JSON, CSV, DOT and Markdown."""

from __future__ import annotations

import csv
import io
import json

from rich.console import Console
from rich.table import Table

from .graph.model import Graph


def to_json(graph: Graph) -> str:
    return json.dumps(graph.to_dict(), indent=2) + "\n"


def to_csv(graph: Graph) -> str:
    """Node table, a blank line, then the edge table."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    degree = graph.degree()

    writer.writerow(["Node ID", "Node Name", "Folder", "Tags", "Connections", "Size"])
    for node in graph.nodes:
        writer.writerow([node.id, node.name, node.folder or "", ";".join(node.tags), degree[node.id], node.size])

    writer.writerow([])
    writer.writerow(["Edge Source", "Edge Target", "Type", "Weight"])
    for edge in graph.edges:
        writer.writerow([edge.source, edge.target, edge.type.value, edge.weight])
    return buf.getvalue()


def to_dot(graph: Graph, *, title: str = "Note graph") -> str:
    def esc(s: str) -> str:
        return s.replace("\\", "\\\\").replace('"', '\\"')

    lines = [
        "graph notes {",
        f'  label="{esc(title)}";',
        "  labelloc=t;",
        "  bgcolor=\"#0f1115\";",
        "  graph [fontname=\"Helvetica\"];",
        "  node [fontname=\"Helvetica\", fontsize=10, style=filled, fontcolor=\"#e6e6e6\", color=\"#3a4154\"];",
        "  edge [color=\"#3a4154\"];",
    ]
    for node in graph.nodes:
        fill = node.color or "#1b1f2a"
        lines.append(f'  "{esc(node.id)}" [label="{esc(node.name)}"; fillcolor="{fill}"];')

    for edge in graph.edges:
        style = "dashed" if edge.type.value == "tag-shared" else "solid"
        width = min(4.0, 0.8 + 0.4 * (edge.weight - 1))
        lines.append(f'  "{esc(edge.source)}" -- "{esc(edge.target)}" [style={style}; penwidth={width:.1f}];')

    lines.append("}")
    return "\n".join(lines) + "\n"


def summary_payload(graph: Graph, *, title: str, top: int = 25) -> dict:
    """Counts plus the most connected nodes."""
    degree = graph.degree()
    weighted = graph.weighted_degree()
    rows = [
        {"id": n.id, "name": n.name, "degree": degree[n.id], "weight": weighted[n.id]}
        for n in graph.nodes
    ]
    rows.sort(key=lambda r: (-r["degree"], -r["weight"], r["id"]))
    return {
        "title": title,
        "node_count": len(graph.nodes),
        "edge_count": len(graph.edges),
        "top_connected": rows[: max(0, top)],
    }


def summary_markdown(payload: dict) -> str:
    lines: list[str] = []
    lines.append(f"## {payload['title']}")
    lines.append("")
    lines.append(f"- Nodes: {payload['node_count']}")
    lines.append(f"- Edges: {payload['edge_count']}")
    lines.append("")
    lines.append("### Most connected")
    lines.append("")
    lines.append("| Node | Degree | Weight |")
    lines.append("|---|---:|---:|")
    for r in payload["top_connected"]:
        lines.append(f"| `{r['id']}` | {r['degree']} | {r['weight']} |")
    return "\n".join(lines).rstrip() + "\n"


def print_summary(payload: dict, *, console: Console) -> None:
    console.print(f"[bold]{payload['title']}[/bold]")
    console.print(f"Nodes: {payload['node_count']}  Edges: {payload['edge_count']}")
    console.print()

    t = Table(title="Most connected", show_header=True, header_style="bold")
    t.add_column("Node", style="cyan", no_wrap=True)
    t.add_column("Degree", justify="right")
    t.add_column("Weight", justify="right")
    for r in payload["top_connected"]:
        t.add_row(str(r["id"]), str(r["degree"]), str(r["weight"]))
    console.print(t)


def ranking_markdown(title: str, scores: dict[str, float], *, top: int = 25) -> str:
    """Markdown table of the highest scores, ties broken by id."""
    ranked = sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))[: max(0, top)]
    lines = [f"## {title}", "", "| Node | Score |", "|---|---:|"]
    lines.extend(f"| `{node}` | {score:.4f} |" for node, score in ranked)
    return "\n".join(lines) + "\n"


def report_markdown(report: dict) -> str:
    """Markdown rendering of AnalyticsReport.to_dict()."""
    health = report["health"]
    lines: list[str] = []
    lines.append("## Graph analytics")
    lines.append("")
    lines.append(f"- Health score: {report['health_score']}/100")
    lines.append(f"- Nodes: {health['total_nodes']}  Edges: {health['total_edges']}")
    lines.append(f"- Average degree: {health['avg_degree']}")
    lines.append(f"- Orphans: {health['orphan_count']} ({health['orphan_ratio']:.1%})")
    lines.append(f"- Components: {health['component_count']} (connectivity {health['connectivity_ratio']:.1%})")
    if health["avg_path_length"] is not None:
        lines.append(
            f"- Path length: avg {health['avg_path_length']}, median {health['median_path_length']}"
            f" ({health['sampled_pairs']} pairs)"
        )
    lines.append("")

    lines.append("### Clusters")
    lines.append("")
    lines.append("| Cluster | Label | Size | Density |")
    lines.append("|---|---|---:|---:|")
    for c in report["clusters"]:
        lines.append(f"| {c['id']} | {c['label']} | {c['size']} | {c['density']} |")
    lines.append("")

    lines.append("### Bridge notes")
    lines.append("")
    lines.append("| Note | Betweenness | Degree | Cut point | Connects |")
    lines.append("|---|---:|---:|---|---|")
    for b in report["bridges"]:
        cut = "yes" if b["is_articulation"] else ""
        lines.append(
            f"| `{b['node_id']}` | {b['betweenness']} | {b['degree']} | {cut} | {', '.join(b['connects_clusters'])} |"
        )
    lines.append("")

    lines.append("### Coverage gaps")
    lines.append("")
    for g in report["gaps"]:
        lines.append(f"- **{g['kind']}** `{g['identifier']}` (score {g['score']}): {g['suggestions'][0]}")
    lines.append("")

    temporal = report.get("temporal")
    if temporal and temporal["buckets"]:
        lines.append(f"### Activity per {temporal['granularity']} (trend: {temporal['trend']})")
        lines.append("")
        lines.append("| Period | Created | Updated | Links | Moving avg |")
        lines.append("|---|---:|---:|---:|---:|")
        for b in temporal["buckets"]:
            lines.append(f"| {b['start']} | {b['created']} | {b['updated']} | {b['links']} | {b['moving_average']} |")
    return "\n".join(lines).rstrip() + "\n"
