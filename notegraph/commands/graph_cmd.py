"""Graph commands: build, paths, rankings and communities."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import EngineConfig
from ..export import (
    print_summary,
    ranking_markdown,
    summary_markdown,
    summary_payload,
    to_csv,
    to_dot,
    to_json,
)
from ..graph.algorithms import all_shortest_paths, group_communities, modularity, shortest_path
from ..graph.builder import GraphBuilder, GraphFilters
from ..offload import BetweennessRequest, CommunitiesRequest, GraphWorker, PageRankRequest, WorkerError
from ..vault.loader import load_notes


def load_builder(vault_path: Path, config: EngineConfig) -> GraphBuilder:
    """Index every note in the vault."""
    builder = GraphBuilder(strict=config.strict)
    builder.rebuild(load_notes(vault_path))
    return builder


def emit_output(text: str, out: Path | None, *, console: Console, what: str) -> None:
    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote {what} to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def run_graph(
    vault_path: Path,
    config: EngineConfig,
    *,
    center: str | None = None,
    max_nodes: int | None = None,
    depth: int | None = None,
    folders: tuple[str, ...] = (),
    tags: tuple[str, ...] = (),
    query: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    min_connections: int | None = None,
    fmt: str = "md",
    out: Path | None = None,
    top: int = 25,
) -> int:
    """Build a (possibly local) graph, filter it and render it."""
    console = Console(stderr=True)
    builder = load_builder(vault_path, config)

    center_id = None
    if center:
        center_id = builder.resolve(center)
        if center_id is None:
            console.print(f"[yellow]Unknown note: {center}[/yellow]")
            center_id = center

    options = config.build_options(center_id)
    if max_nodes is not None:
        options.max_nodes = max_nodes
    if depth is not None:
        options.max_distance = depth
    graph = builder.build_graph(options)

    date_range = None
    if since or until:
        date_range = (since or datetime.min, until or datetime.max)
    filters = GraphFilters(
        folders=list(folders) or None,
        tags=list(tags) or None,
        query=query,
        date_range=date_range,
        min_connections=min_connections,
    )
    if filters.is_active():
        graph = builder.filter(graph, filters)

    unresolved = builder.unresolved_links()
    if unresolved:
        total = sum(len(v) for v in unresolved.values())
        console.print(f"[dim]{total} unresolved links in {len(unresolved)} notes[/dim]")

    title = f"Local graph around {center_id}" if center_id else "Note graph"
    payload = summary_payload(graph, title=title, top=top)

    if fmt == "rich":
        if out:
            rich_console = Console(record=True)
            print_summary(payload, console=rich_console)
            out.write_text(rich_console.export_text(), encoding="utf-8")
            console.print(f"Wrote graph output to {out}", style="green")
        else:
            print_summary(payload, console=Console())
        return 0

    if fmt == "json":
        text = to_json(graph)
    elif fmt == "dot":
        text = to_dot(graph, title=title)
    elif fmt == "csv":
        text = to_csv(graph)
    else:
        text = summary_markdown(payload)

    emit_output(text, out, console=console, what="graph output")
    return 0


def run_path(
    vault_path: Path,
    config: EngineConfig,
    source: str,
    target: str,
    *,
    all_paths: bool = False,
    fmt: str = "md",
) -> int:
    """Print the shortest path (or all of them) between two notes."""
    console = Console(stderr=True)
    builder = load_builder(vault_path, config)

    ids = []
    for name in (source, target):
        node = builder.resolve(name)
        if node is None:
            console.print(f"[red]Unknown note: {name}[/red]")
            return 1
        ids.append(node)

    graph = builder.snapshot()
    if all_paths:
        paths = all_shortest_paths(graph, ids[0], ids[1])
    else:
        found = shortest_path(graph, ids[0], ids[1])
        paths = [found] if found else []

    if fmt == "json":
        print(json.dumps({"source": ids[0], "target": ids[1], "paths": paths}, indent=2))
    elif not paths:
        console.print(f"No path between {ids[0]} and {ids[1]}", style="yellow")
    else:
        for path in paths:
            print(" -> ".join(path))
    return 0 if paths else 1


def run_rank(
    vault_path: Path,
    config: EngineConfig,
    *,
    by: str = "pagerank",
    fmt: str = "md",
    out: Path | None = None,
    top: int = 25,
    timeout: float | None = None,
) -> int:
    """Rank notes by PageRank or betweenness, computed in a worker process."""
    console = Console(stderr=True)
    graph = load_builder(vault_path, config).snapshot()

    if by == "betweenness":
        request = BetweennessRequest(graph)
        title = "Betweenness centrality"
    else:
        request = PageRankRequest(
            graph,
            damping=config.damping,
            iterations=config.iterations,
            redistribute_dangling=config.redistribute_dangling,
        )
        title = "PageRank"

    try:
        with GraphWorker(strict=config.strict) as worker:
            scores = worker.run(request, timeout=timeout)
    except (WorkerError, TimeoutError) as e:
        console.print(f"[red]{title} failed:[/red] {e}")
        return 1

    if fmt == "json":
        ranked = sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))[: max(0, top)]
        text = json.dumps({"metric": by, "scores": dict(ranked)}, indent=2) + "\n"
    else:
        text = ranking_markdown(title, scores, top=top)
    emit_output(text, out, console=console, what="ranking")
    return 0


def run_communities(
    vault_path: Path,
    config: EngineConfig,
    *,
    fmt: str = "md",
    out: Path | None = None,
    max_iter: int | None = None,
    timeout: float | None = None,
) -> int:
    """Label-propagation communities, computed in a worker process."""
    console = Console(stderr=True)
    graph = load_builder(vault_path, config).snapshot()
    request = CommunitiesRequest(
        graph,
        max_iterations=config.max_iterations if max_iter is None else max_iter,
        resolution=config.resolution,
    )

    try:
        with GraphWorker(strict=config.strict) as worker:
            labels = worker.run(request, timeout=timeout)
    except (WorkerError, TimeoutError) as e:
        console.print(f"[red]Community detection failed:[/red] {e}")
        return 1

    groups = group_communities(labels)
    payload = {
        "title": "Note communities",
        "vault": str(vault_path),
        "node_count": len(graph.nodes),
        "edge_count": len(graph.edges),
        "modularity": round(modularity(graph, labels), 3),
        "communities": [{"id": i, "size": len(members), "members": members} for i, members in enumerate(groups)],
    }

    if fmt == "json":
        text = json.dumps(payload, indent=2, sort_keys=True) + "\n"
    else:
        text = _communities_to_markdown(payload)
    emit_output(text, out, console=console, what="communities report")
    return 0


def _communities_to_markdown(payload: dict) -> str:
    lines: list[str] = []
    lines.append(f"## {payload['title']}")
    lines.append("")
    lines.append(f"- Nodes: {payload['node_count']}")
    lines.append(f"- Edges: {payload['edge_count']}")
    lines.append(f"- Communities: {len(payload['communities'])}")
    lines.append(f"- Modularity: {payload['modularity']}")
    lines.append("")
    for c in payload["communities"]:
        preview = ", ".join(f"`{m}`" for m in c["members"][:12])
        more = f" (+{c['size'] - 12} more)" if c["size"] > 12 else ""
        lines.append(f"- **{c['id']}** ({c['size']}): {preview}{more}")
    return "\n".join(lines).rstrip() + "\n"
