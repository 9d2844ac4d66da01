"""Analytics command - health, clusters, gaps, cadence and bridges."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from rich.console import Console

from ..analysis.clusters import Cluster
from ..analysis.report import analyze
from ..config import EngineConfig
from ..export import report_markdown
from ..offload import BetweennessRequest, ClustersRequest, GraphWorker, WorkerError
from .graph_cmd import emit_output, load_builder


def run_analytics(
    vault_path: Path,
    config: EngineConfig,
    *,
    fmt: str = "md",
    out: Path | None = None,
    granularity: str | None = None,
    top: int | None = None,
    timeout: float | None = None,
) -> int:
    """Full analytics report; betweenness and clustering run in a worker process."""
    console = Console(stderr=True)
    if granularity is not None:
        config = replace(config, granularity=granularity)
    if top is not None:
        config = replace(config, top=top)

    builder = load_builder(vault_path, config)
    graph = builder.snapshot()
    console.print(f"[dim]Analyzing {len(graph.nodes)} notes, {len(graph.edges)} edges[/dim]")

    try:
        with GraphWorker(strict=config.strict) as worker:
            betweenness = worker.run(BetweennessRequest(graph), timeout=timeout)
            clusters = worker.run(
                ClustersRequest(
                    graph,
                    min_size=config.min_cluster_size,
                    max_iterations=config.max_iterations,
                    resolution=config.resolution,
                ),
                timeout=timeout,
            )
    except (WorkerError, TimeoutError) as e:
        console.print(f"[red]Analytics failed:[/red] {e}")
        return 1

    clusters = [Cluster.from_dict(c) for c in clusters]
    report = analyze(graph, config, betweenness=betweenness, clusters=clusters).to_dict()
    report["stats"] = builder.stats().to_dict()

    if fmt == "json":
        text = json.dumps(report, indent=2, sort_keys=True) + "\n"
    else:
        text = report_markdown(report)
    emit_output(text, out, console=console, what="analytics report")
    return 0
