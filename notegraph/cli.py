"""CLI entrypoint for notegraph."""

import logging
import sys
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import CONFIG_FILENAME, ConfigError, load_config


def _auto_detect_vault(start: Path) -> Path:
    """Nearest directory holding notegraph.yml, walking up from `start`; else `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / CONFIG_FILENAME).is_file():
            return p
    return cur


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="notegraph")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the notes directory (defaults to the nearest folder with notegraph.yml, else the cwd)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help=f"Configuration file (defaults to <vault>/{CONFIG_FILENAME})",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, config_path: Path | None, verbose: bool) -> None:
    """notegraph - Knowledge graph analytics for Markdown notes.

    Build link graphs, rank notes and report on the health of a vault.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    if vault is None:
        vault = _auto_detect_vault(Path.cwd())

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    try:
        config = load_config(config_path, vault_path=vault)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj["vault"] = vault.resolve()
    ctx.obj["config"] = config


def _parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected an ISO date, got {value!r}", ctx=ctx, param=param) from None


@cli.command()
@click.option("--center", type=str, default=None, help="Build the neighbourhood of this note only")
@click.option("--depth", type=int, default=None, help="Hops from --center (default from config)")
@click.option("--max-nodes", type=int, default=None, help="Node cap (default from config)")
@click.option("--folder", "folders", multiple=True, help="Keep notes in this folder. Repeatable.")
@click.option("--tag", "tags", multiple=True, help="Keep notes with this tag. Repeatable.")
@click.option("--search", "query", type=str, default=None, help="Keep notes whose name, content or tags match")
@click.option("--since", type=str, default=None, callback=_parse_date, help="Created on or after (ISO date)")
@click.option("--until", type=str, default=None, callback=_parse_date, help="Created on or before (ISO date)")
@click.option("--min-connections", type=int, default=None, help="Drop notes with fewer connections")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "md", "json", "dot", "csv"]),
    default="md",
    show_default=True,
    help="Output format",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option("--top", type=int, default=25, show_default=True, help="How many nodes to show in top lists")
@click.pass_context
def graph(
    ctx: click.Context,
    center: str | None,
    depth: int | None,
    max_nodes: int | None,
    folders: tuple[str, ...],
    tags: tuple[str, ...],
    query: str | None,
    since: datetime | None,
    until: datetime | None,
    min_connections: int | None,
    fmt: str,
    out: Path | None,
    top: int,
) -> None:
    """Build the note graph and render it."""
    from .commands.graph_cmd import run_graph

    sys.exit(
        run_graph(
            ctx.obj["vault"],
            ctx.obj["config"],
            center=center,
            max_nodes=max_nodes,
            depth=depth,
            folders=folders,
            tags=tags,
            query=query,
            since=since,
            until=until,
            min_connections=min_connections,
            fmt=fmt,
            out=out,
            top=top,
        )
    )


@cli.command()
@click.argument("source")
@click.argument("target")
@click.option("--all", "all_paths", is_flag=True, help="List every shortest path, not just the first")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def path(ctx: click.Context, source: str, target: str, all_paths: bool, output_json: bool) -> None:
    """Shortest path between two notes (by id, name or alias)."""
    from .commands.graph_cmd import run_path

    sys.exit(
        run_path(
            ctx.obj["vault"],
            ctx.obj["config"],
            source,
            target,
            all_paths=all_paths,
            fmt="json" if output_json else "md",
        )
    )


@cli.command()
@click.option(
    "--by",
    type=click.Choice(["pagerank", "betweenness"]),
    default="pagerank",
    show_default=True,
    help="Ranking metric",
)
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option("--top", type=int, default=25, show_default=True, help="How many notes to list")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def rank(ctx: click.Context, by: str, fmt: str, out: Path | None, top: int, timeout: float | None) -> None:
    """Rank notes by PageRank or betweenness centrality."""
    from .commands.graph_cmd import run_rank

    sys.exit(run_rank(ctx.obj["vault"], ctx.obj["config"], by=by, fmt=fmt, out=out, top=top, timeout=timeout))


@cli.command("communities")
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option("--max-iter", type=int, default=None, help="Label propagation passes (default from config)")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def communities(ctx: click.Context, fmt: str, out: Path | None, max_iter: int | None, timeout: float | None) -> None:
    """Detect communities of densely linked notes."""
    from .commands.graph_cmd import run_communities

    sys.exit(
        run_communities(ctx.obj["vault"], ctx.obj["config"], fmt=fmt, out=out, max_iter=max_iter, timeout=timeout)
    )


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option(
    "--granularity",
    type=click.Choice(["day", "week", "month"]),
    default=None,
    help="Bucket size for activity trends (default from config)",
)
@click.option("--top", type=int, default=None, help="Length of ranked lists (default from config)")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def analytics(
    ctx: click.Context,
    fmt: str,
    out: Path | None,
    granularity: str | None,
    top: int | None,
    timeout: float | None,
) -> None:
    """Report graph health, clusters, coverage gaps, activity and bridge notes."""
    from .commands.analytics_cmd import run_analytics

    sys.exit(
        run_analytics(
            ctx.obj["vault"],
            ctx.obj["config"],
            fmt=fmt,
            out=out,
            granularity=granularity,
            top=top,
            timeout=timeout,
        )
    )


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Keep the graph in sync with the vault until interrupted (Ctrl+C)."""
    from .commands.watch_cmd import run_watch

    sys.exit(run_watch(ctx.obj["vault"], ctx.obj["config"]))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
