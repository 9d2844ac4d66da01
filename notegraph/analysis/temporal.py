"""Creation and update cadence of notes over time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from ..graph.model import Graph

GRANULARITIES = ("day", "week", "month")
FLAT_SLOPE = 0.01
MAX_BUCKETS = 3660

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemporalBucket:
    start: date
    created: int = 0
    updated: int = 0
    links: int = 0
    moving_average: float = 0.0

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "created": self.created,
            "updated": self.updated,
            "links": self.links,
            "moving_average": self.moving_average,
        }


@dataclass(frozen=True)
class TemporalAnalysis:
    granularity: str
    buckets: list[TemporalBucket] = field(default_factory=list)
    avg_created_per_bucket: float = 0.0
    avg_links_per_bucket: float = 0.0
    slope: float = 0.0
    trend: str = "flat"

    def to_dict(self) -> dict:
        return {
            "granularity": self.granularity,
            "buckets": [b.to_dict() for b in self.buckets],
            "avg_created_per_bucket": self.avg_created_per_bucket,
            "avg_links_per_bucket": self.avg_links_per_bucket,
            "slope": self.slope,
            "trend": self.trend,
        }


def bucket_start(value: datetime | date, granularity: str) -> date:
    day = value.date() if isinstance(value, datetime) else value
    if granularity == "week":
        return day - timedelta(days=day.weekday())
    if granularity == "month":
        return day.replace(day=1)
    return day


def _next_bucket(start: date, granularity: str) -> date:
    if granularity == "week":
        return start + timedelta(days=7)
    if granularity == "month":
        return date(start.year + start.month // 12, start.month % 12 + 1, 1)
    return start + timedelta(days=1)


def _slope(values: list[int]) -> float:
    """Least-squares slope of values against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    num = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    den = sum((i - mean_x) ** 2 for i in range(n))
    return num / den


def _month_index(day: date) -> int:
    return day.year * 12 + day.month - 1


def _span(first: date, last: date, granularity: str) -> int:
    """Number of contiguous buckets from first to last inclusive."""
    if granularity == "week":
        return (last - first).days // 7 + 1
    if granularity == "month":
        return _month_index(last) - _month_index(first) + 1
    return (last - first).days + 1


def _count(graph: Graph, granularity: str) -> tuple[dict[date, int], dict[date, int], dict[date, int]]:
    created: dict[date, int] = {}
    updated: dict[date, int] = {}
    links: dict[date, int] = {}
    nodes = graph.node_map()

    for node in graph.nodes:
        if node.created_at is not None:
            key = bucket_start(node.created_at, granularity)
            created[key] = created.get(key, 0) + 1
        if node.updated_at is not None:
            key = bucket_start(node.updated_at, granularity)
            updated[key] = updated.get(key, 0) + 1

    for edge in graph.edges:
        source = nodes.get(edge.source)
        stamp = source and (source.updated_at or source.created_at)
        if stamp is not None:
            key = bucket_start(stamp, granularity)
            links[key] = links.get(key, 0) + 1

    return created, updated, links


def temporal_analysis(
    graph: Graph,
    granularity: str = "day",
    window: int = 3,
    max_buckets: int = MAX_BUCKETS,
) -> TemporalAnalysis:
    """Bucket notes by creation/update date and summarize the trend.

    Links are dated by their source note's last update (or creation). Buckets
    are contiguous from the earliest to the latest date, empty ones included.
    When that span needs more than `max_buckets` buckets the granularity is
    coarsened (day, week, month); past that, only the latest `max_buckets`
    months are kept.
    """
    if granularity not in GRANULARITIES:
        granularity = "day"
    window = max(1, window)
    max_buckets = max(1, max_buckets)

    created, updated, links = _count(graph, granularity)
    keys = set(created) | set(updated) | set(links)
    if not keys:
        return TemporalAnalysis(granularity=granularity)

    while _span(min(keys), max(keys), granularity) > max_buckets and granularity != "month":
        coarser = GRANULARITIES[GRANULARITIES.index(granularity) + 1]
        logger.warning(
            "Dates span %d %s buckets (limit %d); using %s buckets",
            _span(min(keys), max(keys), granularity),
            granularity,
            max_buckets,
            coarser,
        )
        granularity = coarser
        created, updated, links = _count(graph, granularity)
        keys = set(created) | set(updated) | set(links)

    current, last = min(keys), max(keys)
    if _span(current, last, granularity) > max_buckets:
        first = _month_index(last) - max_buckets + 1
        current = date(first // 12, first % 12 + 1, 1)
        logger.warning(
            "Dates before %s fall outside the last %d months and are ignored",
            current.isoformat(),
            max_buckets,
        )

    buckets: list[TemporalBucket] = []
    history: list[int] = []
    while True:
        history.append(created.get(current, 0))
        recent = history[-window:]
        buckets.append(
            TemporalBucket(
                start=current,
                created=created.get(current, 0),
                updated=updated.get(current, 0),
                links=links.get(current, 0),
                moving_average=round(sum(recent) / len(recent), 3),
            )
        )
        if current >= last:
            break
        current = _next_bucket(current, granularity)

    slope = _slope(history)
    if slope > FLAT_SLOPE:
        trend = "rising"
    elif slope < -FLAT_SLOPE:
        trend = "falling"
    else:
        trend = "flat"

    return TemporalAnalysis(
        granularity=granularity,
        buckets=buckets,
        avg_created_per_bucket=round(sum(history) / len(buckets), 3),
        avg_links_per_bucket=round(sum(b.links for b in buckets) / len(buckets), 3),
        slope=round(slope, 4),
        trend=trend,
    )
