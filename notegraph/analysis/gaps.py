"""Coverage gaps: topically isolated notes, tags and folders."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from ..graph.model import Graph


class GapKind(str, Enum):
    ISOLATED_NOTE = "isolated-note"
    ISOLATED_TAG = "isolated-tag"
    ISOLATED_FOLDER = "isolated-folder"


@dataclass(frozen=True)
class CoverageGap:
    kind: GapKind
    identifier: str
    node_ids: list[str] = field(default_factory=list)
    score: float = 0.0
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "identifier": self.identifier,
            "node_ids": list(self.node_ids),
            "score": self.score,
            "suggestions": list(self.suggestions),
        }


def isolation_scores(graph: Graph) -> dict[str, float]:
    """Content volume over connectivity: log1p(words) / (1 + weighted degree)."""
    weighted = graph.weighted_degree()
    return {n.id: math.log1p(max(0, n.word_count)) / (1 + weighted[n.id]) for n in graph.nodes}


def find_coverage_gaps(graph: Graph, low_degree: int = 1, top: int | None = None) -> list[CoverageGap]:
    """Rank isolated notes, single-note tags and inward-looking folders."""
    scores = isolation_scores(graph)
    degree = graph.degree()
    gaps: list[CoverageGap] = []

    for node in graph.nodes:
        if node.word_count > 0 and degree[node.id] <= low_degree:
            gaps.append(
                CoverageGap(
                    kind=GapKind.ISOLATED_NOTE,
                    identifier=node.id,
                    node_ids=[node.id],
                    score=round(scores[node.id], 4),
                    suggestions=[
                        f'Link "{node.name}" to related notes',
                        "Add tags shared with other notes",
                    ],
                )
            )

    tag_owners: dict[str, list[str]] = {}
    for node in graph.nodes:
        for tag in dict.fromkeys(t.lower() for t in node.tags):
            tag_owners.setdefault(tag, []).append(node.id)
    for tag, owners in tag_owners.items():
        if len(owners) == 1:
            gaps.append(
                CoverageGap(
                    kind=GapKind.ISOLATED_TAG,
                    identifier=tag,
                    node_ids=owners,
                    score=round(scores[owners[0]], 4),
                    suggestions=[
                        f"Create more notes tagged with #{tag}",
                        "Link the existing note to related topics",
                    ],
                )
            )

    folder_of = {n.id: n.folder for n in graph.nodes}
    folder_members: dict[str, list[str]] = {}
    for node in graph.nodes:
        if node.folder:
            folder_members.setdefault(node.folder, []).append(node.id)
    outward: set[str] = set()
    for edge in graph.edges:
        a, b = folder_of.get(edge.source), folder_of.get(edge.target)
        if a and b and a != b:
            outward.update((a, b))
    for folder, members in folder_members.items():
        if folder in outward:
            continue
        gaps.append(
            CoverageGap(
                kind=GapKind.ISOLATED_FOLDER,
                identifier=folder,
                node_ids=members,
                score=round(sum(scores[m] for m in members) / len(members), 4),
                suggestions=[
                    f'Create links from "{folder}" to other topic areas',
                    "Consider if this folder should be merged with another",
                ],
            )
        )

    gaps.sort(key=lambda g: -g.score)
    if top is not None:
        gaps = gaps[: max(0, top)]
    return gaps
