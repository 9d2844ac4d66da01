"""Graph model, builder and algorithms."""

from .builder import BuildOptions, GraphBuilder, GraphFilters, GraphStats, filter_graph
from .model import Edge, EdgeType, Graph, GraphIntegrityError, Node

__all__ = [
    "BuildOptions",
    "Edge",
    "EdgeType",
    "Graph",
    "GraphBuilder",
    "GraphFilters",
    "GraphIntegrityError",
    "GraphStats",
    "Node",
    "filter_graph",
]
