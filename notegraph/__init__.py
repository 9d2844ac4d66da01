"""notegraph - knowledge-graph construction and analytics for note vaults."""

__version__ = "0.1.0"
