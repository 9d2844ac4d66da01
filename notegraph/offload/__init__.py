"""Run expensive graph algorithms in a separate process."""

from .protocol import (
    AlgorithmRequest,
    AllShortestPathsRequest,
    BetweennessRequest,
    BridgesRequest,
    ClustersRequest,
    CommunitiesRequest,
    HeatmapRequest,
    Operation,
    PageRankRequest,
    ProtocolError,
    Response,
    ShortestPathRequest,
    WorkerError,
    decode_request,
    encode_request,
)
from .worker import GraphWorker, WorkerDiscardedError, handle_message

__all__ = [
    "AlgorithmRequest",
    "AllShortestPathsRequest",
    "BetweennessRequest",
    "BridgesRequest",
    "ClustersRequest",
    "CommunitiesRequest",
    "GraphWorker",
    "HeatmapRequest",
    "Operation",
    "PageRankRequest",
    "ProtocolError",
    "Response",
    "ShortestPathRequest",
    "WorkerDiscardedError",
    "WorkerError",
    "decode_request",
    "encode_request",
    "handle_message",
]
