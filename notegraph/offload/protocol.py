"""Request/response envelopes for running algorithms off the caller's path.

Wire shapes (plain dicts, safe to pickle or JSON-encode):

    request:  {"id": int, "operation": str, "payload": <graph dict>, "parameters": {...}}
    response: {"id": int, "operation": str, "result": ...}
              {"id": int, "operation": str, "error": str}

Each operation has its own request class with typed parameters; the
operation tag is carried back unchanged so callers can route responses of
concurrent requests.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union

from ..graph.model import Graph


class Operation(str, Enum):
    BETWEENNESS = "betweenness"
    COMMUNITIES = "communities"
    PAGERANK = "pagerank"
    SHORTEST_PATH = "shortest-path"
    ALL_SHORTEST_PATHS = "all-shortest-paths"
    HEATMAP = "heatmap"
    CLUSTERS = "clusters"
    BRIDGES = "bridges"


class ProtocolError(ValueError):
    """A message does not match the envelope format."""


class WorkerError(RuntimeError):
    """An offloaded request came back as an error response."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"expected a boolean, got {value!r}")


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    return int(value)


def _as_optional_int(value: Any) -> int | None:
    return None if value is None else _as_int(value)


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


# Parameter coercion keyed by annotation text
_COERCE = {
    "bool": _as_bool,
    "int": _as_int,
    "int | None": _as_optional_int,
    "float": float,
    "str": _as_str,
}


class _Request:
    """Shared encoding for request dataclasses; `graph` is always the payload."""

    operation: ClassVar[Operation]

    def parameters(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "graph"}

    @classmethod
    def from_parameters(cls, graph: Graph, params: dict[str, Any]):
        kwargs: dict[str, Any] = {"graph": graph}
        for f in fields(cls):
            if f.name == "graph" or f.name not in params:
                continue
            try:
                kwargs[f.name] = _COERCE[f.type](params[f.name])
            except (TypeError, ValueError) as e:
                raise ProtocolError(f"{cls.operation.value}: bad parameter {f.name}: {e}") from e
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ProtocolError(f"{cls.operation.value}: {e}") from e


@dataclass(frozen=True)
class BetweennessRequest(_Request):
    graph: Graph
    operation: ClassVar[Operation] = Operation.BETWEENNESS


@dataclass(frozen=True)
class CommunitiesRequest(_Request):
    graph: Graph
    max_iterations: int = 100
    resolution: float = 1.0
    operation: ClassVar[Operation] = Operation.COMMUNITIES


@dataclass(frozen=True)
class PageRankRequest(_Request):
    graph: Graph
    damping: float = 0.85
    iterations: int = 100
    redistribute_dangling: bool = False
    operation: ClassVar[Operation] = Operation.PAGERANK


@dataclass(frozen=True)
class ShortestPathRequest(_Request):
    graph: Graph
    source: str
    target: str
    operation: ClassVar[Operation] = Operation.SHORTEST_PATH


@dataclass(frozen=True)
class AllShortestPathsRequest(_Request):
    graph: Graph
    source: str
    target: str
    operation: ClassVar[Operation] = Operation.ALL_SHORTEST_PATHS


@dataclass(frozen=True)
class HeatmapRequest(_Request):
    graph: Graph
    operation: ClassVar[Operation] = Operation.HEATMAP


@dataclass(frozen=True)
class ClustersRequest(_Request):
    graph: Graph
    min_size: int = 2
    max_iterations: int = 100
    resolution: float = 1.0
    operation: ClassVar[Operation] = Operation.CLUSTERS


@dataclass(frozen=True)
class BridgesRequest(_Request):
    graph: Graph
    top: int | None = None
    operation: ClassVar[Operation] = Operation.BRIDGES


AlgorithmRequest = Union[
    BetweennessRequest,
    CommunitiesRequest,
    PageRankRequest,
    ShortestPathRequest,
    AllShortestPathsRequest,
    HeatmapRequest,
    ClustersRequest,
    BridgesRequest,
]

REQUEST_TYPES: dict[Operation, type] = {
    cls.operation: cls
    for cls in (
        BetweennessRequest,
        CommunitiesRequest,
        PageRankRequest,
        ShortestPathRequest,
        AllShortestPathsRequest,
        HeatmapRequest,
        ClustersRequest,
        BridgesRequest,
    )
}


def encode_request(request: AlgorithmRequest, request_id: int) -> dict[str, Any]:
    """Serialize a request; the graph travels by value."""
    return {
        "id": request_id,
        "operation": request.operation.value,
        "payload": request.graph.to_dict(),
        "parameters": request.parameters(),
    }


def decode_request(message: Any, *, strict: bool = False) -> tuple[Any, AlgorithmRequest]:
    """Parse a request message into (request id, typed request)."""
    if not isinstance(message, dict):
        raise ProtocolError(f"request must be a mapping, got {type(message).__name__}")
    raw_op = message.get("operation")
    try:
        operation = Operation(raw_op)
    except ValueError:
        raise ProtocolError(f"Unknown operation: {raw_op}") from None

    payload = message.get("payload")
    if not isinstance(payload, dict):
        raise ProtocolError(f"{operation.value}: payload must be a graph mapping")
    params = message.get("parameters") or {}
    if not isinstance(params, dict):
        raise ProtocolError(f"{operation.value}: parameters must be a mapping")

    graph = Graph.from_dict(payload, strict=strict)
    return message.get("id"), REQUEST_TYPES[operation].from_parameters(graph, params)


@dataclass(frozen=True)
class Response:
    operation: str
    result: Any = None
    error: str | None = None
    request_id: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the result, or raise WorkerError for an error response."""
        if self.error is not None:
            raise WorkerError(self.error, self.operation)
        return self.result

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"id": self.request_id, "operation": self.operation}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return message

    @classmethod
    def from_message(cls, message: Any) -> Response:
        if not isinstance(message, dict) or "operation" not in message:
            raise ProtocolError("response must be a mapping with an operation")
        if "error" in message:
            return cls(str(message["operation"]), error=str(message["error"]), request_id=message.get("id"))
        if "result" not in message:
            raise ProtocolError("response carries neither result nor error")
        return cls(str(message["operation"]), result=message["result"], request_id=message.get("id"))
