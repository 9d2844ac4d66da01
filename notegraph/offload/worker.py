"""Execution contexts for expensive graph algorithms.

A GraphWorker owns one child process that serves requests one at a time.
There is no way to cancel a request in flight: discard() terminates the
process and fails whatever was pending, after which the worker is dead and
a new one must be created.
"""

from __future__ import annotations

import itertools
import logging
import multiprocessing
import threading
from concurrent.futures import Future
from typing import Any, Callable

from ..analysis.bridges import find_bridge_notes
from ..analysis.clusters import detect_clusters
from ..graph.algorithms import (
    all_shortest_paths,
    betweenness_centrality,
    connection_heatmap,
    label_propagation,
    pagerank,
    shortest_path,
)
from .protocol import (
    AlgorithmRequest,
    AllShortestPathsRequest,
    BetweennessRequest,
    BridgesRequest,
    ClustersRequest,
    CommunitiesRequest,
    HeatmapRequest,
    PageRankRequest,
    ProtocolError,
    Response,
    ShortestPathRequest,
    WorkerError,
    decode_request,
    encode_request,
)

logger = logging.getLogger(__name__)


class WorkerDiscardedError(WorkerError):
    """The worker was discarded before the request completed."""


# Request type -> handler
_HANDLERS: dict[type, Callable[[Any], Any]] = {}


def register_handler(request_type: type) -> Callable:
    def decorator(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
        _HANDLERS[request_type] = func
        return func

    return decorator


def get_handler(request_type: type) -> Callable[[Any], Any] | None:
    return _HANDLERS.get(request_type)


@register_handler(BetweennessRequest)
def _betweenness(request: BetweennessRequest) -> dict[str, float]:
    return betweenness_centrality(request.graph)


@register_handler(CommunitiesRequest)
def _communities(request: CommunitiesRequest) -> dict[str, int]:
    return label_propagation(request.graph, request.max_iterations, request.resolution)


@register_handler(PageRankRequest)
def _pagerank(request: PageRankRequest) -> dict[str, float]:
    return pagerank(
        request.graph,
        request.damping,
        request.iterations,
        redistribute_dangling=request.redistribute_dangling,
    )


@register_handler(ShortestPathRequest)
def _shortest_path(request: ShortestPathRequest) -> list[str] | None:
    return shortest_path(request.graph, request.source, request.target)


@register_handler(AllShortestPathsRequest)
def _all_shortest_paths(request: AllShortestPathsRequest) -> list[list[str]]:
    return all_shortest_paths(request.graph, request.source, request.target)


@register_handler(HeatmapRequest)
def _heatmap(request: HeatmapRequest) -> dict[str, dict[str, int]]:
    return connection_heatmap(request.graph)


@register_handler(ClustersRequest)
def _clusters(request: ClustersRequest) -> list[dict]:
    clusters = detect_clusters(
        request.graph,
        min_size=request.min_size,
        max_iterations=request.max_iterations,
        resolution=request.resolution,
    )
    return [c.to_dict() for c in clusters]


@register_handler(BridgesRequest)
def _bridges(request: BridgesRequest) -> list[dict]:
    return [b.to_dict() for b in find_bridge_notes(request.graph, top=request.top)]


def handle_message(message: Any, *, strict: bool = False) -> dict[str, Any]:
    """Process one request message and return the response message.

    Never raises: malformed envelopes and algorithm failures both come back
    as error responses tagged with the request's operation.
    """
    request_id = message.get("id") if isinstance(message, dict) else None
    operation = str(message.get("operation", "")) if isinstance(message, dict) else ""
    try:
        request_id, request = decode_request(message, strict=strict)
        handler = get_handler(type(request))
        if handler is None:
            raise ProtocolError(f"No handler for operation: {operation}")
        result = handler(request)
    except Exception as e:
        logger.warning("Request %s (%s) failed: %s", request_id, operation, e)
        return Response(operation, error=str(e) or type(e).__name__, request_id=request_id).to_message()
    return Response(operation, result=result, request_id=request_id).to_message()


def _serve(conn, strict: bool) -> None:
    """Child-process loop: one request at a time until the sentinel or EOF."""
    while True:
        try:
            message = conn.recv()
        except EOFError:
            break
        if message is None:
            break
        conn.send(handle_message(message, strict=strict))
    conn.close()


class GraphWorker:
    """One separate execution context for graph algorithms.

    Usage:
        with GraphWorker() as worker:
            ranks = worker.run(PageRankRequest(graph), timeout=30)
    """

    def __init__(self, *, strict: bool = False):
        ctx = multiprocessing.get_context("spawn")
        self._conn, child_conn = ctx.Pipe()
        self._process = ctx.Process(target=_serve, args=(child_conn, strict), name="notegraph-worker", daemon=True)
        self._process.start()
        child_conn.close()

        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._pending: dict[int, Future] = {}
        self._ids = itertools.count(1)
        self._state = "running"

        self._reader = threading.Thread(target=self._read_responses, name="notegraph-worker-reader", daemon=True)
        self._reader.start()
        logger.debug("Started worker process %s", self._process.pid)

    @property
    def alive(self) -> bool:
        return self._state == "running" and self._process.is_alive()

    def submit(self, request: AlgorithmRequest) -> Future:
        """Queue a request; the future resolves to a Response."""
        future: Future = Future()
        with self._lock:
            if self._state != "running":
                raise WorkerError(f"worker is {self._state}", request.operation.value)
            request_id = next(self._ids)
            self._pending[request_id] = future

        message = encode_request(request, request_id)
        try:
            with self._send_lock:
                self._conn.send(message)
        except (OSError, ValueError) as e:
            with self._lock:
                self._pending.pop(request_id, None)
            future.set_exception(WorkerError(f"cannot reach worker: {e}", request.operation.value))
        return future

    def run(self, request: AlgorithmRequest, timeout: float | None = None) -> Any:
        """Submit and wait; returns the result or raises WorkerError.

        On timeout the worker is discarded and TimeoutError is raised.
        """
        future = self.submit(request)
        try:
            response = future.result(timeout=timeout)
        except TimeoutError:
            logger.warning("%s timed out after %ss; discarding worker", request.operation.value, timeout)
            self.discard()
            raise TimeoutError(f"{request.operation.value} did not finish within {timeout}s") from None
        return response.unwrap()

    def close(self, timeout: float = 5.0) -> None:
        """Finish queued requests, then stop the process."""
        with self._lock:
            if self._state != "running":
                return
            self._state = "closed"
        try:
            with self._send_lock:
                self._conn.send(None)
        except (OSError, ValueError) as e:
            logger.debug("Worker pipe already closed: %s", e)
        self._process.join(timeout)
        if self._process.is_alive():
            logger.warning("Worker %s did not exit; terminating", self._process.pid)
            self._process.terminate()
            self._process.join()
        self._reader.join(timeout)
        self._conn.close()
        self._fail_pending(WorkerError("worker closed"))

    def discard(self) -> None:
        """Terminate the process now; pending requests fail with WorkerDiscardedError."""
        with self._lock:
            if self._state == "discarded":
                return
            self._state = "discarded"
        self._process.terminate()
        self._process.join()
        self._fail_pending(WorkerDiscardedError("worker discarded"))
        self._conn.close()
        logger.debug("Discarded worker process %s", self._process.pid)

    def _read_responses(self) -> None:
        while True:
            try:
                message = self._conn.recv()
            except (EOFError, OSError):
                break
            try:
                response = Response.from_message(message)
            except ProtocolError as e:
                logger.warning("Dropping malformed response: %s", e)
                continue
            with self._lock:
                future = self._pending.pop(response.request_id, None)
            if future is not None and not future.done():
                future.set_result(response)
        if self._state == "discarded":
            self._fail_pending(WorkerDiscardedError("worker discarded"))
            return
        if self._state == "running":
            logger.warning("Worker process %s exited unexpectedly", self._process.pid)
        self._fail_pending(WorkerError("worker exited"))

    def _fail_pending(self, error: WorkerError) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    def __enter__(self) -> GraphWorker:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._state == "running":
            self.close()
