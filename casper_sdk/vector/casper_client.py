# casper_sdk/vector/casper_client.py
# SPDX-License-Identifier: Apache-2.0
"""
Casper client facade.

One async method per operation. Each method:

1. validates what can be checked without I/O (names, dimensions, numeric
   vectors, chunk sizes) and raises `ValidationError` otherwise;
2. routes the call: matrix uploads go to the gRPC streaming executor,
   everything else to the HTTP executor (batch updates via the composer);
3. returns the decoded result or re-raises the executor's error unchanged,
   with a `__casper_context__` mapping attached.

Usage
-----
    from casper_sdk.vector import CasperClient, CollectionSpec, VectorRecord

    async with CasperClient("http://127.0.0.1", 8080, 50051) as client:
        await client.create_collection("docs", CollectionSpec(dim=128, max_size=10_000))
        await client.insert_vector("docs", VectorRecord(id=1, vector=[...]))
        hits = await client.search("docs", [...], limit=5)

The client places no lock around calls; any number of operations may be in
flight at once. The HTTP connection pool and the gRPC channel are owned by
the client and shared by those calls.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Awaitable, List, Optional, Sequence, TypeVar

import grpc
import httpx

from casper_sdk.core.error_context import attach_context
from casper_sdk.core.operation_context import OperationContext
from casper_sdk.vector import wire
from casper_sdk.vector.batch import BatchComposer
from casper_sdk.vector.config import CasperClientConfig
from casper_sdk.vector.grpc_executor import MatrixStreamUploader
from casper_sdk.vector.http_executor import HttpExecutor, path_segment
from casper_sdk.vector.vector_base import (
    BatchUpdateResult,
    BatchUpdateSpec,
    CasperError,
    CollectionInfo,
    CollectionSpec,
    DeadlineExceeded,
    DeadlinePolicy,
    HNSWIndexSpec,
    MatrixInfo,
    Metric,
    MetricsSink,
    NoopMetrics,
    PqInfo,
    PqSpec,
    SearchResult,
    SimpleDeadline,
    UploadMatrixResult,
    ValidationError,
    VectorId,
    VectorRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_VECTOR_ID = 2**32 - 1

# Candidate pool sent as `?limit=` when neither limit nor candidates is given.
DEFAULT_SEARCH_LIMIT = 10


class CasperClient:
    """
    Dual-transport client for a Casper vector database server.

    Args:
        host: Scheme and host, e.g. "http://127.0.0.1" (ignored if `config` is given)
        http_port: HTTP API port
        grpc_port: gRPC matrix service port
        config: Full configuration; see `CasperClientConfig.from_env()`
        http_client: Preconfigured `httpx.AsyncClient` (the client will not close it)
        grpc_channel: Preconfigured `grpc.aio.Channel` (the client will not close it)
        metrics: Metrics sink, defaults to no-op
        deadline_policy: How ctx deadlines are enforced, defaults to `SimpleDeadline`
    """

    _component = "casper"

    def __init__(
        self,
        host: Optional[str] = None,
        http_port: Optional[int] = None,
        grpc_port: Optional[int] = None,
        *,
        config: Optional[CasperClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        grpc_channel: Optional[grpc.aio.Channel] = None,
        metrics: Optional[MetricsSink] = None,
        deadline_policy: Optional[DeadlinePolicy] = None,
    ) -> None:
        if config is None:
            defaults = CasperClientConfig()
            config = CasperClientConfig(
                host=host or defaults.host,
                http_port=http_port or defaults.http_port,
                grpc_port=grpc_port or defaults.grpc_port,
            )
        self._config = config
        self._http = HttpExecutor(config.base_url, timeout_s=config.timeout_s, client=http_client)
        self._grpc = MatrixStreamUploader(
            config.grpc_target,
            channel=grpc_channel,
            max_message_bytes=config.grpc_max_message_bytes,
        )
        self._batch = BatchComposer()
        self._metrics: MetricsSink = metrics or NoopMetrics()
        self._deadline: DeadlinePolicy = deadline_policy or SimpleDeadline()

    @property
    def config(self) -> CasperClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def grpc_target(self) -> str:
        return self._config.grpc_target

    async def close(self) -> None:
        """Release the HTTP pool and the gRPC channel (when owned)."""
        try:
            await self._http.aclose()
        finally:
            await self._grpc.aclose()

    async def __aenter__(self) -> "CasperClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Validation helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_name(label: str, value: Any) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{label} must be a non-empty string")

    @staticmethod
    def _require_positive(label: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"{label} must be a positive integer", details={label: value})

    @staticmethod
    def _require_id(value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _MAX_VECTOR_ID:
            raise ValidationError(
                "vector id must be an integer in 0..2^32-1", details={"id": repr(value)}
            )

    @staticmethod
    def _validate_vector(vector: Any, label: str = "vector") -> None:
        if isinstance(vector, (str, bytes)) or not isinstance(vector, Sequence) or len(vector) == 0:
            raise ValidationError(f"{label} must be a non-empty sequence of floats")
        if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector):
            raise ValidationError(f"{label} must contain only numeric values")

    # ------------------------------------------------------------------ #
    # Instrumentation
    # ------------------------------------------------------------------ #

    def _record(self, op: str, t0: float, ok: bool, *, code: str = "OK", **extra: Any) -> None:
        try:
            self._metrics.observe(
                component=self._component,
                op=op,
                ms=(time.monotonic() - t0) * 1000.0,
                ok=ok,
                code=code,
                extra=extra or None,
            )
        except Exception:  # noqa: BLE001
            # Never let metrics recording break the operation
            logger.debug("metrics sink failed for op=%s", op, exc_info=True)

    def _count(self, name: str, value: int, **extra: Any) -> None:
        try:
            self._metrics.counter(component=self._component, name=name, value=value, extra=extra or None)
        except Exception:  # noqa: BLE001
            logger.debug("metrics sink failed for counter=%s", name, exc_info=True)

    @staticmethod
    def _fail_if_expired(ctx: Optional[OperationContext]) -> None:
        if ctx is not None and ctx.deadline_ms is not None and ctx.expired():
            raise DeadlineExceeded("operation timed out (preflight)", details={"preflight": True})

    async def _run(
        self,
        op: str,
        make_call: Awaitable[T],
        ctx: Optional[OperationContext],
        **labels: Any,
    ) -> T:
        """Await one executor call under the deadline policy, with metrics and error context."""
        t0 = time.monotonic()
        try:
            result = await self._deadline.wrap(make_call, ctx)
        except CasperError as e:
            self._record(op, t0, False, code=e.code or type(e).__name__, **labels)
            attach_context(
                e,
                framework=self._component,
                operation=op,
                request_id=ctx.request_id if ctx else None,
                **labels,
            )
            raise
        except Exception as e:
            self._record(op, t0, False, code="UNAVAILABLE", **labels)
            attach_context(e, framework=self._component, operation=op, **labels)
            raise
        self._record(op, t0, True, **labels)
        return result

    # ------------------------------------------------------------------ #
    # Collections
    # ------------------------------------------------------------------ #

    async def list_collections(self, *, ctx: Optional[OperationContext] = None) -> List[CollectionInfo]:
        """List all collections."""
        self._fail_if_expired(ctx)
        payload = await self._run(
            "list_collections",
            self._http.call_json("GET", "collections", op="list_collections", ctx=ctx),
            ctx,
        )
        return wire.decode_collection_list(payload or [])

    async def get_collection(self, name: str, *, ctx: Optional[OperationContext] = None) -> CollectionInfo:
        """Fetch one collection descriptor. Raises NotFoundError if it does not exist."""
        self._require_name("collection name", name)
        self._fail_if_expired(ctx)
        payload = await self._run(
            "get_collection",
            self._http.call_json("GET", f"collection/{path_segment(name)}", op="get_collection", ctx=ctx),
            ctx,
            collection=name,
        )
        return wire.decode_collection_info(payload, name=name)

    async def create_collection(
        self,
        name: str,
        spec: CollectionSpec,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        self._require_name("collection name", name)
        self._require_positive("dim", spec.dim)
        self._require_positive("max_size", spec.max_size)
        self._fail_if_expired(ctx)
        await self._run(
            "create_collection",
            self._http.call(
                "POST",
                f"collection/{path_segment(name)}",
                op="create_collection",
                params=wire.encode_collection_params(spec),
                ctx=ctx,
            ),
            ctx,
            collection=name,
        )

    async def delete_collection(self, name: str, *, ctx: Optional[OperationContext] = None) -> None:
        """Delete a collection. A second delete raises NotFoundError."""
        self._require_name("collection name", name)
        self._fail_if_expired(ctx)
        await self._run(
            "delete_collection",
            self._http.call("DELETE", f"collection/{path_segment(name)}", op="delete_collection", ctx=ctx),
            ctx,
            collection=name,
        )

    # ------------------------------------------------------------------ #
    # Vectors
    # ------------------------------------------------------------------ #

    async def insert_vector(
        self,
        collection: str,
        record: VectorRecord,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """
        Insert (or overwrite) one vector.

        The collection dimension is only known to the server; a length
        mismatch comes back as DimensionMismatchError.
        """
        self._require_name("collection name", collection)
        self._require_id(record.id)
        self._validate_vector(record.vector)
        self._fail_if_expired(ctx)
        await self._run(
            "insert_vector",
            self._http.call(
                "POST",
                f"collection/{path_segment(collection)}/insert",
                op="insert_vector",
                params={"id": record.id},
                json=wire.encode_insert_body(record),
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )
        self._count("vectors_inserted", 1, collection=collection)

    async def delete_vector(
        self,
        collection: str,
        vector_id: VectorId,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        self._require_name("collection name", collection)
        self._require_id(vector_id)
        self._fail_if_expired(ctx)
        await self._run(
            "delete_vector",
            self._http.call(
                "DELETE",
                f"collection/{path_segment(collection)}/delete",
                op="delete_vector",
                params={"id": vector_id},
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )
        self._count("vectors_deleted", 1, collection=collection)

    async def get_vector(
        self,
        collection: str,
        vector_id: VectorId,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> VectorRecord:
        """Fetch one vector. Raises NotFoundError when the id is absent."""
        self._require_name("collection name", collection)
        self._require_id(vector_id)
        self._fail_if_expired(ctx)
        payload = await self._run(
            "get_vector",
            self._http.call_json(
                "GET",
                f"collection/{path_segment(collection)}/vector/{vector_id}",
                op="get_vector",
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )
        return wire.decode_vector_record(payload, vector_id=vector_id)

    async def search(
        self,
        collection: str,
        vector: Sequence[float],
        *,
        limit: Optional[int] = None,
        candidates: Optional[int] = None,
        ctx: Optional[OperationContext] = None,
    ) -> List[SearchResult]:
        """
        Nearest-neighbour search.

        Args:
            limit: Maximum number of results returned
            candidates: Candidate pool size the server explores (the `limit`
                query parameter of the search route); defaults to `limit`, or
                to DEFAULT_SEARCH_LIMIT when both are omitted

        Results keep the server's order (best first) and are never longer
        than `limit`.
        """
        self._require_name("collection name", collection)
        self._validate_vector(vector)
        if limit is not None:
            self._require_positive("limit", limit)
        if candidates is not None:
            self._require_positive("candidates", candidates)
        self._fail_if_expired(ctx)

        if candidates is not None:
            pool = candidates
        elif limit is not None:
            pool = limit
        else:
            pool = DEFAULT_SEARCH_LIMIT
        reply = await self._run(
            "search",
            self._http.call(
                "POST",
                f"collection/{path_segment(collection)}/search",
                op="search",
                params={"limit": pool},
                json=wire.encode_search_body(vector, limit),
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )
        results = wire.decode_search_results(reply.content, reply.content_type)
        if limit is not None and len(results) > limit:
            results = results[:limit]
        return results

    async def batch_update(
        self,
        collection: str,
        spec: BatchUpdateSpec,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> BatchUpdateResult:
        """
        Apply inserts and deletes in one request.

        Per-item failures reported by the server come back in
        `BatchUpdateResult.outcomes`; a total failure raises.
        """
        self._require_name("collection name", collection)
        for record in spec.insert:
            self._require_id(record.id)
            self._validate_vector(record.vector, label=f"vector {record.id}")
        for vector_id in spec.delete:
            self._require_id(vector_id)
        self._fail_if_expired(ctx)

        reply = await self._run(
            "batch_update",
            self._http.call(
                "POST",
                f"collection/{path_segment(collection)}/update",
                op="batch_update",
                json=self._batch.compose(spec),
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )
        result = self._batch.interpret(spec, reply.json(what="batch_update"))
        self._count("vectors_inserted", result.inserted_count, collection=collection)
        self._count("vectors_deleted", result.deleted_count, collection=collection)
        if result.failed_count:
            self._count("batch_items_failed", result.failed_count, collection=collection)
        return result

    # ------------------------------------------------------------------ #
    # Indexes
    # ------------------------------------------------------------------ #

    async def create_hnsw_index(
        self,
        collection: str,
        spec: HNSWIndexSpec,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        self._require_name("collection name", collection)
        cfg = spec.hnsw
        self._require_positive("m", cfg.m)
        self._require_positive("m0", cfg.m0)
        self._require_positive("ef_construction", cfg.ef_construction)
        if cfg.metric is Metric.UNKNOWN and not cfg.metric_tag:
            raise ValidationError("metric is unknown and no raw metric tag was given")
        if cfg.quantization.uses_pq:
            self._require_name("pq_name (required for PQ quantization)", cfg.pq_name)
        self._fail_if_expired(ctx)
        await self._run(
            "create_hnsw_index",
            self._http.call(
                "POST",
                f"collection/{path_segment(collection)}/index",
                op="create_hnsw_index",
                params={"has_normalization": bool(spec.normalization)},
                json=wire.encode_hnsw_index(spec),
                ctx=ctx,
            ),
            ctx,
            collection=collection,
        )

    async def delete_index(self, collection: str, *, ctx: Optional[OperationContext] = None) -> None:
        self._require_name("collection name", collection)
        self._fail_if_expired(ctx)
        await self._run(
            "delete_index",
            self._http.call("DELETE", f"collection/{path_segment(collection)}/index", op="delete_index", ctx=ctx),
            ctx,
            collection=collection,
        )

    # Alias paired with create_hnsw_index.
    delete_hnsw_index = delete_index

    # ------------------------------------------------------------------ #
    # Matrices
    # ------------------------------------------------------------------ #

    async def upload_matrix(
        self,
        name: str,
        dim: int,
        values: Sequence[float],
        *,
        chunk_floats: Optional[int] = None,
        ctx: Optional[OperationContext] = None,
    ) -> UploadMatrixResult:
        """
        Stream a flat row-major matrix over gRPC.

        Args:
            name: Matrix name (created or overwritten)
            dim: Row dimensionality
            values: All rows concatenated; length must be a multiple of `dim`
            chunk_floats: Floats per frame, defaults to the configured value
        """
        self._require_name("matrix name", name)
        self._require_positive("dim", dim)
        self._validate_vector(values, label="matrix values")
        if len(values) % dim != 0:
            raise ValidationError(
                f"matrix length {len(values)} is not divisible by dimension {dim}",
                details={"len": len(values), "dim": dim},
            )
        chunk = self._config.chunk_floats if chunk_floats is None else chunk_floats
        self._require_positive("chunk_floats", chunk)
        self._fail_if_expired(ctx)

        result = await self._run(
            "upload_matrix",
            self._grpc.upload(name, dim, values, chunk, ctx=ctx),
            ctx,
            matrix=name,
        )
        self._count("matrix_frames_sent", math.ceil(len(values) / chunk), matrix=name)
        return result

    async def list_matrices(self, *, ctx: Optional[OperationContext] = None) -> List[MatrixInfo]:
        self._fail_if_expired(ctx)
        payload = await self._run(
            "list_matrices",
            self._http.call_json("GET", "matrix/list", op="list_matrices", ctx=ctx),
            ctx,
        )
        return wire.decode_matrix_list(payload or [])

    async def get_matrix_info(self, name: str, *, ctx: Optional[OperationContext] = None) -> MatrixInfo:
        self._require_name("matrix name", name)
        self._fail_if_expired(ctx)
        payload = await self._run(
            "get_matrix_info",
            self._http.call_json("GET", f"matrix/{path_segment(name)}", op="get_matrix_info", ctx=ctx),
            ctx,
            matrix=name,
        )
        return wire.decode_matrix_info(payload)

    async def delete_matrix(self, name: str, *, ctx: Optional[OperationContext] = None) -> None:
        self._require_name("matrix name", name)
        self._fail_if_expired(ctx)
        await self._run(
            "delete_matrix",
            self._http.call("DELETE", f"matrix/{path_segment(name)}", op="delete_matrix", ctx=ctx),
            ctx,
            matrix=name,
        )

    # ------------------------------------------------------------------ #
    # Product quantization
    # ------------------------------------------------------------------ #

    async def create_pq(self, name: str, spec: PqSpec, *, ctx: Optional[OperationContext] = None) -> None:
        """Create a PQ whose codebooks are previously uploaded matrices."""
        self._require_name("pq name", name)
        self._require_positive("dim", spec.dim)
        if not spec.codebooks:
            raise ValidationError("codebooks must not be empty")
        for codebook in spec.codebooks:
            self._require_name("codebook name", codebook)
        self._fail_if_expired(ctx)
        await self._run(
            "create_pq",
            self._http.call("POST", f"pq/{path_segment(name)}", op="create_pq", json=wire.encode_pq(spec), ctx=ctx),
            ctx,
            pq=name,
        )

    async def list_pqs(self, *, ctx: Optional[OperationContext] = None) -> List[PqInfo]:
        self._fail_if_expired(ctx)
        payload = await self._run(
            "list_pqs",
            self._http.call_json("GET", "pq/list", op="list_pqs", ctx=ctx),
            ctx,
        )
        return wire.decode_pq_list(payload or [])

    async def get_pq(self, name: str, *, ctx: Optional[OperationContext] = None) -> PqInfo:
        self._require_name("pq name", name)
        self._fail_if_expired(ctx)
        payload = await self._run(
            "get_pq",
            self._http.call_json("GET", f"pq/{path_segment(name)}", op="get_pq", ctx=ctx),
            ctx,
            pq=name,
        )
        return wire.decode_pq_info(payload)

    async def delete_pq(self, name: str, *, ctx: Optional[OperationContext] = None) -> None:
        self._require_name("pq name", name)
        self._fail_if_expired(ctx)
        await self._run(
            "delete_pq",
            self._http.call("DELETE", f"pq/{path_segment(name)}", op="delete_pq", ctx=ctx),
            ctx,
            pq=name,
        )


__all__ = [
    "CasperClient",
    "DEFAULT_SEARCH_LIMIT",
]
