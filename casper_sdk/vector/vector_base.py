# casper_sdk/vector/vector_base.py
# SPDX-License-Identifier: Apache-2.0
"""
Casper SDK - core types

Purpose
-------
Typed Python contracts for the Casper vector database wire API, the normalized
error taxonomy every client operation raises, and the small policy extension
points (metrics, deadlines) the client facade is instrumented with.

Transports
----------
The server exposes two transports and the client uses both:

    HTTP/JSON (unary)
        collections, vectors, search, batch updates, HNSW indexes,
        matrix list/info/delete, PQ CRUD

    gRPC (client streaming)
        matrix upload: one header frame, then ordered data frames, then a
        single terminal acknowledgment

Error envelope
--------------
The server reports failures as a non-2xx status with an optional JSON body
of the form `{"error": "<human readable>"}`. The client normalizes every
failure into a `CasperError` subclass carrying (code, message, status, body).

Deliberate Non-Goals
--------------------
- No client-side search, indexing or storage
- No retry/backoff; callers that need it wrap the client
- No client-side caching of any response
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from casper_sdk.core.operation_context import OperationContext

CASPER_API_VERSION = "1.0.0"

# =============================================================================
# Enumerated tags (closed set + forward-compatible fallback)
# =============================================================================


class Metric(str, Enum):
    """Distance metric of an HNSW index."""

    INNER_PRODUCT = "inner-product"
    EUCLIDEAN = "euclidean"
    COSINE = "cosine"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: Any) -> "Metric":
        """Map a wire tag to a member; unrecognized tags become UNKNOWN."""
        try:
            return cls(str(tag).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Quantization(str, Enum):
    """Storage quantization of an HNSW index."""

    F32 = "f32"
    F16 = "f16"
    I8 = "i8"
    PQ8 = "pq8"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: Any) -> "Quantization":
        try:
            return cls(str(tag).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def uses_pq(self) -> bool:
        return self.value.startswith("pq")


# =============================================================================
# Wire data shapes
# =============================================================================

VectorId = int
"""Caller-assigned vector identifier (unsigned 32-bit on the server)."""


@dataclass(frozen=True)
class VectorRecord:
    """
    A vector with its caller-assigned identifier.

    Attributes:
        id: Identifier, unique within a collection
        vector: Float values; length must equal the collection dimension
    """
    id: VectorId
    vector: List[float]


@dataclass(frozen=True)
class SearchResult:
    """One search hit. Scores are reported exactly as the server ranks them."""
    id: VectorId
    score: float


@dataclass(frozen=True)
class CollectionSpec:
    """Parameters for creating a collection."""
    dim: int
    max_size: int


@dataclass(frozen=True)
class HNSWIndexConfig:
    """
    HNSW index configuration.

    Attributes:
        metric: Distance metric
        quantization: Vector storage quantization
        m: Number of bi-directional links created for every new element
        m0: Number of outgoing connections in the zero layer
        ef_construction: Build-time candidate list size
        pq_name: Name of a previously created PQ (required for PQ quantization)
        metric_tag: Raw wire tag when `metric` is UNKNOWN
        quantization_tag: Raw wire tag when `quantization` is UNKNOWN
    """
    metric: Metric
    quantization: Quantization
    m: int
    m0: int
    ef_construction: int
    pq_name: Optional[str] = None
    metric_tag: Optional[str] = None
    quantization_tag: Optional[str] = None

    def __post_init__(self) -> None:
        # Plain string tags are accepted; unrecognized ones keep their raw text.
        if not isinstance(self.metric, Metric):
            raw = str(self.metric)
            object.__setattr__(self, "metric", Metric.parse(raw))
            if self.metric is Metric.UNKNOWN and self.metric_tag is None:
                object.__setattr__(self, "metric_tag", raw)
        if not isinstance(self.quantization, Quantization):
            raw = str(self.quantization)
            object.__setattr__(self, "quantization", Quantization.parse(raw))
            if self.quantization is Quantization.UNKNOWN and self.quantization_tag is None:
                object.__setattr__(self, "quantization_tag", raw)

    @property
    def metric_wire(self) -> str:
        if self.metric is Metric.UNKNOWN and self.metric_tag:
            return self.metric_tag
        return self.metric.value

    @property
    def quantization_wire(self) -> str:
        if self.quantization is Quantization.UNKNOWN and self.quantization_tag:
            return self.quantization_tag
        return self.quantization.value


@dataclass(frozen=True)
class HNSWIndexSpec:
    """Create-index request: HNSW config plus optional L2 normalization flag."""
    hnsw: HNSWIndexConfig
    normalization: Optional[bool] = None


@dataclass(frozen=True)
class IndexInfo:
    hnsw: Optional[HNSWIndexConfig]
    normalization: bool = False


@dataclass(frozen=True)
class CollectionInfo:
    """
    Collection descriptor as reported by the server.

    Attributes:
        name: Collection name
        dimension: Vector dimensionality fixed at creation
        mutable: Whether the collection accepts writes
        has_index: Whether an index is built
        max_size: Capacity hint given at creation
        size: Current number of vectors
        index: Index configuration, when one exists
    """
    name: str
    dimension: int
    max_size: int
    mutable: bool = True
    has_index: bool = False
    size: int = 0
    index: Optional[IndexInfo] = None


@dataclass(frozen=True)
class BatchUpdateSpec:
    """
    Inserts and deletes submitted as one request.

    Ids are not checked for overlap between the two lists; the server
    decides what an id present in both means.
    """
    insert: List[VectorRecord] = field(default_factory=list)
    delete: List[VectorId] = field(default_factory=list)


@dataclass(frozen=True)
class BatchItemOutcome:
    """Outcome of one insert or delete inside a batch."""
    op: str  # "insert" | "delete"
    id: VectorId
    ok: bool
    error: Optional[str] = None


@dataclass
class BatchUpdateResult:
    """
    Result from a batch update.

    Attributes:
        inserted_count: Inserts the server accepted
        deleted_count: Deletes the server accepted
        failed_count: Items the server rejected
        outcomes: Per-item outcomes in input order (inserts, then deletes)
        partial: True when the server reported per-item outcomes
    """
    inserted_count: int
    deleted_count: int
    failed_count: int
    outcomes: List[BatchItemOutcome]
    partial: bool = False

    @property
    def ok(self) -> bool:
        return self.failed_count == 0

    @property
    def failures(self) -> List[BatchItemOutcome]:
        return [o for o in self.outcomes if not o.ok]


@dataclass(frozen=True)
class MatrixInfo:
    name: str
    dim: int
    len: int
    enabled: bool = True


@dataclass(frozen=True)
class UploadMatrixResult:
    """Terminal acknowledgment of a streamed matrix upload."""
    success: bool
    message: str
    total_vectors: int
    total_chunks: int


@dataclass(frozen=True)
class PqSpec:
    """Create-PQ request: total dimension and the matrices used as codebooks."""
    dim: int
    codebooks: List[str]


@dataclass(frozen=True)
class PqInfo:
    name: str
    dim: int
    codebooks: List[str]
    enabled: bool = True


# =============================================================================
# Normalized errors
# =============================================================================


class CasperError(Exception):
    """
    Base exception for all Casper client errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (UPPER_SNAKE_CASE)
        status: HTTP status, when the error came from an HTTP response
        body: Raw response body, when available
        details: Additional JSON-serializable context
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        body: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.body = body
        self.details = dict(details or {})

    def asdict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "body": self.body,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }


class ValidationError(CasperError):
    """A precondition failed before any network call was made."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)


class RequestError(CasperError):
    """The server answered with a non-success HTTP status."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "REQUEST_ERROR")
        super().__init__(message, **kwargs)


class NotFoundError(RequestError):
    """The addressed collection, vector, matrix, PQ or index does not exist."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_FOUND")
        super().__init__(message, **kwargs)


class DimensionMismatchError(RequestError):
    """Vector length does not match the collection dimension."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DIMENSION_MISMATCH")
        super().__init__(message, **kwargs)


class OperationNotAllowedError(RequestError):
    """The operation is not allowed in the current state (e.g. immutable collection)."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "OPERATION_NOT_ALLOWED")
        super().__init__(message, **kwargs)


class ConflictError(RequestError):
    """The entity already exists (e.g. an index is already built)."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "CONFLICT")
        super().__init__(message, **kwargs)


class ServerError(RequestError):
    """The server failed with a 5xx status."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "SERVER_ERROR")
        super().__init__(message, **kwargs)


class StreamError(CasperError):
    """The gRPC upload stream was interrupted or ended with a server error."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "STREAM_ERROR")
        super().__init__(message, **kwargs)


class DecodeError(CasperError):
    """A response body does not conform to the expected schema."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DECODE_ERROR")
        super().__init__(message, **kwargs)


class TransportError(CasperError):
    """The request never produced a response (connection refused, reset, ...)."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "TRANSPORT_ERROR")
        super().__init__(message, **kwargs)


class DeadlineExceeded(CasperError):
    """Operation exceeded ctx.deadline_ms or the configured timeout."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DEADLINE_EXCEEDED")
        super().__init__(message, **kwargs)


# =============================================================================
# Metrics interface (low-cardinality)
# =============================================================================


class MetricsSink(Protocol):
    """
    Protocol for metrics collection implementations.

    Extra labels must stay low-cardinality: operation names, collection
    names and error codes, never vectors or ids.
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class NoopMetrics:
    """No-operation metrics sink for testing or when metrics are disabled."""
    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...


# =============================================================================
# Deadline policy
# =============================================================================


class DeadlinePolicy(Protocol):
    """Strategy to apply time budgets (ctx.deadline_ms) to awaits."""
    async def wrap(self, coro, ctx: Optional[OperationContext]): ...


class NoopDeadline:
    async def wrap(self, coro, ctx: Optional[OperationContext]):
        return await coro


class SimpleDeadline:
    """
    Enforces ctx.deadline_ms using asyncio.wait_for.
    Maps asyncio.TimeoutError -> DeadlineExceeded. Cancelling the awaited
    coroutine releases whatever connection it held.
    """
    async def wrap(self, coro, ctx: Optional[OperationContext]):
        if ctx is None or ctx.deadline_ms is None:
            return await coro
        rem = ctx.remaining_ms()
        if rem is not None and rem <= 0:
            coro.close()
            raise DeadlineExceeded("operation timed out (preflight)", details={"preflight": True})
        try:
            return await asyncio.wait_for(coro, timeout=rem / 1000.0)
        except asyncio.TimeoutError:
            raise DeadlineExceeded("operation timed out")


# =============================================================================
# Client protocol
# =============================================================================


@runtime_checkable
class CasperProtocolV1(Protocol):
    """
    The async operation surface of a Casper client.

    `CasperClient` is the reference implementation; test doubles and
    wrappers (e.g. a retrying decorator) implement the same methods.
    """

    async def list_collections(self, *, ctx: Optional[OperationContext] = None) -> List[CollectionInfo]: ...

    async def get_collection(self, name: str, *, ctx: Optional[OperationContext] = None) -> CollectionInfo: ...

    async def create_collection(self, name: str, spec: CollectionSpec, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def delete_collection(self, name: str, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def insert_vector(self, collection: str, record: VectorRecord, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def delete_vector(self, collection: str, vector_id: VectorId, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def get_vector(self, collection: str, vector_id: VectorId, *, ctx: Optional[OperationContext] = None) -> VectorRecord: ...

    async def search(
        self,
        collection: str,
        vector: Sequence[float],
        *,
        limit: Optional[int] = None,
        candidates: Optional[int] = None,
        ctx: Optional[OperationContext] = None,
    ) -> List[SearchResult]: ...

    async def batch_update(self, collection: str, spec: BatchUpdateSpec, *, ctx: Optional[OperationContext] = None) -> BatchUpdateResult: ...

    async def create_hnsw_index(self, collection: str, spec: HNSWIndexSpec, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def delete_index(self, collection: str, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def upload_matrix(
        self,
        name: str,
        dim: int,
        values: Sequence[float],
        *,
        chunk_floats: Optional[int] = None,
        ctx: Optional[OperationContext] = None,
    ) -> UploadMatrixResult: ...

    async def list_matrices(self, *, ctx: Optional[OperationContext] = None) -> List[MatrixInfo]: ...

    async def get_matrix_info(self, name: str, *, ctx: Optional[OperationContext] = None) -> MatrixInfo: ...

    async def delete_matrix(self, name: str, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def create_pq(self, name: str, spec: PqSpec, *, ctx: Optional[OperationContext] = None) -> None: ...

    async def list_pqs(self, *, ctx: Optional[OperationContext] = None) -> List[PqInfo]: ...

    async def get_pq(self, name: str, *, ctx: Optional[OperationContext] = None) -> PqInfo: ...

    async def delete_pq(self, name: str, *, ctx: Optional[OperationContext] = None) -> None: ...


__all__ = [
    "CASPER_API_VERSION",
    "Metric",
    "Quantization",
    "VectorId",
    "VectorRecord",
    "SearchResult",
    "CollectionSpec",
    "CollectionInfo",
    "HNSWIndexConfig",
    "HNSWIndexSpec",
    "IndexInfo",
    "BatchUpdateSpec",
    "BatchItemOutcome",
    "BatchUpdateResult",
    "MatrixInfo",
    "UploadMatrixResult",
    "PqSpec",
    "PqInfo",
    "CasperError",
    "ValidationError",
    "RequestError",
    "NotFoundError",
    "DimensionMismatchError",
    "OperationNotAllowedError",
    "ConflictError",
    "ServerError",
    "StreamError",
    "DecodeError",
    "TransportError",
    "DeadlineExceeded",
    "OperationContext",
    "MetricsSink",
    "NoopMetrics",
    "DeadlinePolicy",
    "NoopDeadline",
    "SimpleDeadline",
    "CasperProtocolV1",
]
