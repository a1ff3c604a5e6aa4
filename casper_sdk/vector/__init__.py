# casper_sdk/vector/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Casper Client - Public API

This module provides the public interface for the Casper client.
All public types, errors and the client facade are re-exported here for
clean imports.
"""

from casper_sdk.vector.vector_base import (
    # Version
    CASPER_API_VERSION,

    # Enumerations
    Metric,
    Quantization,

    # Core types
    VectorId,
    VectorRecord,
    SearchResult,
    CollectionSpec,
    CollectionInfo,
    HNSWIndexConfig,
    HNSWIndexSpec,
    IndexInfo,
    BatchUpdateSpec,
    BatchItemOutcome,
    BatchUpdateResult,
    MatrixInfo,
    UploadMatrixResult,
    PqSpec,
    PqInfo,

    # Error types
    CasperError,
    ValidationError,
    RequestError,
    NotFoundError,
    DimensionMismatchError,
    OperationNotAllowedError,
    ConflictError,
    ServerError,
    StreamError,
    DecodeError,
    TransportError,
    DeadlineExceeded,

    # Metrics
    MetricsSink,
    NoopMetrics,

    # Policy interfaces and implementations
    DeadlinePolicy,
    NoopDeadline,
    SimpleDeadline,

    # Protocol interface
    CasperProtocolV1,
)
from casper_sdk.core.operation_context import OperationContext
from casper_sdk.vector.config import CasperClientConfig
from casper_sdk.vector.casper_client import CasperClient

__version__ = "0.1.0"

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
    "MetricsSink",
    "NoopMetrics",
    "DeadlinePolicy",
    "NoopDeadline",
    "SimpleDeadline",
    "CasperProtocolV1",
    "OperationContext",
    "CasperClientConfig",
    "CasperClient",
    "__version__",
]
