# casper_sdk/vector/grpc_executor.py
# SPDX-License-Identifier: Apache-2.0
"""
gRPC streaming executor for matrix uploads.

An upload is one client-streaming call:

    header {name, dimension, total_chunks, max_vectors_per_chunk}
    data   {chunk_index=0, vector=[...chunk_floats values...]}
    data   {chunk_index=1, ...}
    ...
    <- UploadMatrixResponse {total_vectors, total_chunks, message}

Frames are consecutive slices of the flat row-major buffer, at most
`chunk_floats` values each (the last one may be shorter). Frame boundaries
need not align with rows: the server rebuilds the matrix by concatenating
frames in send order.

Every upload gets its own call object on the shared channel, so concurrent
uploads never interleave frames. If the stream breaks before the terminal
acknowledgment the upload fails with `StreamError`; nothing is rolled back
client-side.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Iterator, List, Optional, Sequence

import grpc

from casper_sdk.core.error_context import attach_context
from casper_sdk.core.operation_context import OperationContext
from casper_sdk.vector.proto import matrix_service_pb2 as pb
from casper_sdk.vector.proto.matrix_service_pb2_grpc import MatrixServiceStub
from casper_sdk.vector.vector_base import (
    DeadlineExceeded,
    StreamError,
    UploadMatrixResult,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_BYTES = 64 * 1024 * 1024


def total_chunks(n_values: int, chunk_floats: int) -> int:
    return (n_values + chunk_floats - 1) // chunk_floats


def iter_chunks(values: Sequence[float], chunk_floats: int) -> Iterator[List[float]]:
    """
    Yield consecutive slices of at most `chunk_floats` values.

    Concatenating the yielded slices reproduces `values` exactly, for any
    `chunk_floats >= 1`.
    """
    if chunk_floats < 1:
        raise ValidationError("chunk_floats must be >= 1", details={"chunk_floats": chunk_floats})
    for start in range(0, len(values), chunk_floats):
        yield [float(x) for x in values[start:start + chunk_floats]]


def chunk_values(values: Sequence[float], chunk_floats: int) -> List[List[float]]:
    return list(iter_chunks(values, chunk_floats))


def header_frame(name: str, dimension: int, total_chunks: int, max_vectors_per_chunk: int) -> pb.UploadMatrixRequest:
    return pb.UploadMatrixRequest(
        header=pb.MatrixHeader(
            name=name,
            dimension=dimension,
            total_chunks=total_chunks,
            max_vectors_per_chunk=max_vectors_per_chunk,
        )
    )


def data_frame(chunk_index: int, values: Sequence[float]) -> pb.UploadMatrixRequest:
    return pb.UploadMatrixRequest(data=pb.MatrixData(chunk_index=chunk_index, vector=values))


class MatrixStreamUploader:
    """
    Uploads matrices over `MatrixService.UploadMatrix`.

    The channel is created lazily on first use (inside the running event
    loop) and shared by all uploads from this uploader. Pass `channel` to
    reuse an existing one; the uploader then never closes it.
    """

    def __init__(
        self,
        target: str,
        *,
        channel: Optional[grpc.aio.Channel] = None,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> None:
        self._target = target
        self._channel = channel
        self._owns_channel = channel is None
        self._stub: Optional[MatrixServiceStub] = None
        self._options = [
            ("grpc.max_send_message_length", max_message_bytes),
            ("grpc.max_receive_message_length", max_message_bytes),
        ]

    @property
    def target(self) -> str:
        return self._target

    def _get_stub(self) -> MatrixServiceStub:
        if self._channel is None:
            self._channel = grpc.aio.insecure_channel(self._target, options=self._options)
            logger.debug("Opened gRPC channel to %s", self._target)
        if self._stub is None:
            self._stub = MatrixServiceStub(self._channel)
        return self._stub

    @staticmethod
    async def _frames(
        name: str,
        dim: int,
        values: Sequence[float],
        chunk_floats: int,
        n_chunks: int,
    ) -> AsyncIterator[pb.UploadMatrixRequest]:
        yield header_frame(
            name=name,
            dimension=dim,
            total_chunks=n_chunks,
            max_vectors_per_chunk=max(1, chunk_floats // dim),
        )
        for index, chunk in enumerate(iter_chunks(values, chunk_floats)):
            yield data_frame(index, chunk)

    async def upload(
        self,
        name: str,
        dim: int,
        values: Sequence[float],
        chunk_floats: int,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> UploadMatrixResult:
        """
        Stream one matrix and wait for the server's terminal acknowledgment.

        Raises:
            StreamError: the stream ended with a gRPC error status
            DeadlineExceeded: the ctx deadline expired mid-stream
        """
        if chunk_floats < 1:
            raise ValidationError("chunk_floats must be >= 1", details={"chunk_floats": chunk_floats})
        n_chunks = total_chunks(len(values), chunk_floats)

        metadata = tuple(ctx.headers().items()) if ctx is not None else None
        timeout = ctx.remaining_s() if ctx is not None else None

        logger.debug(
            "casper grpc upload '%s' (dim=%d, values=%d, chunks=%d)",
            name, dim, len(values), n_chunks,
        )
        call = self._get_stub().UploadMatrix(
            self._frames(name, dim, values, chunk_floats, n_chunks),
            metadata=metadata,
            timeout=timeout,
        )
        try:
            response = await call
        except asyncio.CancelledError:
            call.cancel()
            logger.warning("matrix upload '%s' cancelled before acknowledgment", name)
            raise
        except grpc.aio.AioRpcError as exc:
            code = exc.code()
            details = {"op": "upload_matrix", "matrix": name, "grpc_code": code.name}
            if code == grpc.StatusCode.DEADLINE_EXCEEDED:
                err = DeadlineExceeded(f"matrix upload '{name}' timed out", details=details)
            else:
                err = StreamError(
                    f"matrix upload '{name}' failed: {exc.details() or code.name}",
                    details=details,
                )
            attach_context(err, "casper_grpc", target=self._target, grpc_code=code.name)
            raise err from exc

        message = response.message or (
            f"Successfully uploaded {response.total_vectors} vectors in {response.total_chunks} chunks"
        )
        return UploadMatrixResult(
            success=True,
            message=message,
            total_vectors=int(response.total_vectors),
            total_chunks=int(response.total_chunks),
        )

    async def aclose(self) -> None:
        if self._owns_channel and self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._stub = None


__all__ = [
    "DEFAULT_MAX_MESSAGE_BYTES",
    "MatrixStreamUploader",
    "chunk_values",
    "data_frame",
    "header_frame",
    "iter_chunks",
    "total_chunks",
]
