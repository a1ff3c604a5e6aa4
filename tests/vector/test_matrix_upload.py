# SPDX-License-Identifier: Apache-2.0
"""
Matrix upload over the gRPC client stream: framing, chunking, failure
and concurrency.
"""

import asyncio

import pytest
from casper_sdk.core.error_context import get_context
from casper_sdk.vector import (
    DeadlineExceeded,
    OperationContext,
    StreamError,
    UploadMatrixResult,
    ValidationError,
)
from casper_sdk.vector.grpc_executor import chunk_values, total_chunks

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("n", [1, 7, 64, 100])
@pytest.mark.parametrize("chunk_floats", [1, 3, 8, 64, 1000])
async def test_chunking_is_lossless(n, chunk_floats):
    values = [float(i) for i in range(n)]
    chunks = chunk_values(values, chunk_floats)

    assert len(chunks) == total_chunks(n, chunk_floats)
    assert all(len(c) <= chunk_floats for c in chunks)
    assert all(len(c) == chunk_floats for c in chunks[:-1])
    assert [x for c in chunks for x in c] == values


async def test_chunking_rejects_zero_chunk_size():
    with pytest.raises(ValidationError):
        chunk_values([1.0], 0)


async def test_upload_sends_header_then_ordered_data_frames(full_client, server):
    values = [float(i) for i in range(12)]  # 4 rows of dim 3

    result = await full_client.upload_matrix("m1", 3, values, chunk_floats=5)
    assert isinstance(result, UploadMatrixResult)
    assert result.success is True
    assert result.total_vectors == 4
    assert result.total_chunks == 3

    upload = server.uploads[-1]
    frames = upload["frames"]
    assert frames[0].WhichOneof("payload") == "header"
    assert all(f.WhichOneof("payload") == "data" for f in frames[1:])
    assert [f.data.chunk_index for f in frames[1:]] == [0, 1, 2]
    assert [len(f.data.vector) for f in frames[1:]] == [5, 5, 2]

    header = upload["header"]
    assert header.name == "m1"
    assert header.dimension == 3
    assert header.total_chunks == 3
    assert header.max_vectors_per_chunk == 1

    assert list(upload["values"]) == pytest.approx(values)


async def test_uploaded_matrix_is_listed_over_http(full_client):
    await full_client.upload_matrix("m1", 2, [1.0, 2.0, 3.0, 4.0], chunk_floats=4)

    infos = await full_client.list_matrices()
    assert [(m.name, m.dim, m.len) for m in infos] == [("m1", 2, 2)]

    info = await full_client.get_matrix_info("m1")
    assert info.dim == 2
    assert info.len == 2


async def test_default_message_when_server_sends_none(full_client):
    result = await full_client.upload_matrix("m1", 2, [0.0] * 8, chunk_floats=4)
    assert result.message == "Successfully uploaded 4 vectors in 2 chunks"


async def test_upload_uses_configured_default_chunk_size(full_client, server):
    values = [0.5] * 10
    await full_client.upload_matrix("m1", 5, values)

    data_frames = server.uploads[-1]["frames"][1:]
    assert len(data_frames) == 1
    assert len(data_frames[0].data.vector) == 10


async def test_server_abort_raises_stream_error(full_client, server):
    server.abort_after_frames = 2

    with pytest.raises(StreamError) as exc_info:
        await full_client.upload_matrix("broken", 2, [1.0] * 20, chunk_floats=2)

    err = exc_info.value
    assert err.code == "STREAM_ERROR"
    assert err.details["grpc_code"] == "INTERNAL"
    assert "matrix store failed" in err.message
    assert "broken" not in server.matrices

    assert get_context(err, framework="casper_grpc")["grpc_code"] == "INTERNAL"
    assert get_context(err)["operation"] == "upload_matrix"
    assert get_context(err)["matrix"] == "broken"


async def test_concurrent_uploads_do_not_interleave(full_client, server):
    a = [1.0] * 30
    b = [2.0] * 30

    results = await asyncio.gather(
        full_client.upload_matrix("a", 3, a, chunk_floats=4),
        full_client.upload_matrix("b", 3, b, chunk_floats=4),
    )
    assert [r.total_vectors for r in results] == [10, 10]

    by_name = {u["name"]: u for u in server.uploads}
    assert list(by_name["a"]["values"]) == a
    assert list(by_name["b"]["values"]) == b
    for upload in by_name.values():
        indexes = [f.data.chunk_index for f in upload["frames"][1:]]
        assert indexes == list(range(len(indexes)))


async def test_request_id_is_sent_as_metadata(full_client, server):
    ctx = OperationContext(request_id="req-123")
    await full_client.upload_matrix("m1", 1, [1.0, 2.0], ctx=ctx)
    assert server.upload_metadata[-1].get("x-request-id") == "req-123"


async def test_slow_acknowledgment_past_deadline_raises(full_client, server):
    server.upload_delay_s = 1.0
    ctx = OperationContext.with_timeout(100)

    with pytest.raises(DeadlineExceeded):
        await full_client.upload_matrix("slow", 1, [1.0, 2.0], ctx=ctx)


@pytest.mark.parametrize(
    "name,dim,values,chunk_floats",
    [
        ("", 2, [1.0, 2.0], 2),
        ("m", 0, [1.0, 2.0], 2),
        ("m", 2, [], 2),
        ("m", 2, [1.0, 2.0, 3.0], 2),
        ("m", 2, [1.0, 2.0], 0),
    ],
)
async def test_upload_rejects_invalid_arguments(client, name, dim, values, chunk_floats):
    """Invalid uploads fail before any channel is opened."""
    with pytest.raises(ValidationError):
        await client.upload_matrix(name, dim, values, chunk_floats=chunk_floats)
