# SPDX-License-Identifier: Apache-2.0
"""
Matrix management and product quantization over HTTP.
"""

import json

import pytest
from casper_sdk.vector import (
    MatrixInfo,
    NotFoundError,
    PqInfo,
    PqSpec,
    ValidationError,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def codebooks(server):
    server.matrices["cb0"] = {"name": "cb0", "dim": 4, "len": 256}
    server.matrices["cb1"] = {"name": "cb1", "dim": 4, "len": 256}
    return ["cb0", "cb1"]


async def test_list_matrices(client, codebooks):
    infos = await client.list_matrices()
    assert all(isinstance(m, MatrixInfo) for m in infos)
    assert sorted(m.name for m in infos) == codebooks
    assert all(m.enabled for m in infos)


async def test_delete_matrix_then_info_raises_not_found(client, codebooks):
    await client.delete_matrix("cb0")
    with pytest.raises(NotFoundError):
        await client.get_matrix_info("cb0")
    with pytest.raises(NotFoundError):
        await client.delete_matrix("cb0")


async def test_create_pq_then_get_and_list(client, server, codebooks):
    await client.create_pq("pq1", PqSpec(dim=8, codebooks=codebooks))

    request = server.requests[-1]
    assert request.url.path == "/pq/pq1"
    assert json.loads(request.content) == {"dim": 8, "codebooks": ["cb0", "cb1"]}

    pq = await client.get_pq("pq1")
    assert isinstance(pq, PqInfo)
    assert pq.dim == 8
    assert pq.codebooks == codebooks

    assert [p.name for p in await client.list_pqs()] == ["pq1"]


async def test_create_pq_with_unknown_codebook_raises_not_found(client):
    with pytest.raises(NotFoundError):
        await client.create_pq("pq1", PqSpec(dim=8, codebooks=["missing"]))


async def test_delete_pq(client, codebooks):
    await client.create_pq("pq1", PqSpec(dim=8, codebooks=codebooks))
    await client.delete_pq("pq1")

    assert await client.list_pqs() == []
    with pytest.raises(NotFoundError):
        await client.get_pq("pq1")


@pytest.mark.parametrize(
    "spec",
    [
        PqSpec(dim=0, codebooks=["cb0"]),
        PqSpec(dim=8, codebooks=[]),
        PqSpec(dim=8, codebooks=["cb0", ""]),
    ],
)
async def test_create_pq_validates_spec(client, server, spec):
    with pytest.raises(ValidationError):
        await client.create_pq("pq1", spec)
    assert server.requests == []
