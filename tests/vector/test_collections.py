# SPDX-License-Identifier: Apache-2.0
"""
Collections: create, describe, list, delete.
"""

import pytest
from casper_sdk.vector import (
    CollectionInfo,
    CollectionSpec,
    ConflictError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.asyncio


async def test_create_then_get_reports_dimension(client):
    """A created collection reports the dimension it was created with."""
    await client.create_collection("docs", CollectionSpec(dim=3, max_size=100))

    info = await client.get_collection("docs")
    assert isinstance(info, CollectionInfo)
    assert info.name == "docs"
    assert info.dimension == 3
    assert info.max_size == 100
    assert info.size == 0
    assert info.has_index is False
    assert info.index is None


async def test_create_sends_dim_and_max_size_as_query(client, server):
    await client.create_collection("docs", CollectionSpec(dim=8, max_size=50))

    request = server.requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/collection/docs"
    assert request.url.params["dim"] == "8"
    assert request.url.params["max_size"] == "50"


async def test_list_collections_returns_all(client):
    await client.create_collection("a", CollectionSpec(dim=2, max_size=10))
    await client.create_collection("b", CollectionSpec(dim=4, max_size=10))

    infos = await client.list_collections()
    assert [i.name for i in infos] == ["a", "b"]
    assert [i.dimension for i in infos] == [2, 4]


async def test_list_collections_empty(client):
    assert await client.list_collections() == []


async def test_delete_twice_raises_not_found(client):
    """The second delete of the same collection fails with NotFoundError."""
    await client.create_collection("tmp", CollectionSpec(dim=2, max_size=10))
    await client.delete_collection("tmp")

    with pytest.raises(NotFoundError) as exc_info:
        await client.delete_collection("tmp")

    err = exc_info.value
    assert err.code == "NOT_FOUND"
    assert err.status == 404
    assert "tmp" in err.message


async def test_get_missing_collection_raises_not_found(client):
    with pytest.raises(NotFoundError):
        await client.get_collection("nope")


async def test_duplicate_create_raises_conflict(client):
    await client.create_collection("docs", CollectionSpec(dim=2, max_size=10))
    with pytest.raises(ConflictError) as exc_info:
        await client.create_collection("docs", CollectionSpec(dim=2, max_size=10))
    assert exc_info.value.status == 409


async def test_names_are_path_quoted(client, server):
    await client.create_collection("my docs", CollectionSpec(dim=2, max_size=10))

    assert b"/collection/my%20docs" in server.requests[-1].url.raw_path
    info = await client.get_collection("my docs")
    assert info.name == "my docs"


@pytest.mark.parametrize(
    "name,spec",
    [
        ("", CollectionSpec(dim=2, max_size=10)),
        ("   ", CollectionSpec(dim=2, max_size=10)),
        ("docs", CollectionSpec(dim=0, max_size=10)),
        ("docs", CollectionSpec(dim=-3, max_size=10)),
        ("docs", CollectionSpec(dim=2, max_size=0)),
    ],
)
async def test_create_rejects_invalid_arguments_without_io(client, server, name, spec):
    with pytest.raises(ValidationError) as exc_info:
        await client.create_collection(name, spec)
    assert exc_info.value.code == "VALIDATION_ERROR"
    assert server.requests == []
