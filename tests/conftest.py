# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures: an in-memory Casper server.

`FakeCasperServer` answers the HTTP routes through `httpx.MockTransport`
and the matrix upload RPC through an in-process `grpc.aio` server. Both
transports share one state object, so a matrix streamed over gRPC shows up
in `GET /matrix/list`.

Knobs on the server let tests force specific behavior:

    binary_search       search replies with the packed little-endian format
    search_content_type Content-Type of packed search replies (None omits it)
    report_batch_items  batch updates reply with per-item `results`
    fail_next           (status, body) returned for the next HTTP request
    abort_after_frames  gRPC upload aborts after N frames
    upload_delay_s      gRPC upload sleeps before acknowledging
"""

from __future__ import annotations

import asyncio
import json
import struct
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import grpc
import httpx
import pytest

from casper_sdk.vector import CasperClient, CasperClientConfig
from casper_sdk.vector.proto import matrix_service_pb2 as pb
from casper_sdk.vector.proto import matrix_service_pb2_grpc as pb_grpc

TEST_HOST = "http://casper.test"


def _json(status: int, payload: Any) -> httpx.Response:
    return httpx.Response(status, json=payload)


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": message})


class FakeCasperServer(pb_grpc.MatrixServiceServicer):
    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.matrices: Dict[str, Dict[str, Any]] = {}
        self.pqs: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []

        self.binary_search = True
        self.search_content_type: Optional[str] = "application/octet-stream"
        self.report_batch_items = False
        self.fail_next: Optional[Tuple[int, bytes]] = None

        self.frames: List[Any] = []
        self.uploads: List[Dict[str, Any]] = []
        self.upload_metadata: List[Dict[str, str]] = []
        self.abort_after_frames: Optional[int] = None
        self.upload_delay_s = 0.0

    # ------------------------------------------------------------------ #
    # HTTP
    # ------------------------------------------------------------------ #

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_next is not None:
            status, body = self.fail_next
            self.fail_next = None
            return httpx.Response(status, content=body)

        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        parts = [unquote(p) for p in raw_path.strip("/").split("/")]
        method = request.method
        params = request.url.params

        if parts == ["collections"] and method == "GET":
            return _json(200, {"collections": [self._info(n) for n in sorted(self.collections)]})

        if parts[0] == "collection" and len(parts) >= 2:
            return self._collection_route(method, parts[1], parts[2:], params, request)

        if parts[0] == "matrix" and len(parts) == 2:
            name = parts[1]
            if name == "list" and method == "GET":
                return _json(200, {"matrices": [dict(m) for m in self.matrices.values()]})
            if method == "GET":
                if name not in self.matrices:
                    return _error(404, f"matrix {name} not found")
                return _json(200, self.matrices[name])
            if method == "DELETE":
                if self.matrices.pop(name, None) is None:
                    return _error(404, f"matrix {name} not found")
                return httpx.Response(200)

        if parts[0] == "pq" and len(parts) == 2:
            name = parts[1]
            if name == "list" and method == "GET":
                return _json(200, {"pqs": list(self.pqs.values())})
            if method == "POST":
                body = json.loads(request.content)
                missing = [c for c in body["codebooks"] if c not in self.matrices]
                if missing:
                    return _error(404, f"matrix {missing[0]} not found")
                self.pqs[name] = {"name": name, "dim": body["dim"], "codebooks": body["codebooks"]}
                return httpx.Response(200)
            if method == "GET":
                if name not in self.pqs:
                    return _error(404, f"pq {name} not found")
                return _json(200, self.pqs[name])
            if method == "DELETE":
                if self.pqs.pop(name, None) is None:
                    return _error(404, f"pq {name} not found")
                return httpx.Response(200)

        return _error(405, "method not allowed")

    def _info(self, name: str) -> Dict[str, Any]:
        col = self.collections[name]
        return {
            "name": name,
            "dimension": col["dim"],
            "max_size": col["max_size"],
            "mutable": True,
            "has_index": col["index"] is not None,
            "size": len(col["vectors"]),
            "index": col["index"],
        }

    def _collection_route(self, method, name, rest, params, request) -> httpx.Response:
        if not rest:
            if method == "POST":
                if name in self.collections:
                    return _error(409, f"collection {name} already exists")
                self.collections[name] = {
                    "dim": int(params["dim"]),
                    "max_size": int(params["max_size"]),
                    "vectors": {},
                    "index": None,
                }
                return httpx.Response(200)
            if name not in self.collections:
                return _error(404, f"collection {name} not found")
            if method == "GET":
                return _json(200, self._info(name))
            if method == "DELETE":
                del self.collections[name]
                return httpx.Response(200)
            return _error(405, "method not allowed")

        if name not in self.collections:
            return _error(404, f"collection {name} not found")
        col = self.collections[name]
        action = rest[0]

        if action == "insert" and method == "POST":
            vector = json.loads(request.content)["vector"]
            if len(vector) != col["dim"]:
                return _error(400, f"invalid vector dimension: expected {col['dim']}, got {len(vector)}")
            col["vectors"][int(params["id"])] = vector
            return httpx.Response(200)

        if action == "delete" and method == "DELETE":
            if col["vectors"].pop(int(params["id"]), None) is None:
                return _error(404, f"vector {params['id']} not found")
            return httpx.Response(200)

        if action == "vector" and len(rest) == 2 and method == "GET":
            vid = int(rest[1])
            if vid not in col["vectors"]:
                return _error(404, f"vector {vid} not found")
            return _json(200, {"id": vid, "vector": col["vectors"][vid]})

        if action == "search" and method == "POST":
            body = json.loads(request.content)
            query = body["vector"]
            if len(query) != col["dim"]:
                return _error(400, f"invalid vector dimension: expected {col['dim']}, got {len(query)}")
            pool = int(params.get("limit") or body.get("limit") or 10)
            scored = sorted(
                ((vid, sum(a * b for a, b in zip(query, vec))) for vid, vec in col["vectors"].items()),
                key=lambda hit: (-hit[1], hit[0]),
            )[:pool]
            if self.binary_search:
                buf = struct.pack("<I", len(scored))
                buf += b"".join(struct.pack("<If", vid, score) for vid, score in scored)
                headers = {"content-type": self.search_content_type} if self.search_content_type else {}
                return httpx.Response(200, content=buf, headers=headers)
            return _json(200, [[vid, score] for vid, score in scored])

        if action == "update" and method == "POST":
            return self._batch(col, json.loads(request.content))

        if action == "index":
            if method == "POST":
                col["index"] = json.loads(request.content)
                return httpx.Response(200)
            if method == "DELETE":
                if col["index"] is None:
                    return _error(404, f"collection {name} has no index")
                col["index"] = None
                return httpx.Response(200)

        return _error(405, "method not allowed")

    def _batch(self, col: Dict[str, Any], body: Dict[str, Any]) -> httpx.Response:
        results = []
        for item in body["insert"]:
            if len(item["vector"]) != col["dim"]:
                results.append({"op": "insert", "id": item["id"], "ok": False, "error": "invalid vector dimension"})
                continue
            col["vectors"][item["id"]] = item["vector"]
            results.append({"op": "insert", "id": item["id"], "ok": True})
        for vid in body["delete"]:
            if col["vectors"].pop(vid, None) is None:
                results.append({"op": "delete", "id": vid, "ok": False, "error": f"vector {vid} not found"})
            else:
                results.append({"op": "delete", "id": vid, "ok": True})
        if self.report_batch_items:
            return _json(200, {"results": results})
        return httpx.Response(200)

    # ------------------------------------------------------------------ #
    # gRPC
    # ------------------------------------------------------------------ #

    async def UploadMatrix(self, request_iterator, context):
        self.upload_metadata.append({k: v for k, v in context.invocation_metadata()})
        header = None
        values: List[float] = []
        frames = []
        async for frame in request_iterator:
            frames.append(frame)
            self.frames.append(frame)
            if self.abort_after_frames is not None and len(frames) >= self.abort_after_frames:
                await context.abort(grpc.StatusCode.INTERNAL, "matrix store failed")
            kind = frame.WhichOneof("payload")
            if kind == "header":
                if header is not None:
                    await context.abort(grpc.StatusCode.INVALID_ARGUMENT, "duplicate header")
                header = frame.header
            elif header is None:
                await context.abort(grpc.StatusCode.INVALID_ARGUMENT, "data before header")
            else:
                values.extend(frame.data.vector)

        if header is None:
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, "missing header")
        if self.upload_delay_s:
            await asyncio.sleep(self.upload_delay_s)

        data_frames = len(frames) - 1
        rows = len(values) // header.dimension
        self.matrices[header.name] = {"name": header.name, "dim": header.dimension, "len": rows}
        self.uploads.append({"name": header.name, "header": header, "values": values, "frames": frames})
        return pb.UploadMatrixResponse(total_vectors=rows, total_chunks=data_frames)


@pytest.fixture
def server() -> FakeCasperServer:
    return FakeCasperServer()


def _http_client(server: FakeCasperServer, base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(server.handle))


@pytest.fixture
async def client(server):
    """Client whose HTTP side talks to the fake server; no gRPC server behind it."""
    config = CasperClientConfig(host=TEST_HOST)
    http = _http_client(server, config.base_url)
    c = CasperClient(config=config, http_client=http)
    yield c
    await c.close()
    await http.aclose()


@pytest.fixture
async def grpc_port(server):
    grpc_server = grpc.aio.server()
    pb_grpc.add_MatrixServiceServicer_to_server(server, grpc_server)
    port = grpc_server.add_insecure_port("127.0.0.1:0")
    await grpc_server.start()
    yield port
    await grpc_server.stop(None)


@pytest.fixture
async def full_client(server, grpc_port):
    """Client wired to both the fake HTTP routes and the in-process gRPC server."""
    config = CasperClientConfig(host="http://127.0.0.1", grpc_port=grpc_port)
    http = _http_client(server, config.base_url)
    c = CasperClient(config=config, http_client=http)
    yield c
    await c.close()
    await http.aclose()
