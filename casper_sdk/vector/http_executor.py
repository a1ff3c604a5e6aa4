# casper_sdk/vector/http_executor.py
# SPDX-License-Identifier: Apache-2.0
"""
HTTP operation executor for the Casper client.

Sends one request and interprets one response per call over a shared
`httpx.AsyncClient`. There is no retry, no idempotency key and no caching:
every invocation is exactly one round trip, whether the operation is
idempotent (get/list/info/delete) or not (insert/create).

Status mapping
--------------
    2xx                      -> decoded body (None when empty)
    404                      -> NotFoundError
    400 mentioning dimension -> DimensionMismatchError
    400                      -> RequestError
    405                      -> OperationNotAllowedError
    409                      -> ConflictError
    5xx                      -> ServerError
    anything else            -> RequestError

Every error carries the HTTP status and the raw response body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from casper_sdk.core.operation_context import OperationContext
from casper_sdk.vector.vector_base import (
    ConflictError,
    DeadlineExceeded,
    DimensionMismatchError,
    NotFoundError,
    OperationNotAllowedError,
    RequestError,
    ServerError,
    TransportError,
)
from casper_sdk.vector.wire import error_message, parse_json

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json, application/octet-stream",
}


def path_segment(value: Any) -> str:
    """Quote a name or id for use as a single URL path segment."""
    return quote(str(value), safe="")


def error_from_status(status: int, raw: bytes, *, op: str = "") -> RequestError:
    """
    Map a non-success HTTP response to the client error taxonomy.

    The message is the server's `{"error": ...}` field when present,
    otherwise the raw body.
    """
    body = raw.decode("utf-8", "replace")
    message = error_message(raw) or f"HTTP {status}"
    kwargs: Dict[str, Any] = {"status": status, "body": body, "details": {"op": op} if op else None}

    if status == 404:
        return NotFoundError(message, **kwargs)
    if status == 400:
        if "dimension" in message.lower():
            return DimensionMismatchError(message, **kwargs)
        return RequestError(message, **kwargs)
    if status == 405:
        return OperationNotAllowedError(message, **kwargs)
    if status == 409:
        return ConflictError(message, **kwargs)
    if 500 <= status <= 599:
        return ServerError(message, **kwargs)
    return RequestError(f"HTTP {status}: {message}", **kwargs)


@dataclass(frozen=True)
class HttpReply:
    """A successful (2xx) response, body fully read."""
    status: int
    content: bytes
    content_type: Optional[str]

    @property
    def empty(self) -> bool:
        return not self.content.strip()

    def json(self, *, what: str) -> Any:
        if self.empty:
            return None
        return parse_json(self.content, what=what)


class HttpExecutor:
    """
    Unary request/response transport.

    The underlying `httpx.AsyncClient` (and its connection pool) is shared by
    every call issued through this executor. Pass `client` to supply a
    preconfigured one (tests use `httpx.MockTransport`); otherwise the
    executor creates and owns its own.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        final_headers = dict(DEFAULT_HEADERS)
        if headers:
            final_headers.update(headers)

        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url,
                headers=final_headers,
                timeout=timeout_s,
            )
            self._owns_client = True
        else:
            self._owns_client = False

        self._client = client
        self._base_url = base_url
        logger.debug("Created HTTP executor for %s (timeout=%ss)", base_url, timeout_s)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def call(
        self,
        method: str,
        path: str,
        *,
        op: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        ctx: Optional[OperationContext] = None,
    ) -> HttpReply:
        """
        Issue exactly one request and return the 2xx reply.

        Raises:
            RequestError (or a subclass) for any non-2xx status
            TransportError when no response was received
            DeadlineExceeded when the transport timed out
        """
        headers = ctx.headers() if ctx is not None else None
        logger.debug("casper http %s %s (op=%s)", method, path, op)
        try:
            response = await self._client.request(
                method,
                path,
                params=_stringify(params),
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise DeadlineExceeded(
                f"{op}: HTTP request timed out",
                details={"op": op, "path": path},
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{op}: HTTP transport failure: {exc}",
                details={"op": op, "path": path},
            ) from exc

        content = response.content
        if not response.is_success:
            err = error_from_status(response.status_code, content, op=op)
            logger.debug("casper http %s %s -> %s (%s)", method, path, response.status_code, err.code)
            raise err

        return HttpReply(
            status=response.status_code,
            content=content,
            content_type=response.headers.get("content-type"),
        )

    async def call_json(self, method: str, path: str, *, op: str, **kwargs: Any) -> Any:
        reply = await self.call(method, path, op=op, **kwargs)
        return reply.json(what=op)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _stringify(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
    """Query values as the server expects them (booleans lowercase)."""
    if not params:
        return None
    out: Dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = str(value)
    return out


__all__ = [
    "DEFAULT_HEADERS",
    "HttpExecutor",
    "HttpReply",
    "error_from_status",
    "path_segment",
]
