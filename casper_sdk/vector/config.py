# casper_sdk/vector/config.py
# SPDX-License-Identifier: Apache-2.0
"""
Client configuration.

    config = CasperClientConfig.from_env()
    async with CasperClient(config=config) as client:
        ...

Environment variables (all optional):

    CASPER_HOST          scheme + host, default "http://127.0.0.1"
    CASPER_HTTP_PORT     default 8080
    CASPER_GRPC_PORT     default 50051
    CASPER_TIMEOUT_S     per-request HTTP timeout, default 30
    CASPER_CHUNK_FLOATS  default matrix upload frame size, default 4096
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar
from urllib.parse import urlsplit

from casper_sdk.vector.grpc_executor import DEFAULT_MAX_MESSAGE_BYTES
from casper_sdk.vector.vector_base import ValidationError

T = TypeVar("T")

DEFAULT_HOST = "http://127.0.0.1"
DEFAULT_HTTP_PORT = 8080
DEFAULT_GRPC_PORT = 50051
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_CHUNK_FLOATS = 4096


@dataclass(frozen=True)
class CasperClientConfig:
    """
    Connection settings for a `CasperClient`.

    Attributes:
        host: Scheme and host of the server, e.g. "http://127.0.0.1"
        http_port: Port of the HTTP API
        grpc_port: Port of the gRPC matrix service
        timeout_s: Per-request HTTP timeout in seconds
        chunk_floats: Default number of floats per upload frame
        grpc_max_message_bytes: gRPC send/receive message size cap
    """
    host: str = DEFAULT_HOST
    http_port: int = DEFAULT_HTTP_PORT
    grpc_port: int = DEFAULT_GRPC_PORT
    timeout_s: float = DEFAULT_TIMEOUT_S
    chunk_floats: int = DEFAULT_CHUNK_FLOATS
    grpc_max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES

    def __post_init__(self) -> None:
        parts = urlsplit(self.host)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValidationError(
                "host must include an http(s) scheme, e.g. 'http://127.0.0.1'",
                code="BAD_CONFIG",
                details={"host": self.host},
            )
        try:
            port = parts.port
        except ValueError:
            port = -1
        has_extras = (
            port is not None
            or parts.username is not None
            or parts.path not in ("", "/")
            or bool(parts.query or parts.fragment)
        )
        if has_extras:
            raise ValidationError(
                "host must be scheme and host only; set ports with http_port / grpc_port",
                code="BAD_CONFIG",
                details={"host": self.host},
            )
        for key in ("http_port", "grpc_port"):
            port = getattr(self, key)
            if not isinstance(port, int) or not 0 < port < 65536:
                raise ValidationError(f"{key} must be in 1..65535", code="BAD_CONFIG")
        if self.timeout_s <= 0:
            raise ValidationError("timeout_s must be positive", code="BAD_CONFIG")
        if self.chunk_floats < 1:
            raise ValidationError("chunk_floats must be >= 1", code="BAD_CONFIG")

    @property
    def hostname(self) -> str:
        return urlsplit(self.host).hostname or ""

    @property
    def is_ipv6(self) -> bool:
        return ":" in self.hostname

    @property
    def base_url(self) -> str:
        host = f"[{self.hostname}]" if self.is_ipv6 else self.hostname
        return f"{urlsplit(self.host).scheme}://{host}:{self.http_port}/"

    @property
    def grpc_target(self) -> str:
        if self.is_ipv6:
            return f"ipv6:[{self.hostname}]:{self.grpc_port}"
        return f"{self.hostname}:{self.grpc_port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CasperClientConfig":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("CASPER_HOST") or DEFAULT_HOST,
            http_port=_env(env, "CASPER_HTTP_PORT", int, DEFAULT_HTTP_PORT),
            grpc_port=_env(env, "CASPER_GRPC_PORT", int, DEFAULT_GRPC_PORT),
            timeout_s=_env(env, "CASPER_TIMEOUT_S", float, DEFAULT_TIMEOUT_S),
            chunk_floats=_env(env, "CASPER_CHUNK_FLOATS", int, DEFAULT_CHUNK_FLOATS),
        )


def _env(env: Mapping[str, str], key: str, cast: Callable[[str], T], default: T) -> T:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValidationError(
            f"{key} has an invalid value: {raw!r}", code="BAD_CONFIG", details={"env": key}
        ) from exc


__all__ = [
    "CasperClientConfig",
    "DEFAULT_HOST",
    "DEFAULT_HTTP_PORT",
    "DEFAULT_GRPC_PORT",
    "DEFAULT_TIMEOUT_S",
    "DEFAULT_CHUNK_FLOATS",
]
