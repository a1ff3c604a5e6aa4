# casper_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Error context utilities for the Casper client.

Errors raised by the executors reach the caller unchanged (same type, same
message, same status/body). On the way out, the facade attaches a small
mapping describing *where* the error happened so handlers can log it
without parsing messages:

    try:
        await client.insert_vector("docs", record)
    except CasperError as exc:
        ctx = get_context(exc)
        logger.error(
            "insert failed",
            extra={"operation": ctx.get("operation"), "collection": ctx.get("collection")},
        )

Two attributes are set on the exception:

- `__casper_context__` (canonical)
- `__<origin>_context__` (origin-specific, e.g. `__casper_grpc_context__`)

Multiple calls merge rather than overwrite, so the executor and the facade
can both contribute keys.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

logger = logging.getLogger(__name__)

_CANONICAL_ATTR = "__casper_context__"


def attach_context(
    exc: BaseException,
    framework: str,
    **context: Any,
) -> None:
    """
    Attach debugging context to an exception.

    Parameters
    ----------
    exc:
        The exception to enrich.

    framework:
        Origin of the context ("casper", "casper_http", "casper_grpc", ...).
        Stored under the `framework` key unless an earlier layer set it.

    **context:
        Arbitrary keys (operation, collection, matrix, status, ...). Avoid
        vectors or other large payloads.

    Context attachment is best-effort; a failure here is logged at debug
    level and never masks the original exception.
    """
    try:
        merged: MutableMapping[str, Any] = {}
        existing = getattr(exc, _CANONICAL_ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)

        merged.setdefault("framework", framework)
        merged.update(context)

        setattr(exc, _CANONICAL_ATTR, merged)
        setattr(exc, f"__{framework}_context__", merged)
    except Exception as attachment_error:  # noqa: BLE001
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"framework": framework},
        )


def get_context(
    exc: BaseException,
    *,
    framework: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Retrieve attached context from an exception, or an empty dict.

    If `framework` is given, the origin-specific attribute is tried first.
    """
    if framework:
        ctx = getattr(exc, f"__{framework}_context__", None)
        if isinstance(ctx, Mapping):
            return ctx
    ctx = getattr(exc, _CANONICAL_ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


def has_context(exc: BaseException, *, framework: Optional[str] = None) -> bool:
    return len(get_context(exc, framework=framework)) > 0


__all__ = [
    "attach_context",
    "get_context",
    "has_context",
]
