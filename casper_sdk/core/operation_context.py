# casper_sdk/core/operation_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Request-scoped context for Casper client operations.

Every public `CasperClient` method accepts an optional `ctx`. It carries the
metadata that travels with one logical call: a correlation id, an absolute
deadline, a W3C traceparent and a free-form attribute bag.

Typical usage
-------------

    from casper_sdk.core.operation_context import OperationContext

    ctx = OperationContext.with_timeout(2_000, request_id="req-123")
    info = await client.get_collection("docs", ctx=ctx)

Notes
-----
- `deadline_ms` is an absolute epoch timestamp in milliseconds. Use
  `with_timeout()` to build one from a relative budget.
- `attrs` is the escape hatch for caller-specific data and is never sent
  to the server.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OperationContext:
    """
    Context for a single client operation.

    Attributes:
        request_id: Correlation id, forwarded as the `x-request-id` header
        deadline_ms: Absolute epoch milliseconds when the call must give up
        traceparent: W3C Trace Context header value, forwarded when present
        attrs: Additional caller attributes (never sent on the wire)
    """

    request_id: Optional[str] = None
    deadline_ms: Optional[int] = None
    traceparent: Optional[str] = None
    attrs: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def with_timeout(cls, timeout_ms: int, **kwargs: Any) -> "OperationContext":
        """Build a context whose deadline is `timeout_ms` from now."""
        return cls(deadline_ms=_now_ms() + int(timeout_ms), **kwargs)

    def remaining_ms(self) -> Optional[int]:
        """
        Return remaining milliseconds until deadline, or None if no deadline set.
        Non-negative (0 if expired).
        """
        if self.deadline_ms is None:
            return None
        return max(0, self.deadline_ms - _now_ms())

    def remaining_s(self) -> Optional[float]:
        rem = self.remaining_ms()
        return None if rem is None else rem / 1000.0

    def expired(self) -> bool:
        return self.remaining_ms() == 0

    def headers(self) -> Dict[str, str]:
        """HTTP / gRPC metadata derived from this context."""
        out: Dict[str, str] = {}
        if self.request_id:
            out["x-request-id"] = self.request_id
        if self.traceparent:
            out["traceparent"] = self.traceparent
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "deadline_ms": self.deadline_ms,
            "traceparent": self.traceparent,
            "attrs": dict(self.attrs),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OperationContext":
        """Create a context from a dict; unknown keys are ignored."""
        if data is None:
            return cls()
        return cls(
            request_id=data.get("request_id"),
            deadline_ms=data.get("deadline_ms"),
            traceparent=data.get("traceparent"),
            attrs=dict(data.get("attrs") or {}),
        )

    def with_attr(self, key: str, value: Any) -> "OperationContext":
        new_attrs = dict(self.attrs)
        new_attrs[key] = value
        return replace(self, attrs=new_attrs)


__all__ = [
    "OperationContext",
]
