# casper_sdk/vector/batch.py
# SPDX-License-Identifier: Apache-2.0
"""
Batch composer: merges inserts and deletes into a single update request.

Request body:

    {"insert": [{"id": 1, "vector": [...]}, ...], "delete": [7, 8]}

Response handling:

- A 2xx with no body (or no `results`) is an all-or-nothing success: every
  item is reported ok.
- A 2xx whose body carries `results` is a per-item report. Entries are
  matched to the input by `(op, id)` when they name them, otherwise by
  position in the combined order (inserts first, then deletes).
- A non-2xx never reaches the composer; the HTTP executor raises.

Ids appearing in both lists are passed through untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from casper_sdk.vector.vector_base import (
    BatchItemOutcome,
    BatchUpdateResult,
    BatchUpdateSpec,
    DecodeError,
    VectorId,
)
from casper_sdk.vector.wire import encode_vector

logger = logging.getLogger(__name__)

OP_INSERT = "insert"
OP_DELETE = "delete"


class BatchComposer:
    """Stateless; one instance is shared by the client."""

    @staticmethod
    def items(spec: BatchUpdateSpec) -> List[Tuple[str, VectorId]]:
        """The combined input order that outcomes are aligned to."""
        return [(OP_INSERT, r.id) for r in spec.insert] + [(OP_DELETE, i) for i in spec.delete]

    def compose(self, spec: BatchUpdateSpec) -> Dict[str, Any]:
        return {
            OP_INSERT: [{"id": int(r.id), "vector": encode_vector(r.vector)} for r in spec.insert],
            OP_DELETE: [int(i) for i in spec.delete],
        }

    def interpret(self, spec: BatchUpdateSpec, payload: Any) -> BatchUpdateResult:
        items = self.items(spec)
        results = payload.get("results") if isinstance(payload, Mapping) else None
        if results is None:
            return self._aggregate(spec, items)
        if not isinstance(results, list):
            raise DecodeError("batch update: 'results' must be an array")
        return self._per_item(items, results)

    @staticmethod
    def _aggregate(spec: BatchUpdateSpec, items: List[Tuple[str, VectorId]]) -> BatchUpdateResult:
        return BatchUpdateResult(
            inserted_count=len(spec.insert),
            deleted_count=len(spec.delete),
            failed_count=0,
            outcomes=[BatchItemOutcome(op=op, id=i, ok=True) for op, i in items],
            partial=False,
        )

    def _per_item(self, items: List[Tuple[str, VectorId]], results: List[Any]) -> BatchUpdateResult:
        keyed: Dict[Tuple[str, int], Mapping[str, Any]] = {}
        positional: Dict[int, Mapping[str, Any]] = {}
        for index, entry in enumerate(results):
            if not isinstance(entry, Mapping):
                raise DecodeError("batch update: each result must be an object")
            op, vid = entry.get("op"), entry.get("id")
            if isinstance(op, str) and isinstance(vid, int) and not isinstance(vid, bool):
                keyed[(op, vid)] = entry
            else:
                # Unkeyed entries line up with the item at the same index.
                positional[index] = entry

        outcomes: List[BatchItemOutcome] = []
        for pos, (op, vid) in enumerate(items):
            entry = keyed.get((op, int(vid)))
            if entry is None:
                entry = positional.get(pos)
            outcomes.append(self._outcome(op, vid, entry))

        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            logger.debug("batch update reported %d failed item(s) of %d", failed, len(outcomes))
        return BatchUpdateResult(
            inserted_count=sum(1 for o in outcomes if o.ok and o.op == OP_INSERT),
            deleted_count=sum(1 for o in outcomes if o.ok and o.op == OP_DELETE),
            failed_count=failed,
            outcomes=outcomes,
            partial=True,
        )

    @staticmethod
    def _outcome(op: str, vid: VectorId, entry: Optional[Mapping[str, Any]]) -> BatchItemOutcome:
        if entry is None:
            # The server listed outcomes but skipped this item.
            return BatchItemOutcome(op=op, id=vid, ok=False, error="no outcome reported")
        error = entry.get("error")
        ok = entry.get("ok")
        if not isinstance(ok, bool):
            ok = error is None
        return BatchItemOutcome(
            op=op,
            id=vid,
            ok=ok,
            error=str(error) if error is not None else None,
        )


__all__ = [
    "OP_INSERT",
    "OP_DELETE",
    "BatchComposer",
]
