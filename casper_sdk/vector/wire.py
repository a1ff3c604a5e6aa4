# casper_sdk/vector/wire.py
# SPDX-License-Identifier: Apache-2.0
"""
Wire encoding/decoding for the Casper HTTP API.

Encoding is total: every valid in-memory value has exactly one JSON shape.
Decoding is partial-safe: unknown fields are ignored and missing optional
fields fall back to defaults. Only a missing or mistyped *required* field
raises `DecodeError`.

Search responses come in one of two shapes:

    binary  (application/octet-stream)
        [u32 LE count] followed by `count` * (u32 LE id, f32 LE score)

    JSON
        [[id, score], ...]  or  [{"id": ..., "score": ...}, ...]
"""

from __future__ import annotations

import json
import struct
from typing import Any, Dict, List, Mapping, Optional, Sequence

from casper_sdk.vector.vector_base import (
    CollectionInfo,
    CollectionSpec,
    DecodeError,
    HNSWIndexConfig,
    HNSWIndexSpec,
    IndexInfo,
    MatrixInfo,
    Metric,
    PqInfo,
    PqSpec,
    Quantization,
    SearchResult,
    VectorId,
    VectorRecord,
)

_COUNT = struct.Struct("<I")
_HIT = struct.Struct("<If")

# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_vector(vector: Sequence[float]) -> List[float]:
    return [float(x) for x in vector]


def encode_collection_params(spec: CollectionSpec) -> Dict[str, int]:
    """Create-collection parameters travel in the query string."""
    return {"dim": int(spec.dim), "max_size": int(spec.max_size)}


def encode_insert_body(record: VectorRecord) -> Dict[str, Any]:
    return {"vector": encode_vector(record.vector)}


def encode_search_body(vector: Sequence[float], limit: Optional[int]) -> Dict[str, Any]:
    body: Dict[str, Any] = {"vector": encode_vector(vector)}
    if limit is not None:
        body["limit"] = int(limit)
    return body


def encode_hnsw_config(cfg: HNSWIndexConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "metric": cfg.metric_wire,
        "quantization": cfg.quantization_wire,
        "m": int(cfg.m),
        "m0": int(cfg.m0),
        "ef_construction": int(cfg.ef_construction),
    }
    if cfg.pq_name is not None:
        out["pq_name"] = cfg.pq_name
    return out


def encode_hnsw_index(spec: HNSWIndexSpec) -> Dict[str, Any]:
    body: Dict[str, Any] = {"hnsw": encode_hnsw_config(spec.hnsw)}
    if spec.normalization is not None:
        body["normalization"] = bool(spec.normalization)
    return body


def encode_pq(spec: PqSpec) -> Dict[str, Any]:
    return {"dim": int(spec.dim), "codebooks": [str(c) for c in spec.codebooks]}


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------


def parse_json(raw: bytes, *, what: str) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(
            f"{what}: response is not valid JSON",
            body=raw[:512].decode("utf-8", "replace"),
        ) from exc


def _mapping(obj: Any, *, what: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise DecodeError(f"{what}: expected an object, got {type(obj).__name__}")
    return obj


def _list(obj: Any, *, what: str) -> List[Any]:
    if not isinstance(obj, list):
        raise DecodeError(f"{what}: expected an array, got {type(obj).__name__}")
    return obj


def _int(obj: Mapping[str, Any], *keys: str, what: str, default: Optional[int] = None) -> int:
    for key in keys:
        value = obj.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError(f"{what}: field '{key}' must be a number", details={"field": key})
        return int(value)
    if default is not None:
        return default
    raise DecodeError(f"{what}: missing required field '{keys[0]}'", details={"field": keys[0]})


def _str(obj: Mapping[str, Any], key: str, *, what: str, default: Optional[str] = None) -> str:
    value = obj.get(key)
    if value is None:
        if default is not None:
            return default
        raise DecodeError(f"{what}: missing required field '{key}'", details={"field": key})
    if not isinstance(value, str):
        raise DecodeError(f"{what}: field '{key}' must be a string", details={"field": key})
    return value


def _bool(obj: Mapping[str, Any], key: str, default: bool) -> bool:
    value = obj.get(key)
    return value if isinstance(value, bool) else default


def _floats(value: Any, *, what: str) -> List[float]:
    items = _list(value, what=what)
    try:
        return [float(x) for x in items]
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{what}: vector must contain only numbers") from exc


def error_message(raw: bytes) -> str:
    """Extract the human-readable message from an error body."""
    text = raw.decode("utf-8", "replace")
    try:
        payload = json.loads(text)
    except ValueError:
        return text
    if isinstance(payload, Mapping):
        msg = payload.get("error") or payload.get("message")
        if isinstance(msg, str):
            return msg
    return text


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_hnsw_config(obj: Any) -> HNSWIndexConfig:
    what = "hnsw config"
    data = _mapping(obj, what=what)
    metric_raw = _str(data, "metric", what=what)
    quant_raw = _str(data, "quantization", what=what, default=Quantization.F32.value)
    metric = Metric.parse(metric_raw)
    quantization = Quantization.parse(quant_raw)
    pq_name = data.get("pq_name")
    return HNSWIndexConfig(
        metric=metric,
        quantization=quantization,
        m=_int(data, "m", what=what),
        m0=_int(data, "m0", what=what),
        ef_construction=_int(data, "ef_construction", what=what),
        pq_name=pq_name if isinstance(pq_name, str) else None,
        metric_tag=metric_raw if metric is Metric.UNKNOWN else None,
        quantization_tag=quant_raw if quantization is Quantization.UNKNOWN else None,
    )


def decode_index_info(obj: Any) -> Optional[IndexInfo]:
    if obj is None:
        return None
    data = _mapping(obj, what="index info")
    hnsw = data.get("hnsw")
    return IndexInfo(
        hnsw=decode_hnsw_config(hnsw) if hnsw is not None else None,
        normalization=_bool(data, "normalization", False),
    )


def decode_collection_info(obj: Any, *, name: Optional[str] = None) -> CollectionInfo:
    what = "collection info"
    data = _mapping(obj, what=what)
    return CollectionInfo(
        name=_str(data, "name", what=what, default=name),
        dimension=_int(data, "dimension", "dim", what=what),
        max_size=_int(data, "max_size", what=what, default=0),
        mutable=_bool(data, "mutable", True),
        has_index=_bool(data, "has_index", data.get("index") is not None),
        size=_int(data, "size", what=what, default=0),
        index=decode_index_info(data.get("index")),
    )


def decode_collection_list(obj: Any) -> List[CollectionInfo]:
    if isinstance(obj, Mapping):
        obj = obj.get("collections", [])
    return [decode_collection_info(item) for item in _list(obj, what="collections")]


def decode_vector_record(obj: Any, *, vector_id: VectorId) -> VectorRecord:
    what = "vector"
    data = _mapping(obj, what=what)
    return VectorRecord(
        id=_int(data, "id", what=what, default=vector_id),
        vector=_floats(data.get("vector"), what=what),
    )


def _decode_hit(item: Any) -> SearchResult:
    if isinstance(item, (list, tuple)) and len(item) == 2:
        return SearchResult(id=int(item[0]), score=float(item[1]))
    data = _mapping(item, what="search result")
    score = data.get("score")
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        raise DecodeError("search result: field 'score' must be a number")
    return SearchResult(id=_int(data, "id", what="search result"), score=float(score))


def decode_search_binary(buf: bytes) -> List[SearchResult]:
    if len(buf) < _COUNT.size:
        raise DecodeError("binary search response too short (missing count)")
    (count,) = _COUNT.unpack_from(buf, 0)
    expected = _COUNT.size + count * _HIT.size
    if len(buf) < expected:
        raise DecodeError(
            f"binary search response truncated: expected at least {expected} bytes, got {len(buf)}",
            details={"expected": expected, "actual": len(buf)},
        )
    return [
        SearchResult(id=hit_id, score=score)
        for hit_id, score in _HIT.iter_unpack(buf[_COUNT.size:expected])
    ]


def decode_search_results(raw: bytes, content_type: Optional[str]) -> List[SearchResult]:
    """JSON only when the reply says so; anything else, or no type at all, is the packed format."""
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype != "application/json" and not ctype.endswith("+json"):
        return decode_search_binary(raw)
    payload = parse_json(raw, what="search")
    if isinstance(payload, Mapping):
        payload = payload.get("results", [])
    try:
        return [_decode_hit(item) for item in _list(payload, what="search")]
    except (TypeError, ValueError) as exc:
        raise DecodeError("search: malformed result entry") from exc


def decode_matrix_info(obj: Any) -> MatrixInfo:
    what = "matrix info"
    data = _mapping(obj, what=what)
    return MatrixInfo(
        name=_str(data, "name", what=what),
        dim=_int(data, "dim", "dimension", what=what),
        len=_int(data, "len", what=what, default=0),
        enabled=_bool(data, "enabled", True),
    )


def decode_matrix_list(obj: Any) -> List[MatrixInfo]:
    if isinstance(obj, Mapping):
        obj = obj.get("matrices", [])
    return [decode_matrix_info(item) for item in _list(obj, what="matrices")]


def decode_pq_info(obj: Any) -> PqInfo:
    what = "pq info"
    data = _mapping(obj, what=what)
    codebooks = data.get("codebooks") or []
    return PqInfo(
        name=_str(data, "name", what=what),
        dim=_int(data, "dim", what=what),
        codebooks=[str(c) for c in _list(codebooks, what=what)],
        enabled=_bool(data, "enabled", True),
    )


def decode_pq_list(obj: Any) -> List[PqInfo]:
    if isinstance(obj, Mapping):
        obj = obj.get("pqs", [])
    return [decode_pq_info(item) for item in _list(obj, what="pqs")]


__all__ = [
    "encode_vector",
    "encode_collection_params",
    "encode_insert_body",
    "encode_search_body",
    "encode_hnsw_config",
    "encode_hnsw_index",
    "encode_pq",
    "parse_json",
    "error_message",
    "decode_hnsw_config",
    "decode_index_info",
    "decode_collection_info",
    "decode_collection_list",
    "decode_vector_record",
    "decode_search_binary",
    "decode_search_results",
    "decode_matrix_info",
    "decode_matrix_list",
    "decode_pq_info",
    "decode_pq_list",
]
