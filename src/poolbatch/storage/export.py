"""Arrow/Parquet export of a batch result.

One row per input address, in input order. Base columns are fixed; record
columns come from the record type's fields. Integers of any width and raw
bytes are stored as strings (decimal / 0x-hex) so uint256 values survive
Arrow without overflow.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import fields
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from poolbatch.core.models import BatchResult, PoolRecord

logger = logging.getLogger(__name__)

_BASE_FIELDS: list[tuple[str, pa.DataType]] = [
    ("index", pa.uint64()),
    ("address", pa.string()),
    ("synced", pa.bool_()),
    ("diagnostic", pa.string()),
]


def _to_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _cell(value: Any, is_array: bool) -> Any:
    if value is None:
        return None
    if is_array:
        return [_to_str(v) for v in value]
    return _to_str(value)


def _infer_record_type(result: BatchResult) -> type[PoolRecord] | None:
    for r in result.records:
        if r is not None:
            return type(r)
    return None


def batch_to_table(
    result: BatchResult,
    addresses: Sequence[str],
    record_type: type[PoolRecord] | None = None,
) -> pa.Table:
    """Convert `result` to a table with a deterministic schema.

    `record_type` fixes the record columns even when every entry is a
    sentinel; otherwise it is inferred from the first present record.
    """
    if len(addresses) != len(result):
        raise ValueError(f"{len(addresses)} addresses for {len(result)} entries")

    schema_fields = [pa.field(n, t) for n, t in _BASE_FIELDS]
    arrays: dict[str, list[Any]] = {
        "index": list(range(len(result))),
        "address": list(addresses),
        "synced": [r is not None for r in result.records],
        "diagnostic": list(result.diagnostics),
    }

    rtype = record_type or _infer_record_type(result)
    if rtype is not None:
        for f, abi_type in zip(fields(rtype), rtype.ABI_TYPES, strict=True):
            is_array = abi_type.endswith("[]")
            schema_fields.append(pa.field(f.name, pa.list_(pa.string()) if is_array else pa.string()))
            arrays[f.name] = [
                None if r is None else _cell(getattr(r, f.name), is_array) for r in result.records
            ]

    return pa.Table.from_pydict(arrays, schema=pa.schema(schema_fields))


def write_parquet(table: pa.Table, path: Path | str, *, codec: str = "zstd") -> Path:
    """Write Parquet atomically (tmp + replace)."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_suffix(".tmp")
    pq.write_table(table, tmp, compression=codec)
    os.replace(tmp, out_path)
    logger.info("wrote %s (rows=%d, cols=%d)", out_path, len(table), len(table.schema))
    return out_path
