"""Compact binary encoding of a `BatchResult`.

Layout (big-endian), sized exactly to its content::

    u8  version (=1)
    u8  flags (bit0: diagnostics section present)
    u16 tag length, tag bytes (utf-8)
    u32 entry count
    entry x count:  u8 present; if present: u32 body length, ABI body
    diagnostics (if flag bit0) x count: u8 present; if present: u32 length, utf-8

A record body is the ABI encoding of the record's `ABI_TYPES` tuple. Absent
entries cost a single zero byte, so a sentinel can never be mistaken for a
real record whose fields happen to be zero.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from poolbatch.adapters.registry import record_type_for
from poolbatch.core.errors import PayloadTooLarge
from poolbatch.core.models import BatchResult, PoolRecord

WIRE_VERSION = 1
FLAG_DIAGNOSTICS = 0x01

_HEADER = struct.Struct(">BBH")
_U8 = struct.Struct(">B")
_U32 = struct.Struct(">I")


@dataclass(frozen=True, slots=True)
class PackedBatch:
    """Decoded buffer: the adapter tag and the index-aligned result."""

    tag: str
    result: BatchResult
    has_diagnostics: bool = False


# ---------------------------------------------------------------------------
# Packing
# ---------------------------------------------------------------------------


def encode_record(record: PoolRecord) -> bytes:
    """ABI body of one record (head/tail layout, no outer offset word)."""
    return encode(list(record.ABI_TYPES), list(record.to_abi()))


def _put_optional(out: bytearray, body: bytes | None) -> None:
    if body is None:
        out += _U8.pack(0)
        return
    out += _U8.pack(1)
    out += _U32.pack(len(body))
    out += body


def pack_batch(
    result: BatchResult,
    tag: str,
    *,
    include_diagnostics: bool = False,
    max_payload_bytes: int | None = None,
) -> bytes:
    """Serialize `result` produced by the adapter registered under `tag`."""
    record_type = record_type_for(tag)
    if include_diagnostics and not result.aligned:
        raise ValueError(
            f"{len(result.diagnostics)} diagnostics for {len(result.records)} records; "
            "every entry needs a diagnostic slot (None for synced entries)"
        )
    tag_bytes = tag.encode("utf-8")
    flags = FLAG_DIAGNOSTICS if include_diagnostics else 0

    out = bytearray(_HEADER.pack(WIRE_VERSION, flags, len(tag_bytes)))
    out += tag_bytes
    out += _U32.pack(len(result.records))

    for i, record in enumerate(result.records):
        if record is not None and not isinstance(record, record_type):
            raise TypeError(f"entry {i} is {type(record).__name__}, expected {record_type.__name__}")
        _put_optional(out, None if record is None else encode_record(record))

    if include_diagnostics:
        for diag in result.diagnostics:
            _put_optional(out, None if diag is None else diag.encode("utf-8"))

    if max_payload_bytes is not None and len(out) > max_payload_bytes:
        raise PayloadTooLarge(f"packed batch is {len(out)} bytes, limit {max_payload_bytes}")
    return bytes(out)


# ---------------------------------------------------------------------------
# Unpacking
# ---------------------------------------------------------------------------


class _Reader:
    """Cursor over a packed buffer; running past the end is a ValueError."""

    def __init__(self, buf: bytes) -> None:
        self.buf = buf
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.buf):
            raise ValueError(f"truncated buffer: need {n} bytes at offset {self.pos}, have {len(self.buf) - self.pos}")
        chunk = self.buf[self.pos : end]
        self.pos = end
        return chunk

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    def optional(self) -> bytes | None:
        (present,) = self.unpack(_U8)
        if present == 0:
            return None
        if present != 1:
            raise ValueError(f"bad presence byte {present} at offset {self.pos - 1}")
        (length,) = self.unpack(_U32)
        return self.take(length)


def unpack_batch(buf: bytes) -> PackedBatch:
    """Inverse of `pack_batch`; `pack_batch` of the output reproduces `buf`."""
    r = _Reader(buf)
    version, flags, tag_len = r.unpack(_HEADER)
    if version != WIRE_VERSION:
        raise ValueError(f"unsupported wire version {version}")
    if flags & ~FLAG_DIAGNOSTICS:
        raise ValueError(f"unknown flags {flags:#04x}")
    tag = r.take(tag_len).decode("utf-8")
    record_type = record_type_for(tag)
    (count,) = r.unpack(_U32)

    records: list[PoolRecord | None] = []
    for _ in range(count):
        body = r.optional()
        if body is None:
            records.append(None)
            continue
        try:
            values = decode(list(record_type.ABI_TYPES), body)
        except DecodingError as exc:
            raise ValueError(f"undecodable {tag} record: {exc}") from exc
        records.append(record_type.from_abi(values))

    diagnostics: list[str | None] = [None] * count
    if flags & FLAG_DIAGNOSTICS:
        for i in range(count):
            raw = r.optional()
            diagnostics[i] = None if raw is None else raw.decode("utf-8")

    if r.pos != len(buf):
        raise ValueError(f"{len(buf) - r.pos} trailing bytes after batch")
    return PackedBatch(
        tag=tag,
        result=BatchResult(records=records, diagnostics=diagnostics),
        has_diagnostics=bool(flags & FLAG_DIAGNOSTICS),
    )
