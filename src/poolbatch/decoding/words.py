"""Fixed-width ABI word access and range-checked typed parsers."""

from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address  # type: ignore[attr-defined]

from poolbatch.core.errors import DecodeLengthMismatch, ValueOutOfRange

WORD = 32


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word (caller guarantees it exists)."""
    start = WORD * i
    return data[start : start + WORD]


def _bits(typ: str, prefix: str) -> int:
    suffix = typ[len(prefix) :]
    return int(suffix) if suffix else 256


def parse_word(word: bytes, typ: str) -> Any:
    """Parse one ABI word according to the declared type.

    Unlike a lenient decoder, any value that does not fit the declared type
    (dirty address padding, an int24 that is not sign-extended, a uint112
    with high bits set) raises `ValueOutOfRange`.
    """
    if len(word) != WORD:
        raise DecodeLengthMismatch(f"word of {len(word)} bytes")
    if typ == "address":
        if any(word[:12]):
            raise ValueOutOfRange("address word has non-zero padding")
        return to_checksum_address(word[12:])
    if typ == "bool":
        v = int.from_bytes(word, "big")
        if v > 1:
            raise ValueOutOfRange(f"bool word {v}")
        return bool(v)
    if typ == "bytes32":
        return bytes(word)
    if typ.startswith("uint"):
        v = int.from_bytes(word, "big", signed=False)
        bits = _bits(typ, "uint")
        if v >= 2**bits:
            raise ValueOutOfRange(f"{v} does not fit {typ}")
        return v
    if typ.startswith("int"):
        v = int.from_bytes(word, "big", signed=True)
        bits = _bits(typ, "int")
        if not -(2 ** (bits - 1)) <= v < 2 ** (bits - 1):
            raise ValueOutOfRange(f"{v} does not fit {typ}")
        return v
    raise ValueError(f"unsupported fixed-width type {typ!r}")


def parse_words(raw: bytes, types: tuple[str, ...]) -> tuple[Any, ...]:
    """Parse a payload that must be exactly one word per declared type."""
    if len(raw) != WORD * len(types):
        raise DecodeLengthMismatch(f"expected {WORD * len(types)} bytes, got {len(raw)}")
    return tuple(parse_word(word_at(raw, i), t) for i, t in enumerate(types))
