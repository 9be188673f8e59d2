"""Total token display-name resolution.

`resolve_name` never fails for entry-level reasons: it tries the ABI string
form of `symbol()`, then the legacy `bytes32` form, then falls back to a
deterministic placeholder derived from the address.
"""

from __future__ import annotations

from collections.abc import Sequence

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from poolbatch.validation.validator import DefensiveValidator

PLACEHOLDER_PREFIX = "UNK_"

def placeholder_name(address: str) -> str:
    """`"UNK_"` + the 40 lowercase hex digits of the address."""
    return PLACEHOLDER_PREFIX + address.lower().removeprefix("0x")

def decode_string_symbol(raw: bytes) -> str | None:
    try:
        (value,) = decode(["string"], raw)
    except (DecodingError, OverflowError, ValueError):
        return None
    return value or None

def decode_bytes32_symbol(raw: bytes) -> str | None:
    """Bytes up to (excluding) the first zero byte, or all 32 if none is zero."""
    if len(raw) != 32:
        return None
    end = raw.find(b"\x00")
    text = raw if end < 0 else raw[:end]
    return text.decode("utf-8", errors="replace") or None


def name_from_symbol(raw: bytes | None, token: str) -> str:
    """Decode a `symbol()` payload, falling back to the placeholder."""
    if raw is not None:
        name = decode_string_symbol(raw) or decode_bytes32_symbol(raw)
        if name:
            return name
    return placeholder_name(token)

async def resolve_name(validator: DefensiveValidator, token: str) -> str:
    """Return a non-empty display name for `token`."""
    return name_from_symbol(await validator.try_call(token, "symbol()"), token)

async def resolve_names(validator: DefensiveValidator, tokens: Sequence[str]) -> tuple[str, ...]:
    """`resolve_name` for several tokens in one round trip."""
    raws = await validator.try_calls(tokens, "symbol()")
    return tuple(name_from_symbol(raw, token) for raw, token in zip(raws, tokens))
