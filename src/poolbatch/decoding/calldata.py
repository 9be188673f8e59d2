"""Calldata construction for read-only contract calls."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector


@lru_cache(maxsize=256)
def selector(signature: str) -> bytes:
    """4-byte selector for a canonical signature such as `"getReserves()"`."""
    return function_signature_to_4byte_selector(signature)


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> bytes:
    """Selector followed by the ABI-encoded arguments."""
    if len(arg_types) != len(args):
        raise ValueError(f"{signature}: {len(args)} args for {len(arg_types)} types")
    if not arg_types:
        return selector(signature)
    return selector(signature) + encode(list(arg_types), list(args))
