"""Adapter registry keyed by tag.

This module exposes:
- `ADAPTERS` → tag to adapter class
- `make_adapter(tag, settings)` → adapter built from `AdapterSettings`
- `record_type_for(tag)` → record class used to decode a packed batch

Adding a protocol family means adding its adapter class to `ADAPTERS` and a
branch in `make_adapter` if it needs injected addresses.
"""

from __future__ import annotations

from poolbatch.adapters.balancer import BalancerWeightedPoolAdapter
from poolbatch.adapters.base import PoolAdapter
from poolbatch.adapters.curve import CurveThreePoolAdapter, CurveTwoPoolAdapter
from poolbatch.adapters.maverick import MaverickV2PoolAdapter
from poolbatch.adapters.uniswap import (
    UniswapV2PairAdapter,
    UniswapV3StateAdapter,
    UniswapV3TickBitmapWindowAdapter,
)
from poolbatch.core.config import AdapterSettings
from poolbatch.core.models import PoolRecord

ADAPTERS: dict[str, type[PoolAdapter]] = {
    cls.tag: cls
    for cls in (
        UniswapV2PairAdapter,
        UniswapV3StateAdapter,
        UniswapV3TickBitmapWindowAdapter,
        CurveTwoPoolAdapter,
        CurveThreePoolAdapter,
        BalancerWeightedPoolAdapter,
        MaverickV2PoolAdapter,
    )
}


def record_type_for(tag: str) -> type[PoolRecord]:
    """Record class produced by the adapter registered under `tag`."""
    try:
        return ADAPTERS[tag].record_type
    except KeyError:
        raise ValueError(f"unknown adapter tag {tag!r}") from None


def make_adapter(tag: str, settings: AdapterSettings | None = None) -> PoolAdapter:
    """Build the adapter for `tag`, injecting factory/vault addresses from `settings`."""
    s = settings or AdapterSettings()

    if tag == UniswapV2PairAdapter.tag:
        return UniswapV2PairAdapter(resolve_names=s.resolve_names)
    if tag == UniswapV3StateAdapter.tag:
        return UniswapV3StateAdapter()
    if tag == UniswapV3TickBitmapWindowAdapter.tag:
        return UniswapV3TickBitmapWindowAdapter(half_width=s.tick_half_width, ticks_to_fetch=s.ticks_to_fetch)
    if tag == CurveTwoPoolAdapter.tag:
        if s.curve_two_factory is None:
            raise ValueError("curve_2pool needs curve_two_factory")
        return CurveTwoPoolAdapter(s.curve_two_factory, resolve_names=s.resolve_names)
    if tag == CurveThreePoolAdapter.tag:
        if s.curve_tri_factory is None:
            raise ValueError("curve_3pool needs curve_tri_factory")
        return CurveThreePoolAdapter(s.curve_tri_factory, resolve_names=s.resolve_names)
    if tag == BalancerWeightedPoolAdapter.tag:
        return BalancerWeightedPoolAdapter(s.balancer_vault, resolve_names=s.resolve_names)
    if tag == MaverickV2PoolAdapter.tag:
        return MaverickV2PoolAdapter(resolve_names=s.resolve_names)
    raise ValueError(f"unknown adapter tag {tag!r}")
