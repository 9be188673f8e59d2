"""Protocol adapters.

This package provides:
- One adapter per protocol family (Uniswap V2/V3, Curve, Balancer, Maverick)
- The tick-window scanner used by the V3 bitmap adapter
- A registry that builds adapters from `AdapterSettings`
"""

from poolbatch.adapters.balancer import BalancerWeightedPoolAdapter
from poolbatch.adapters.base import PoolAdapter
from poolbatch.adapters.curve import CurvePoolAdapter, CurveThreePoolAdapter, CurveTwoPoolAdapter
from poolbatch.adapters.maverick import MaverickV2PoolAdapter
from poolbatch.adapters.registry import ADAPTERS, make_adapter, record_type_for
from poolbatch.adapters.tick_window import TickWindow, half_width_for, tick_window, word_position
from poolbatch.adapters.uniswap import (
    UniswapV2PairAdapter,
    UniswapV3StateAdapter,
    UniswapV3TickBitmapWindowAdapter,
)

__all__ = [
    "ADAPTERS",
    "BalancerWeightedPoolAdapter",
    "CurvePoolAdapter",
    "CurveThreePoolAdapter",
    "CurveTwoPoolAdapter",
    "MaverickV2PoolAdapter",
    "PoolAdapter",
    "TickWindow",
    "UniswapV2PairAdapter",
    "UniswapV3StateAdapter",
    "UniswapV3TickBitmapWindowAdapter",
    "half_width_for",
    "make_adapter",
    "record_type_for",
    "tick_window",
    "word_position",
]
