"""Uniswap-style adapters: V2 pairs, V3 pool state and V3 tick-bitmap windows.

Forks with the same getters (SushiSwap, PancakeSwap, BaseSwap, AlienBase...)
use the same adapters; PancakeSwap's wider `feeProtocol` in `slot0` still
fits the seven-word layout.
"""

from __future__ import annotations

from poolbatch.adapters.base import PoolAdapter
from poolbatch.adapters.tick_window import half_width_for, tick_window
from poolbatch.core.models import TickBitmapWindowRecord, UniswapV2PairRecord, UniswapV3StateRecord
from poolbatch.validation.validator import DefensiveValidator, WordRead

# sqrtPriceX96, tick, observationIndex, observationCardinality,
# observationCardinalityNext, feeProtocol, unlocked
SLOT0_TYPES = ("uint160", "int24", "uint16", "uint16", "uint16", "uint256", "bool")

RESERVES_TYPES = ("uint112", "uint112", "uint32")


class UniswapV2PairAdapter(PoolAdapter):
    tag = "uniswap_v2_pair"
    record_type = UniswapV2PairRecord

    def __init__(self, *, resolve_names: bool = True) -> None:
        self.resolve_names = resolve_names

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> UniswapV2PairRecord:
        (token0,), (token1,), (reserve0, reserve1, _) = await v.read_words(
            [
                WordRead(pool, "token0()", ("address",)),
                WordRead(pool, "token1()", ("address",)),
                WordRead(pool, "getReserves()", RESERVES_TYPES),
            ]
        )

        decimals = await self.token_decimals(v, (token0, token1))
        names = await self.token_names(v, (token0, token1))

        return UniswapV2PairRecord(
            pool=pool,
            token0=token0,
            token1=token1,
            token0_decimals=decimals[0],
            token1_decimals=decimals[1],
            token0_name=names[0],
            token1_name=names[1],
            reserve0=reserve0,
            reserve1=reserve1,
        )


class UniswapV3StateAdapter(PoolAdapter):
    tag = "uniswap_v3_state"
    record_type = UniswapV3StateRecord

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> UniswapV3StateRecord:
        slot0, (liquidity,), (fee,), (tick_spacing,) = await v.read_words(
            [
                WordRead(pool, "slot0()", SLOT0_TYPES),
                WordRead(pool, "liquidity()", ("uint128",)),
                WordRead(pool, "fee()", ("uint24",)),
                WordRead(pool, "tickSpacing()", ("int24",)),
            ]
        )

        return UniswapV3StateRecord(
            pool=pool,
            liquidity=liquidity,
            sqrt_price_x96=slot0[0],
            tick=slot0[1],
            fee=fee,
            tick_spacing=tick_spacing,
        )


class UniswapV3TickBitmapWindowAdapter(PoolAdapter):
    """Bitmap words around the current tick.

    The current tick comes from the caller when supplied, otherwise from the
    pool's own `slot0`.
    """

    tag = "uniswap_v3_tick_window"
    record_type = TickBitmapWindowRecord

    def __init__(self, *, half_width: int = 3, ticks_to_fetch: int | None = None) -> None:
        self.half_width = half_width_for(ticks_to_fetch) if ticks_to_fetch is not None else half_width
        if self.half_width <= 0:
            raise ValueError(f"half_width must be positive, got {self.half_width}")

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> TickBitmapWindowRecord:
        if current_tick is None:
            slot0, (tick_spacing,) = await v.read_words(
                [WordRead(pool, "slot0()", SLOT0_TYPES), WordRead(pool, "tickSpacing()", ("int24",))]
            )
            current_tick = slot0[1]
        else:
            tick_spacing = await v.call_word(pool, "tickSpacing()", "int24")

        window = tick_window(current_tick, tick_spacing, self.half_width)
        words = await v.read_words(
            [WordRead(pool, "tickBitmap(int16)", ("uint256",), ("int16",), (word,)) for word in window.words()]
        )
        bitmaps = [bitmap for (bitmap,) in words]

        return TickBitmapWindowRecord(
            pool=pool,
            tick=current_tick,
            tick_spacing=tick_spacing,
            word_positions=tuple(window.words()),
            bitmaps=tuple(bitmaps),
        )
