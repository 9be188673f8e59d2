"""Curve two-coin and three-coin pools resolved through their factory."""

from __future__ import annotations

from typing import ClassVar

from poolbatch.adapters.base import PoolAdapter
from poolbatch.core.models import CurvePoolRecord
from poolbatch.validation.validator import DefensiveValidator, normalize_address


class CurvePoolAdapter(PoolAdapter):
    """Coins come from `factory.get_coins(pool)`, which returns `address[N]`."""

    record_type = CurvePoolRecord
    n_coins: ClassVar[int]

    def __init__(self, factory: str, *, resolve_names: bool = True) -> None:
        self.factory = normalize_address(factory)
        self.resolve_names = resolve_names

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> CurvePoolRecord:
        coins = await v.call_words(
            self.factory,
            "get_coins(address)",
            ("address",) * self.n_coins,
            arg_types=("address",),
            args=(pool,),
        )
        decimals = await self.token_decimals(v, coins)
        names = await self.token_names(v, coins)
        return CurvePoolRecord(pool=pool, coins=tuple(coins), decimals=decimals, names=names)


class CurveTwoPoolAdapter(CurvePoolAdapter):
    tag = "curve_2pool"
    n_coins = 2


class CurveThreePoolAdapter(CurvePoolAdapter):
    tag = "curve_3pool"
    n_coins = 3
