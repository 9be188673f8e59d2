from __future__ import annotations

from poolbatch.adapters.base import PoolAdapter
from poolbatch.core.models import MaverickV2PoolRecord
from poolbatch.validation.validator import DefensiveValidator, WordRead


class MaverickV2PoolAdapter(PoolAdapter):
    tag = "maverick_v2_pool"
    record_type = MaverickV2PoolRecord

    def __init__(self, *, resolve_names: bool = True) -> None:
        self.resolve_names = resolve_names

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> MaverickV2PoolRecord:
        (token_a,), (token_b,) = await v.read_words(
            [WordRead(pool, "tokenA()", ("address",)), WordRead(pool, "tokenB()", ("address",))]
        )

        decimals = await self.token_decimals(v, (token_a, token_b))
        names = await self.token_names(v, (token_a, token_b))

        return MaverickV2PoolRecord(
            pool=pool,
            token_a=token_a,
            token_b=token_b,
            token_a_decimals=decimals[0],
            token_b_decimals=decimals[1],
            token_a_name=names[0],
            token_b_name=names[1],
        )
