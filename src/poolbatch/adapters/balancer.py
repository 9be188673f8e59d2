"""Balancer V2 weighted pools: pool id on the pool, tokens and balances on the vault."""

from __future__ import annotations

import logging

from poolbatch.adapters.base import PoolAdapter
from poolbatch.constants import BALANCER_V2_VAULT
from poolbatch.core.errors import EntrySkip, ValueOutOfRange
from poolbatch.core.models import BalancerWeightedPoolRecord
from poolbatch.validation.validator import DefensiveValidator, normalize_address

logger = logging.getLogger(__name__)

POOL_TOKENS_TYPES = ("address[]", "uint256[]", "uint256")


class BalancerWeightedPoolAdapter(PoolAdapter):
    """Weighted pool snapshot.

    Weights are the one optional field: if `getNormalizedWeights` fails or
    disagrees with the token list length, the record keeps a zero list of the
    token-list length instead of being skipped.
    """

    tag = "balancer_weighted_pool"
    record_type = BalancerWeightedPoolRecord

    def __init__(self, vault: str = BALANCER_V2_VAULT, *, resolve_names: bool = True) -> None:
        self.vault = normalize_address(vault)
        self.resolve_names = resolve_names

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> BalancerWeightedPoolRecord:
        pool_id = await v.call_word(pool, "getPoolId()", "bytes32")
        tokens, balances, _ = await v.call_dynamic(
            self.vault,
            "getPoolTokens(bytes32)",
            POOL_TOKENS_TYPES,
            arg_types=("bytes32",),
            args=(pool_id,),
        )
        if not tokens:
            raise ValueOutOfRange(f"{pool}: empty token list")
        if len(tokens) != len(balances):
            raise ValueOutOfRange(f"{pool}: {len(tokens)} tokens but {len(balances)} balances")

        tokens = tuple(normalize_address(t) for t in tokens)
        weights = await self._weights(v, pool, len(tokens))
        swap_fee = await v.call_word(pool, "getSwapFeePercentage()", "uint256")

        decimals = await self.token_decimals(v, tokens)
        names = await self.token_names(v, tokens)

        return BalancerWeightedPoolRecord(
            pool=pool,
            pool_id=pool_id,
            tokens=tokens,
            decimals=decimals,
            names=names,
            balances=tuple(balances),
            weights=weights,
            swap_fee=swap_fee,
        )

    async def _weights(self, v: DefensiveValidator, pool: str, n_tokens: int) -> tuple[int, ...]:
        try:
            (weights,) = await v.call_dynamic(pool, "getNormalizedWeights()", ("uint256[]",))
        except EntrySkip as exc:
            logger.debug("weights unavailable for %s, using zeros: %s", pool, exc.describe())
            return (0,) * n_tokens
        if len(weights) != n_tokens:
            logger.debug("weights length %d != %d tokens for %s, using zeros", len(weights), n_tokens, pool)
            return (0,) * n_tokens
        return tuple(weights)
