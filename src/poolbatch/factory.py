"""Pagination over Uniswap-V2-style factories (`allPairsLength` / `allPairs`)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator

from poolbatch.constants import ZERO_ADDRESS
from poolbatch.core.config import BatchConfig
from poolbatch.core.errors import EntrySkip
from poolbatch.core.interfaces import IRemoteReader
from poolbatch.validation.validator import DefensiveValidator, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_PAIR_STEP = 766


def iter_pair_ranges(count: int, step: int = DEFAULT_PAIR_STEP) -> Iterator[tuple[int, int]]:
    """Yield half-open index ranges [start, end) of at most `step` pairs."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    start = 0
    while start < count:
        end = min(count, start + step)
        yield (start, end)
        start = end


class PairFactory:
    """Read-only accessor for one pair factory.

    Parameters
    ----------
    reader : IRemoteReader
        Read-only access to the chain.
    address : str
        Factory address.
    config : BatchConfig | None
        Call caps and pinned block; defaults to `BatchConfig()`.
    concurrency : int
        Maximum in-flight `allPairs` calls in `get_range`.
    """

    def __init__(
        self,
        reader: IRemoteReader,
        address: str,
        *,
        config: BatchConfig | None = None,
        concurrency: int = 16,
    ) -> None:
        self.address = normalize_address(address)
        self._validator = DefensiveValidator.from_config(reader, config or BatchConfig())
        self._sem = asyncio.Semaphore(max(1, concurrency))

    async def pair_count(self) -> int:
        """`allPairsLength()`; a failing call raises its EntrySkip."""
        return await self._validator.call_word(self.address, "allPairsLength()", "uint256")

    async def pair_at(self, index: int) -> str | None:
        """`allPairs(index)`, or None when the call fails or returns the zero address."""
        async with self._sem:
            try:
                pair = await self._validator.call_word(
                    self.address, "allPairs(uint256)", "address", arg_types=("uint256",), args=(index,)
                )
            except EntrySkip as exc:
                logger.debug("allPairs(%d) on %s failed: %s", index, self.address, exc.describe())
                return None
        return None if pair == ZERO_ADDRESS else pair

    async def get_range(self, start: int, end: int) -> list[str | None]:
        """Pair addresses for indices [start, end), `end` clamped to `pair_count()`.

        The result is index-aligned with the clamped range: slot `k` describes
        pair index `start + k`, and is None when that call failed or returned
        the zero address.
        """
        if start < 0:
            raise ValueError(f"start must be >= 0, got {start}")
        end = min(end, await self.pair_count())
        if start >= end:
            return []
        return list(await asyncio.gather(*(self.pair_at(i) for i in range(start, end))))
