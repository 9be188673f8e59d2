"""Per-tick liquidity of Uniswap-V3-style pools rebuilt from Mint/Burn logs.

A position over [tickLower, tickUpper) adds its liquidity at the lower tick
and removes it at the upper tick, so replaying every Mint and Burn in chain
order gives each initialized tick's `liquidityNet` and `liquidityGross`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from poolbatch.core.errors import EntrySkip
from poolbatch.core.interfaces import ILogReader
from poolbatch.core.models import EventLog
from poolbatch.decoding.words import WORD, parse_word, word_at
from poolbatch.discovery import ProgressCallback, ScanStats, event_topic0, scan_logs, topic_bytes

logger = logging.getLogger(__name__)

MINT_EVENT = "Mint(address,address,int24,int24,uint128,uint256,uint256)"
BURN_EVENT = "Burn(address,int24,int24,uint128,uint256,uint256)"
MINT_TOPIC0 = event_topic0(MINT_EVENT)
BURN_TOPIC0 = event_topic0(BURN_EVENT)

DEFAULT_TICK_LOG_STEP = 5_000


@dataclass(slots=True)
class TickLiquidity:
    net: int = 0
    gross: int = 0


@dataclass(frozen=True, slots=True)
class LiquidityChange:
    """One decoded Mint (positive `amount`) or Burn (negative `amount`)."""

    pool: str
    tick_lower: int
    tick_upper: int
    amount: int


def decode_liquidity_change(log: EventLog) -> LiquidityChange | None:
    """Decode a Mint or Burn log; anything else or a malformed log gives None.

    Mint data is (sender, amount, amount0, amount1); Burn data is
    (amount, amount0, amount1). Both carry owner, tickLower, tickUpper as
    topics 1..3.
    """
    if len(log.topics) != 4:
        return None
    topic0 = log.topics[0]
    if topic0 == MINT_TOPIC0:
        amount_word, sign = 1, 1
    elif topic0 == BURN_TOPIC0:
        amount_word, sign = 0, -1
    else:
        return None
    if len(log.data) < WORD * (amount_word + 1):
        return None
    try:
        tick_lower = parse_word(topic_bytes(log.topics[2]), "int24")
        tick_upper = parse_word(topic_bytes(log.topics[3]), "int24")
        amount = parse_word(word_at(log.data, amount_word), "uint128")
    except (EntrySkip, ValueError):
        return None
    return LiquidityChange(pool=log.address, tick_lower=tick_lower, tick_upper=tick_upper, amount=sign * amount)


def replay_tick_liquidity(logs: Iterable[EventLog]) -> dict[str, dict[int, TickLiquidity]]:
    """Pool -> tick -> liquidity after applying `logs` in (block, log index) order.

    Ticks whose gross liquidity returns to zero are dropped; they are no
    longer initialized.
    """
    state: dict[str, dict[int, TickLiquidity]] = {}
    skipped = 0
    for log in sorted(logs, key=lambda lg: lg.position):
        change = decode_liquidity_change(log)
        if change is None:
            skipped += 1
            continue
        if change.amount == 0:
            continue
        ticks = state.setdefault(change.pool, {})
        lower = ticks.setdefault(change.tick_lower, TickLiquidity())
        upper = ticks.setdefault(change.tick_upper, TickLiquidity())
        lower.net += change.amount
        upper.net -= change.amount
        lower.gross += change.amount
        upper.gross += change.amount
        for tick in (change.tick_lower, change.tick_upper):
            if tick in ticks and ticks[tick].gross == 0:
                del ticks[tick]

    if skipped:
        logger.debug("ignored %d logs that are not decodable Mint/Burn events", skipped)
    return state


async def fetch_tick_liquidity(
    reader: ILogReader,
    *,
    pools: str | Sequence[str],
    from_block: int,
    to_block: int,
    step: int = DEFAULT_TICK_LOG_STEP,
    concurrency: int = 4,
    on_progress: ProgressCallback | None = None,
) -> tuple[dict[str, dict[int, TickLiquidity]], ScanStats]:
    """Scan Mint/Burn logs of `pools` over [from_block, to_block] and replay them.

    Start at each pool's creation block for absolute values; a later start
    yields the change over the range. Check `ScanStats.complete` before
    trusting the result.
    """
    logs, stats = await scan_logs(
        reader,
        address=pools,
        topic0s=[MINT_TOPIC0, BURN_TOPIC0],
        from_block=from_block,
        to_block=to_block,
        step=step,
        concurrency=concurrency,
        on_progress=on_progress,
    )
    return replay_tick_liquidity(logs), stats
