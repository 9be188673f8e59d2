"""Pool discovery from factory creation events.

`discover_pools(...)`:
   - Cuts the inclusive block range into `step`-sized intervals.
   - Fetches each interval's creation logs with `eth_getLogs`, at most
     `concurrency` at a time.
   - When the node refuses an interval (too many results, range too wide,
     backend error) the interval is split in half and both halves retried;
     a single block that still fails is recorded in `ScanStats.failed_ranges`
     instead of being dropped silently.
   - Decodes the pool address of every log and returns the pools in chain
     order (block, log index), each pool once.

`scan_logs` is the interval-splitting fetch on its own; tick replay reuses it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from eth_utils import keccak  # type: ignore[attr-defined]

from poolbatch.constants import ZERO_ADDRESS
from poolbatch.core.errors import EntrySkip, RemoteTransportError
from poolbatch.core.interfaces import ILogReader
from poolbatch.core.models import EventLog
from poolbatch.decoding.words import WORD, parse_word, word_at

logger = logging.getLogger(__name__)

DEFAULT_LOG_STEP = 10_000

ProgressCallback = Callable[[int], None]


# ---------------------------------------------------------------------------
# Creation events
# ---------------------------------------------------------------------------


def event_topic0(signature: str) -> str:
    """`0x` + keccak256 of the canonical event signature."""
    return "0x" + keccak(text=signature).hex()


def topic_bytes(topic: str) -> bytes:
    h = topic[2:] if topic.lower().startswith("0x") else topic
    return bytes.fromhex(h)


@dataclass(frozen=True, slots=True)
class CreationEvent:
    """A factory event announcing a new pool.

    The pool address sits either in an indexed topic (`topic_index`) or in a
    word of the non-indexed data (`data_word`); exactly one must be set.
    """

    signature: str
    topic_index: int | None = None
    data_word: int | None = None

    def __post_init__(self) -> None:
        if (self.topic_index is None) == (self.data_word is None):
            raise ValueError(f"{self.signature}: set exactly one of topic_index / data_word")

    @property
    def topic0(self) -> str:
        return event_topic0(self.signature)

    def pool_from_log(self, log: EventLog) -> str | None:
        """Checksummed pool address, or None for a log this event cannot decode."""
        if not log.topics or log.topics[0] != self.topic0:
            return None
        try:
            if self.topic_index is not None:
                if len(log.topics) <= self.topic_index:
                    return None
                word = topic_bytes(log.topics[self.topic_index])
            else:
                assert self.data_word is not None
                if len(log.data) < WORD * (self.data_word + 1):
                    return None
                word = word_at(log.data, self.data_word)
            pool = parse_word(word, "address")
        except (EntrySkip, ValueError):
            return None
        return None if pool == ZERO_ADDRESS else pool


UNISWAP_V2_PAIR_CREATED = CreationEvent("PairCreated(address,address,address,uint256)", data_word=0)
UNISWAP_V3_POOL_CREATED = CreationEvent("PoolCreated(address,address,uint24,int24,address)", data_word=1)
CURVE_TWOCRYPTO_DEPLOYED = CreationEvent(
    "TwocryptoPoolDeployed(address,string,string,address[2],address,bytes32,uint256[2],"
    "uint256,uint256,uint256,uint256,address)",
    data_word=0,
)
CURVE_TRICRYPTO_DEPLOYED = CreationEvent(
    "TricryptoPoolDeployed(address,string,string,address,address[3],address,bytes32,"
    "uint256,uint256,uint256,uint256,uint256,address)",
    data_word=0,
)
BALANCER_POOL_CREATED = CreationEvent("PoolCreated(address)", topic_index=1)
MAVERICK_V2_POOL_CREATED = CreationEvent(
    "PoolCreated(address,uint8,uint256,uint256,uint256,uint256,int32,address,address,uint8,address)",
    data_word=0,
)

# adapter tag -> creation event of the factory that deploys such pools
CREATION_EVENTS: dict[str, CreationEvent] = {
    "uniswap_v2_pair": UNISWAP_V2_PAIR_CREATED,
    "uniswap_v3_state": UNISWAP_V3_POOL_CREATED,
    "uniswap_v3_tick_window": UNISWAP_V3_POOL_CREATED,
    "curve_2pool": CURVE_TWOCRYPTO_DEPLOYED,
    "curve_3pool": CURVE_TRICRYPTO_DEPLOYED,
    "balancer_weighted_pool": BALANCER_POOL_CREATED,
    "maverick_v2_pool": MAVERICK_V2_POOL_CREATED,
}

# adapter tag -> CHAIN_PRESETS key of that factory
FACTORY_PRESET_KEYS: dict[str, str] = {
    "uniswap_v2_pair": "uniswap_v2_factory",
    "uniswap_v3_state": "uniswap_v3_factory",
    "uniswap_v3_tick_window": "uniswap_v3_factory",
    "curve_2pool": "curve_two_factory",
    "curve_3pool": "curve_tri_factory",
    "balancer_weighted_pool": "balancer_weighted_factory",
    "maverick_v2_pool": "maverick_v2_factory",
}


def creation_event_for(tag: str) -> CreationEvent:
    try:
        return CREATION_EVENTS[tag]
    except KeyError:
        raise ValueError(f"no creation event for adapter {tag!r}") from None


# ---------------------------------------------------------------------------
# Interval scanning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockSeed:
    """Inclusive block interval to fetch."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def split(self) -> tuple[BlockSeed, BlockSeed]:
        mid = (self.start + self.end) // 2
        return (BlockSeed(self.start, mid), BlockSeed(mid + 1, self.end))


def build_block_seeds(from_block: int, to_block: int, step: int = DEFAULT_LOG_STEP) -> list[BlockSeed]:
    """Consecutive inclusive intervals of at most `step` blocks covering [from_block, to_block]."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if from_block < 0 or to_block < from_block:
        raise ValueError(f"bad block range [{from_block}, {to_block}]")
    return [BlockSeed(a, min(to_block, a + step - 1)) for a in range(from_block, to_block + 1, step)]


@dataclass(kw_only=True)
class ScanStats:
    """Counters for one log scan.

    `failed_ranges` lists single blocks the node refused even after
    splitting; logs in those blocks are missing from the result.
    """

    requests_ok: int = 0
    requests_failed: int = 0
    splits: int = 0
    total_logs: int = 0
    failed_ranges: list[tuple[int, int]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_ranges


@dataclass(slots=True)
class _ScanContext:
    reader: ILogReader
    address: str | Sequence[str] | None
    topic0s: Sequence[str]
    sem: asyncio.Semaphore
    logs: list[EventLog]
    stats: ScanStats
    on_progress: ProgressCallback | None


async def _scan_interval(ctx: _ScanContext, seed: BlockSeed) -> None:
    stack: list[BlockSeed] = [seed]

    while stack:
        current = stack.pop()
        try:
            async with ctx.sem:
                logs = await ctx.reader.get_logs(
                    address=ctx.address,
                    topic0s=ctx.topic0s,
                    from_block=current.start,
                    to_block=current.end,
                )
        except RemoteTransportError as e:
            ctx.stats.requests_failed += 1
            if current.size > 1:
                left, right = current.split()
                stack.extend([right, left])
                ctx.stats.splits += 1
                logger.debug("logs [%d, %d] refused (%s); splitting", current.start, current.end, e)
                continue
            ctx.stats.failed_ranges.append((current.start, current.end))
            logger.warning("logs for block %d unavailable: %s", current.start, e)
            if ctx.on_progress is not None:
                ctx.on_progress(1)
            continue

        ctx.stats.requests_ok += 1
        ctx.stats.total_logs += len(logs)
        ctx.logs.extend(logs)
        if ctx.on_progress is not None:
            ctx.on_progress(current.size)


async def scan_logs(
    reader: ILogReader,
    *,
    address: str | Sequence[str] | None,
    topic0s: Sequence[str],
    from_block: int,
    to_block: int,
    step: int = DEFAULT_LOG_STEP,
    concurrency: int = 4,
    on_progress: ProgressCallback | None = None,
) -> tuple[list[EventLog], ScanStats]:
    """Every matching log in [from_block, to_block], sorted by (block, log index)."""
    seeds = build_block_seeds(from_block, to_block, step)
    stats = ScanStats()
    ctx = _ScanContext(
        reader=reader,
        address=address,
        topic0s=list(topic0s),
        sem=asyncio.Semaphore(max(1, concurrency)),
        logs=[],
        stats=stats,
        on_progress=on_progress,
    )
    await asyncio.gather(*(_scan_interval(ctx, seed) for seed in seeds))

    stats.failed_ranges.sort()
    return sorted(ctx.logs, key=lambda log: log.position), stats


# ---------------------------------------------------------------------------
# Application use case
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class DiscoveryOutput:
    pools: list[str]
    stats: ScanStats
    undecodable: int = 0


async def discover_pools(
    reader: ILogReader,
    *,
    event: CreationEvent,
    factory: str | Sequence[str],
    from_block: int,
    to_block: int,
    step: int = DEFAULT_LOG_STEP,
    concurrency: int = 4,
    on_progress: ProgressCallback | None = None,
) -> DiscoveryOutput:
    """Pools created by `factory` in [from_block, to_block], in creation order.

    Parameters
    ----------
    reader : ILogReader
        Log access (the `RPC` client).
    event : CreationEvent
        Factory event to scan for; see `CREATION_EVENTS`.
    factory : str | Sequence[str]
        Factory address(es) emitting the event.
    from_block, to_block : int
        Inclusive block range.
    step : int
        Blocks per `eth_getLogs` request before any split.
    concurrency : int
        Requests in flight.
    on_progress : Callable[[int], None] | None
        Called with the number of blocks each finished request covered.
    """
    logs, stats = await scan_logs(
        reader,
        address=factory,
        topic0s=[event.topic0],
        from_block=from_block,
        to_block=to_block,
        step=step,
        concurrency=concurrency,
        on_progress=on_progress,
    )

    pools: list[str] = []
    seen: set[str] = set()
    undecodable = 0
    for log in logs:
        pool = event.pool_from_log(log)
        if pool is None:
            undecodable += 1
            continue
        if pool not in seen:
            seen.add(pool)
            pools.append(pool)

    if undecodable:
        logger.warning("%d creation logs could not be decoded", undecodable)
    logger.info(
        "discovered %d pools in [%d, %d] (%d logs, %d splits, %d failed blocks)",
        len(pools),
        from_block,
        to_block,
        stats.total_logs,
        stats.splits,
        len(stats.failed_ranges),
    )
    return DiscoveryOutput(pools=pools, stats=stats, undecodable=undecodable)
