"""Sharding orchestrator: many batches, bounded concurrency, adaptive splits.

`sync_pools(...)`:
   - Cuts the address list into shards of `SyncConfig.shard_size`.
   - Runs one `BatchQueryService.run` per shard, at most
     `SyncConfig.concurrency` at a time.
   - When `BatchConfig.max_payload_bytes` is set, packs each shard result so
     an oversize shard raises `PayloadTooLarge` like any other fatal error.
   - On a `BatchFatalError` the shard is split in half and both halves are
     retried; a single-address shard that still fails becomes a sentinel
     with a `BatchFatal:` diagnostic.
   - Writes each shard's entries into preallocated, index-aligned output
     lists, so output index i always describes input index i.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from poolbatch.adapters.base import PoolAdapter
from poolbatch.core.config import BatchConfig, SyncConfig
from poolbatch.core.errors import BatchFatalError
from poolbatch.core.interfaces import IRemoteReader
from poolbatch.core.models import BatchResult, PoolRecord
from poolbatch.core.use_cases.batch import BatchQueryService
from poolbatch.encoding.packer import pack_batch

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


# ---------------------------------------------------------------------------
# Seeds and stats
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShardSeed:
    """Half-open index range [start, end) of the address list."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    def split(self) -> tuple[ShardSeed, ShardSeed]:
        mid = (self.start + self.end) // 2
        return (ShardSeed(self.start, mid), ShardSeed(mid, self.end))


def build_shard_seeds(count: int, shard_size: int) -> list[ShardSeed]:
    """Consecutive shards covering [0, count)."""
    if shard_size <= 0:
        raise ValueError(f"shard_size must be positive, got {shard_size}")
    return [ShardSeed(a, min(count, a + shard_size)) for a in range(0, count, shard_size)]


@dataclass(kw_only=True)
class SyncStats:
    """
    Aggregated counters for one sync.

    Mutated by shard workers to track:
    - how many batches ran and how many raised a BatchFatal error
    - how many shards were split for a retry
    - how many entries synced or ended as sentinels
    """

    batches_ok: int = 0
    batches_failed: int = 0
    shards_split: int = 0
    synced: int = 0
    skipped: int = 0
    fatal_entries: int = 0


@dataclass(kw_only=True)
class SyncOutput:
    """High-level output of the orchestrator."""

    result: BatchResult
    stats: SyncStats = field(default_factory=SyncStats)


# ---------------------------------------------------------------------------
# Shard processing
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _SyncContext:
    """Shared state for shard workers (keeps worker signatures small)."""

    service: BatchQueryService
    config: BatchConfig
    adapter: PoolAdapter
    addresses: Sequence[str]
    current_ticks: Sequence[int | None] | None
    records: list[PoolRecord | None]
    diagnostics: list[str | None]
    sem: asyncio.Semaphore
    stats: SyncStats
    on_progress: ProgressCallback | None


def _report(ctx: _SyncContext, n: int) -> None:
    if ctx.on_progress is not None:
        ctx.on_progress(n)


async def _process_shard(ctx: _SyncContext, seed: ShardSeed) -> None:
    """Run one shard, splitting on BatchFatal errors until single addresses remain."""
    stack: list[ShardSeed] = [seed]

    while stack:
        current = stack.pop()
        a, b = current.start, current.end
        ticks = ctx.current_ticks[a:b] if ctx.current_ticks is not None else None

        try:
            async with ctx.sem:
                part = await ctx.service.run(ctx.adapter, ctx.addresses[a:b], ticks)
            if ctx.config.max_payload_bytes is not None:
                pack_batch(
                    part,
                    ctx.adapter.tag,
                    include_diagnostics=ctx.config.include_diagnostics,
                    max_payload_bytes=ctx.config.max_payload_bytes,
                )
        except BatchFatalError as e:
            ctx.stats.batches_failed += 1
            if current.size > 1:
                left, right = current.split()
                # right pushed first so the left half runs first
                stack.extend([right, left])
                ctx.stats.shards_split += 1
                logger.warning("shard [%d, %d) failed (%s); splitting", a, b, e)
                continue
            ctx.records[a] = None
            ctx.diagnostics[a] = f"BatchFatal: {type(e).__name__}: {e}"
            ctx.stats.fatal_entries += 1
            ctx.stats.skipped += 1
            logger.warning("entry %d (%s) failed as a single-address batch: %s", a, ctx.addresses[a], e)
            _report(ctx, 1)
            continue

        ctx.records[a:b] = part.records
        ctx.diagnostics[a:b] = part.diagnostics
        ctx.stats.batches_ok += 1
        ctx.stats.synced += part.synced
        ctx.stats.skipped += part.skipped
        _report(ctx, current.size)


# ---------------------------------------------------------------------------
# Application use case
# ---------------------------------------------------------------------------


async def sync_pools(
    *,
    reader: IRemoteReader,
    adapter: PoolAdapter,
    addresses: Sequence[str],
    config: BatchConfig | None = None,
    sync: SyncConfig | None = None,
    current_ticks: Sequence[int | None] | None = None,
    on_progress: ProgressCallback | None = None,
) -> SyncOutput:
    """Sync every address with `adapter`, sharded and concurrent.

    Parameters
    ----------
    reader : IRemoteReader
        Shared remote reader (one HTTP client for all shards).
    adapter : PoolAdapter
        Protocol family of every address.
    addresses : Sequence[str]
        Ordered pool addresses.
    config : BatchConfig | None
        Per-batch limits; every shard gets a fresh budget.
    sync : SyncConfig | None
        Shard size and concurrency.
    current_ticks : Sequence[int | None] | None
        Optional caller-supplied ticks aligned with `addresses`.
    on_progress : Callable[[int], None] | None
        Called with the number of entries each finished shard covered.
    """
    config = config or BatchConfig()
    sync = sync or SyncConfig()
    if current_ticks is not None and len(current_ticks) != len(addresses):
        raise ValueError(f"current_ticks has {len(current_ticks)} items for {len(addresses)} addresses")

    n = len(addresses)
    stats = SyncStats()
    records: list[PoolRecord | None] = [None] * n
    diagnostics: list[str | None] = [None] * n

    if n == 0:
        return SyncOutput(result=BatchResult(records=records, diagnostics=diagnostics), stats=stats)

    ctx = _SyncContext(
        service=BatchQueryService(reader, config),
        config=config,
        adapter=adapter,
        addresses=addresses,
        current_ticks=current_ticks,
        records=records,
        diagnostics=diagnostics,
        sem=asyncio.Semaphore(max(1, sync.concurrency)),
        stats=stats,
        on_progress=on_progress,
    )

    seeds = build_shard_seeds(n, sync.shard_size)
    tasks = [asyncio.create_task(_process_shard(ctx, seed)) for seed in seeds]
    await asyncio.gather(*tasks)

    logger.info(
        "%s: %d/%d synced in %d batches (%d failed, %d splits)",
        adapter.tag,
        stats.synced,
        n,
        stats.batches_ok,
        stats.batches_failed,
        stats.shards_split,
    )
    return SyncOutput(result=BatchResult(records=records, diagnostics=diagnostics), stats=stats)
