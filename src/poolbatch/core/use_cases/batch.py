from __future__ import annotations

import logging
from collections.abc import Sequence

from poolbatch.adapters.base import PoolAdapter
from poolbatch.core.config import BatchConfig
from poolbatch.core.errors import BatchFatalError, EntrySkip, NotAContract
from poolbatch.core.interfaces import IRemoteReader
from poolbatch.core.models import BatchResult, PoolRecord
from poolbatch.encoding.packer import pack_batch
from poolbatch.validation.validator import DefensiveValidator, normalize_address

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Entry pipeline
# ---------------------------------------------------------------------------


async def _fetch_entry(
    v: DefensiveValidator,
    adapter: PoolAdapter,
    address: str,
    current_tick: int | None,
) -> PoolRecord:
    """Normalize, check existence, then run the adapter. Raises EntrySkip."""
    pool = normalize_address(address)
    if not await v.contract_exists(pool):
        raise NotAContract(pool)
    return await adapter.fetch(v, pool, current_tick=current_tick)


# ---------------------------------------------------------------------------
# Domain service: BatchQueryService
# ---------------------------------------------------------------------------


class BatchQueryService:
    """
    One adapter over one ordered address list, one block, one budget.

    The service depends only on the `IRemoteReader` interface. Each call to
    `run` builds a fresh `DefensiveValidator` (and so a fresh resource
    budget) and walks the addresses strictly in order.

    Guarantees
    ----------
    - `len(result) == len(addresses)` and index i describes `addresses[i]`.
    - An entry is either a complete record or a sentinel (`None`) with a
      diagnostic; entry-level failures never abort the batch.
    - `BatchFatalError` (transport failure, exhausted budget, oversize
      payload) always propagates to the caller.
    """

    def __init__(self, reader: IRemoteReader, config: BatchConfig | None = None) -> None:
        self._reader = reader
        self._config = config or BatchConfig()

    @property
    def config(self) -> BatchConfig:
        return self._config

    async def run(
        self,
        adapter: PoolAdapter,
        addresses: Sequence[str],
        current_ticks: Sequence[int | None] | None = None,
    ) -> BatchResult:
        """
        Query every address with `adapter`.

        Parameters
        ----------
        adapter : PoolAdapter
            Protocol family of every address in this batch.
        addresses : Sequence[str]
            Pool addresses, hex strings; malformed ones become sentinels.
        current_ticks : Sequence[int | None] | None
            Caller-supplied current ticks for tick-window adapters, aligned
            with `addresses`. A `None` element lets the pool self-report.
        """
        if current_ticks is not None and len(current_ticks) != len(addresses):
            raise ValueError(f"current_ticks has {len(current_ticks)} items for {len(addresses)} addresses")

        v = DefensiveValidator.from_config(self._reader, self._config)
        result = BatchResult()

        for i, address in enumerate(addresses):
            tick = current_ticks[i] if current_ticks is not None else None
            try:
                record = await _fetch_entry(v, adapter, address, tick)
            except EntrySkip as exc:
                logger.debug("skip %s[%d] %s: %s", adapter.tag, i, address, exc.describe())
                result.append_sentinel(exc.describe())
            except BatchFatalError:
                raise
            except Exception as exc:
                logger.debug("unexpected error for %s[%d] %s", adapter.tag, i, address, exc_info=True)
                result.append_sentinel(f"UnexpectedError: {type(exc).__name__}: {exc}")
            else:
                result.append_record(record)

        logger.debug(
            "batch %s: %d/%d synced, gas charged %d",
            adapter.tag,
            result.synced,
            len(result),
            v.budget.spent,
        )
        return result

    async def run_packed(
        self,
        adapter: PoolAdapter,
        addresses: Sequence[str],
        current_ticks: Sequence[int | None] | None = None,
    ) -> bytes:
        """`run` followed by `pack_batch` with the configured payload limits."""
        result = await self.run(adapter, addresses, current_ticks)
        return pack_batch(
            result,
            adapter.tag,
            include_diagnostics=self._config.include_diagnostics,
            max_payload_bytes=self._config.max_payload_bytes,
        )


async def run_batch(
    reader: IRemoteReader,
    adapter: PoolAdapter,
    addresses: Sequence[str],
    *,
    config: BatchConfig | None = None,
    current_ticks: Sequence[int | None] | None = None,
) -> BatchResult:
    """Convenience wrapper around `BatchQueryService.run`."""
    return await BatchQueryService(reader, config).run(adapter, addresses, current_ticks)
