from __future__ import annotations

from dataclasses import dataclass

from poolbatch.constants import BALANCER_V2_VAULT
from poolbatch.core.models import BlockId


@dataclass(frozen=True)
class BatchConfig:
    """Limits applied to every remote call of one batch."""

    gas_cap: int = 20_000  # execution gas for a simple getter, not enough for a loop
    heavy_gas_cap: int = 250_000  # vault lookups and array-returning calls
    max_return_bytes: int = 8_192
    call_timeout_s: float | None = None
    batch_gas_ceiling: int | None = None  # shared by all entries; None = unbounded
    block: BlockId = "latest"
    include_diagnostics: bool = True
    max_payload_bytes: int | None = None


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for the sharding orchestrator."""

    shard_size: int = 50
    concurrency: int = 8


@dataclass(frozen=True)
class AdapterSettings:
    """Injected addresses and knobs used to build protocol adapters."""

    curve_two_factory: str | None = None
    curve_tri_factory: str | None = None
    balancer_vault: str = BALANCER_V2_VAULT
    tick_half_width: int = 3
    ticks_to_fetch: int | None = None
    resolve_names: bool = True
