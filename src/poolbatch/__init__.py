"""poolbatch: defensive batch snapshots of on-chain liquidity pools.

This package provides:
- Protocol adapters (Uniswap V2/V3, Curve, Balancer, Maverick) and a registry
- A batch driver that isolates per-entry failures behind sentinels
- A compact wire format for batch results
- A sharding orchestrator, an async JSON-RPC client and Parquet export
- Pool discovery from factory creation logs and V3 tick liquidity replay
"""

from poolbatch.adapters.registry import make_adapter
from poolbatch.core.config import AdapterSettings, BatchConfig, SyncConfig
from poolbatch.core.models import BatchResult
from poolbatch.core.use_cases.batch import BatchQueryService, run_batch
from poolbatch.discovery import discover_pools
from poolbatch.encoding.packer import pack_batch, unpack_batch
from poolbatch.orchestration.orchestrator import sync_pools
from poolbatch.tick_liquidity import fetch_tick_liquidity

__all__ = [
    "AdapterSettings",
    "BatchConfig",
    "BatchQueryService",
    "BatchResult",
    "SyncConfig",
    "discover_pools",
    "fetch_tick_liquidity",
    "make_adapter",
    "pack_batch",
    "run_batch",
    "sync_pools",
    "unpack_batch",
]
