"""Sharded, concurrent batch execution with adaptive shard splitting.

This package provides:
- Main orchestrator (sync_pools) running many batches under a semaphore
- Shard seeds and their split-on-failure retry strategy
"""

from poolbatch.orchestration.orchestrator import (
    ShardSeed,
    SyncOutput,
    SyncStats,
    build_shard_seeds,
    sync_pools,
)

__all__ = [
    "ShardSeed",
    "SyncOutput",
    "SyncStats",
    "build_shard_seeds",
    "sync_pools",
]
