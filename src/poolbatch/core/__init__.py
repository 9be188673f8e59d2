"""Core data models, configurations, errors and interfaces.

This package provides:
- Data models (CallResponse, CallOutcome, pool records, BatchResult)
- Configuration classes (BatchConfig, SyncConfig, AdapterSettings)
- The error taxonomy (EntrySkip and BatchFatalError families)
"""

from poolbatch.core.config import AdapterSettings, BatchConfig, SyncConfig
from poolbatch.core.errors import BatchFatalError, EntrySkip
from poolbatch.core.models import BatchResult, CallOutcome, CallResponse, PoolRecord

__all__ = [
    "AdapterSettings",
    "BatchConfig",
    "SyncConfig",
    "BatchFatalError",
    "EntrySkip",
    "BatchResult",
    "CallOutcome",
    "CallResponse",
    "PoolRecord",
]
