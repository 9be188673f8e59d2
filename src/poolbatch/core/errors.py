"""Error taxonomy for batch queries.

Two families with opposite propagation rules:

- `EntrySkip` and its subclasses never leave the entry that raised them. The
  batch driver turns them into a sentinel at that index and moves on.
- `BatchFatalError` and its subclasses always leave the batch. The caller
  (usually the orchestrator) retries with a smaller shard.
"""

from __future__ import annotations


class EntrySkip(Exception):
    """One entry cannot be synced; the rest of the batch continues."""

    kind = "EntrySkip"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def describe(self) -> str:
        """Short `"<Kind>: <detail>"` string used for diagnostics."""
        return f"{self.kind}: {self.detail}" if self.detail else self.kind


class NotAContract(EntrySkip):
    kind = "NotAContract"


class MalformedAddress(EntrySkip):
    kind = "MalformedAddress"


class DecodeLengthMismatch(EntrySkip):
    kind = "DecodeLengthMismatch"


class ValueOutOfRange(EntrySkip):
    kind = "ValueOutOfRange"


class DecimalsOutOfRange(ValueOutOfRange):
    kind = "DecimalsOutOfRange"


class RemoteCallReverted(EntrySkip):
    kind = "RemoteCallReverted"


class RemoteCallExceededCap(EntrySkip):
    kind = "RemoteCallExceededCap"


class BatchFatalError(RuntimeError):
    """The batch as a whole failed and must be retried by the caller."""


class RemoteTransportError(BatchFatalError):
    """The node could not be reached or answered with a non-execution error."""


class ResourceCeilingExceeded(BatchFatalError):
    """The shared per-batch gas budget ran out."""


class PayloadTooLarge(BatchFatalError):
    """The packed result is larger than the transport allows."""
