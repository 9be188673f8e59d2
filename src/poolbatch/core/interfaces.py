from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from poolbatch.core.models import BlockId, CallRequest, CallResponse, EventLog


# ---------------------------------------------------------------------------
# IRemoteReader
# ---------------------------------------------------------------------------

@runtime_checkable
class IRemoteReader(Protocol):
    """
    Abstract read-only access to contract state.

    Domain expectations:
    - Calls never mutate state.
    - Execution failures (revert, out of gas) come back as a `CallResponse`
      with `success=False`; they are an answer, not an error.
    - Transport failures raise `RemoteTransportError`.
    """

    async def call(
        self,
        *,
        target: str,
        data: bytes,
        gas: int | None,
        block: BlockId,
    ) -> CallResponse:
        """
        Execute `data` against `target` with an optional execution gas cap.

        Implementations:
        - JSON-RPC `eth_call` (current `RPC` class)
        - In-memory fake chain for testing
        """
        ...

    async def call_many(self, *, requests: Sequence[CallRequest], block: BlockId) -> list[CallResponse]:
        """
        Execute independent calls in one round trip.

        The i-th response answers the i-th request; each request keeps its
        own gas cap. Implementations:
        - JSON-RPC batch array of `eth_call`s (current `RPC` class)
        - In-memory fake chain for testing
        """
        ...

    async def get_code(self, *, address: str, block: BlockId) -> bytes:
        """
        Return the deployed bytecode at `address` (empty when none).
        """
        ...


# ---------------------------------------------------------------------------
# ILogReader
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogReader(Protocol):
    """
    Abstract access to event logs, used by pool discovery.

    A node that refuses a range (too many results, range too wide) raises
    `RemoteTransportError`; callers split the range and retry.
    """

    async def get_logs(
        self,
        *,
        address: str | Sequence[str] | None,
        topic0s: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """
        Fetch logs emitted by `address` whose topic0 is one of `topic0s`
        within the inclusive block range.
        """
        ...
