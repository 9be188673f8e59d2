"""Defensive validation of remote calls.

Every read issued on behalf of one entry goes through a `DefensiveValidator`:

- `bounded_call` caps execution gas, return size and wall-clock time so that
  one adversarial contract cannot starve the rest of the batch;
- decode helpers reject payloads that are not exactly the expected width;
- range checks reject values a conforming contract could not return.

Failures are raised as `EntrySkip` subclasses and stop only the current entry.
Transport failures and an exhausted `ResourceBudget` are `BatchFatalError`s.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, to_checksum_address  # type: ignore[attr-defined]

from poolbatch.core.config import BatchConfig
from poolbatch.core.errors import (
    DecimalsOutOfRange,
    DecodeLengthMismatch,
    MalformedAddress,
    NotAContract,
    RemoteCallExceededCap,
    RemoteCallReverted,
    RemoteTransportError,
    ResourceCeilingExceeded,
)
from poolbatch.core.interfaces import IRemoteReader
from poolbatch.core.models import BlockId, CallOutcome, CallRequest, CallResponse
from poolbatch.decoding.calldata import encode_call
from poolbatch.decoding.words import parse_words

logger = logging.getLogger(__name__)

# Node messages that mean the call hit a gas or time allowance rather than reverting
_CAP_BREACH = re.compile(
    r"out of gas|gas required exceeds|intrinsic gas too low|gas limit|timeout|timed out|execution aborted",
    re.IGNORECASE,
)


def normalize_address(value: str) -> str:
    """Checksum a 20-byte hex address or raise `MalformedAddress`."""
    if not isinstance(value, str) or not is_address(value):
        raise MalformedAddress(repr(value))
    return to_checksum_address(value)


def validate_decimals(value: int) -> int:
    """Accept an ERC-20 `decimals()` value in [1, 255]."""
    if value == 0 or value > 255:
        raise DecimalsOutOfRange(str(value))
    return value


def decode_fixed_width(raw: bytes, width: int) -> bytes:
    """Return `raw` only if it is exactly `width` bytes long."""
    if len(raw) != width:
        raise DecodeLengthMismatch(f"expected {width} bytes, got {len(raw)}")
    return raw


@dataclass(slots=True)
class ResourceBudget:
    """Gas ceiling shared by every call of one batch (None = unbounded)."""

    total: int | None = None
    spent: int = 0

    def charge(self, gas: int) -> None:
        if self.total is not None and self.spent + gas > self.total:
            raise ResourceCeilingExceeded(f"batch gas ceiling {self.total} reached after {self.spent}")
        self.spent += gas


@dataclass(frozen=True, slots=True)
class WordRead:
    """One static-word getter of a grouped read."""

    address: str
    signature: str
    out_types: tuple[str, ...]
    arg_types: tuple[str, ...] = ()
    args: tuple[Any, ...] = ()


class DefensiveValidator:
    """Bounded remote calls plus the decode and range checks adapters compose.

    Parameters
    ----------
    reader : IRemoteReader
        Read-only access to the chain.
    gas_cap : int
        Default execution gas cap per call.
    heavy_gas_cap : int
        Cap for calls known to touch many storage slots (vault lookups, arrays).
    max_return_bytes : int
        Larger return payloads are treated as exceeding the cap.
    call_timeout_s : float | None
        Optional wall-clock limit per call.
    budget : ResourceBudget
        Shared ceiling for the whole batch.
    block : BlockId
        Block every call of the batch is pinned to.
    """

    def __init__(
        self,
        reader: IRemoteReader,
        *,
        gas_cap: int = 20_000,
        heavy_gas_cap: int = 250_000,
        max_return_bytes: int = 8_192,
        call_timeout_s: float | None = None,
        budget: ResourceBudget | None = None,
        block: BlockId = "latest",
    ) -> None:
        self.reader = reader
        self.gas_cap = gas_cap
        self.heavy_gas_cap = heavy_gas_cap
        self.max_return_bytes = max_return_bytes
        self.call_timeout_s = call_timeout_s
        self.budget = budget if budget is not None else ResourceBudget()
        self.block = block

    @classmethod
    def from_config(cls, reader: IRemoteReader, config: BatchConfig) -> DefensiveValidator:
        """Fresh validator (and budget) for one batch."""
        return cls(
            reader,
            gas_cap=config.gas_cap,
            heavy_gas_cap=config.heavy_gas_cap,
            max_return_bytes=config.max_return_bytes,
            call_timeout_s=config.call_timeout_s,
            budget=ResourceBudget(total=config.batch_gas_ceiling),
            block=config.block,
        )

    # ---------- existence ----------

    async def contract_exists(self, address: str) -> bool:
        """True when `address` has deployed code."""
        if int(address, 16) == 0:
            return False
        code = await self.reader.get_code(address=address, block=self.block)
        return len(code) > 0

    async def require_contract(self, address: str) -> None:
        if not await self.contract_exists(address):
            raise NotAContract(address)

    # ---------- bounded calls ----------

    def _classify(self, address: str, resp: CallResponse) -> CallOutcome:
        if not resp.success:
            msg = resp.error or "execution failed"
            logger.debug("call to %s failed: %s", address, msg)
            if _CAP_BREACH.search(msg):
                return CallOutcome.failure(RemoteCallExceededCap(f"{address}: {msg}"))
            return CallOutcome.failure(RemoteCallReverted(f"{address}: {msg}"))
        if len(resp.data) > self.max_return_bytes:
            return CallOutcome.failure(
                RemoteCallExceededCap(f"{address}: returned {len(resp.data)} bytes > {self.max_return_bytes}")
            )
        return CallOutcome.success(resp.data)

    async def bounded_calls(self, requests: Sequence[CallRequest]) -> list[CallOutcome]:
        """Run independent capped calls in one round trip; never raises an EntrySkip.

        Each request keeps its own gas cap (`None` means the default cap) and
        is charged to the batch budget before anything is sent. The timeout
        covers the whole group.
        """
        if not requests:
            return []
        capped = [
            CallRequest(r.target, r.data, r.gas if r.gas is not None else self.gas_cap) for r in requests
        ]
        for r in capped:
            self.budget.charge(r.gas or 0)

        if len(capped) == 1:
            r = capped[0]
            pending = self.reader.call(target=r.target, data=r.data, gas=r.gas, block=self.block)
        else:
            pending = self.reader.call_many(requests=capped, block=self.block)
        try:
            if self.call_timeout_s is not None:
                answered = await asyncio.wait_for(pending, timeout=self.call_timeout_s)
            else:
                answered = await pending
        except asyncio.TimeoutError:
            return [
                CallOutcome.failure(RemoteCallExceededCap(f"{r.target}: timed out after {self.call_timeout_s}s"))
                for r in capped
            ]

        responses = [answered] if len(capped) == 1 else list(answered)
        if len(responses) != len(capped):
            raise RemoteTransportError(f"{len(responses)} answers for {len(capped)} calls")
        return [self._classify(r.target, resp) for r, resp in zip(capped, responses)]

    async def bounded_call(self, address: str, calldata: bytes, gas_cap: int | None = None) -> CallOutcome:
        """Run one capped call and tag the result; never raises an EntrySkip."""
        (outcome,) = await self.bounded_calls([CallRequest(address, calldata, gas_cap)])
        return outcome

    async def call(
        self,
        address: str,
        signature: str,
        *,
        arg_types: Sequence[str] = (),
        args: Sequence[Any] = (),
        heavy: bool = False,
    ) -> bytes:
        """Bounded call returning the raw payload; failures raise EntrySkip."""
        calldata = encode_call(signature, arg_types, args)
        outcome = await self.bounded_call(address, calldata, self.heavy_gas_cap if heavy else None)
        return outcome.unwrap()

    async def try_call(self, address: str, signature: str) -> bytes | None:
        """Like `call` without arguments, but a failed call yields None."""
        outcome = await self.bounded_call(address, encode_call(signature))
        return outcome.raw if outcome.ok else None

    async def try_calls(self, addresses: Sequence[str], signature: str) -> list[bytes | None]:
        """`try_call` of the same getter on several contracts, one round trip."""
        calldata = encode_call(signature)
        outcomes = await self.bounded_calls([CallRequest(a, calldata) for a in addresses])
        return [o.raw if o.ok else None for o in outcomes]

    async def read_words(self, reads: Sequence[WordRead]) -> list[tuple[Any, ...]]:
        """Grouped `call_words`: one round trip, results in request order.

        The first failing read (in order) raises its EntrySkip.
        """
        outcomes = await self.bounded_calls(
            [CallRequest(r.address, encode_call(r.signature, r.arg_types, r.args)) for r in reads]
        )
        return [
            parse_words(decode_fixed_width(o.unwrap(), 32 * len(r.out_types)), r.out_types)
            for r, o in zip(reads, outcomes)
        ]

    async def call_words(
        self,
        address: str,
        signature: str,
        out_types: tuple[str, ...],
        *,
        arg_types: Sequence[str] = (),
        args: Sequence[Any] = (),
        heavy: bool = False,
    ) -> tuple[Any, ...]:
        """Call returning only static words; payload must be exactly that wide."""
        raw = await self.call(address, signature, arg_types=arg_types, args=args, heavy=heavy)
        return parse_words(decode_fixed_width(raw, 32 * len(out_types)), out_types)

    async def call_word(self, address: str, signature: str, out_type: str, **kwargs: Any) -> Any:
        (value,) = await self.call_words(address, signature, (out_type,), **kwargs)
        return value

    async def call_dynamic(
        self,
        address: str,
        signature: str,
        out_types: Sequence[str],
        *,
        arg_types: Sequence[str] = (),
        args: Sequence[Any] = (),
        heavy: bool = True,
    ) -> tuple[Any, ...]:
        """Call returning dynamic ABI types (arrays, strings), strictly decoded."""
        raw = await self.call(address, signature, arg_types=arg_types, args=args, heavy=heavy)
        try:
            return tuple(decode(list(out_types), raw))
        except (DecodingError, OverflowError, ValueError) as exc:
            raise DecodeLengthMismatch(f"{address}.{signature}: {exc}") from exc

    # ---------- composed token checks ----------

    async def token_decimals(self, token: str) -> int:
        """Existence check, bounded `decimals()` and range validation."""
        await self.require_contract(token)
        value = await self.call_word(token, "decimals()", "uint256")
        return validate_decimals(value)

    async def tokens_decimals(self, tokens: Sequence[str]) -> tuple[int, ...]:
        """`token_decimals` for several tokens; the `decimals()` reads share one round trip."""
        for token in tokens:
            await self.require_contract(token)
        words = await self.read_words([WordRead(t, "decimals()", ("uint256",)) for t in tokens])
        return tuple(validate_decimals(value) for (value,) in words)
