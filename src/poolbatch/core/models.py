"""Core data models: call results, canonical pool records and batch results.

This module defines:
- `CallRequest`: one call of a grouped read sent in a single round trip.
- `CallResponse`: raw answer of the remote reader for one read-only call.
- `CallOutcome`: tagged result of one bounded call, consumed by validation.
- `EventLog`: one raw log, input of pool discovery and tick replay.
- One frozen record dataclass per protocol adapter (`PoolRecord` subclasses).
- `BatchResult`: index-aligned records + diagnostics for one batch.

Design notes
------------
- Records are only built once every required call of an entry succeeded, so a
  record is either complete or absent (`None` in `BatchResult.records`).
- Every record declares its ABI field types (`ABI_TYPES`); `to_abi` and
  `from_abi` convert to and from the tuple the packer encodes.
- Array fields are tuples so records stay hashable and immutable.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

from eth_utils import to_checksum_address  # type: ignore[attr-defined]

from poolbatch.core.errors import EntrySkip

BlockId = int | str


# === Remote call results ===


@dataclass(slots=True, frozen=True)
class CallRequest:
    """One `eth_call` of a grouped read; `gas` is the execution cap."""

    target: str
    data: bytes
    gas: int | None = None


@dataclass(slots=True, frozen=True)
class CallResponse:
    """What the node returned for one `eth_call`."""

    success: bool
    data: bytes
    error: str | None = None  # node message for failed executions


@dataclass(slots=True, frozen=True)
class CallOutcome:
    """Tagged result of a bounded call: `ok` with `raw`, or an `error` kind."""

    ok: bool
    raw: bytes = b""
    error: EntrySkip | None = None

    @staticmethod
    def success(raw: bytes) -> CallOutcome:
        return CallOutcome(ok=True, raw=raw)

    @staticmethod
    def failure(error: EntrySkip) -> CallOutcome:
        return CallOutcome(ok=False, error=error)

    def unwrap(self) -> bytes:
        """Return the raw payload or raise the recorded skip."""
        if not self.ok:
            raise self.error if self.error is not None else EntrySkip("call failed")
        return self.raw


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # checksummed
    topics: tuple[str, ...]  # lowercased 0x...
    data: bytes
    block_number: int
    log_index: int
    tx_hash: str = ""

    @property
    def position(self) -> tuple[int, int]:
        """Chain order key: (block, log index)."""
        return (self.block_number, self.log_index)


# === Canonical records ===


@dataclass(slots=True, frozen=True)
class PoolRecord:
    """Base class for canonical records; subclasses add fields in ABI order."""

    ABI_TYPES: ClassVar[tuple[str, ...]] = ()

    def to_abi(self) -> tuple[Any, ...]:
        """Field values in declaration order, ready for ABI encoding."""
        return tuple(getattr(self, f.name) for f in fields(self))

    @classmethod
    def from_abi(cls, values: Sequence[Any]) -> PoolRecord:
        """Rebuild a record from decoded ABI values.

        Arrays become tuples and addresses are checksummed, so a decoded record
        compares equal to the one that was encoded.
        """
        return cls(*(_from_abi_value(v, t) for v, t in zip(values, cls.ABI_TYPES, strict=True)))


def _from_abi_value(value: Any, typ: str) -> Any:
    if typ.endswith("[]"):
        return tuple(_from_abi_value(v, typ[:-2]) for v in value)
    if typ == "address":
        return to_checksum_address(value)
    return value


@dataclass(slots=True, frozen=True)
class UniswapV2PairRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = (
        "address",
        "address",
        "address",
        "uint8",
        "uint8",
        "string",
        "string",
        "uint112",
        "uint112",
    )

    pool: str
    token0: str
    token1: str
    token0_decimals: int
    token1_decimals: int
    token0_name: str
    token1_name: str
    reserve0: int
    reserve1: int


@dataclass(slots=True, frozen=True)
class UniswapV3StateRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = ("address", "uint128", "uint160", "int24", "uint24", "int24")

    pool: str
    liquidity: int
    sqrt_price_x96: int
    tick: int
    fee: int
    tick_spacing: int


@dataclass(slots=True, frozen=True)
class TickBitmapWindowRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = ("address", "int24", "int24", "int16[]", "uint256[]")

    pool: str
    tick: int
    tick_spacing: int
    word_positions: tuple[int, ...]
    bitmaps: tuple[int, ...]


@dataclass(slots=True, frozen=True)
class CurvePoolRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = ("address", "address[]", "uint8[]", "string[]")

    pool: str
    coins: tuple[str, ...]
    decimals: tuple[int, ...]
    names: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class BalancerWeightedPoolRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = (
        "address",
        "bytes32",
        "address[]",
        "uint8[]",
        "string[]",
        "uint256[]",
        "uint256[]",
        "uint256",
    )

    pool: str
    pool_id: bytes
    tokens: tuple[str, ...]
    decimals: tuple[int, ...]
    names: tuple[str, ...]
    balances: tuple[int, ...]
    weights: tuple[int, ...]
    swap_fee: int


@dataclass(slots=True, frozen=True)
class MaverickV2PoolRecord(PoolRecord):
    ABI_TYPES: ClassVar[tuple[str, ...]] = ("address", "address", "address", "uint8", "uint8", "string", "string")

    pool: str
    token_a: str
    token_b: str
    token_a_decimals: int
    token_b_decimals: int
    token_a_name: str
    token_b_name: str


# === Batch result ===


@dataclass(slots=True)
class BatchResult:
    """Index-aligned output of one batch.

    `records[i]` and `diagnostics[i]` both describe `addresses[i]`. A `None`
    record is the sentinel for "entry not synced"; its diagnostic says why.
    """

    records: list[PoolRecord | None] = field(default_factory=list)
    diagnostics: list[str | None] = field(default_factory=list)

    @property
    def aligned(self) -> bool:
        """True when every record has its diagnostic slot."""
        return len(self.records) == len(self.diagnostics)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[PoolRecord | None]:
        return iter(self.records)

    def append_record(self, record: PoolRecord) -> None:
        self.records.append(record)
        self.diagnostics.append(None)

    def append_sentinel(self, diagnostic: str) -> None:
        self.records.append(None)
        self.diagnostics.append(diagnostic)

    @property
    def synced(self) -> int:
        """Number of fully populated entries."""
        return sum(1 for r in self.records if r is not None)

    @property
    def skipped(self) -> int:
        """Number of sentinel entries."""
        return len(self.records) - self.synced
