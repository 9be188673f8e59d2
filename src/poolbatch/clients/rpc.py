"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async `IRemoteReader` and `ILogReader` with sane timeouts/connection limits and
  bounded retries on rate limits, 5xx answers and connection errors
- Batch arrays: `call_many` sends independent `eth_call`s in one POST
- Helper utilities to format block identifiers and the `eth_call` gas field

Execution failures (revert, out of gas) are answers, not errors: they come
back as `CallResponse(success=False)`. Anything else the node refuses is a
`RemoteTransportError`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from typing import Any

import httpx
from eth_utils import to_checksum_address  # type: ignore[attr-defined]

from poolbatch.constants import CALLDATA_NONZERO_BYTE_GAS, CALLDATA_ZERO_BYTE_GAS, INTRINSIC_GAS
from poolbatch.core.errors import RemoteTransportError
from poolbatch.core.models import BlockId, CallRequest, CallResponse, EventLog

logger = logging.getLogger(__name__)

# JSON-RPC error code geth uses for reverts carrying return data
EXECUTION_ERROR_CODE = 3

_EXECUTION_MESSAGE = re.compile(
    r"revert|out of gas|gas required exceeds|execution|invalid opcode|invalid jump|stack (under|over)flow",
    re.IGNORECASE,
)


def to_block_param(block: BlockId) -> str:
    """Return a 0x-prefixed hex block number, or a tag such as `"latest"` unchanged."""
    return hex(block) if isinstance(block, int) else block


def calldata_gas(data: bytes) -> int:
    """Intrinsic calldata cost: 4 per zero byte, 16 per non-zero byte."""
    zeros = data.count(0)
    return zeros * CALLDATA_ZERO_BYTE_GAS + (len(data) - zeros) * CALLDATA_NONZERO_BYTE_GAS


def call_gas_limit(execution_gas: int, data: bytes) -> int:
    """`eth_call` gas field: execution cap plus what the node charges up front."""
    return execution_gas + INTRINSIC_GAS + calldata_gas(data)


def _is_retryable_status(code: int) -> bool:
    return code == 429 or code >= 500


def _is_execution_error(err: dict[str, Any]) -> bool:
    if err.get("code") == EXECUTION_ERROR_CODE:
        return True
    return bool(_EXECUTION_MESSAGE.search(str(err.get("message", ""))))


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    max_retries : int
        Attempts per request for retryable failures (429, 5xx, connection).
    retry_backoff_s : float
        Linear backoff step between attempts.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        max_retries: int = 3,
        retry_backoff_s: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.max_retries = max_retries
        self.retry_backoff_s = retry_backoff_s
        self._next_id = 0
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
            transport=transport,
        )

    def _envelope(self, method: str, params: list[Any]) -> dict[str, Any]:
        self._next_id += 1
        return {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}

    async def _post(self, method: str, params: list[Any]) -> dict[str, Any]:
        """POST one request with bounded retries and return the JSON body."""
        body = await self._send(self._envelope(method, params), method)
        if not isinstance(body, dict):
            raise RemoteTransportError(f"{method}: unexpected response {body!r}")
        return body

    async def _send(self, payload: dict[str, Any] | list[dict[str, Any]], method: str) -> Any:
        """POST a request object or a batch array with bounded retries; return the decoded JSON."""

        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                r = await self.client.post(self.url, json=payload)
                r.raise_for_status()
                body = r.json()
            except httpx.HTTPStatusError as exc:
                if not _is_retryable_status(exc.response.status_code) or attempt >= attempts:
                    raise RemoteTransportError(f"{method}: HTTP {exc.response.status_code}") from exc
                logger.debug("%s: HTTP %d, retry %d/%d", method, exc.response.status_code, attempt, attempts)
            except httpx.TransportError as exc:
                if attempt >= attempts:
                    raise RemoteTransportError(f"{method}: {exc!r}") from exc
                logger.debug("%s: %r, retry %d/%d", method, exc, attempt, attempts)
            except ValueError as exc:
                raise RemoteTransportError(f"{method}: invalid JSON response") from exc
            else:
                return body

            await asyncio.sleep(self.retry_backoff_s * attempt)

        raise RemoteTransportError(f"{method}: retries exhausted")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        body = await self._post("eth_blockNumber", [])
        if body.get("error"):
            e = body["error"]
            raise RemoteTransportError(f"RPC error: {e.get('code')} {e.get('message')}")
        return int(body["result"], 16)

    async def call(
        self,
        *,
        target: str,
        data: bytes,
        gas: int | None,
        block: BlockId,
    ) -> CallResponse:
        """Run `eth_call`; the gas field covers the execution cap plus intrinsic cost."""
        body = await self._post("eth_call", _call_params(target, data, gas, block))
        return _call_response(body)

    async def call_many(self, *, requests: Sequence[CallRequest], block: BlockId) -> list[CallResponse]:
        """Run several `eth_call`s as one JSON-RPC batch array (one POST).

        Answers are matched back by id, so the node may reorder them. Each
        request keeps its own gas field; a missing answer is a transport error.
        """
        if not requests:
            return []
        payload = [self._envelope("eth_call", _call_params(r.target, r.data, r.gas, block)) for r in requests]
        body = await self._send(payload, "eth_call batch")
        if not isinstance(body, list):
            # some nodes answer a whole batch with a single error object
            if isinstance(body, dict) and body.get("error"):
                e = body["error"]
                raise RemoteTransportError(f"RPC error: {e.get('code')} {e.get('message')}")
            raise RemoteTransportError(f"eth_call batch: unexpected response {body!r}")

        by_id = {item.get("id"): item for item in body if isinstance(item, dict)}
        out: list[CallResponse] = []
        for envelope in payload:
            item = by_id.get(envelope["id"])
            if item is None:
                raise RemoteTransportError(f"eth_call batch: no answer for id {envelope['id']}")
            out.append(_call_response(item))
        return out

    async def get_code(self, *, address: str, block: BlockId) -> bytes:
        """Return deployed bytecode at `address` (empty bytes when none)."""
        body = await self._post("eth_getCode", [address.lower(), to_block_param(block)])
        if body.get("error"):
            e = body["error"]
            raise RemoteTransportError(f"RPC error: {e.get('code')} {e.get('message')}")
        return _hex_bytes(body.get("result"))

    async def get_logs(
        self,
        *,
        address: str | Sequence[str] | None,
        topic0s: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch logs for address(es) and a set of topic0 signatures within a block range."""
        flt: dict[str, Any] = {
            "fromBlock": to_block_param(from_block),
            "toBlock": to_block_param(to_block),
            "topics": [[t.lower() for t in topic0s]],
        }
        if isinstance(address, str):
            flt["address"] = address.lower()
        elif address is not None:
            flt["address"] = [a.lower() for a in address]

        body = await self._post("eth_getLogs", [flt])
        if body.get("error"):
            e = body["error"]
            raise RemoteTransportError(f"RPC error: {e.get('code')} {e.get('message')}")

        out: list[EventLog] = []
        for rl in body.get("result") or []:
            out.append(
                EventLog(
                    address=to_checksum_address(rl["address"]),
                    topics=tuple(str(t).lower() for t in rl.get("topics", [])),
                    data=_hex_bytes(rl.get("data") or "0x"),
                    block_number=int(rl["blockNumber"], 16),
                    log_index=int(rl["logIndex"], 16),
                    tx_hash=(rl.get("transactionHash") or "").lower(),
                )
            )
        return out

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()


def _call_params(target: str, data: bytes, gas: int | None, block: BlockId) -> list[Any]:
    tx: dict[str, str] = {"to": target.lower(), "data": "0x" + data.hex()}
    if gas is not None:
        tx["gas"] = hex(call_gas_limit(gas, data))
    return [tx, to_block_param(block)]


def _call_response(body: dict[str, Any]) -> CallResponse:
    if body.get("error"):
        e = body["error"]
        if _is_execution_error(e):
            return CallResponse(success=False, data=b"", error=str(e.get("message") or "execution reverted"))
        raise RemoteTransportError(f"RPC error: {e.get('code')} {e.get('message')}")
    return CallResponse(success=True, data=_hex_bytes(body.get("result")))


def _hex_bytes(value: Any) -> bytes:
    if not isinstance(value, str):
        raise RemoteTransportError(f"expected hex string, got {value!r}")
    h = value[2:] if value.lower().startswith("0x") else value
    try:
        return bytes.fromhex(h)
    except ValueError as exc:
        raise RemoteTransportError(f"invalid hex payload {value[:20]!r}") from exc
