"""JSON-RPC node client for EVM-compatible chains (Flare / Songbird)."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from ftso_indexer.errors import NodeError
from ftso_indexer.models.events import RawLogEntry

log = logging.getLogger(__name__)


def _hex_to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 16)


def _hex_to_bytes(value: str | None) -> bytes:
    if not value:
        return b""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def _to_raw_log(rl: dict[str, Any]) -> RawLogEntry:
    """Map a JSON-RPC log object to a RawLogEntry."""
    return RawLogEntry(
        address=str(rl["address"]).lower(),
        block_number=_hex_to_int(rl["blockNumber"]),
        log_index=_hex_to_int(rl.get("logIndex", 0)),
        topics=tuple(str(t).lower() for t in rl.get("topics", [])),
        data=_hex_to_bytes(rl.get("data")),
        tx_hash=str(rl.get("transactionHash") or "").lower(),
    )


class JsonRpcNode:
    """Minimal async JSON-RPC client implementing the ChainNode protocol.

    Only the three calls the indexer needs are exposed: ``eth_blockNumber``,
    ``eth_getLogs`` and ``eth_call``. Timeouts are httpx defaults; nothing is
    retried here, the scheduler simply tries again next cycle.
    """

    def __init__(
        self,
        rpc_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = rpc_url
        self._client = httpx.AsyncClient(transport=transport)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self._url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise NodeError(f"{method}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise NodeError(f"{method}: {exc}") from exc
        except ValueError as exc:
            raise NodeError(f"{method}: invalid JSON response") from exc

        if not isinstance(body, dict):
            raise NodeError(f"{method}: response is not a JSON-RPC object: {body!r}")
        err = body.get("error")
        if err is not None:
            if isinstance(err, dict):
                raise NodeError(f"{method}: RPC error {err.get('code')} {err.get('message')}")
            raise NodeError(f"{method}: RPC error {err!r}")
        if "result" not in body:
            raise NodeError(f"{method}: response has no result")
        return body["result"]

    async def get_block_number(self) -> int:
        result = await self._request("eth_blockNumber", [])
        try:
            return _hex_to_int(result)
        except (TypeError, ValueError) as exc:
            raise NodeError(f"eth_blockNumber: bad result {result!r}") from exc

    async def get_logs(
        self,
        address: str,
        topic0: str,
        from_block: int,
        to_block: int,
    ) -> list[RawLogEntry]:
        params = [
            {
                "address": address,
                "fromBlock": hex(from_block),
                "toBlock": hex(to_block),
                "topics": [topic0],
            }
        ]
        result = await self._request("eth_getLogs", params)
        try:
            logs = [_to_raw_log(rl) for rl in result or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise NodeError(f"eth_getLogs: malformed log object: {exc}") from exc
        log.debug(
            "eth_getLogs %s [%d, %d] topic=%s -> %d logs",
            address, from_block, to_block, topic0[:10], len(logs),
        )
        return logs

    async def call(self, to: str, data: bytes) -> bytes:
        result = await self._request(
            "eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"],
        )
        try:
            return _hex_to_bytes(result)
        except (TypeError, ValueError) as exc:
            raise NodeError(f"eth_call: bad result {result!r}") from exc
