"""JSON-RPC probes — provider chain head and the public node sweep."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from ..health.state import BlockInfo, ChainHead, RpcNode, RpcSweep
from .base import (
    DEFAULT_TIMEOUT,
    ParseError,
    Probe,
    ProbeError,
    ProtocolError,
    elapsed_ms,
    parse_json,
    send,
)

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


# ── JSON-RPC plumbing ────────────────────────────────────────────────────────


def hex_to_int(raw: Any, field_name: str = "result") -> int:
    """Decode a 0x-prefixed quantity; plain ints pass through."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if not isinstance(raw, str):
        raise ParseError(f"{field_name} is not a hex quantity: {raw!r}")
    try:
        return int(raw, 16)
    except ValueError as e:
        raise ParseError(f"{field_name} is not a hex quantity: {raw!r}") from e


class JsonRpcClient:
    """Minimal JSON-RPC 2.0 caller over an existing httpx client."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(_ids), "method": method, "params": params or []}
        resp = await send(self._client, "POST", self._url, json=payload)
        body = parse_json(resp)
        if not isinstance(body, dict):
            raise ParseError(f"{method}: response is not an object")
        if body.get("error"):
            err = body["error"]
            msg = err.get("message", err) if isinstance(err, dict) else err
            raise ProtocolError(f"{method}: RPC error: {msg}")
        if "result" not in body:
            raise ParseError(f"{method}: response has no result")
        return body["result"]

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber"), "eth_blockNumber")

    async def gas_price(self) -> int:
        return hex_to_int(await self.call("eth_gasPrice"), "eth_gasPrice")

    async def block(self, number: int) -> BlockInfo:
        raw = await self.call("eth_getBlockByNumber", [hex(number), False])
        if not isinstance(raw, dict):
            raise ParseError(f"Block {number} not returned")
        return parse_block(raw)


def parse_block(raw: dict[str, Any]) -> BlockInfo:
    """Build a BlockInfo from an eth_getBlockByNumber result; absent fields → 0."""

    def quantity(key: str) -> int:
        value = raw.get(key)
        return 0 if value is None else hex_to_int(value, key)

    txs = raw.get("transactions") or []
    return BlockInfo(
        number=quantity("number"),
        timestamp=quantity("timestamp"),
        size=quantity("size"),
        transaction_count=len(txs) if isinstance(txs, list) else 0,
        miner=str(raw.get("miner") or ""),
        difficulty=quantity("difficulty"),
        total_difficulty=quantity("totalDifficulty"),
    )


def node_label(url: str) -> str:
    """Endpoint URL without its scheme, as shown on the dashboard."""
    return url.split("://", 1)[-1]


# ── Probes ───────────────────────────────────────────────────────────────────


class ChainHeadProbe(Probe):
    """Block number (and optionally gas price) from one RPC provider.

    Providers differ only in endpoint and credentials, so Infura and Alchemy
    are two instances of this class.
    """

    def __init__(
        self,
        name: str,
        rpc_url: str,
        with_gas_price: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.rpc_url = rpc_url
        self.with_gas_price = with_gas_price

    async def check(self, client: httpx.AsyncClient) -> ChainHead:
        rpc = JsonRpcClient(client, self.rpc_url)
        block_number = await rpc.block_number()
        gas_price = await rpc.gas_price() if self.with_gas_price else None
        return ChainHead(block_number=block_number, gas_price_wei=gas_price)


class RpcSweepProbe(Probe):
    """Query every endpoint concurrently; each one may fail on its own.

    The node list is rebuilt from scratch on every run, in configured order,
    holding only the endpoints that answered this time.
    """

    def __init__(
        self,
        name: str,
        endpoints: Sequence[str],
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.endpoints = list(endpoints)

    async def _query(
        self, client: httpx.AsyncClient, url: str,
    ) -> tuple[RpcNode, BlockInfo, float] | None:
        t0 = time.perf_counter()
        try:
            rpc = JsonRpcClient(client, url)
            block_number = await rpc.block_number()
            latency = elapsed_ms(t0)
            block = await rpc.block(block_number)
        except ProbeError as e:
            logger.warning("RPC node %s failed: %s", url, e)
            return None
        return RpcNode(label=node_label(url), latency_ms=latency), block, time.perf_counter()

    async def check(self, client: httpx.AsyncClient) -> RpcSweep:
        results = await asyncio.gather(*(self._query(client, url) for url in self.endpoints))
        answered = [r for r in results if r is not None]
        if not answered:
            raise ProtocolError(f"All {len(self.endpoints)} RPC nodes failed")

        # The block fetched last wins, as it would with sequential writes
        _, last_block, _ = max(answered, key=lambda r: r[2])
        return RpcSweep(nodes=tuple(node for node, _, _ in answered), last_block=last_block)
