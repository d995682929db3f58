"""REST and plain-HTTP probes — price tickers, supply API, page load, relay ping."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

import httpx

from ..health.state import PageLoad, RelayPing, SupplyStats, TickerPrice
from .base import (
    DEFAULT_TIMEOUT,
    ParseError,
    Probe,
    ProtocolError,
    extract_path,
    parse_json,
    send,
    to_decimal,
)

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18


class TickerProbe(Probe):
    """GET a JSON ticker and read one numeric field by dotted path."""

    def __init__(
        self,
        name: str,
        url: str,
        path: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.url = url
        self.path = path

    async def check(self, client: httpx.AsyncClient) -> TickerPrice:
        resp = await send(client, "GET", self.url)
        raw = extract_path(parse_json(resp), self.path)
        return TickerPrice(price=to_decimal(raw, self.path))


def wei_to_eth(raw: object, field_name: str) -> int:
    """Whole ETH, rounding halves up."""
    eth = to_decimal(raw, field_name) / WEI_PER_ETH
    return int(eth.to_integral_value(rounding=ROUND_HALF_UP))


class SupplyProbe(Probe):
    """Etherscan ``stats/ethsupply2``: supply, staking rewards and burnt fees."""

    def __init__(
        self,
        name: str,
        url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.url = url
        self.api_key = api_key

    async def check(self, client: httpx.AsyncClient) -> SupplyStats:
        params = {"module": "stats", "action": "ethsupply2", "apikey": self.api_key}
        resp = await send(client, "GET", self.url, params=params)
        body = parse_json(resp)
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            # Etherscan reports errors as status "0" with a string result
            raise ProtocolError(f"Etherscan error: {result or body!r}")

        staking = wei_to_eth(extract_path(result, "Eth2Staking"), "Eth2Staking")
        burnt = wei_to_eth(extract_path(result, "BurntFees"), "BurntFees")
        supply = wei_to_eth(extract_path(result, "EthSupply"), "EthSupply")
        return SupplyStats(
            eth_supply=supply + staking - burnt,
            staking_rewards=staking,
            burnt_fees=burnt,
        )


class PageLoadProbe(Probe):
    """Time a full page fetch (redirects followed, body read)."""

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.url = url

    async def check(self, client: httpx.AsyncClient) -> PageLoad:
        resp = await send(client, "GET", self.url, headers={"Accept": "text/html"})
        if not resp.content:
            raise ParseError("Empty page")
        return PageLoad(status_code=resp.status_code, size_bytes=len(resp.content))


class RelayPingProbe(Probe):
    """POST an empty body; any non-5xx answer means the relay is alive.

    The relay rejects the empty request with a 4xx JSON-RPC error, which is
    still proof that it is serving.
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout=timeout, transport=transport)
        self.url = url

    async def check(self, client: httpx.AsyncClient) -> RelayPing:
        resp = await send(
            client, "POST", self.url, ok_below=500,
            headers={"Content-Type": "application/json"}, content=b"",
        )
        return RelayPing(status_code=resp.status_code)
