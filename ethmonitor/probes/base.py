"""Probe interface, error taxonomy and shared HTTP helpers.

A probe performs one network check per ``run()`` and either returns a
``ProbeUpdate`` or raises a ``ProbeError``. Both carry the elapsed
wall-clock time of the attempt.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from ..health.state import ProbeValue

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


# ── Errors ───────────────────────────────────────────────────────────────────


class ProbeError(Exception):
    """Base class for probe failures."""

    def __init__(self, message: str, latency_ms: float | None = None) -> None:
        super().__init__(message)
        self.latency_ms = latency_ms


class NetworkError(ProbeError):
    """Connection failure or timeout."""


class ProtocolError(ProbeError):
    """Non-success HTTP status or JSON-RPC error response."""


class ParseError(ProbeError):
    """Payload missing the expected field or shape."""


# ── Probe ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeUpdate:
    value: ProbeValue
    latency_ms: float


class Probe(ABC):
    """One health check against one external source.

    Subclasses implement ``check``; ``run`` owns the HTTP client lifetime and
    the timing so every outcome carries a latency.
    """

    def __init__(
        self,
        name: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.timeout = timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self._transport,
        )

    async def run(self) -> ProbeUpdate:
        t0 = time.perf_counter()
        try:
            async with self._client() as client:
                value = await self.check(client)
        except ProbeError as e:
            if e.latency_ms is None:
                e.latency_ms = elapsed_ms(t0)
            raise
        return ProbeUpdate(value=value, latency_ms=elapsed_ms(t0))

    @abstractmethod
    async def check(self, client: httpx.AsyncClient) -> ProbeValue:
        """Perform the network call(s) and build the value."""


# ── Helpers ──────────────────────────────────────────────────────────────────


def elapsed_ms(t0: float) -> float:
    return round((time.perf_counter() - t0) * 1000, 1)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    ok_below: int = 400,
    **kwargs: Any,
) -> httpx.Response:
    """Issue a request, mapping transport failures and bad statuses to ProbeErrors."""
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timed out: {type(e).__name__}") from e
    except httpx.TransportError as e:
        raise NetworkError(f"Connection error: {type(e).__name__}: {e}") from e
    except httpx.TooManyRedirects as e:
        raise ProtocolError(f"Redirect loop: {e}") from e
    except httpx.RequestError as e:
        # DecodingError and other failures while reading the response
        raise NetworkError(f"Request failed: {type(e).__name__}: {e}") from e

    if resp.status_code >= ok_below:
        raise ProtocolError(f"HTTP {resp.status_code}")
    return resp


def parse_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid JSON body: {e}") from e


def extract_path(data: Any, path: str) -> Any:
    """Walk ``data`` along a dotted path; integer segments index lists."""
    node = data
    for part in path.split("."):
        try:
            if isinstance(node, list):
                node = node[int(part)]
            elif isinstance(node, dict):
                node = node[part]
            else:
                raise ParseError(f"Cannot descend into {type(node).__name__} at {part!r}")
        except (KeyError, IndexError, ValueError) as e:
            raise ParseError(f"Missing field {path!r}") from e
    return node


def to_decimal(raw: Any, field_name: str) -> Decimal:
    if isinstance(raw, bool):
        raise ParseError(f"{field_name} is not numeric: {raw!r}")
    try:
        return Decimal(str(raw))
    except InvalidOperation as e:
        raise ParseError(f"{field_name} is not numeric: {raw!r}") from e
