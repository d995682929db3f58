"""Test doubles for probes, time and JSON-RPC endpoints."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from ethmonitor.health.state import ProbeValue
from ethmonitor.probes.base import Probe, ProbeError, ProbeUpdate

T0 = 1_700_000_000_000  # arbitrary epoch ms, well clear of the "never seen" 0


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProbe(Probe):
    """Probe returning a canned value, raising, or never finishing."""

    def __init__(
        self,
        name: str,
        value: ProbeValue | None = None,
        error: Exception | None = None,
        hang: bool = False,
        latency_ms: float = 12.0,
    ) -> None:
        super().__init__(name)
        self.value = value
        self.error = error
        self.hang = hang
        self.latency_ms = latency_ms
        self.calls = 0

    async def check(self, client: httpx.AsyncClient) -> ProbeValue:
        raise NotImplementedError

    async def run(self) -> ProbeUpdate:
        self.calls += 1
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            if isinstance(self.error, ProbeError) and self.error.latency_ms is None:
                self.error.latency_ms = self.latency_ms
            raise self.error
        assert self.value is not None
        return ProbeUpdate(value=self.value, latency_ms=self.latency_ms)


async def no_sleep(_seconds: float) -> None:
    """Yield to the loop without waiting so spawned probe tasks can run."""
    for _ in range(3):
        await asyncio.sleep(0)


def rpc_response(request: httpx.Request, results: dict[str, Any]) -> httpx.Response:
    """Answer a JSON-RPC request from a method → result map."""
    body = json.loads(request.content)
    if body["method"] not in results:
        return httpx.Response(200, json={
            "jsonrpc": "2.0", "id": body["id"],
            "error": {"code": -32601, "message": "method not found"},
        })
    return httpx.Response(200, json={
        "jsonrpc": "2.0", "id": body["id"], "result": results[body["method"]],
    })
