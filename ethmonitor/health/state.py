"""Shared health snapshot — one record per monitored source.

Probes never touch a record directly: the scheduler hands their outcome to
``record_success`` / ``record_failure``, which swap in a new frozen record in
a single assignment. Status is derived elsewhere (see ``staleness``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)


# ── Models ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    OK = "OK"
    DOWN = "DOWN"


@dataclass(frozen=True)
class ChainHead:
    """Latest block number (and optionally gas price) from one RPC provider."""

    block_number: int
    gas_price_wei: int | None = None


@dataclass(frozen=True)
class TickerPrice:
    price: Decimal


@dataclass(frozen=True)
class SupplyStats:
    """Etherscan supply figures, in whole ETH."""

    eth_supply: int
    staking_rewards: int
    burnt_fees: int


@dataclass(frozen=True)
class PageLoad:
    status_code: int
    size_bytes: int


@dataclass(frozen=True)
class RelayPing:
    status_code: int


@dataclass(frozen=True)
class BlockInfo:
    number: int = 0
    timestamp: int = 0
    size: int = 0
    transaction_count: int = 0
    miner: str = ""
    difficulty: int = 0
    total_difficulty: int = 0


@dataclass(frozen=True)
class RpcNode:
    label: str
    latency_ms: float


@dataclass(frozen=True)
class RpcSweep:
    """Result of one sweep; replaces the previous sweep wholesale."""

    nodes: tuple[RpcNode, ...] = ()
    last_block: BlockInfo | None = None


ProbeValue = Union[ChainHead, TickerPrice, SupplyStats, PageLoad, RelayPing, RpcSweep]


@dataclass(frozen=True)
class HealthRecord:
    """Most recent known state of one source."""

    status: Status = Status.OK
    last_seen_ms: int = 0
    latency_ms: float = 0.0
    value: ProbeValue | None = None
    error: str = ""


# ── Snapshot ─────────────────────────────────────────────────────────────────


@dataclass
class HealthSnapshot:
    """Mapping of source name → HealthRecord, keys fixed at construction.

    Every source starts as a default ``OK`` record with zeroed fields so the
    first frame renders before any probe has answered.
    """

    _records: dict[str, HealthRecord] = field(default_factory=dict)
    mins_to_merge: int | None = None

    @classmethod
    def for_sources(cls, names: Iterable[str]) -> HealthSnapshot:
        return cls(_records={name: HealthRecord() for name in names})

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, name: str) -> HealthRecord:
        return self._records[name]

    def items(self) -> list[tuple[str, HealthRecord]]:
        return list(self._records.items())

    def swap(self, name: str, record: HealthRecord) -> None:
        """Swap in a whole record for ``name`` (the only write path)."""
        if name not in self._records:
            raise KeyError(f"Unknown source: {name}")
        self._records[name] = record

    def record_success(
        self, name: str, value: ProbeValue, latency_ms: float, now_ms: int,
    ) -> None:
        current = self.get(name)
        self.swap(name, replace(
            current, latency_ms=latency_ms, value=value, last_seen_ms=now_ms, error="",
        ))

    def record_failure(self, name: str, error: str, latency_ms: float | None = None) -> None:
        """Keep last_seen_ms so staleness accrues; latency is diagnostic only."""
        current = self.get(name)
        if latency_ms is None:
            latency_ms = current.latency_ms
        self.swap(name, replace(current, latency_ms=latency_ms, error=error))

    def set_status(self, name: str, status: Status) -> None:
        current = self.get(name)
        if current.status is not status:
            logger.info("%s: %s → %s", name, current.status.value, status.value)
            self.swap(name, replace(current, status=status))

    def latest_block(self) -> BlockInfo | None:
        """Block from the first sweep record that has one."""
        for record in self._records.values():
            if isinstance(record.value, RpcSweep) and record.value.last_block is not None:
                return record.value.last_block
        return None
