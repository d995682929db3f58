"""Rich-based dashboard — banner plus per-source status, redrawn whole each tick."""

from __future__ import annotations

import io
import time
from datetime import datetime, timezone
from decimal import Decimal

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .health.staleness import TERMINAL_TOTAL_DIFFICULTY
from .health.state import (
    BlockInfo,
    ChainHead,
    HealthRecord,
    HealthSnapshot,
    PageLoad,
    ProbeValue,
    RelayPing,
    RpcSweep,
    Status,
    SupplyStats,
    TickerPrice,
)

BANNER = """\
███████╗████████╗██╗  ██╗    ███╗   ███╗ ██████╗ ███╗   ██╗██╗████████╗ ██████╗ ██████╗
██╔════╝╚══██╔══╝██║  ██║    ████╗ ████║██╔═══██╗████╗  ██║██║╚══██╔══╝██╔═══██╗██╔══██╗
█████╗     ██║   ███████║    ██╔████╔██║██║   ██║██╔██╗ ██║██║   ██║   ██║   ██║██████╔╝
██╔══╝     ██║   ██╔══██║    ██║╚██╔╝██║██║   ██║██║╚██╗██║██║   ██║   ██║   ██║██╔══██╗
███████╗   ██║   ██║  ██║    ██║ ╚═╝ ██║╚██████╔╝██║ ╚████║██║   ██║   ╚██████╔╝██║  ██║
╚══════╝   ╚═╝   ╚═╝  ╚═╝    ╚═╝     ╚═╝ ╚═════╝ ╚═╝  ╚═══╝╚═╝   ╚═╝    ╚═════╝ ╚═╝  ╚═╝"""

FRAME_WIDTH = 100

_STATUS_STYLE = {Status.OK: "bold green", Status.DOWN: "bold red"}


# ── Formatting ───────────────────────────────────────────────────────────────


def source_label(name: str) -> str:
    return name.replace("_", " ").upper()


def format_age(record: HealthRecord, now_ms: int) -> str:
    if not record.last_seen_ms:
        return "never"
    return f"{max(now_ms - record.last_seen_ms, 0) / 1000:.0f}s ago"


def format_price(price: Decimal) -> str:
    return f"${price:,.2f}"


def format_value(value: ProbeValue | None) -> str:
    """One-line summary of a probe payload; unset → '-'."""
    if value is None:
        return "-"
    if isinstance(value, ChainHead):
        return f"block no. {value.block_number}"
    if isinstance(value, TickerPrice):
        return f"ETH price {format_price(value.price)}"
    if isinstance(value, SupplyStats):
        return (
            f"supply {value.eth_supply:,} · staking rewards {value.staking_rewards:,}"
            f" · fees burnt {value.burnt_fees:,}"
        )
    if isinstance(value, PageLoad):
        return f"HTTP {value.status_code}, {value.size_bytes:,} bytes"
    if isinstance(value, RelayPing):
        return f"HTTP {value.status_code}"
    if isinstance(value, RpcSweep):
        return f"{len(value.nodes)} nodes answering"
    return escape(str(value))


def gas_price_gwei(snapshot: HealthSnapshot) -> int:
    for _, record in snapshot.items():
        if isinstance(record.value, ChainHead) and record.value.gas_price_wei is not None:
            return round(record.value.gas_price_wei / 1e9)
    return 0


def rpc_nodes(snapshot: HealthSnapshot) -> str:
    nodes = [
        f"{escape(node.label)} ({node.latency_ms:.0f}ms)"
        for _, record in snapshot.items()
        if isinstance(record.value, RpcSweep)
        for node in record.value.nodes
    ]
    return "  ".join(nodes) or "-"


# ── Frame ────────────────────────────────────────────────────────────────────


def _sources_table(snapshot: HealthSnapshot, now_ms: int) -> Table:
    table = Table(expand=True, show_edge=False, pad_edge=False)
    table.add_column("Source", style="bold")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Last seen", justify="right")
    table.add_column("Details")

    for name, record in snapshot.items():
        table.add_row(
            escape(source_label(name)),
            Text(record.status.value, style=_STATUS_STYLE[record.status]),
            f"{record.latency_ms:.0f}ms",
            format_age(record, now_ms),
            format_value(record.value),
        )
    return table


def _chain_table(snapshot: HealthSnapshot) -> Table:
    block = snapshot.latest_block() or BlockInfo()
    block_time = (
        datetime.fromtimestamp(block.timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        if block.timestamp else "-"
    )
    mins = snapshot.mins_to_merge

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Block", str(block.number))
    table.add_row("Transactions", str(block.transaction_count))
    table.add_row("Block size", f"{block.size:,} bytes")
    table.add_row("Block time", block_time)
    table.add_row("TTD", f"{block.total_difficulty} / {TERMINAL_TOTAL_DIFFICULTY}")
    table.add_row("Merge in", f"{mins} mins" if mins is not None else "-")
    table.add_row("Difficulty", str(block.difficulty))
    table.add_row("Miner", escape(block.miner) or "-")
    table.add_row("Gas price", f"{gas_price_gwei(snapshot)} gwei")
    table.add_row("RPC nodes", rpc_nodes(snapshot))
    return table


def build_frame(snapshot: HealthSnapshot, now_ms: int | None = None) -> RenderableType:
    """Assemble the full dashboard renderable from the current snapshot."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    header = Panel(
        Text(BANNER, style="bold cyan", no_wrap=True, overflow="crop"),
        subtitle=f"Ethereum Core Infrastructure Health Monitor · v{__version__}",
    )
    return Group(
        header,
        Panel(_sources_table(snapshot, now_ms), title="Sources"),
        Panel(_chain_table(snapshot), title="Chain"),
    )


def render_frame(
    snapshot: HealthSnapshot, now_ms: int | None = None, width: int = FRAME_WIDTH,
) -> str:
    """Plain-text frame (no ANSI styling)."""
    buf = io.StringIO()
    console = Console(file=buf, width=width, color_system=None, force_terminal=False)
    console.print(build_frame(snapshot, now_ms))
    return buf.getvalue()


class Dashboard:
    """Full-frame redraw on a rich Console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def draw(self, snapshot: HealthSnapshot, now_ms: int | None = None) -> None:
        self.console.clear()
        self.console.print(build_frame(snapshot, now_ms))
