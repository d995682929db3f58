"""Entry point for the Ethereum infrastructure health monitor."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import NoReturn

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ethmonitor.config import ConfigError, Settings, load_settings
from ethmonitor.dashboard import Dashboard
from ethmonitor.health.scheduler import MonitorScheduler
from ethmonitor.health.state import HealthSnapshot
from ethmonitor.sources import build_probes

console = Console()
logger = logging.getLogger("ethmonitor")


def configure_logging(cfg: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        filename=cfg.log_file,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def create_scheduler(cfg: Settings, dashboard: Dashboard | None = None) -> MonitorScheduler:
    """Wire snapshot, probes and dashboard; raises ConfigError on bad config."""
    probes = build_probes(cfg)
    snapshot = HealthSnapshot.for_sources(p.name for p in probes)
    return MonitorScheduler(
        snapshot,
        probes,
        dashboard=dashboard,
        settle_seconds=cfg.settle_seconds,
        ticks_per_cycle=cfg.ticks_per_cycle,
        tick_seconds=cfg.tick_seconds,
        stale_after_ms=cfg.stale_after_ms,
    )


def abort(error: ConfigError) -> NoReturn:
    console.print(
        Panel.fit(
            f"[bold]{escape(str(error))}[/bold]\nFix the environment or .env and restart",
            title="ethmonitor",
            border_style="red",
        )
    )
    sys.exit(1)


def main() -> None:
    try:
        cfg = load_settings()
    except ConfigError as e:
        abort(e)

    configure_logging(cfg)

    try:
        scheduler = create_scheduler(cfg, Dashboard(console))
    except ConfigError as e:
        logger.error("Startup aborted: %s", e)
        abort(e)

    try:
        asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted — exiting")


if __name__ == "__main__":
    main()
