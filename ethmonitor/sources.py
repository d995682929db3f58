"""The fixed set of monitored sources, built from settings."""

from __future__ import annotations

import logging

import httpx

from .config import ConfigError, Settings
from .probes import (
    ChainHeadProbe,
    PageLoadProbe,
    Probe,
    RelayPingProbe,
    RpcSweepProbe,
    SupplyProbe,
    TickerProbe,
)

logger = logging.getLogger(__name__)

INFURA = "infura"
ALCHEMY = "alchemy"
ETHERSCAN_API = "etherscan_api"
ETHERSCAN = "etherscan"
FLASHBOTS = "flashbots"
BINANCE = "binance"
COINBASE = "coinbase"
RPC_NODES = "rpc_nodes"


def build_probes(
    cfg: Settings, transport: httpx.AsyncBaseTransport | None = None,
) -> list[Probe]:
    """One probe per source, in dashboard order.

    Raises ConfigError when a provider credential is missing.
    """
    missing = cfg.missing_keys()
    if missing:
        raise ConfigError(f"Missing API keys: {', '.join(missing)}")

    opts = {"timeout": cfg.request_timeout, "transport": transport}
    probes: list[Probe] = [
        ChainHeadProbe(INFURA, cfg.infura_url + cfg.infura_api_key, with_gas_price=True, **opts),
        ChainHeadProbe(ALCHEMY, cfg.alchemy_url + cfg.alchemy_api_key, **opts),
        SupplyProbe(ETHERSCAN_API, cfg.etherscan_api_url, cfg.etherscan_api_key, **opts),
        PageLoadProbe(ETHERSCAN, cfg.etherscan_url, **opts),
        RelayPingProbe(FLASHBOTS, cfg.flashbots_relay_url, **opts),
        TickerProbe(BINANCE, cfg.binance_ticker_url, "bidPrice", **opts),
        TickerProbe(COINBASE, cfg.coinbase_ticker_url, "data.amount", **opts),
    ]
    if cfg.rpc_nodes:
        probes.append(RpcSweepProbe(RPC_NODES, cfg.rpc_nodes, **opts))
    else:
        logger.warning("No RPC nodes configured — sweep disabled")

    logger.info("Configured %d sources: %s", len(probes), ", ".join(p.name for p in probes))
    return probes
