from __future__ import annotations

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsError


class ConfigError(Exception):
    """Raised when the configuration cannot produce a working probe set."""


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Provider credentials (opaque, only presence is checked)
    infura_api_key: str = ""
    alchemy_api_key: str = ""
    etherscan_api_key: str = ""

    # Upstream endpoints
    infura_url: str = "https://mainnet.infura.io/v3/"
    alchemy_url: str = "https://eth-mainnet.g.alchemy.com/v2/"
    etherscan_url: str = "https://etherscan.io/"
    etherscan_api_url: str = "https://api.etherscan.io/api"
    flashbots_relay_url: str = "https://relay.flashbots.net"
    binance_ticker_url: str = "https://www.binance.com/api/v3/ticker/bookTicker?symbol=ETHUSDT"
    coinbase_ticker_url: str = "https://api.coinbase.com/v2/prices/ETH-USD/spot"

    # Public RPC nodes swept every cycle (JSON list in env: RPC_NODES='["https://..."]')
    rpc_nodes: list[str] = [
        "https://rpc.ankr.com/eth",
        "https://eth-rpc.gateway.pokt.network",
        "https://cloudflare-eth.com",
    ]

    # Per-request timeout; each probe bounds its own duration with it
    request_timeout: float = Field(10.0, gt=0)

    # Cadence: fire probes, settle, then N render ticks
    settle_seconds: float = Field(5.0, ge=0)
    ticks_per_cycle: int = Field(10, ge=1)
    tick_seconds: float = Field(1.0, gt=0)
    stale_after_ms: int = Field(15_000, ge=0)

    # Logging (file, so log lines don't tear the redrawn dashboard)
    log_level: str = "INFO"
    log_file: str = "ethmonitor.log"

    def missing_keys(self) -> list[str]:
        """Names of required API keys that are empty."""
        required = {
            "INFURA_API_KEY": self.infura_api_key,
            "ALCHEMY_API_KEY": self.alchemy_api_key,
            "ETHERSCAN_API_KEY": self.etherscan_api_key,
        }
        return [name for name, value in required.items() if not value.strip()]


def load_settings(**overrides: object) -> Settings:
    """Build Settings, reporting unparseable or out-of-range values as ConfigError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
    except SettingsError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
