"""Shared test fixtures."""

from __future__ import annotations

import pytest

from ethmonitor.config import Settings
from ethmonitor.health.state import HealthSnapshot
from tests.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def snapshot() -> HealthSnapshot:
    return HealthSnapshot.for_sources(["infura", "binance", "rpc_nodes"])


@pytest.fixture
def cfg() -> Settings:
    """Settings with all keys present and no .env lookup."""
    return Settings(
        _env_file=None,
        infura_api_key="infura-key",
        alchemy_api_key="alchemy-key",
        etherscan_api_key="etherscan-key",
    )
