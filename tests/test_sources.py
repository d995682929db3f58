"""Tests for settings, the source registry and startup wiring."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ethmonitor import main as main_mod
from ethmonitor.config import ConfigError, Settings, load_settings
from ethmonitor.probes import ChainHeadProbe, RpcSweepProbe, TickerProbe
from ethmonitor.sources import BINANCE, COINBASE, INFURA, RPC_NODES, build_probes


# ── Settings ─────────────────────────────────────────────────────────────────


class TestSettings:
    def test_defaults(self) -> None:
        cfg = Settings(_env_file=None)
        assert cfg.stale_after_ms == 15_000
        assert cfg.settle_seconds == 5.0
        assert cfg.ticks_per_cycle == 10
        assert len(cfg.rpc_nodes) == 3

    def test_missing_keys(self) -> None:
        cfg = Settings(_env_file=None, infura_api_key="x", alchemy_api_key=" ", etherscan_api_key="")
        assert cfg.missing_keys() == ["ALCHEMY_API_KEY", "ETHERSCAN_API_KEY"]

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RPC_NODES", '["https://one.test"]')
        monkeypatch.setenv("STALE_AFTER_MS", "30000")
        cfg = Settings(_env_file=None)
        assert cfg.rpc_nodes == ["https://one.test"]
        assert cfg.stale_after_ms == 30_000

    def test_load_settings_non_numeric_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TICKS_PER_CYCLE", "abc")
        with pytest.raises(ConfigError, match="TICKS_PER_CYCLE"):
            load_settings(_env_file=None)

    def test_load_settings_malformed_rpc_nodes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RPC_NODES", "not json")
        with pytest.raises(ConfigError, match="rpc_nodes"):
            load_settings(_env_file=None)

    @pytest.mark.parametrize(
        "field, value",
        [("ticks_per_cycle", 0), ("stale_after_ms", -1), ("settle_seconds", -0.5), ("tick_seconds", 0)],
    )
    def test_load_settings_lower_bounds(self, field: str, value: float) -> None:
        with pytest.raises(ConfigError, match=field.upper()):
            load_settings(_env_file=None, **{field: value})

    def test_load_settings_valid(self) -> None:
        cfg = load_settings(_env_file=None, ticks_per_cycle=1, stale_after_ms=0)
        assert cfg.ticks_per_cycle == 1
        assert cfg.stale_after_ms == 0


# ── build_probes ─────────────────────────────────────────────────────────────


class TestBuildProbes:
    def test_full_set(self, cfg: Settings) -> None:
        probes = build_probes(cfg)
        names = [p.name for p in probes]
        assert names == [
            "infura", "alchemy", "etherscan_api", "etherscan", "flashbots",
            "binance", "coinbase", "rpc_nodes",
        ]
        assert len(set(names)) == len(names)

    def test_provider_probes_share_class(self, cfg: Settings) -> None:
        by_name = {p.name: p for p in build_probes(cfg)}
        infura = by_name[INFURA]
        assert isinstance(infura, ChainHeadProbe)
        assert isinstance(by_name["alchemy"], ChainHeadProbe)
        assert infura.with_gas_price is True
        assert infura.rpc_url.endswith("infura-key")
        assert by_name["alchemy"].rpc_url.endswith("alchemy-key")
        assert isinstance(by_name[BINANCE], TickerProbe)
        assert by_name[COINBASE].path == "data.amount"
        assert isinstance(by_name[RPC_NODES], RpcSweepProbe)

    def test_timeout_propagates(self, cfg: Settings) -> None:
        cfg.request_timeout = 3.0
        assert all(p.timeout == 3.0 for p in build_probes(cfg))

    def test_missing_keys_fatal(self) -> None:
        with pytest.raises(ConfigError, match="INFURA_API_KEY"):
            build_probes(Settings(_env_file=None))

    def test_no_rpc_nodes(self, cfg: Settings) -> None:
        cfg.rpc_nodes = []
        assert RPC_NODES not in [p.name for p in build_probes(cfg)]


# ── Startup ──────────────────────────────────────────────────────────────────


class TestStartup:
    def test_create_scheduler(self, cfg: Settings) -> None:
        scheduler = main_mod.create_scheduler(cfg)
        assert len(scheduler.snapshot) == len(scheduler.probes) == 8
        assert scheduler.stale_after_ms == cfg.stale_after_ms
        assert scheduler.ticks_per_cycle == cfg.ticks_per_cycle

    def test_main_exits_on_missing_keys(self, tmp_path) -> None:
        cfg = Settings(_env_file=None, log_file=str(tmp_path / "ethmonitor.log"))
        with patch.object(main_mod, "load_settings", return_value=cfg), \
                patch.object(main_mod, "configure_logging"), \
                patch.object(main_mod, "console"):
            with pytest.raises(SystemExit) as exc:
                main_mod.main()
        assert exc.value.code == 1

    def test_main_exits_on_invalid_settings(self) -> None:
        configure = patch.object(main_mod, "configure_logging")
        with patch.object(main_mod, "load_settings", side_effect=ConfigError("Invalid configuration: TICKS_PER_CYCLE")), \
                configure as configure_logging, \
                patch.object(main_mod, "console") as console:
            with pytest.raises(SystemExit) as exc:
                main_mod.main()
        assert exc.value.code == 1
        configure_logging.assert_not_called()
        console.print.assert_called_once()
