"""Probes — one network health check per external source."""

from .base import NetworkError, ParseError, Probe, ProbeError, ProbeUpdate, ProtocolError
from .rpc import ChainHeadProbe, JsonRpcClient, RpcSweepProbe
from .web import PageLoadProbe, RelayPingProbe, SupplyProbe, TickerProbe
