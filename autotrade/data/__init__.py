"""Data: market snapshot assembly for the analysis agents."""

from autotrade.data.snapshot import MarketSnapshot, SnapshotBuilder, render_market_data

__all__ = ["MarketSnapshot", "SnapshotBuilder", "render_market_data"]
