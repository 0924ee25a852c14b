"""
Market snapshot: current price plus enriched, truncated candles per timeframe.
This is the single payload every analysis agent consumes.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from autotrade.analytics.indicators import enrich
from autotrade.core.errors import PriceUnavailableError, UpstreamError
from autotrade.core.types import Candle
from autotrade.execution.base import MarketDataClient

logger = logging.getLogger("autotrade.data.snapshot")

CANDLE_LIMIT = 70
PROMPT_CANDLES = 35


@dataclass(frozen=True)
class MarketSnapshot:
    symbol: str
    current_price: float
    timeframes: Tuple[str, ...]
    candles: Dict[str, Tuple[Candle, ...]]


class SnapshotBuilder:
    """Fetches, enriches and truncates candles for each requested timeframe."""

    def __init__(
        self,
        market_data: MarketDataClient,
        candle_limit: int = CANDLE_LIMIT,
        prompt_candles: int = PROMPT_CANDLES,
    ):
        self.market_data = market_data
        self.candle_limit = candle_limit
        self.prompt_candles = prompt_candles

    def build(self, symbol: str, timeframes: Sequence[str]) -> MarketSnapshot:
        candles: Dict[str, Tuple[Candle, ...]] = {}
        for tf in timeframes:
            series: List[Candle] = self.market_data.get_candles(symbol, tf, self.candle_limit)
            # Indicators need the full window; only the tail goes into prompts
            enrich(series)
            candles[tf] = tuple(series[-self.prompt_candles:])
            logger.debug("%s %s: %d candles fetched, %d kept", symbol, tf, len(series), len(candles[tf]))

        try:
            ticker = self.market_data.get_current_price(symbol)
        except UpstreamError as e:
            raise PriceUnavailableError(f"failed to fetch current price for {symbol}: {e}") from e
        if ticker.price <= 0:
            raise PriceUnavailableError(f"failed to fetch current price for {symbol}")

        return MarketSnapshot(
            symbol=symbol,
            current_price=ticker.price,
            timeframes=tuple(timeframes),
            candles=candles,
        )


def format_candle(index: int, c: Candle) -> str:
    return (
        f"Candle {index}: OpenTime: {c.open_time}, Open: {c.open:.6f}, High: {c.high:.6f}, "
        f"Low: {c.low:.6f}, Close: {c.close:.6f}, Volume: {c.volume:.2f}, Trades: {c.trade_count}, "
        f"RSI: {c.rsi:.2f}, MACD: {c.macd:.5f}, OBV: {c.obv:.0f}"
    )


def render_market_data(snapshot: MarketSnapshot) -> str:
    """Price header and candle table, timeframes in request order."""
    lines = [f"current_price: {snapshot.current_price:.6f}", ""]
    for tf in snapshot.timeframes:
        series = snapshot.candles.get(tf, ())
        lines.append(f"Market Data ({tf}, last {len(series)} candles):")
        lines.append("")
        lines.extend(format_candle(i, c) for i, c in enumerate(series, start=1))
        lines.append("")
    return "\n".join(lines)
