"""Analytics: technical indicators and closed-position performance metrics."""

from autotrade.analytics.indicators import (
    compute_ema,
    compute_macd,
    compute_obv,
    compute_rsi,
    enrich,
)
from autotrade.analytics.metrics import (
    PerformanceSummary,
    expectancy,
    profit_factor,
    summarize,
    win_rate,
)

__all__ = [
    "compute_ema",
    "compute_macd",
    "compute_obv",
    "compute_rsi",
    "enrich",
    "PerformanceSummary",
    "expectancy",
    "profit_factor",
    "summarize",
    "win_rate",
]
