"""Execution: exchange abstractions and Binance Futures implementation.

The execution engine lives in autotrade.execution.engine (it depends on the
ledger and signal lifecycle, which themselves use these interfaces).
"""

from autotrade.execution.base import (
    AccountInfo,
    BrokerClient,
    ExchangePosition,
    MarketDataClient,
    OrderRequest,
    OrderResult,
)
from autotrade.execution.binance_futures import BinanceFuturesBroker, BinanceMarketData

__all__ = [
    "AccountInfo",
    "BrokerClient",
    "ExchangePosition",
    "MarketDataClient",
    "OrderRequest",
    "OrderResult",
    "BinanceFuturesBroker",
    "BinanceMarketData",
]
