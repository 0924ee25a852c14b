"""Core: config, types, errors, logging."""

from autotrade.core.config import load_config, Config
from autotrade.core.types import (
    Candle,
    Direction,
    Environment,
    Position,
    PositionStatus,
    PriceTicker,
    SignalStatus,
    TradeOpinion,
    TradingSignal,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from autotrade.core.errors import ErrorKind, TradingError
from autotrade.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Candle",
    "Direction",
    "Environment",
    "Position",
    "PositionStatus",
    "PriceTicker",
    "SignalStatus",
    "TradeOpinion",
    "TradingSignal",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "ErrorKind",
    "TradingError",
    "setup_logging",
]
