"""Utils: Telegram alerts, timeframes, exchange filters."""

from autotrade.utils.exchange_filters import parse_symbol_filters, round_price, truncate_to_step
from autotrade.utils.telegram import Notifier, send_telegram
from autotrade.utils.timeframes import normalize_timeframes, timeframe_minutes

__all__ = [
    "parse_symbol_filters",
    "round_price",
    "truncate_to_step",
    "Notifier",
    "send_telegram",
    "normalize_timeframes",
    "timeframe_minutes",
]
