"""Timeframe helpers for Binance-style kline intervals."""

from typing import Iterable, List

VALID_INTERVALS = (
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
)


def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '1h', '1d', '1w') to minutes."""
    tf = tf.strip()
    if tf.endswith("M"):
        return int(tf[:-1]) * 60 * 24 * 30
    tf = tf.lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    if tf.endswith("w"):
        return int(tf[:-1]) * 60 * 24 * 7
    raise ValueError(f"Unsupported timeframe: {tf}")


def normalize_timeframes(timeframes: Iterable[str], default: str) -> List[str]:
    """
    Strip, de-duplicate (keeping order) and validate requested intervals.
    Empty input yields [default].
    """
    result: List[str] = []
    for tf in timeframes or []:
        tf = tf.strip()
        if not tf or tf in result:
            continue
        if tf not in VALID_INTERVALS:
            raise ValueError(f"Unsupported timeframe: {tf}")
        result.append(tf)
    return result or [default]
