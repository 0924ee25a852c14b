"""
Technical indicators over an ordered, time-ascending candle list.

RSI, MACD and OBV enrich the candles in place; each pass is independent of
the others. Values before an indicator's warm-up are NaN.
"""

from __future__ import annotations
from typing import List, Sequence

import numpy as np

from autotrade.core.types import Candle

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9


def compute_ema(values: Sequence[float], period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first `period` values. NaN before index period-1."""
    arr = np.asarray(values, dtype=float)
    out = np.full(len(arr), np.nan)
    if period <= 0 or len(arr) < period:
        return out
    k = 2.0 / (period + 1)
    out[period - 1] = arr[:period].mean()
    for i in range(period, len(arr)):
        out[i] = (arr[i] - out[i - 1]) * k + out[i - 1]
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def compute_rsi(candles: List[Candle], period: int = RSI_PERIOD) -> List[Candle]:
    """
    Wilder RSI. Seed averages are simple means of the first `period` close deltas,
    then avg = (avg * (period - 1) + x) / period.
    """
    n = len(candles)
    values = np.full(n, np.nan)
    if n >= period + 1:
        closes = np.array([c.close for c in candles], dtype=float)
        deltas = np.diff(closes)
        gains = np.clip(deltas, 0.0, None)
        losses = np.clip(-deltas, 0.0, None)
        avg_gain = float(gains[:period].mean())
        avg_loss = float(losses[:period].mean())
        values[period] = _rsi_value(avg_gain, avg_loss)
        for i in range(period + 1, n):
            avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
            values[i] = _rsi_value(avg_gain, avg_loss)
    for candle, value in zip(candles, values):
        candle.rsi = float(value)
    return candles


def compute_macd(candles: List[Candle]) -> List[Candle]:
    """
    MACD line = EMA12 - EMA26; signal = EMA9 of the MACD line with NaN read as 0.
    A candle keeps NaN MACD/signal/hist unless both sources are defined.
    """
    if not candles:
        return candles
    closes = [c.close for c in candles]
    macd_line = compute_ema(closes, MACD_FAST) - compute_ema(closes, MACD_SLOW)
    signal = compute_ema(np.nan_to_num(macd_line, nan=0.0), MACD_SIGNAL)
    for i, candle in enumerate(candles):
        if np.isnan(macd_line[i]) or np.isnan(signal[i]):
            candle.macd = candle.macd_signal = candle.macd_hist = float("nan")
        else:
            candle.macd = float(macd_line[i])
            candle.macd_signal = float(signal[i])
            candle.macd_hist = float(macd_line[i] - signal[i])
    return candles


def compute_obv(candles: List[Candle]) -> List[Candle]:
    """On-balance volume; starts at 0, unchanged on equal closes."""
    if not candles:
        return candles
    candles[0].obv = 0.0
    for prev, cur in zip(candles, candles[1:]):
        if cur.close > prev.close:
            cur.obv = prev.obv + cur.volume
        elif cur.close < prev.close:
            cur.obv = prev.obv - cur.volume
        else:
            cur.obv = prev.obv
    return candles


def enrich(candles: List[Candle]) -> List[Candle]:
    """Run every indicator pass over the candles."""
    compute_rsi(candles)
    compute_macd(candles)
    compute_obv(candles)
    return candles
