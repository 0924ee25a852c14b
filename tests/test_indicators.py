"""Unit tests for analytics.indicators."""

import math

import pytest
from autotrade.analytics.indicators import compute_ema, compute_macd, compute_obv, compute_rsi, enrich
from autotrade.core.types import Candle

from conftest import make_candles


def _candles_from_closes(closes, volume=10.0):
    return [
        Candle(open_time=i, open=c, high=c, low=c, close=c, volume=volume)
        for i, c in enumerate(closes)
    ]


def test_rsi_all_nan_when_too_short():
    candles = compute_rsi(make_candles(14))
    assert all(math.isnan(c.rsi) for c in candles)


def test_rsi_warmup_and_rising():
    candles = compute_rsi(make_candles(30))
    assert all(math.isnan(c.rsi) for c in candles[:14])
    # no losses at all -> RSI pinned at 100
    assert all(c.rsi == 100.0 for c in candles[14:])


def test_rsi_bounded():
    closes = [100, 102, 101, 103, 99, 98, 104, 105, 103, 102, 101, 106, 107, 104, 103, 108, 102, 101]
    candles = compute_rsi(_candles_from_closes(closes))
    values = [c.rsi for c in candles[14:]]
    assert all(0.0 <= v <= 100.0 for v in values)


def test_ema_seed_and_recurrence():
    out = compute_ema([1, 2, 3, 4, 5], 3)
    assert math.isnan(out[0]) and math.isnan(out[1])
    assert list(out[2:]) == pytest.approx([2.0, 3.0, 4.0])


def test_ema_too_short():
    out = compute_ema([1, 2], 3)
    assert all(math.isnan(v) for v in out)


def test_macd_warmup():
    candles = compute_macd(make_candles(40))
    assert all(math.isnan(c.macd) for c in candles[:25])
    c = candles[30]
    assert not math.isnan(c.macd)
    assert c.macd_hist == pytest.approx(c.macd - c.macd_signal)


def test_obv_starts_at_zero_and_follows_closes():
    candles = compute_obv(_candles_from_closes([10, 11, 11, 10, 12], volume=5.0))
    assert [c.obv for c in candles] == [0.0, 5.0, 5.0, 0.0, 5.0]


def test_obv_monotone_on_rising_closes():
    candles = compute_obv(make_candles(20))
    obv = [c.obv for c in candles]
    assert obv[0] == 0.0
    assert all(b > a for a, b in zip(obv, obv[1:]))


def test_obv_monotone_on_falling_closes():
    candles = compute_obv(make_candles(20, start=200.0, step=-1.0))
    obv = [c.obv for c in candles]
    assert all(b < a for a, b in zip(obv, obv[1:]))


def test_enrich_fills_all_indicators():
    candles = enrich(make_candles(70))
    last = candles[-1]
    assert not math.isnan(last.rsi)
    assert not math.isnan(last.macd)
    assert not math.isnan(last.obv)
