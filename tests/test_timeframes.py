"""Unit tests for utils.timeframes."""

import pytest
from autotrade.utils.timeframes import normalize_timeframes, timeframe_minutes


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("1d") == 1440
    assert timeframe_minutes("1w") == 10080


def test_timeframe_invalid():
    with pytest.raises(ValueError):
        timeframe_minutes("1x")


def test_normalize_default_and_dedupe():
    assert normalize_timeframes([], "1h") == ["1h"]
    assert normalize_timeframes([" 4h", "1h", "4h"], "1h") == ["4h", "1h"]


def test_normalize_rejects_unknown_interval():
    with pytest.raises(ValueError):
        normalize_timeframes(["7m"], "1h")
