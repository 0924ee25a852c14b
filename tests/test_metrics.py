"""Unit tests for analytics.metrics."""

import pytest
from autotrade.analytics.metrics import (
    win_rate,
    profit_factor,
    expectancy,
    summarize,
)


def test_win_rate():
    assert win_rate([1, -1, 1, 1]) == 0.75
    assert win_rate([]) == 0.0


def test_profit_factor():
    assert profit_factor([10, -5, 10, -5]) == 2.0
    assert profit_factor([10, 10]) == float("inf")
    assert profit_factor([-5, -5]) == 0.0


def test_expectancy():
    assert expectancy([10, -5, 5]) == pytest.approx(10 / 3)
    assert expectancy([]) == 0.0


def test_summarize():
    s = summarize([10.0, -5.0, 15.0, -3.0])
    assert s.closed_trades == 4
    assert s.winning_trades == 2
    assert s.losing_trades == 2
    assert s.total_pnl == pytest.approx(17.0)
    assert s.win_rate == 50.0
    assert s.avg_win == pytest.approx(12.5)
    assert s.avg_loss == pytest.approx(-4.0)
    assert s.expectancy == pytest.approx(4.25)


def test_summarize_empty():
    s = summarize([])
    assert s.closed_trades == 0
    assert s.total_pnl == 0.0
    assert s.win_rate == 0.0
