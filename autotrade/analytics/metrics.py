"""
Performance metrics over realized PnLs of closed positions:
win rate, profit factor, expectancy, average win/loss.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List


@dataclass
class PerformanceSummary:
    """Aggregate performance of closed positions."""
    total_pnl: float
    win_rate: float  # percent, 0-100
    closed_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    profit_factor: float
    expectancy: float

    def to_response(self) -> dict:
        return {
            "totalPnL": self.total_pnl,
            "winRate": self.win_rate,
            "closedTrades": self.closed_trades,
            "winningTrades": self.winning_trades,
            "losingTrades": self.losing_trades,
            "avgWin": self.avg_win,
            "avgLoss": self.avg_loss,
            "profitFactor": self.profit_factor,
            "expectancy": self.expectancy,
        }


def win_rate(pnls: List[float]) -> float:
    """Fraction of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: List[float]) -> float:
    """Gross profit / gross loss. Returns inf if only wins, 0 if nothing won."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return float("inf") if wins > 0 else 0.0
    return wins / losses


def expectancy(pnls: List[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def summarize(pnls: List[float]) -> PerformanceSummary:
    """Build the summary from realized PnLs (one per closed position)."""
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    return PerformanceSummary(
        total_pnl=sum(pnls),
        win_rate=win_rate(pnls) * 100.0,
        closed_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
    )
