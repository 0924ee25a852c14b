"""Risk sizing: fixed-fraction margin, leverage, exchange lot constraints."""

from autotrade.risk.manager import DEFAULT_RISK_FRACTION, MAX_LEVERAGE, RiskResult, RiskSizer

__all__ = ["RiskSizer", "RiskResult", "DEFAULT_RISK_FRACTION", "MAX_LEVERAGE"]
