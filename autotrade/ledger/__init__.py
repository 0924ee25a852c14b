from autotrade.ledger.ledger import PositionLedger, position_pnl

__all__ = ["PositionLedger", "position_pnl"]
