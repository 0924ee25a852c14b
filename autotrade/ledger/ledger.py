"""
Position and transaction ledger.

Positions are created by the execution engine and closed through it; the
ledger owns the records, derives unrealized P&L for Open positions at read
time, and aggregates realized performance over Closed ones. Transactions are
append-only.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update

from autotrade.analytics.metrics import PerformanceSummary, summarize
from autotrade.core.errors import NotFoundError, NotOpenError, UpstreamError
from autotrade.core.types import Direction, Position, PositionStatus, Transaction, is_record_id
from autotrade.execution.base import MarketDataClient
from autotrade.storage.database import Database
from autotrade.storage.records import (
    PositionRecord,
    TransactionRecord,
    position_to_record,
    record_to_position,
    record_to_transaction,
    transaction_to_record,
)

logger = logging.getLogger("autotrade.ledger")


def position_pnl(direction: Direction, entry_price: float, price: float, size: float, leverage: int):
    """(pnl, pnl_percentage). pct is relative to entry * size; 0 when that is 0."""
    if direction is Direction.LONG:
        pnl = (price - entry_price) * size * leverage
    else:
        pnl = (entry_price - price) * size * leverage
    basis = entry_price * size
    pct = pnl / basis * 100 if basis > 0 else 0.0
    return pnl, pct


class PositionLedger:
    def __init__(self, db: Database, market_data: MarketDataClient):
        self.db = db
        self.market_data = market_data

    # Positions

    def create_position(self, position: Position) -> Position:
        with self.db.session() as session:
            session.add(position_to_record(position))
        logger.info(
            "Position opened: %s %s %s entry=%.6f lev=%d",
            position.id, position.symbol, position.direction.value, position.entry_price, position.leverage,
        )
        return position

    def get_position(self, position_id: str) -> Position:
        if not is_record_id(position_id):
            raise NotFoundError(f"invalid position id: {position_id!r}")
        with self.db.session() as session:
            record = session.get(PositionRecord, position_id)
            if record is None:
                raise NotFoundError(f"position not found: {position_id}")
            return record_to_position(record)

    def list_positions(self, limit: int = 100) -> List[Position]:
        """Most recent first; Open positions get a fresh price and P&L."""
        stmt = select(PositionRecord).order_by(PositionRecord.created_at.desc()).limit(limit)
        with self.db.session() as session:
            positions = [record_to_position(r) for r in session.scalars(stmt)]
        return [self.recompute_pnl(p) if p.status is PositionStatus.OPEN else p for p in positions]

    def recompute_pnl(self, position: Position) -> Position:
        """Refresh current price and unrealized P&L of an Open position. Fetch failures keep stored values."""
        if position.status is not PositionStatus.OPEN:
            return position
        try:
            ticker = self.market_data.get_current_price(position.symbol)
        except UpstreamError as e:
            logger.warning("Price fetch failed for %s, keeping stored P&L: %s", position.symbol, e)
            return position
        if ticker.price <= 0:
            return position

        # Derived values are never written back; the record keeps its opening values
        position.current_price = ticker.price
        position.pnl, position.pnl_percentage = position_pnl(
            position.direction, position.entry_price, ticker.price, position.size, position.leverage,
        )
        return position

    def mark_closed(self, position_id: str, close_price: float, closed_at: datetime) -> Position:
        """Open -> Closed with realized P&L at close_price. Raises NotOpenError if already closed."""
        position = self.get_position(position_id)
        if position.status is not PositionStatus.OPEN:
            raise NotOpenError(f"position {position_id} is not open")
        pnl, pct = position_pnl(
            position.direction, position.entry_price, close_price, position.size, position.leverage,
        )
        with self.db.session() as session:
            result = session.execute(
                update(PositionRecord)
                .where(PositionRecord.id == position_id, PositionRecord.status == PositionStatus.OPEN.value)
                .values(
                    status=PositionStatus.CLOSED.value,
                    closed_at=closed_at,
                    close_price=close_price,
                    current_price=close_price,
                    pnl=pnl,
                    pnl_percentage=pct,
                )
            )
            if result.rowcount == 0:
                raise NotOpenError(f"position {position_id} is not open")
        position.status = PositionStatus.CLOSED
        position.closed_at = closed_at
        position.close_price = close_price
        position.current_price = close_price
        position.pnl, position.pnl_percentage = pnl, pct
        logger.info("Position closed: %s at %.6f pnl=%.4f", position_id, close_price, pnl)
        return position

    def flag_reconciliation(self, position_id: str) -> None:
        with self.db.session() as session:
            session.execute(
                update(PositionRecord).where(PositionRecord.id == position_id).values(needs_reconciliation=True)
            )
        logger.warning("Position %s flagged for reconciliation", position_id)

    # Transactions

    def create_transaction(self, transaction: Transaction) -> Transaction:
        with self.db.session() as session:
            session.add(transaction_to_record(transaction))
        logger.info(
            "Transaction recorded: %s %s %s amount=%s price=%.6f",
            transaction.order_id, transaction.symbol, transaction.type.value, transaction.amount, transaction.price,
        )
        return transaction

    def list_transactions(self, limit: int = 100, position_id: Optional[str] = None) -> List[Transaction]:
        stmt = select(TransactionRecord)
        if position_id:
            stmt = stmt.where(TransactionRecord.position_id == position_id)
        stmt = stmt.order_by(TransactionRecord.created_at.desc()).limit(limit)
        with self.db.session() as session:
            return [record_to_transaction(r) for r in session.scalars(stmt)]

    # Performance

    def aggregate_performance(self) -> PerformanceSummary:
        """Realized performance over Closed positions."""
        stmt = select(PositionRecord.pnl).where(PositionRecord.status == PositionStatus.CLOSED.value)
        with self.db.session() as session:
            pnls = [float(p) for p in session.scalars(stmt)]
        return summarize(pnls)
