"""
SQLAlchemy ORM tables for signals, positions and transactions, plus
conversion to and from the domain dataclasses.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

from autotrade.core.types import (
    Direction,
    Position,
    PositionStatus,
    SignalStatus,
    TradingSignal,
    Transaction,
    TransactionStatus,
    TransactionType,
)

Base = declarative_base()


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; everything is stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SignalRecord(Base):
    __tablename__ = "signals"

    id = Column(String(32), primary_key=True)
    symbol = Column(String(20), nullable=False)
    direction = Column(String(5), nullable=False)
    entry = Column(Float, nullable=False)
    stop_loss = Column(Float, nullable=False)
    take_profit = Column(Float, nullable=False)
    risk_reward = Column(Float, nullable=False, default=0.0)
    confidence = Column(Integer, nullable=False, default=0)
    thoughts = Column(Text, nullable=False, default="")
    leverage = Column(Integer, nullable=False)
    status = Column(String(10), nullable=False, index=True)
    model_used = Column(String(50), nullable=False, default="")
    timeframes_analyzed = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    executed_at = Column(DateTime(timezone=True))
    transaction_id = Column(String(100))
    execution_price = Column(Float)
    is_testnet = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_signals_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<SignalRecord(id={self.id}, symbol={self.symbol}, status={self.status})>"


class PositionRecord(Base):
    __tablename__ = "positions"

    id = Column(String(32), primary_key=True)
    symbol = Column(String(20), nullable=False)
    direction = Column(String(5), nullable=False)
    size = Column(Float, nullable=False)
    entry_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False, default=0.0)
    leverage = Column(Integer, nullable=False)
    status = Column(String(10), nullable=False, index=True)
    stop_loss = Column(Float, nullable=False, default=0.0)
    take_profit = Column(Float, nullable=False, default=0.0)
    pnl = Column(Float, nullable=False, default=0.0)
    pnl_percentage = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    closed_at = Column(DateTime(timezone=True))
    close_price = Column(Float)
    is_testnet = Column(Boolean, nullable=False, default=False)
    order_id = Column(String(100))
    signal_id = Column(String(32))
    needs_reconciliation = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_positions_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<PositionRecord(id={self.id}, symbol={self.symbol}, status={self.status})>"


class TransactionRecord(Base):
    __tablename__ = "transactions"

    id = Column(String(32), primary_key=True)
    symbol = Column(String(20), nullable=False)
    type = Column(String(12), nullable=False)
    amount = Column(Float, nullable=False)
    price = Column(Float, nullable=False)
    status = Column(String(10), nullable=False)
    pnl = Column(Float, nullable=False, default=0.0)
    position_id = Column(String(32))
    signal_id = Column(String(32))
    order_id = Column(String(100), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    is_testnet = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_transactions_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<TransactionRecord(id={self.id}, type={self.type}, status={self.status})>"


def signal_to_record(s: TradingSignal) -> SignalRecord:
    return SignalRecord(
        id=s.id,
        symbol=s.symbol,
        direction=s.direction.value,
        entry=s.entry,
        stop_loss=s.stop_loss,
        take_profit=s.take_profit,
        risk_reward=s.risk_reward,
        confidence=s.confidence,
        thoughts=s.thoughts,
        leverage=s.leverage,
        status=s.status.value,
        model_used=s.model_used,
        timeframes_analyzed=list(s.timeframes_analyzed),
        created_at=s.created_at,
        executed_at=s.executed_at,
        transaction_id=s.transaction_id,
        execution_price=s.execution_price,
        is_testnet=s.is_testnet,
    )


def record_to_signal(r: SignalRecord) -> TradingSignal:
    return TradingSignal(
        id=r.id,
        symbol=r.symbol,
        direction=Direction(r.direction),
        entry=r.entry,
        stop_loss=r.stop_loss,
        take_profit=r.take_profit,
        risk_reward=r.risk_reward,
        confidence=r.confidence,
        thoughts=r.thoughts,
        leverage=r.leverage,
        created_at=_aware(r.created_at),
        status=SignalStatus(r.status),
        model_used=r.model_used,
        timeframes_analyzed=list(r.timeframes_analyzed or []),
        executed_at=_aware(r.executed_at),
        transaction_id=r.transaction_id,
        execution_price=r.execution_price,
        is_testnet=bool(r.is_testnet),
    )


def position_to_record(p: Position) -> PositionRecord:
    return PositionRecord(
        id=p.id,
        symbol=p.symbol,
        direction=p.direction.value,
        size=p.size,
        entry_price=p.entry_price,
        current_price=p.current_price,
        leverage=p.leverage,
        status=p.status.value,
        stop_loss=p.stop_loss,
        take_profit=p.take_profit,
        pnl=p.pnl,
        pnl_percentage=p.pnl_percentage,
        created_at=p.created_at,
        closed_at=p.closed_at,
        close_price=p.close_price,
        is_testnet=p.is_testnet,
        order_id=p.order_id,
        signal_id=p.signal_id,
        needs_reconciliation=p.needs_reconciliation,
    )


def record_to_position(r: PositionRecord) -> Position:
    return Position(
        id=r.id,
        symbol=r.symbol,
        direction=Direction(r.direction),
        size=r.size,
        entry_price=r.entry_price,
        leverage=r.leverage,
        created_at=_aware(r.created_at),
        current_price=r.current_price,
        status=PositionStatus(r.status),
        stop_loss=r.stop_loss,
        take_profit=r.take_profit,
        pnl=r.pnl,
        pnl_percentage=r.pnl_percentage,
        is_testnet=bool(r.is_testnet),
        order_id=r.order_id,
        signal_id=r.signal_id,
        needs_reconciliation=bool(r.needs_reconciliation),
        closed_at=_aware(r.closed_at),
        close_price=r.close_price,
    )


def transaction_to_record(t: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=t.id,
        symbol=t.symbol,
        type=t.type.value,
        amount=t.amount,
        price=t.price,
        status=t.status.value,
        pnl=t.pnl,
        position_id=t.position_id,
        signal_id=t.signal_id,
        order_id=t.order_id,
        description=t.description,
        is_testnet=t.is_testnet,
        created_at=t.created_at,
    )


def record_to_transaction(r: TransactionRecord) -> Transaction:
    return Transaction(
        id=r.id,
        symbol=r.symbol,
        type=TransactionType(r.type),
        amount=r.amount,
        price=r.price,
        status=TransactionStatus(r.status),
        created_at=_aware(r.created_at),
        pnl=r.pnl,
        position_id=r.position_id,
        signal_id=r.signal_id,
        order_id=r.order_id,
        description=r.description,
        is_testnet=bool(r.is_testnet),
    )
