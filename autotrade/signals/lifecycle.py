"""
Signal lifecycle: persist signals and move them Active -> Executed exactly once.

The transition is a single conditional UPDATE (status must still be Active),
so concurrent executors racing on one signal see exactly one winner.
"""

from __future__ import annotations
import logging
from typing import List

from sqlalchemy import select, update

from autotrade.core.errors import AlreadyExecutedError, NotFoundError
from autotrade.core.types import SignalStatus, TradingSignal, is_record_id, utc_now
from autotrade.storage.database import Database
from autotrade.storage.records import SignalRecord, record_to_signal, signal_to_record

logger = logging.getLogger("autotrade.signals")


class SignalLifecycle:
    def __init__(self, db: Database):
        self.db = db

    def save(self, signal: TradingSignal) -> TradingSignal:
        with self.db.session() as session:
            session.add(signal_to_record(signal))
        logger.info("Signal saved: %s %s %s conf=%d", signal.id, signal.symbol, signal.direction.value, signal.confidence)
        return signal

    def get_by_id(self, signal_id: str) -> TradingSignal:
        if not is_record_id(signal_id):
            raise NotFoundError(f"invalid signal id: {signal_id!r}")
        with self.db.session() as session:
            record = session.get(SignalRecord, signal_id)
            if record is None:
                raise NotFoundError(f"signal not found: {signal_id}")
            return record_to_signal(record)

    def list(self, limit: int = 50) -> List[TradingSignal]:
        """Most recent first. Empty list when there are none."""
        stmt = select(SignalRecord).order_by(SignalRecord.created_at.desc()).limit(limit)
        with self.db.session() as session:
            return [record_to_signal(r) for r in session.scalars(stmt)]

    def mark_executed(
        self,
        signal_id: str,
        execution_price: float,
        transaction_id: str,
        is_testnet: bool,
    ) -> TradingSignal:
        """Compare-and-set Active -> Executed. Raises AlreadyExecutedError or NotFoundError."""
        if not is_record_id(signal_id):
            raise NotFoundError(f"invalid signal id: {signal_id!r}")
        stmt = (
            update(SignalRecord)
            .where(SignalRecord.id == signal_id, SignalRecord.status == SignalStatus.ACTIVE.value)
            .values(
                status=SignalStatus.EXECUTED.value,
                executed_at=utc_now(),
                execution_price=execution_price,
                transaction_id=transaction_id,
                is_testnet=is_testnet,
            )
        )
        with self.db.session() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                if session.get(SignalRecord, signal_id) is None:
                    raise NotFoundError(f"signal not found: {signal_id}")
                raise AlreadyExecutedError(f"signal already executed: {signal_id}")
            record = session.get(SignalRecord, signal_id, populate_existing=True)
            signal = record_to_signal(record)
        logger.info("Signal %s marked executed (tx=%s price=%.6f)", signal_id, transaction_id, execution_price)
        return signal
