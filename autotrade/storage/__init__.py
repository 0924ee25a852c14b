"""Record store: SQLAlchemy engine/session handle and ORM tables."""

from autotrade.storage.database import DEFAULT_DATABASE_URL, Database
from autotrade.storage.records import Base, PositionRecord, SignalRecord, TransactionRecord

__all__ = [
    "Database",
    "DEFAULT_DATABASE_URL",
    "Base",
    "SignalRecord",
    "PositionRecord",
    "TransactionRecord",
]
