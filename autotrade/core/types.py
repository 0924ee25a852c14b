"""
Core data types: candles, agent opinions, signals, positions, transactions.
"""

from __future__ import annotations
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

_RECORD_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def new_record_id() -> str:
    return uuid.uuid4().hex


def is_record_id(value: object) -> bool:
    return isinstance(value, str) and bool(_RECORD_ID_RE.match(value))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def entry_side(self) -> str:
        """Exchange order side that opens a position in this direction."""
        return "BUY" if self is Direction.LONG else "SELL"

    @property
    def exit_side(self) -> str:
        """Exchange order side that reduces a position in this direction."""
        return "SELL" if self is Direction.LONG else "BUY"


class SignalStatus(str, Enum):
    ACTIVE = "Active"
    EXECUTED = "Executed"


class PositionStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


class TransactionStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"
    PENDING = "Pending"


class Environment(str, Enum):
    TESTNET = "testnet"
    LIVE = "live"

    @classmethod
    def from_flag(cls, is_testnet: bool) -> "Environment":
        return cls.TESTNET if is_testnet else cls.LIVE


def format_transaction_id(environment: Environment, order_ref: object, signal_id: str) -> str:
    """Traceable id: environment, broker order id (or timestamp) and signal id fragment."""
    return f"{environment.value}_{order_ref}_{signal_id[:8]}"


@dataclass
class Candle:
    """OHLCV candle with indicator fields (NaN until computed)."""
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    trade_count: int = 0
    rsi: float = math.nan
    macd: float = math.nan
    macd_signal: float = math.nan
    macd_hist: float = math.nan
    obv: float = math.nan


@dataclass
class PriceTicker:
    """Latest price with 24h change (percent) and volume."""
    price: float
    change_24h: float = 0.0
    volume: float = 0.0


@dataclass
class SymbolConstraints:
    """Exchange quantity/price granularity for a symbol."""
    step_size: float
    min_quantity: float
    tick_size: float = 0.01


@dataclass
class TradeOpinion:
    """One agent's (or the meta-agent's) trade recommendation."""
    symbol: str
    direction: Direction
    entry: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    confidence: int
    thoughts: str = ""

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "direction": self.direction.value,
            "entry": self.entry,
            "sl": self.stop_loss,
            "tp": self.take_profit,
            "rr": self.risk_reward,
            "confidence": self.confidence,
            "thoughts": self.thoughts,
        }


@dataclass
class TradingSignal:
    """Persisted trade decision. Status moves Active -> Executed exactly once."""
    id: str
    symbol: str
    direction: Direction
    entry: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    confidence: int
    thoughts: str
    leverage: int
    created_at: datetime
    status: SignalStatus = SignalStatus.ACTIVE
    model_used: str = ""
    timeframes_analyzed: List[str] = field(default_factory=list)
    executed_at: Optional[datetime] = None
    transaction_id: Optional[str] = None
    execution_price: Optional[float] = None
    is_testnet: bool = False

    def to_response(self) -> dict:
        """Response form (camelCase keys, ISO timestamps)."""
        resp = {
            "_id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "entry": self.entry,
            "sl": self.stop_loss,
            "tp": self.take_profit,
            "rr": self.risk_reward,
            "confidence": self.confidence,
            "thoughts": self.thoughts,
            "leverage": self.leverage,
            "status": self.status.value,
            "model": self.model_used,
            "timeframesAnalyzed": list(self.timeframes_analyzed),
            "timestamp": self.created_at.isoformat(),
            "isTestnet": self.is_testnet,
        }
        if self.executed_at is not None:
            resp["executedAt"] = self.executed_at.isoformat()
        if self.transaction_id:
            resp["transactionId"] = self.transaction_id
        if self.execution_price is not None:
            resp["executionPrice"] = self.execution_price
        return resp


@dataclass
class Position:
    """Position opened by an executed signal. current_price/pnl are derived at read time."""
    id: str
    symbol: str
    direction: Direction
    size: float
    entry_price: float
    leverage: int
    created_at: datetime
    current_price: float = 0.0
    status: PositionStatus = PositionStatus.OPEN
    stop_loss: float = 0.0
    take_profit: float = 0.0
    pnl: float = 0.0
    pnl_percentage: float = 0.0
    is_testnet: bool = False
    order_id: Optional[str] = None
    signal_id: Optional[str] = None
    needs_reconciliation: bool = False
    closed_at: Optional[datetime] = None
    close_price: Optional[float] = None

    def to_response(self) -> dict:
        resp = {
            "_id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "size": self.size,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "pnl": self.pnl,
            "pnlPercentage": self.pnl_percentage,
            "leverage": self.leverage,
            "status": self.status.value,
            "timestamp": self.created_at.isoformat(),
            "needsReconciliation": self.needs_reconciliation,
        }
        if self.closed_at is not None:
            resp["closedAt"] = self.closed_at.isoformat()
        if self.close_price is not None:
            resp["closePrice"] = self.close_price
        return resp


@dataclass
class Transaction:
    """Append-only audit record."""
    id: str
    symbol: str
    type: TransactionType
    amount: float
    price: float
    status: TransactionStatus
    created_at: datetime
    pnl: float = 0.0
    position_id: Optional[str] = None
    signal_id: Optional[str] = None
    order_id: str = ""
    description: str = ""
    is_testnet: bool = False

    def to_response(self) -> dict:
        return {
            "_id": self.id,
            "symbol": self.symbol,
            "type": self.type.value,
            "amount": self.amount,
            "price": self.price,
            "timestamp": self.created_at.isoformat(),
            "status": self.status.value,
            "pnl": self.pnl,
        }
