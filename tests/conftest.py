"""Shared fixtures: in-memory store and fakes for market data, broker and LLM."""

import itertools
import json
import threading
from datetime import timedelta

import pytest

from autotrade.core.errors import UpstreamError
from autotrade.core.types import (
    Candle,
    Direction,
    Environment,
    PriceTicker,
    SignalStatus,
    SymbolConstraints,
    TradingSignal,
    new_record_id,
    utc_now,
)
from autotrade.execution.base import (
    AccountInfo,
    BrokerClient,
    ExchangePosition,
    MarketDataClient,
    OrderResult,
)
from autotrade.execution.engine import ExecutionEngine
from autotrade.ledger.ledger import PositionLedger
from autotrade.risk.manager import RiskSizer
from autotrade.signals.lifecycle import SignalLifecycle
from autotrade.storage.database import Database
from autotrade.utils.telegram import Notifier


def make_candles(n, start=100.0, step=1.0, volume=10.0):
    return [
        Candle(
            open_time=1_700_000_000_000 + i * 60_000,
            open=start + step * i,
            high=start + step * i + 0.5,
            low=start + step * i - 0.5,
            close=start + step * i,
            volume=volume,
            trade_count=5,
        )
        for i in range(n)
    ]


class FakeMarketData(MarketDataClient):
    def __init__(self, price=100.0, constraints=None):
        self.price = price
        self.price_error = None
        self.change_24h = 0.0
        self.volume = 0.0
        self.price_calls = []
        self.constraints = constraints or SymbolConstraints(step_size=0.001, min_quantity=0.001, tick_size=0.01)
        self.candle_calls = []

    def get_current_price(self, symbol):
        self.price_calls.append(symbol)
        if self.price_error is not None:
            raise self.price_error
        return PriceTicker(price=self.price, change_24h=self.change_24h, volume=self.volume)

    def get_candles(self, symbol, interval, limit):
        self.candle_calls.append((symbol, interval, limit))
        return make_candles(limit)

    def get_symbol_constraints(self, symbol):
        return self.constraints


class FakeBroker(BrokerClient):
    def __init__(self, configured=True, balance=10_000.0, fill_price=None):
        self.configured = configured
        self.balance = balance
        self.fill_price = fill_price
        self.exchange_positions = {}
        self.fail_types = set()
        self.leverage_error = False
        self.orders = []
        self.leverage_calls = []
        self._ids = itertools.count(1)

    def is_configured(self):
        return self.configured

    def set_leverage(self, symbol, leverage):
        self.leverage_calls.append((symbol, leverage))
        if self.leverage_error:
            raise UpstreamError("set leverage failed: -4028")

    def get_account_info(self):
        return AccountInfo(
            available_balances={"USDT": self.balance},
            wallet_balances={"USDT": self.balance + 250.0},
            positions=[ExchangePosition(symbol=s, position_amount=amt) for s, amt in self.exchange_positions.items()],
        )

    def place_order(self, order):
        self.orders.append(order)
        if order.type in self.fail_types:
            raise UpstreamError(f"order placement failed: {order.type} rejected")
        return OrderResult(order_id=str(next(self._ids)), status="FILLED", avg_price=self.fill_price)

    def cancel_order(self, symbol, order_id):
        return OrderResult(order_id=order_id, status="CANCELED")

    def get_order(self, symbol, order_id):
        return OrderResult(order_id=order_id, status="FILLED", avg_price=self.fill_price)


def opinion_json(direction="LONG", entry=100.0, sl=95.0, tp=110.0, confidence=80, symbol="BTCUSDT"):
    return json.dumps({
        "symbol": symbol,
        "direction": direction,
        "entry": entry,
        "sl": sl,
        "tp": tp,
        "rr": 2.0,
        "confidence": confidence,
        "thoughts": f"{direction} setup",
    })


class FakeLLM:
    """Answers by prompt role. A response that is an Exception is raised instead."""

    ROLES = (
        ("Meta-Agent", "meta"),
        ("Trend Agent", "trend"),
        ("Reversal Agent", "reversal"),
        ("Volume/Orderflow Agent", "volume"),
    )

    def __init__(self, responses=None):
        self.responses = responses or {
            "trend": opinion_json(confidence=80),
            "reversal": opinion_json(confidence=75),
            "volume": opinion_json("SHORT", sl=105.0, tp=90.0, confidence=40),
            "meta": opinion_json(confidence=78),
        }
        self.calls = []
        self._lock = threading.Lock()

    def is_configured(self):
        return True

    def complete(self, model, prompt):
        role = next(r for marker, r in self.ROLES if marker in prompt)
        with self._lock:
            self.calls.append((role, model, prompt))
        response = self.responses[role]
        if isinstance(response, Exception):
            raise response
        return response


class FixedRng:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


class RecordingNotifier(Notifier):
    def __init__(self):
        super().__init__()
        self.messages = []

    def warn(self, text):
        self.messages.append(text)
        super().warn(text)


@pytest.fixture
def db():
    database = Database("sqlite://").open()
    yield database
    database.close()


@pytest.fixture
def market_data():
    return FakeMarketData(price=101.0)


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def lifecycle(db):
    return SignalLifecycle(db)


@pytest.fixture
def ledger(db, market_data):
    return PositionLedger(db, market_data)


@pytest.fixture
def engine(lifecycle, ledger, market_data, broker, notifier):
    brokers = {Environment.TESTNET: broker, Environment.LIVE: broker}
    return ExecutionEngine(
        signals=lifecycle,
        ledger=ledger,
        market_data=market_data,
        broker_for=brokers.__getitem__,
        sizer=RiskSizer(0.2),
        notifier=notifier,
        rng=FixedRng(0.5),
    )


@pytest.fixture
def make_signal():
    counter = itertools.count()

    def _make(direction=Direction.LONG, entry=100.0, sl=95.0, tp=110.0, leverage=20, **kwargs):
        base = kwargs.pop("created_at", None) or utc_now()
        fields = dict(
            id=new_record_id(),
            symbol="BTCUSDT",
            direction=direction,
            entry=entry,
            stop_loss=sl,
            take_profit=tp,
            risk_reward=2.0,
            confidence=80,
            thoughts="test",
            leverage=leverage,
            created_at=base + timedelta(microseconds=next(counter)),
            status=SignalStatus.ACTIVE,
            model_used="gpt-4o",
            timeframes_analyzed=["1h", "4h"],
        )
        fields.update(kwargs)
        return TradingSignal(**fields)

    return _make
