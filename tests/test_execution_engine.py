"""Tests for execution.engine: live bracket path, mock path, partial failures."""

import pytest
from autotrade.core.errors import (
    AlreadyExecutedError,
    BelowMinimumQuantityError,
    ErrorKind,
    NoBalanceError,
    OrderRejectedError,
    PersistenceError,
    UpstreamError,
)
from autotrade.core.types import (
    Direction,
    PositionStatus,
    SignalStatus,
    SymbolConstraints,
    TransactionStatus,
    TransactionType,
)

from conftest import FixedRng


def test_live_execution_places_bracket(engine, lifecycle, ledger, broker, make_signal):
    signal = lifecycle.save(make_signal())
    result = engine.execute(signal.id, is_testnet=True)

    assert result.success
    assert result.transaction_id == f"testnet_1_{signal.id[:8]}"
    assert result.warnings == []

    entry, stop, take = broker.orders
    assert (entry.type, entry.side, entry.quantity, entry.reduce_only) == ("MARKET", "BUY", 400.0, False)
    assert (stop.type, stop.side, stop.stop_price, stop.reduce_only) == ("STOP_MARKET", "SELL", 95.0, True)
    assert (take.type, take.side, take.stop_price) == ("TAKE_PROFIT_MARKET", "SELL", 110.0)
    assert stop.working_type == "MARK_PRICE" and stop.time_in_force == "GTE_GTC"
    assert broker.leverage_calls == [("BTCUSDT", 20)]

    stored = lifecycle.get_by_id(signal.id)
    assert stored.status is SignalStatus.EXECUTED
    assert stored.execution_price == 101.0
    assert stored.transaction_id == result.transaction_id

    [position] = ledger.list_positions()
    assert position.status is PositionStatus.OPEN
    assert position.size == 1.0
    assert position.entry_price == 100.0
    assert position.signal_id == signal.id

    [tx] = ledger.list_transactions()
    assert tx.type is TransactionType.BUY
    assert tx.status is TransactionStatus.SUCCESS
    assert tx.position_id == position.id
    assert tx.order_id == result.transaction_id


def test_short_uses_sell_entry_and_buy_brackets(engine, lifecycle, ledger, broker, make_signal):
    signal = lifecycle.save(make_signal(direction=Direction.SHORT, sl=105.0, tp=90.0))
    result = engine.execute(signal.id, is_testnet=False)
    assert result.success
    assert result.transaction_id.startswith("live_")
    assert [o.side for o in broker.orders] == ["SELL", "BUY", "BUY"]
    assert ledger.list_transactions()[0].type is TransactionType.SELL


def test_stop_failure_is_warning(engine, lifecycle, ledger, broker, notifier, make_signal):
    broker.fail_types = {"STOP_MARKET"}
    signal = lifecycle.save(make_signal())
    result = engine.execute(signal.id, is_testnet=True)

    assert result.success
    assert len(result.warnings) == 1 and "stop-loss" in result.warnings[0]
    assert notifier.messages == result.warnings
    assert lifecycle.get_by_id(signal.id).status is SignalStatus.EXECUTED
    assert ledger.list_positions()[0].status is PositionStatus.OPEN


def test_leverage_failure_is_not_fatal(engine, lifecycle, broker, make_signal):
    broker.leverage_error = True
    signal = lifecycle.save(make_signal())
    assert engine.execute(signal.id, is_testnet=True).success


def test_entry_rejection_is_fatal(engine, lifecycle, ledger, broker, make_signal):
    broker.fail_types = {"MARKET"}
    signal = lifecycle.save(make_signal())
    with pytest.raises(OrderRejectedError):
        engine.execute(signal.id, is_testnet=True)
    assert len(broker.orders) == 1
    assert lifecycle.get_by_id(signal.id).status is SignalStatus.ACTIVE
    assert ledger.list_positions() == []


def test_no_balance(engine, lifecycle, broker, make_signal):
    broker.balance = 0.0
    signal = lifecycle.save(make_signal())
    with pytest.raises(NoBalanceError):
        engine.execute(signal.id, is_testnet=True)
    assert broker.orders == []


def test_below_minimum_quantity(engine, lifecycle, broker, market_data, make_signal):
    market_data.constraints = SymbolConstraints(step_size=1.0, min_quantity=1000.0)
    signal = lifecycle.save(make_signal())
    with pytest.raises(BelowMinimumQuantityError):
        engine.execute(signal.id, is_testnet=True)
    assert broker.orders == []


def test_already_executed(engine, lifecycle, broker, make_signal):
    signal = lifecycle.save(make_signal())
    engine.execute(signal.id, is_testnet=True)
    with pytest.raises(AlreadyExecutedError):
        engine.execute(signal.id, is_testnet=True)
    assert len(broker.orders) == 3


def test_mock_path_success(engine, lifecycle, ledger, broker, make_signal):
    broker.configured = False
    signal = lifecycle.save(make_signal())
    result = engine.execute(signal.id, is_testnet=True)
    assert result.success
    assert result.transaction_id.startswith("testnet_")
    assert result.transaction_id.endswith(signal.id[:8])
    assert broker.orders == []
    assert lifecycle.get_by_id(signal.id).status is SignalStatus.EXECUTED
    assert len(ledger.list_positions()) == 1


def test_mock_path_failure_leaves_signal_active(engine, lifecycle, ledger, broker, make_signal):
    broker.configured = False
    engine.rng = FixedRng(0.95)
    signal = lifecycle.save(make_signal())
    result = engine.execute(signal.id, is_testnet=True)
    assert not result.success
    assert result.error_kind is ErrorKind.ORDER_REJECTED
    assert lifecycle.get_by_id(signal.id).status is SignalStatus.ACTIVE
    assert ledger.list_positions() == []


def test_transaction_failure_after_fill_is_partial(engine, lifecycle, ledger, notifier, make_signal, monkeypatch):
    def broken(transaction):
        raise PersistenceError("database error: disk I/O error")

    monkeypatch.setattr(ledger, "create_transaction", broken)
    signal = lifecycle.save(make_signal())
    result = engine.execute(signal.id, is_testnet=True)

    assert not result.success
    assert result.partial
    assert result.error_kind is ErrorKind.PERSISTENCE
    # executed anyway so it cannot be traded twice
    assert lifecycle.get_by_id(signal.id).status is SignalStatus.EXECUTED
    position = ledger.get_position(result.position_id)
    assert position.needs_reconciliation
    assert any("needs reconciliation" in m for m in notifier.messages)


def test_price_fetch_failure_falls_back_to_entry(engine, lifecycle, market_data, make_signal):
    market_data.price_error = UpstreamError("price fetch failed")
    signal = lifecycle.save(make_signal())
    engine.execute(signal.id, is_testnet=True)
    assert lifecycle.get_by_id(signal.id).execution_price == 100.0
