"""Tests for the TradingService facade: validation and structured results."""

import json

import pytest
from autotrade.core.config import Config
from autotrade.core.errors import ErrorKind, PersistenceError, UpstreamError
from autotrade.core.types import Environment
from autotrade.service import build_service
from autotrade.storage.database import Database

from conftest import FakeBroker, FakeLLM, FakeMarketData, FixedRng


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def service(llm):
    broker = FakeBroker(configured=False)
    svc = build_service(
        Config(leverage_overrides={"ETHUSDT": 10}),
        market_data=FakeMarketData(price=101.0),
        llm=llm,
        brokers={Environment.TESTNET: broker, Environment.LIVE: broker},
        db=Database("sqlite://"),
        rng=FixedRng(0.5),
    )
    yield svc
    svc.close()


def test_generate_and_list(service, llm):
    result = service.generate_signal("BTCUSDT", "gpt-4o", ["1h"])
    assert result.success
    assert result.data["status"] == "Active"
    assert result.data["model"] == "gpt-4o"
    listed = service.list_signals()
    assert [s["_id"] for s in listed.data] == [result.data["_id"]]


def test_unknown_model_falls_back_to_default(service, llm):
    result = service.generate_signal("BTCUSDT", "davinci-002", None)
    assert result.success
    assert {model for _, model, _ in llm.calls} == {"gpt-3.5-turbo"}
    assert result.data["timeframesAnalyzed"] == ["1h"]


def test_generate_validation(service):
    r = service.generate_signal("", "gpt-4o", ["1h"])
    assert not r.success and r.error_kind is ErrorKind.INPUT_VALIDATION
    r = service.generate_signal("BTCUSDT", "gpt-4o", ["13m"])
    assert not r.success and r.error_kind is ErrorKind.INPUT_VALIDATION


def test_generate_upstream_failure_is_structured(service, llm):
    llm.responses["trend"] = "garbage"
    r = service.generate_signal("BTCUSDT", "gpt-4o", ["1h"])
    assert not r.success
    assert r.error_kind is ErrorKind.UPSTREAM
    assert "trend agent error" in r.message


def test_execute_unknown_signal(service):
    r = service.execute_signal("a" * 32, testnet=True)
    assert not r.success and r.error_kind is ErrorKind.NOT_FOUND


@pytest.mark.parametrize("raw", [
    "{not json",
    json.dumps({"direction": "LONG", "entry": 100}),
    json.dumps({"symbol": "BTCUSDT", "entry": 100}),
    json.dumps({"symbol": "BTCUSDT", "direction": "LONG", "entry": 0}),
    json.dumps({"symbol": "BTCUSDT", "direction": "SIDEWAYS", "entry": 100}),
    json.dumps(["BTCUSDT"]),
])
def test_manual_signal_validation(service, raw):
    r = service.execute_manual(raw, testnet=True)
    assert not r.success
    assert r.error_kind is ErrorKind.INPUT_VALIDATION
    assert service.list_signals().data == []


def test_manual_signal_executes(service):
    raw = json.dumps({"symbol": "ethusdt", "direction": "SHORT", "entry": 3000, "sl": 3100, "tp": 2800})
    r = service.execute_manual(raw, testnet=True)
    assert r.success
    assert r.message == "Manual signal executed successfully"
    signal = r.data["signal"]
    assert signal["symbol"] == "ETHUSDT"
    assert signal["status"] == "Executed"
    assert signal["leverage"] == 10
    assert signal["rr"] == pytest.approx(2.0)
    assert r.data["transactionId"].startswith("testnet_")

    positions = service.list_positions().data
    assert len(positions) == 1 and positions[0]["direction"] == "SHORT"
    assert service.list_transactions().data[0]["type"] == "SELL"

    again = service.execute_signal(signal["_id"], testnet=True)
    assert not again.success and again.error_kind is ErrorKind.ALREADY_EXECUTED


def test_close_without_credentials(service):
    raw = json.dumps({"symbol": "BTCUSDT", "direction": "LONG", "entry": 100, "sl": 95, "tp": 110})
    service.execute_manual(raw, testnet=True)
    position_id = service.list_positions().data[0]["_id"]
    r = service.close_position(position_id)
    assert not r.success and r.error_kind is ErrorKind.UNCONFIGURED


def test_performance_empty(service):
    r = service.performance()
    assert r.success
    assert r.data["closedTrades"] == 0
    assert r.data["totalPnL"] == 0.0


def test_chart_data(service):
    r = service.chart_data("btcusdt", ["1h", "4h"])
    assert r.success
    assert r.data["currentPrice"] == 101.0
    assert [f["timeframe"] for f in r.data["timeframes"]] == ["1h", "4h"]
    assert r.data["timeframes"][0]["spanHours"] == 35.0
    assert len(r.data["timeframes"][1]["candles"]) == 35
    assert r.data["prompt"].startswith("Candles and Indicators for BTCUSDT")
    assert r.to_response()["success"] is True


@pytest.fixture
def live_service(market_data, broker):
    svc = build_service(
        Config(),
        market_data=market_data,
        llm=FakeLLM(),
        brokers={Environment.TESTNET: broker, Environment.LIVE: broker},
        db=Database("sqlite://"),
        rng=FixedRng(0.5),
    )
    yield svc
    svc.close()


def _position_json(**overrides):
    body = {"symbol": "btcusdt", "direction": "LONG", "size": 0.5, "entryPrice": 100.0, "leverage": 10}
    body.update(overrides)
    return json.dumps(body)


def test_create_position(service):
    r = service.create_position(_position_json(stopLoss=95.0, isTestnet=True))
    assert r.success
    assert r.message == "Successfully created position"
    assert r.data["symbol"] == "BTCUSDT"
    assert r.data["status"] == "Open"
    assert r.data["currentPrice"] == 100.0
    assert r.data["pnl"] == 0.0
    [listed] = service.list_positions().data
    assert listed["_id"] == r.data["_id"]


@pytest.mark.parametrize("overrides, message", [
    ({"symbol": ""}, "Symbol is required"),
    ({"direction": "FLAT"}, "Direction must be LONG or SHORT"),
    ({"size": 0}, "Size must be greater than 0"),
    ({"entryPrice": -1}, "Entry price must be greater than 0"),
    ({"leverage": 0}, "Leverage must be between 1 and 125"),
    ({"leverage": 126}, "Leverage must be between 1 and 125"),
    ({"leverage": 2.5}, "whole number"),
])
def test_create_position_validation(service, overrides, message):
    r = service.create_position(_position_json(**overrides))
    assert not r.success
    assert r.error_kind is ErrorKind.INPUT_VALIDATION
    assert message in r.message
    assert service.list_positions().data == []


def test_price_lookup_normalizes_symbol(service):
    service.market_data.change_24h = -1.5
    service.market_data.volume = 12345.0
    r = service.price("btc")
    assert r.success
    assert r.data["symbol"] == "BTCUSDT"
    assert r.data["currentPrice"] == 101.0
    assert r.data["percentChange24h"] == -1.5
    assert r.data["volume24h"] == 12345.0
    assert service.price("ETHUSDT").data["symbol"] == "ETHUSDT"
    bad = service.price("x")
    assert not bad.success and bad.error_kind is ErrorKind.INPUT_VALIDATION


def test_balance(live_service):
    r = live_service.balance()
    assert r.success
    assert r.data == {
        "environment": "live",
        "asset": "USDT",
        "walletBalance": 10_250.0,
        "availableBalance": 10_000.0,
    }


def test_balance_without_credentials(service):
    r = service.balance(testnet=True)
    assert not r.success and r.error_kind is ErrorKind.UNCONFIGURED


def test_connection_status(service):
    r = service.connection_status()
    assert r.success
    assert (r.data["binance"], r.data["openai"], r.data["database"]) == (True, True, True)
    assert "lastChecked" in r.data


def test_connection_status_reports_failures(service):
    service.market_data.price_error = UpstreamError("price fetch failed")
    service.db.close()
    r = service.connection_status()
    assert r.success
    assert r.data["binance"] is False
    assert r.data["database"] is False


def test_execute_manual_reports_without_reread(service, monkeypatch):
    def broken(signal_id):
        raise PersistenceError("database error: disk I/O error")

    monkeypatch.setattr(service.lifecycle, "get_by_id", broken)
    raw = json.dumps({"symbol": "BTCUSDT", "direction": "LONG", "entry": 100, "sl": 95, "tp": 110})
    r = service.execute_manual(raw, testnet=True)
    assert r.success
    assert r.data["signal"]["status"] == "Executed"


def test_close_position_returns_closed_record(live_service, broker):
    raw = json.dumps({"symbol": "BTCUSDT", "direction": "LONG", "entry": 100, "sl": 95, "tp": 110})
    assert live_service.execute_manual(raw, testnet=True).success
    position_id = live_service.list_positions().data[0]["_id"]
    broker.exchange_positions["BTCUSDT"] = 1.0
    broker.fill_price = 104.0
    r = live_service.close_position(position_id)
    assert r.success
    assert r.data["position"]["status"] == "Closed"
    assert r.data["position"]["closePrice"] == 104.0


def test_close_position_partial_is_not_success(live_service, broker, monkeypatch):
    raw = json.dumps({"symbol": "BTCUSDT", "direction": "LONG", "entry": 100, "sl": 95, "tp": 110})
    live_service.execute_manual(raw, testnet=True)
    position_id = live_service.list_positions().data[0]["_id"]
    broker.exchange_positions["BTCUSDT"] = 1.0

    def broken(position_id, close_price, closed_at):
        raise PersistenceError("database error: disk I/O error")

    monkeypatch.setattr(live_service.ledger, "mark_closed", broken)
    r = live_service.close_position(position_id)
    assert not r.success
    assert r.error_kind is ErrorKind.PERSISTENCE
    assert r.data["partial"] is True
    assert r.data["position"]["needsReconciliation"] is True
