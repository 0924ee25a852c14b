"""Tests for the snapshot -> agents -> meta -> persist pipeline."""

import pytest
from autotrade.core.errors import MalformedResponseError, PriceUnavailableError, UpstreamError
from autotrade.core.types import Direction, SignalStatus
from autotrade.data.snapshot import SnapshotBuilder
from autotrade.signals.generator import SignalGenerator

from conftest import FakeLLM


@pytest.fixture
def generator(market_data, lifecycle):
    def _make(llm):
        return SignalGenerator(SnapshotBuilder(market_data), llm, lifecycle, lambda symbol: 20)
    return _make


def test_generate_persists_active_signal(generator, lifecycle, market_data):
    llm = FakeLLM()
    signal = generator(llm).generate("btcusdt", "gpt-4o", ["1h", "4h"])

    assert signal.status is SignalStatus.ACTIVE
    assert signal.symbol == "BTCUSDT"
    assert signal.direction is Direction.LONG
    assert signal.confidence == 78
    assert signal.leverage == 20
    assert signal.model_used == "gpt-4o"
    assert signal.timeframes_analyzed == ["1h", "4h"]
    assert lifecycle.get_by_id(signal.id) == signal

    assert sorted(role for role, _, _ in llm.calls) == ["meta", "reversal", "trend", "volume"]
    assert llm.calls[-1][0] == "meta"
    assert market_data.candle_calls == [("BTCUSDT", "1h", 70), ("BTCUSDT", "4h", 70)]


def test_agent_prompts_share_truncated_market_data(generator):
    llm = FakeLLM()
    generator(llm).generate("BTCUSDT", "gpt-4o", ["1h"])
    agent_prompts = [p for role, _, p in llm.calls if role != "meta"]
    assert len(agent_prompts) == 3
    for prompt in agent_prompts:
        assert "current_price: 101.000000" in prompt
        assert "Market Data (1h, last 35 candles):" in prompt
        assert "Candle 35:" in prompt and "Candle 36:" not in prompt


def test_agent_failure_aborts_request(generator, lifecycle):
    llm = FakeLLM()
    llm.responses["reversal"] = UpstreamError("OpenAI API error: 500")
    with pytest.raises(UpstreamError, match="reversal agent error"):
        generator(llm).generate("BTCUSDT", "gpt-4o", ["1h"])
    assert lifecycle.list() == []
    assert all(role != "meta" for role, _, _ in llm.calls)


def test_malformed_agent_output_keeps_error_class(generator):
    llm = FakeLLM()
    llm.responses["volume"] = "not json at all"
    with pytest.raises(MalformedResponseError, match="volume agent error"):
        generator(llm).generate("BTCUSDT", "gpt-4o", ["1h"])


def test_price_unavailable(generator, market_data, lifecycle):
    market_data.price = 0.0
    with pytest.raises(PriceUnavailableError):
        generator(FakeLLM()).generate("BTCUSDT", "gpt-4o", ["1h"])
    assert lifecycle.list() == []
