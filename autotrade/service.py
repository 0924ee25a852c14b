"""
Trading service facade: validates requests, delegates to the pipeline and
returns structured results. Components raise TradingError; this layer turns
those into ServiceResult(success=False, error_kind=...).
"""

from __future__ import annotations
import functools
import json
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from autotrade.agents.opinion import parse_direction, risk_reward
from autotrade.core.config import Config
from autotrade.core.errors import (
    ErrorKind,
    MalformedResponseError,
    TradingError,
    UnconfiguredError,
    UpstreamError,
    ValidationError,
)
from autotrade.core.types import (
    Candle,
    Environment,
    Position,
    PositionStatus,
    SignalStatus,
    TradingSignal,
    new_record_id,
    utc_now,
)
from autotrade.data.snapshot import SnapshotBuilder, render_market_data
from autotrade.execution.base import BrokerClient, MarketDataClient
from autotrade.execution.binance_futures import BinanceFuturesBroker, BinanceMarketData
from autotrade.execution.engine import ExecutionEngine
from autotrade.ledger.ledger import PositionLedger
from autotrade.llm.client import LLMClient
from autotrade.risk.manager import MAX_LEVERAGE, RiskSizer
from autotrade.signals.generator import SignalGenerator
from autotrade.signals.lifecycle import SignalLifecycle
from autotrade.storage.database import Database
from autotrade.utils.telegram import Notifier
from autotrade.utils.timeframes import normalize_timeframes, timeframe_minutes

logger = logging.getLogger("autotrade.service")


@dataclass
class ServiceResult:
    success: bool
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    data: Any = None

    def to_response(self) -> dict:
        resp = {"success": self.success}
        if self.message:
            resp["message"] = self.message
        if self.error_kind is not None:
            resp["errorKind"] = self.error_kind.value
        if self.data is not None:
            resp["data"] = self.data
        return resp


def structured(f):
    """Decorator: TradingError -> ServiceResult(success=False)."""
    @functools.wraps(f)
    def wrapped(*args, **kwargs) -> ServiceResult:
        try:
            return f(*args, **kwargs)
        except TradingError as e:
            logger.warning("%s failed: [%s] %s", f.__name__, e.kind.value, e.message)
            return ServiceResult(success=False, message=e.message, error_kind=e.kind)
    return wrapped


def _manual_number(data: dict, *keys: str) -> float:
    for key in keys:
        if data.get(key) is not None:
            try:
                return float(data[key])
            except (TypeError, ValueError):
                raise ValidationError(f"field {key!r} is not a number") from None
    return 0.0


def _json_object(raw_json: str, what: str) -> dict:
    try:
        data = json.loads(raw_json or "")
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON format: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid {what}: expected a JSON object")
    return data


def _whole_number(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"field {key!r} must be a whole number")
    try:
        number = float(value)
    except ValueError:
        raise ValidationError(f"field {key!r} must be a whole number") from None
    if not number.is_integer():
        raise ValidationError(f"field {key!r} must be a whole number")
    return int(number)


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _candle_row(c: Candle) -> dict:
    return {
        "openTime": c.open_time,
        "open": c.open,
        "high": c.high,
        "low": c.low,
        "close": c.close,
        "volume": c.volume,
        "trades": c.trade_count,
        "rsi": _finite(c.rsi),
        "macd": _finite(c.macd),
        "macdSignal": _finite(c.macd_signal),
        "macdHist": _finite(c.macd_hist),
        "obv": _finite(c.obv),
    }


class TradingService:
    def __init__(
        self,
        config: Config,
        db: Database,
        generator: SignalGenerator,
        lifecycle: SignalLifecycle,
        ledger: PositionLedger,
        engine: ExecutionEngine,
        snapshots: SnapshotBuilder,
        market_data: MarketDataClient,
        llm: LLMClient,
        broker_for: Callable[[Environment], BrokerClient],
    ):
        self.config = config
        self.db = db
        self.generator = generator
        self.lifecycle = lifecycle
        self.ledger = ledger
        self.engine = engine
        self.snapshots = snapshots
        self.market_data = market_data
        self.llm = llm
        self.broker_for = broker_for

    def close(self) -> None:
        self.db.close()

    def _symbol(self, symbol: Optional[str]) -> str:
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValidationError("symbol is required")
        return symbol

    def _timeframes(self, timeframes: Optional[Sequence[str]]):
        try:
            return normalize_timeframes(timeframes or [], self.config.default_timeframe)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    # Signals

    @structured
    def generate_signal(
        self,
        symbol: str,
        model: Optional[str] = None,
        timeframes: Optional[Sequence[str]] = None,
    ) -> ServiceResult:
        symbol = self._symbol(symbol)
        model = self.config.resolve_model(model)
        tfs = self._timeframes(timeframes)
        signal = self.generator.generate(symbol, model, tfs)
        return ServiceResult(success=True, message="signal generated", data=signal.to_response())

    @structured
    def list_signals(self, limit: int = 50) -> ServiceResult:
        return ServiceResult(success=True, data=[s.to_response() for s in self.lifecycle.list(limit)])

    @structured
    def get_signal(self, signal_id: str) -> ServiceResult:
        return ServiceResult(success=True, data=self.lifecycle.get_by_id(signal_id).to_response())

    # Execution

    @structured
    def execute_signal(self, signal_id: str, testnet: bool = True) -> ServiceResult:
        result = self.engine.execute(signal_id, testnet)
        return ServiceResult(
            success=result.success,
            message=result.message,
            error_kind=result.error_kind,
            data=result.to_response(),
        )

    def parse_manual_signal(self, raw_json: str) -> TradingSignal:
        """Build an Active signal from user JSON. Raises ValidationError."""
        data = _json_object(raw_json, "signal")

        symbol = str(data.get("symbol") or "").strip().upper()
        direction_raw = str(data.get("direction") or "").strip()
        entry = _manual_number(data, "entry")
        if not symbol or not direction_raw or not entry > 0:
            raise ValidationError("Invalid signal: missing required fields")
        try:
            direction = parse_direction(direction_raw)
        except MalformedResponseError as e:
            raise ValidationError(f"Invalid signal: {e.message}") from e

        stop_loss = _manual_number(data, "sl", "stopLoss", "stop_loss")
        take_profit = _manual_number(data, "tp", "takeProfit", "take_profit")
        rr = _manual_number(data, "rr", "riskReward", "risk_reward") or risk_reward(direction, entry, stop_loss, take_profit)
        return TradingSignal(
            id=new_record_id(),
            symbol=symbol,
            direction=direction,
            entry=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            risk_reward=rr,
            confidence=int(_manual_number(data, "confidence")),
            thoughts=str(data.get("thoughts") or ""),
            leverage=self.config.leverage_for(symbol),
            created_at=utc_now(),
            status=SignalStatus.ACTIVE,
            model_used="manual",
        )

    @structured
    def execute_manual(self, raw_json: str, testnet: bool = True) -> ServiceResult:
        signal = self.parse_manual_signal(raw_json)
        signal.is_testnet = testnet
        self.lifecycle.save(signal)
        result = self.engine.execute_signal(signal, testnet)
        data = result.to_response()
        data["signal"] = (result.signal or signal).to_response()
        message = "Manual signal executed successfully" if result.success else result.message
        return ServiceResult(success=result.success, message=message, error_kind=result.error_kind, data=data)

    # Positions and transactions

    @structured
    def list_positions(self, limit: int = 100) -> ServiceResult:
        return ServiceResult(success=True, data=[p.to_response() for p in self.ledger.list_positions(limit)])

    @structured
    def close_position(self, position_id: str) -> ServiceResult:
        result = self.engine.close_position(position_id)
        data = result.to_response()
        if result.position is not None:
            data["position"] = result.position.to_response()
        return ServiceResult(
            success=result.success,
            message=result.message,
            error_kind=result.error_kind,
            data=data,
        )

    def parse_position_request(self, raw_json: str) -> Position:
        """Build an Open position from user JSON. Raises ValidationError."""
        data = _json_object(raw_json, "position")
        symbol = str(data.get("symbol") or "").strip().upper()
        if not symbol:
            raise ValidationError("Symbol is required")
        direction_raw = str(data.get("direction") or "").strip().upper()
        if direction_raw not in ("LONG", "SHORT"):
            raise ValidationError("Direction must be LONG or SHORT")
        size = _manual_number(data, "size")
        if not size > 0:
            raise ValidationError("Size must be greater than 0")
        entry_price = _manual_number(data, "entryPrice", "entry_price")
        if not entry_price > 0:
            raise ValidationError("Entry price must be greater than 0")
        leverage = _whole_number(data, "leverage")
        if not 1 <= leverage <= MAX_LEVERAGE:
            raise ValidationError(f"Leverage must be between 1 and {MAX_LEVERAGE}")
        return Position(
            id=new_record_id(),
            symbol=symbol,
            direction=parse_direction(direction_raw),
            size=size,
            entry_price=entry_price,
            current_price=entry_price,
            leverage=leverage,
            created_at=utc_now(),
            status=PositionStatus.OPEN,
            stop_loss=_manual_number(data, "stopLoss", "stop_loss"),
            take_profit=_manual_number(data, "takeProfit", "take_profit"),
            is_testnet=bool(data.get("isTestnet", data.get("is_testnet", False))),
        )

    @structured
    def create_position(self, raw_json: str) -> ServiceResult:
        """Record a position opened outside the signal pipeline. No order is placed."""
        position = self.ledger.create_position(self.parse_position_request(raw_json))
        return ServiceResult(success=True, message="Successfully created position", data=position.to_response())

    @structured
    def list_transactions(self, limit: int = 100) -> ServiceResult:
        return ServiceResult(success=True, data=[t.to_response() for t in self.ledger.list_transactions(limit)])

    @structured
    def performance(self) -> ServiceResult:
        return ServiceResult(success=True, data=self.ledger.aggregate_performance().to_response())

    # Market and account

    def _price_symbol(self, symbol: Optional[str]) -> str:
        """BTC -> BTCUSDT; symbols already quoted in the quote asset are kept."""
        symbol = (symbol or "").strip().upper()
        if len(symbol) < 3:
            raise ValidationError("Invalid symbol format")
        if not symbol.endswith(self.config.quote_asset):
            symbol += self.config.quote_asset
        return symbol

    @structured
    def price(self, symbol: str) -> ServiceResult:
        """Last price with 24h change (percent) and volume."""
        symbol = self._price_symbol(symbol)
        ticker = self.market_data.get_current_price(symbol)
        return ServiceResult(success=True, data={
            "symbol": symbol,
            "currentPrice": ticker.price,
            "percentChange24h": ticker.change_24h,
            "volume24h": ticker.volume,
            "timestamp": utc_now().isoformat(),
        })

    @structured
    def balance(self, testnet: bool = False) -> ServiceResult:
        env = Environment.from_flag(testnet)
        broker = self.broker_for(env)
        if not broker.is_configured():
            raise UnconfiguredError(f"no {env.value} exchange credentials configured")
        account = broker.get_account_info()
        asset = self.config.quote_asset
        return ServiceResult(success=True, data={
            "environment": env.value,
            "asset": asset,
            "walletBalance": account.wallet(asset),
            "availableBalance": account.available(asset),
        })

    def _market_data_reachable(self) -> bool:
        try:
            self.market_data.get_current_price(f"BTC{self.config.quote_asset}")
        except UpstreamError as e:
            logger.warning("Market data check failed: %s", e.message)
            return False
        return True

    @structured
    def connection_status(self) -> ServiceResult:
        """Reachability of market data, reasoning provider configuration and the record store."""
        status = {
            "binance": self._market_data_reachable(),
            "openai": self.llm.is_configured(),
            "database": self.db.ping(),
            "lastChecked": utc_now().isoformat(),
        }
        logger.info(
            "Connection status: binance=%s openai=%s database=%s",
            status["binance"], status["openai"], status["database"],
        )
        return ServiceResult(success=True, data=status)

    # Chart data

    @structured
    def chart_data(self, symbol: str, timeframes: Optional[Sequence[str]] = None) -> ServiceResult:
        """Enriched candles per timeframe plus the market-data block the agents see."""
        symbol = self._symbol(symbol)
        snapshot = self.snapshots.build(symbol, self._timeframes(timeframes))
        frames = []
        for tf in snapshot.timeframes:
            candles = snapshot.candles[tf]
            frames.append({
                "timeframe": tf,
                "spanHours": len(candles) * timeframe_minutes(tf) / 60,
                "candles": [_candle_row(c) for c in candles],
            })
        data: Dict[str, Any] = {
            "symbol": symbol,
            "currentPrice": snapshot.current_price,
            "timeframes": frames,
            "prompt": f"Candles and Indicators for {symbol}\n\n" + render_market_data(snapshot),
        }
        return ServiceResult(success=True, data=data)


def build_service(
    config: Config,
    market_data: Optional[MarketDataClient] = None,
    llm: Optional[LLMClient] = None,
    brokers: Optional[Dict[Environment, BrokerClient]] = None,
    db: Optional[Database] = None,
    rng: Optional[random.Random] = None,
) -> TradingService:
    """Wire the pipeline from config. Collaborators can be injected (tests, alternate venues)."""
    db = db or Database(config.database_url, timeout=config.persistence_timeout)
    db.open()
    market_data = market_data or BinanceMarketData(timeout=config.market_data_timeout)
    llm = llm or LLMClient(config.openai_api_key, timeout=config.llm_timeout, max_tokens=config.llm_max_tokens)
    if brokers is None:
        brokers = {
            Environment.TESTNET: BinanceFuturesBroker(
                config.binance_testnet_api_key, config.binance_testnet_api_secret,
                testnet=True, timeout=config.market_data_timeout,
            ),
            Environment.LIVE: BinanceFuturesBroker(
                config.binance_mainnet_api_key, config.binance_mainnet_api_secret,
                testnet=False, timeout=config.market_data_timeout,
            ),
        }

    snapshots = SnapshotBuilder(market_data, config.candle_limit, config.prompt_candles)
    lifecycle = SignalLifecycle(db)
    ledger = PositionLedger(db, market_data)
    generator = SignalGenerator(snapshots, llm, lifecycle, config.leverage_for)
    engine = ExecutionEngine(
        signals=lifecycle,
        ledger=ledger,
        market_data=market_data,
        broker_for=brokers.__getitem__,
        sizer=RiskSizer(config.risk_fraction),
        notifier=Notifier(config.telegram_bot_token, config.telegram_chat_id),
        quote_asset=config.quote_asset,
        rng=rng,
        mock_success_rate=config.mock_success_rate,
    )
    return TradingService(
        config, db, generator, lifecycle, ledger, engine, snapshots,
        market_data=market_data,
        llm=llm,
        broker_for=brokers.__getitem__,
    )
