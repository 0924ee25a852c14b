"""
Binance USDT-M Futures clients with retry and rate-limit handling.

BinanceMarketData uses public endpoints (no keys). BinanceFuturesBroker signs
account and order calls for one environment (testnet or live).
"""

from __future__ import annotations
import functools
import logging
import time
from typing import List, Optional

import pandas as pd
import requests
from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceRequestException

from autotrade.core.errors import CallTimeoutError, UpstreamError
from autotrade.core.types import Candle, PriceTicker, SymbolConstraints
from autotrade.execution.base import (
    AccountInfo,
    BrokerClient,
    ExchangePosition,
    MarketDataClient,
    OrderRequest,
    OrderResult,
)
from autotrade.utils.exchange_filters import parse_symbol_filters

logger = logging.getLogger("autotrade.execution.binance")

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def upstream_errors(what: str):
    """Decorator: translate python-binance / requests failures into UpstreamError."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except requests.exceptions.Timeout as e:
                raise CallTimeoutError(f"{what} timed out: {e}") from e
            except (BinanceAPIException, BinanceRequestException) as e:
                raise UpstreamError(f"{what} failed: {e}") from e
            except (requests.exceptions.RequestException, ValueError, KeyError) as e:
                raise UpstreamError(f"{what} failed: {e}") from e
        return wrapped
    return decorator


def _fmt(value: float) -> str:
    return f"{value:.8f}".rstrip("0").rstrip(".")


def _order_result(res: dict) -> OrderResult:
    avg = float(res.get("avgPrice") or 0) or float(res.get("price") or 0) or None
    executed = res.get("executedQty")
    return OrderResult(
        order_id=str(res.get("orderId")),
        status=str(res.get("status", "")),
        avg_price=avg,
        executed_quantity=float(executed) if executed is not None else None,
    )


class _BinanceBase:
    """Lazily constructs the python-binance Client (its constructor pings the API)."""

    def __init__(self, api_key: str = "", api_secret: str = "", testnet: bool = False, timeout: float = 10.0):
        self._api_key = api_key
        self._api_secret = api_secret
        self._testnet = testnet
        self._timeout = timeout
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self._api_key or None,
                self._api_secret or None,
                testnet=self._testnet,
                requests_params={"timeout": self._timeout},
            )
            logger.info("Binance Futures client ready (%s)", "TESTNET" if self._testnet else "LIVE")
        return self._client


class BinanceMarketData(_BinanceBase, MarketDataClient):
    """Public futures market data (mainnet prices)."""

    def __init__(self, timeout: float = 10.0):
        super().__init__(testnet=False, timeout=timeout)

    @upstream_errors("price fetch")
    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_current_price(self, symbol: str) -> PriceTicker:
        t = self.client.futures_ticker(symbol=symbol)
        return PriceTicker(
            price=float(t["lastPrice"]),
            change_24h=float(t.get("priceChangePercent", 0.0)),
            volume=float(t.get("volume", 0.0)),
        )

    @upstream_errors("klines fetch")
    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_candles(self, symbol: str, interval: str, limit: int) -> List[Candle]:
        raw = self.client.futures_klines(symbol=symbol, interval=interval, limit=limit)
        df = pd.DataFrame(raw, columns=KLINE_COLUMNS)
        df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
        df[["open_time", "num_trades"]] = df[["open_time", "num_trades"]].astype("int64")
        df = df.sort_values("open_time")
        return [
            Candle(
                open_time=int(row.open_time),
                open=row.open,
                high=row.high,
                low=row.low,
                close=row.close,
                volume=row.volume,
                trade_count=int(row.num_trades),
            )
            for row in df.itertuples(index=False)
        ]

    @upstream_errors("exchange info fetch")
    @retry_on_rate_limit(max_retries=2)
    def get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        info = self.client.futures_exchange_info()
        for s in info.get("symbols", []):
            if s.get("symbol") == symbol:
                return parse_symbol_filters(s)
        raise UpstreamError(f"symbol {symbol} not found in exchange info")


class BinanceFuturesBroker(_BinanceBase, BrokerClient):
    """Signed futures calls for one environment."""

    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_secret)

    @upstream_errors("set leverage")
    def set_leverage(self, symbol: str, leverage: int) -> None:
        self.client.futures_change_leverage(symbol=symbol, leverage=leverage)
        logger.info("Leverage set to %sx for %s", leverage, symbol)

    @upstream_errors("account info fetch")
    @retry_on_rate_limit(max_retries=2)
    def get_account_info(self) -> AccountInfo:
        acct = self.client.futures_account()
        assets = acct.get("assets", [])
        balances = {a["asset"]: float(a.get("availableBalance", 0.0)) for a in assets}
        wallets = {a["asset"]: float(a.get("walletBalance", 0.0)) for a in assets}
        positions = [
            ExchangePosition(
                symbol=p["symbol"],
                position_amount=float(p.get("positionAmt", 0.0)),
                entry_price=float(p.get("entryPrice", 0.0)),
                position_side=p.get("positionSide", "BOTH"),
            )
            for p in acct.get("positions", [])
        ]
        return AccountInfo(available_balances=balances, positions=positions, wallet_balances=wallets)

    @upstream_errors("order placement")
    def place_order(self, order: OrderRequest) -> OrderResult:
        params = {
            "symbol": order.symbol,
            "side": order.side,
            "positionSide": order.position_side,
            "type": order.type,
            "quantity": _fmt(order.quantity),
        }
        if order.stop_price is not None:
            params["stopPrice"] = _fmt(order.stop_price)
        if order.reduce_only:
            params["reduceOnly"] = "true"
        if order.working_type:
            params["workingType"] = order.working_type
        if order.time_in_force:
            params["timeInForce"] = order.time_in_force
        res = self.client.futures_create_order(**params)
        result = _order_result(res)
        logger.info("Order %s %s %s qty=%s -> id=%s", order.type, order.side, order.symbol, params["quantity"], result.order_id)
        return result

    @upstream_errors("order cancel")
    def cancel_order(self, symbol: str, order_id: str) -> OrderResult:
        return _order_result(self.client.futures_cancel_order(symbol=symbol, orderId=int(order_id)))

    @upstream_errors("order fetch")
    @retry_on_rate_limit(max_retries=2)
    def get_order(self, symbol: str, order_id: str) -> OrderResult:
        return _order_result(self.client.futures_get_order(symbol=symbol, orderId=int(order_id)))
