"""Abstract exchange interfaces: public market data and signed brokerage calls."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from autotrade.core.types import Candle, PriceTicker, SymbolConstraints


@dataclass
class OrderRequest:
    """Futures order. stop_price is used by STOP_MARKET / TAKE_PROFIT_MARKET."""
    symbol: str
    side: str  # "BUY" | "SELL"
    type: str  # "MARKET" | "STOP_MARKET" | "TAKE_PROFIT_MARKET"
    quantity: float
    stop_price: Optional[float] = None
    reduce_only: bool = False
    position_side: str = "BOTH"
    working_type: Optional[str] = None
    time_in_force: Optional[str] = None


@dataclass
class OrderResult:
    """Exchange acknowledgement of an order."""
    order_id: str
    status: str = ""
    avg_price: Optional[float] = None
    executed_quantity: Optional[float] = None


@dataclass
class ExchangePosition:
    symbol: str
    position_amount: float  # signed; negative = short
    entry_price: float = 0.0
    position_side: str = "BOTH"


@dataclass
class AccountInfo:
    """Available and wallet balance per asset, and open positions."""
    available_balances: Dict[str, float] = field(default_factory=dict)
    positions: List[ExchangePosition] = field(default_factory=list)
    wallet_balances: Dict[str, float] = field(default_factory=dict)

    def available(self, asset: str) -> float:
        return self.available_balances.get(asset, 0.0)

    def wallet(self, asset: str) -> float:
        return self.wallet_balances.get(asset, 0.0)

    def position_size(self, symbol: str) -> float:
        """Absolute one-way (BOTH) position size for symbol, 0 if flat."""
        for p in self.positions:
            if p.symbol == symbol and p.position_side == "BOTH" and p.position_amount != 0:
                return abs(p.position_amount)
        return 0.0


class MarketDataClient(ABC):
    """Public market data: ticker, klines, symbol filters."""

    @abstractmethod
    def get_current_price(self, symbol: str) -> PriceTicker:
        """24h ticker for symbol."""
        pass

    @abstractmethod
    def get_candles(self, symbol: str, interval: str, limit: int) -> List[Candle]:
        """Time-ascending candles (indicator fields NaN)."""
        pass

    @abstractmethod
    def get_symbol_constraints(self, symbol: str) -> SymbolConstraints:
        """Lot step, minimum quantity and price tick for symbol."""
        pass


class BrokerClient(ABC):
    """Signed futures account operations for one environment (testnet or live)."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when API credentials are present."""
        pass

    @abstractmethod
    def set_leverage(self, symbol: str, leverage: int) -> None:
        pass

    @abstractmethod
    def get_account_info(self) -> AccountInfo:
        pass

    @abstractmethod
    def place_order(self, order: OrderRequest) -> OrderResult:
        pass

    @abstractmethod
    def cancel_order(self, symbol: str, order_id: str) -> OrderResult:
        pass

    @abstractmethod
    def get_order(self, symbol: str, order_id: str) -> OrderResult:
        pass
