"""
Execution engine: turn an Active signal into a bracketed futures position.

Live path: leverage (best effort) -> balance -> sizing -> MARKET entry ->
reduce-only STOP_MARKET and TAKE_PROFIT_MARKET (best effort) -> ledger
records -> signal marked Executed. With no credentials for the requested
environment the trade is simulated instead.

Once the entry has filled, persistence failures no longer abort: the signal
is still marked Executed so it cannot be traded twice, the position is
flagged for reconciliation and the result is reported as partial. The same
holds for a close whose reduce-only order filled but could not be recorded.
"""

from __future__ import annotations
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from autotrade.core.errors import (
    AlreadyExecutedError,
    CloseOrderFailedError,
    ErrorKind,
    NoOpenPositionError,
    NotOpenError,
    OrderRejectedError,
    PersistenceError,
    TradingError,
    UnconfiguredError,
    UpstreamError,
)
from autotrade.core.types import (
    Environment,
    Position,
    PositionStatus,
    SignalStatus,
    TradingSignal,
    Transaction,
    TransactionStatus,
    TransactionType,
    format_transaction_id,
    new_record_id,
    utc_now,
)
from autotrade.execution.base import BrokerClient, MarketDataClient, OrderRequest
from autotrade.ledger.ledger import PositionLedger
from autotrade.risk.manager import RiskSizer
from autotrade.signals.lifecycle import SignalLifecycle
from autotrade.utils.exchange_filters import round_price
from autotrade.utils.telegram import Notifier

logger = logging.getLogger("autotrade.execution")

DEFAULT_MOCK_SUCCESS_RATE = 0.9
BRACKET_WORKING_TYPE = "MARK_PRICE"
BRACKET_TIME_IN_FORCE = "GTE_GTC"


@dataclass
class ExecutionResult:
    """Outcome of an execute or close request."""
    success: bool
    transaction_id: Optional[str] = None
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    partial: bool = False
    position_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    # Latest known records, for callers that report them without a re-read
    signal: Optional[TradingSignal] = None
    position: Optional[Position] = None

    def to_response(self) -> dict:
        resp = {"success": self.success, "message": self.message}
        if self.transaction_id:
            resp["transactionId"] = self.transaction_id
        if self.error_kind is not None:
            resp["errorKind"] = self.error_kind.value
        if self.partial:
            resp["partial"] = True
        if self.position_id:
            resp["positionId"] = self.position_id
        if self.warnings:
            resp["warnings"] = list(self.warnings)
        return resp


@dataclass
class _Fill:
    transaction_id: str
    message: str
    warnings: List[str] = field(default_factory=list)


class ExecutionEngine:
    def __init__(
        self,
        signals: SignalLifecycle,
        ledger: PositionLedger,
        market_data: MarketDataClient,
        broker_for: Callable[[Environment], BrokerClient],
        sizer: RiskSizer,
        notifier: Optional[Notifier] = None,
        quote_asset: str = "USDT",
        rng: Optional[random.Random] = None,
        mock_success_rate: float = DEFAULT_MOCK_SUCCESS_RATE,
    ):
        self.signals = signals
        self.ledger = ledger
        self.market_data = market_data
        self.broker_for = broker_for
        self.sizer = sizer
        self.notifier = notifier or Notifier()
        self.quote_asset = quote_asset
        self.rng = rng or random.Random()
        self.mock_success_rate = mock_success_rate

    # Execute

    def execute(self, signal_id: str, is_testnet: bool) -> ExecutionResult:
        """Execute a stored signal. Raises TradingError on failures before the entry fills."""
        signal = self.signals.get_by_id(signal_id)
        return self.execute_signal(signal, is_testnet)

    def execute_signal(self, signal: TradingSignal, is_testnet: bool) -> ExecutionResult:
        if signal.status is SignalStatus.EXECUTED:
            raise AlreadyExecutedError(f"signal already executed: {signal.id}")

        env = Environment.from_flag(is_testnet)
        broker = self.broker_for(env)
        if broker.is_configured():
            fill = self._execute_live(signal, broker, env)
        else:
            logger.info("No %s credentials, simulating execution of %s", env.value, signal.id)
            fill = self._execute_mock(signal, env)
            if fill is None:
                return ExecutionResult(
                    success=False,
                    transaction_id=None,
                    message="Insufficient margin or market conditions unfavorable",
                    error_kind=ErrorKind.ORDER_REJECTED,
                )
        return self._record_fill(signal, is_testnet, fill)

    def _execute_mock(self, signal: TradingSignal, env: Environment) -> Optional[_Fill]:
        if self.rng.random() >= self.mock_success_rate:
            logger.info("Simulated execution of %s failed", signal.id)
            return None
        tx_id = format_transaction_id(env, int(time.time()), signal.id)
        return _Fill(tx_id, f"Successfully executed {signal.direction.value} trade for {signal.symbol}")

    def _execute_live(self, signal: TradingSignal, broker: BrokerClient, env: Environment) -> _Fill:
        symbol = signal.symbol
        warnings: List[str] = []

        try:
            broker.set_leverage(symbol, signal.leverage)
        except UpstreamError as e:
            # Exchange keeps its previous leverage; sizing still uses the signal's
            logger.warning("Failed to set leverage %dx for %s: %s", signal.leverage, symbol, e)

        account = broker.get_account_info()
        available = account.available(self.quote_asset)
        constraints = self.market_data.get_symbol_constraints(symbol)
        sized = self.sizer.size(available, signal.leverage, signal.entry, constraints)
        logger.info(
            "%s %s: balance=%.2f %s qty=%s notional=%.2f margin=%.2f",
            env.value, symbol, available, self.quote_asset, sized.quantity, sized.notional, sized.required_margin,
        )

        try:
            entry = broker.place_order(OrderRequest(
                symbol=symbol,
                side=signal.direction.entry_side,
                type="MARKET",
                quantity=sized.quantity,
            ))
        except UpstreamError as e:
            raise OrderRejectedError(f"entry order rejected: {e.message}") from e

        brackets = (
            ("stop-loss", "STOP_MARKET", signal.stop_loss),
            ("take-profit", "TAKE_PROFIT_MARKET", signal.take_profit),
        )
        for label, order_type, price in brackets:
            try:
                broker.place_order(OrderRequest(
                    symbol=symbol,
                    side=signal.direction.exit_side,
                    type=order_type,
                    quantity=sized.quantity,
                    stop_price=round_price(price, constraints.tick_size),
                    reduce_only=True,
                    working_type=BRACKET_WORKING_TYPE,
                    time_in_force=BRACKET_TIME_IN_FORCE,
                ))
            except UpstreamError as e:
                text = f"{label} order failed for {symbol} (entry order {entry.order_id}): {e.message}"
                warnings.append(text)
                self.notifier.warn(text)

        tx_id = format_transaction_id(env, entry.order_id, signal.id)
        message = f"Successfully executed {signal.direction.value} trade for {symbol} - OrderID: {entry.order_id}"
        return _Fill(tx_id, message, warnings)

    def _execution_price(self, signal: TradingSignal) -> float:
        try:
            price = self.market_data.get_current_price(signal.symbol).price
        except UpstreamError as e:
            logger.warning("Price fetch failed for %s, using signal entry: %s", signal.symbol, e)
            return signal.entry
        return price if price > 0 else signal.entry

    def _record_fill(self, signal: TradingSignal, is_testnet: bool, fill: _Fill) -> ExecutionResult:
        """Ledger writes then the Executed transition. Failures here are reported as partial."""
        execution_price = self._execution_price(signal)
        now = utc_now()
        position: Optional[Position] = None
        failure: Optional[TradingError] = None

        try:
            position = self.ledger.create_position(Position(
                id=new_record_id(),
                symbol=signal.symbol,
                direction=signal.direction,
                size=1.0,
                entry_price=signal.entry,
                current_price=signal.entry,
                leverage=signal.leverage,
                created_at=now,
                status=PositionStatus.OPEN,
                stop_loss=signal.stop_loss,
                take_profit=signal.take_profit,
                is_testnet=is_testnet,
                order_id=fill.transaction_id,
                signal_id=signal.id,
            ))
            self.ledger.create_transaction(Transaction(
                id=new_record_id(),
                symbol=signal.symbol,
                type=TransactionType(signal.direction.entry_side),
                amount=1.0,
                price=signal.entry,
                status=TransactionStatus.SUCCESS,
                created_at=now,
                position_id=position.id,
                signal_id=signal.id,
                order_id=fill.transaction_id,
                description=f"{signal.direction.value} {signal.symbol} position opened via AI signal",
                is_testnet=is_testnet,
            ))
        except PersistenceError as e:
            failure = e

        executed: Optional[TradingSignal] = None
        try:
            executed = self.signals.mark_executed(signal.id, execution_price, fill.transaction_id, is_testnet)
        except (PersistenceError, AlreadyExecutedError) as e:
            failure = failure or e

        if failure is None:
            logger.info("Signal %s executed: %s", signal.id, fill.transaction_id)
            return ExecutionResult(
                success=True,
                transaction_id=fill.transaction_id,
                message=fill.message,
                position_id=position.id,
                warnings=fill.warnings,
                signal=executed,
                position=position,
            )

        text = f"Trade {fill.transaction_id} for {signal.symbol} filled but recording failed: {failure.message}"
        if position is not None:
            self._flag_reconciliation(position)
            text += f" (position {position.id} needs reconciliation)"
        self.notifier.warn(text)
        return ExecutionResult(
            success=False,
            transaction_id=fill.transaction_id,
            message=text,
            error_kind=failure.kind,
            partial=True,
            position_id=position.id if position is not None else None,
            warnings=fill.warnings + [text],
            signal=executed,
            position=position,
        )

    # Close

    def close_position(self, position_id: str) -> ExecutionResult:
        """Reduce-only market close of the exchange position; the exchange size is authoritative."""
        position = self.ledger.get_position(position_id)
        if position.status is not PositionStatus.OPEN:
            raise NotOpenError(f"position {position_id} is not open")

        env = Environment.from_flag(position.is_testnet)
        broker = self.broker_for(env)
        if not broker.is_configured():
            raise UnconfiguredError(f"no {env.value} exchange credentials configured")

        size = broker.get_account_info().position_size(position.symbol)
        if size <= 0:
            raise NoOpenPositionError(f"no open {position.symbol} position on {env.value} exchange")

        try:
            fill = broker.place_order(OrderRequest(
                symbol=position.symbol,
                side=position.direction.exit_side,
                type="MARKET",
                quantity=size,
                reduce_only=True,
            ))
        except UpstreamError as e:
            raise CloseOrderFailedError(f"close order failed: {e.message}") from e

        close_price = fill.avg_price or position.current_price or position.entry_price
        try:
            closed = self.ledger.mark_closed(position.id, close_price, utc_now())
        except (PersistenceError, NotOpenError) as e:
            # Exchange is already flat; the local record must be fixed by hand
            self._flag_reconciliation(position)
            text = (
                f"Position {position.id} closed on exchange (order {fill.order_id}) "
                f"but could not be marked closed: {e.message} (needs reconciliation)"
            )
            self.notifier.warn(text)
            return ExecutionResult(
                success=False,
                transaction_id=fill.order_id,
                message=text,
                error_kind=e.kind,
                partial=True,
                position_id=position.id,
                warnings=[text],
                position=position,
            )

        warnings: List[str] = []
        try:
            self.ledger.create_transaction(Transaction(
                id=new_record_id(),
                symbol=closed.symbol,
                type=TransactionType(closed.direction.exit_side),
                amount=closed.size,
                price=close_price,
                status=TransactionStatus.SUCCESS,
                created_at=closed.closed_at,
                pnl=closed.pnl,
                position_id=closed.id,
                signal_id=closed.signal_id,
                order_id=fill.order_id,
                description=f"{closed.direction.value} {closed.symbol} position closed",
                is_testnet=closed.is_testnet,
            ))
        except PersistenceError as e:
            text = f"Position {closed.id} closed but closing transaction not recorded: {e.message}"
            warnings.append(text)
            self.notifier.warn(text)

        return ExecutionResult(
            success=True,
            transaction_id=fill.order_id,
            message=f"Closed {closed.direction.value} {closed.symbol} at {close_price} (pnl {closed.pnl:.4f})",
            position_id=closed.id,
            warnings=warnings,
            position=closed,
        )

    def _flag_reconciliation(self, position: Position) -> None:
        try:
            self.ledger.flag_reconciliation(position.id)
        except PersistenceError as e:
            logger.error("Could not flag position %s for reconciliation: %s", position.id, e)
            return
        position.needs_reconciliation = True
