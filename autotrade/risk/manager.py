"""
Risk sizing: fixed fraction of available balance as margin, scaled by leverage.
risk = balance * risk_fraction, notional = risk * leverage, qty = notional / entry,
floored to the lot step.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass

from autotrade.core.errors import BelowMinimumQuantityError, InsufficientMarginError, NoBalanceError
from autotrade.core.types import SymbolConstraints
from autotrade.utils.exchange_filters import truncate_to_step

logger = logging.getLogger("autotrade.risk")

DEFAULT_RISK_FRACTION = 0.2
MAX_LEVERAGE = 125


@dataclass
class RiskResult:
    """Sized order: quantity plus the numbers it was derived from."""
    quantity: float
    risk_amount: float
    notional: float
    required_margin: float


class RiskSizer:
    """Sizes entries from available quote balance. Raises on any rejection."""

    def __init__(self, risk_fraction: float = DEFAULT_RISK_FRACTION):
        if not 0 < risk_fraction <= 1:
            raise ValueError(f"risk_fraction must be in (0, 1], got {risk_fraction}")
        self.risk_fraction = risk_fraction

    def size(
        self,
        available_balance: float,
        leverage: int,
        entry_price: float,
        constraints: SymbolConstraints,
    ) -> RiskResult:
        if available_balance <= 0:
            raise NoBalanceError(f"no available balance ({available_balance:.2f})")
        if entry_price <= 0 or leverage <= 0:
            raise BelowMinimumQuantityError(f"cannot size with entry={entry_price} leverage={leverage}")

        risk_amount = available_balance * self.risk_fraction
        notional = risk_amount * leverage
        raw_qty = notional / entry_price
        qty = truncate_to_step(raw_qty, constraints.step_size)
        logger.debug(
            "Sizing: balance=%.2f risk=%.2f notional=%.2f raw_qty=%.8f qty=%.8f step=%s",
            available_balance, risk_amount, notional, raw_qty, qty, constraints.step_size,
        )
        if qty < constraints.min_quantity or qty <= 0:
            raise BelowMinimumQuantityError(
                f"quantity {qty} below exchange minimum {constraints.min_quantity}"
            )

        required_margin = self.check_margin(qty, entry_price, leverage, available_balance)
        return RiskResult(
            quantity=qty,
            risk_amount=risk_amount,
            notional=qty * entry_price,
            required_margin=required_margin,
        )

    def check_margin(self, quantity: float, entry_price: float, leverage: int, available_balance: float) -> float:
        """Required margin for the rounded quantity; raises if it exceeds the available balance."""
        required = quantity * entry_price / leverage
        if required > available_balance:
            raise InsufficientMarginError(
                f"required margin {required:.2f} exceeds available {available_balance:.2f}"
            )
        return required
