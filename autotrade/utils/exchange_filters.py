"""Lot size and price filter helpers from exchange info."""

from __future__ import annotations
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

from autotrade.core.types import SymbolConstraints


def parse_symbol_filters(symbol_info: Optional[dict]) -> SymbolConstraints:
    """
    Extract LOT_SIZE (stepSize, minQty) and PRICE_FILTER (tickSize) from a
    futures exchangeInfo symbol entry. Uses defaults if symbol_info is None.
    """
    min_qty = 0.001
    step_size = 0.001
    tick_size = 0.01
    if not symbol_info:
        return SymbolConstraints(step_size=step_size, min_quantity=min_qty, tick_size=tick_size)
    for f in symbol_info.get("filters", []):
        if f.get("filterType") == "LOT_SIZE":
            min_qty = float(f.get("minQty", min_qty))
            step_size = float(f.get("stepSize", step_size))
        if f.get("filterType") == "PRICE_FILTER":
            tick_size = float(f.get("tickSize", tick_size))
    return SymbolConstraints(step_size=step_size, min_quantity=min_qty, tick_size=tick_size)


def truncate_to_step(quantity: float, step_size: float) -> float:
    """Floor quantity to a multiple of step_size. Never rounds up."""
    if quantity <= 0:
        return 0.0
    if step_size <= 0:
        return quantity
    step = Decimal(str(step_size))
    steps = (Decimal(str(quantity)) / step).to_integral_value(rounding=ROUND_FLOOR)
    return float(steps * step)


def round_price(price: float, tick_size: float) -> float:
    """Round price to exchange tick."""
    if tick_size <= 0:
        return price
    return round(round(price / tick_size) * tick_size, 8)
