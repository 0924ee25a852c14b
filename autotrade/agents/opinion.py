"""
Trade-opinion parsing and price geometry.

Model output is parsed tolerantly (fenced wrappers stripped) but validated
strictly: known direction, integer confidence 0-100, and for any opinion with
confidence > 0 the stop/target must sit on the correct sides of entry.
"""

from __future__ import annotations
import json
import math
from typing import Any

from autotrade.core.errors import MalformedResponseError
from autotrade.core.types import Direction, TradeOpinion
from autotrade.llm.client import strip_code_fence


def prices_consistent(direction: Direction, entry: float, stop_loss: float, take_profit: float) -> bool:
    """LONG: sl < entry < tp. SHORT: tp < entry < sl."""
    if direction is Direction.LONG:
        return stop_loss < entry < take_profit
    return take_profit < entry < stop_loss


def risk_reward(direction: Direction, entry: float, stop_loss: float, take_profit: float) -> float:
    """Reward distance over risk distance; 0 when the risk distance is not positive."""
    if direction is Direction.LONG:
        risk, reward = entry - stop_loss, take_profit - entry
    else:
        risk, reward = stop_loss - entry, entry - take_profit
    if risk <= 0:
        return 0.0
    return reward / risk


def parse_direction(value: Any) -> Direction:
    try:
        return Direction(str(value).strip().upper())
    except ValueError:
        raise MalformedResponseError(f"invalid direction: {value!r}") from None


def _number(data: dict, *keys: str, default: Any = None) -> float:
    for key in keys:
        if key in data and data[key] is not None:
            try:
                return float(data[key])
            except (TypeError, ValueError):
                raise MalformedResponseError(f"field {key!r} is not a number: {data[key]!r}") from None
    if default is not None:
        return default
    raise MalformedResponseError(f"missing field {keys[0]!r}")


def parse_opinion(text: str, symbol: str) -> TradeOpinion:
    """Parse one JSON trade opinion. Raises MalformedResponseError."""
    body = strip_code_fence(text or "")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("response JSON is not an object")

    direction = parse_direction(data.get("direction"))
    entry = _number(data, "entry")
    stop_loss = _number(data, "sl", "stopLoss", "stop_loss")
    take_profit = _number(data, "tp", "takeProfit", "take_profit")
    rr = _number(data, "rr", "riskReward", "risk_reward", default=0.0)
    confidence_raw = _number(data, "confidence")
    if not math.isfinite(confidence_raw) or confidence_raw != int(confidence_raw) or not 0 <= confidence_raw <= 100:
        raise MalformedResponseError(f"confidence must be an integer 0-100, got {confidence_raw}")
    confidence = int(confidence_raw)

    if confidence > 0:
        if not prices_consistent(direction, entry, stop_loss, take_profit):
            raise MalformedResponseError(
                f"inconsistent {direction.value} prices: entry={entry} sl={stop_loss} tp={take_profit}"
            )
        rr = risk_reward(direction, entry, stop_loss, take_profit)

    reported_symbol = str(data.get("symbol") or "").strip().upper()
    if not reported_symbol or "{" in reported_symbol:
        reported_symbol = symbol

    return TradeOpinion(
        symbol=reported_symbol,
        direction=direction,
        entry=entry,
        stop_loss=stop_loss,
        take_profit=take_profit,
        risk_reward=rr,
        confidence=confidence,
        thoughts=str(data.get("thoughts") or ""),
    )
