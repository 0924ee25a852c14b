"""
Error kinds raised across the pipeline. Library exceptions (python-binance,
openai, SQLAlchemy, requests) are translated into these at the client and
store boundaries; the service facade turns them into structured results.
"""

from __future__ import annotations
from enum import Enum


class ErrorKind(str, Enum):
    INPUT_VALIDATION = "InputValidation"
    NOT_FOUND = "NotFound"
    UNCONFIGURED = "Unconfigured"
    UPSTREAM = "UpstreamError"
    TIMEOUT = "Timeout"
    PRICE_UNAVAILABLE = "PriceUnavailable"
    ALREADY_EXECUTED = "AlreadyExecuted"
    NOT_OPEN = "NotOpen"
    NO_OPEN_POSITION = "NoOpenPosition"
    NO_BALANCE = "NoBalance"
    BELOW_MINIMUM_QUANTITY = "BelowMinimumQuantity"
    INSUFFICIENT_MARGIN = "InsufficientMargin"
    ORDER_REJECTED = "OrderRejected"
    CLOSE_ORDER_FAILED = "CloseOrderFailed"
    PERSISTENCE = "PersistenceError"


class TradingError(Exception):
    """Base error. `kind` identifies the failure for programmatic handling."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(TradingError):
    kind = ErrorKind.INPUT_VALIDATION


class NotFoundError(TradingError):
    kind = ErrorKind.NOT_FOUND


class UnconfiguredError(TradingError):
    kind = ErrorKind.UNCONFIGURED


class UpstreamError(TradingError):
    kind = ErrorKind.UPSTREAM


class CallTimeoutError(UpstreamError):
    kind = ErrorKind.TIMEOUT


class MalformedResponseError(UpstreamError):
    """Reasoning provider returned text that is not a valid trade opinion."""


class PriceUnavailableError(UpstreamError):
    kind = ErrorKind.PRICE_UNAVAILABLE


class OrderRejectedError(UpstreamError):
    kind = ErrorKind.ORDER_REJECTED


class CloseOrderFailedError(UpstreamError):
    kind = ErrorKind.CLOSE_ORDER_FAILED


class AlreadyExecutedError(TradingError):
    kind = ErrorKind.ALREADY_EXECUTED


class NotOpenError(TradingError):
    kind = ErrorKind.NOT_OPEN


class NoOpenPositionError(TradingError):
    kind = ErrorKind.NO_OPEN_POSITION


class NoBalanceError(TradingError):
    kind = ErrorKind.NO_BALANCE


class BelowMinimumQuantityError(TradingError):
    kind = ErrorKind.BELOW_MINIMUM_QUANTITY


class InsufficientMarginError(TradingError):
    kind = ErrorKind.INSUFFICIENT_MARGIN


class PersistenceError(TradingError):
    kind = ErrorKind.PERSISTENCE
