"""
Logging for the autotrade package: console, optional file, secret masking.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that chatter at INFO (HTTP request lines, retries)
QUIET_LOGGERS = ("urllib3", "httpx", "openai", "binance")


class SecretMaskFilter(logging.Filter):
    """Replace configured secret values in rendered messages with ***.

    Exchange errors and HTTP exceptions sometimes echo request URLs, which for
    Telegram contain the bot token.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        # short values would mask unrelated text
        self._secrets = sorted({s for s in secrets if s and len(s) >= 6}, key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, "***")
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _handler(handler: logging.Handler, mask: SecretMaskFilter) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(mask)
    return handler


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
    secrets: Iterable[str] = (),
) -> logging.Logger:
    """
    Configure the ``autotrade`` logger tree. Calling again replaces handlers.

    ``secrets`` are API keys and tokens to mask in every emitted line.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    package = logging.getLogger("autotrade")
    package.setLevel(log_level)
    package.handlers.clear()
    package.propagate = False

    mask = SecretMaskFilter(secrets)
    package.addHandler(_handler(logging.StreamHandler(sys.stdout), mask))
    if log_dir and log_file:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        package.addHandler(_handler(logging.FileHandler(path / log_file, encoding="utf-8"), mask))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return package
