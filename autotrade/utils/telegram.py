"""Operational alerts over Telegram. Never log token or chat_id."""

from __future__ import annotations
import logging
from typing import Optional

import requests

logger = logging.getLogger("autotrade.utils.telegram")

API_URL = "https://api.telegram.org/bot{token}/sendMessage"
MAX_MESSAGE_LENGTH = 4096


def send_telegram(
    text: str,
    bot_token: str = "",
    chat_id: str = "",
    session: Optional[requests.Session] = None,
) -> bool:
    """POST one message. False when unconfigured or the API refuses it."""
    if not bot_token or not chat_id:
        return False
    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[: MAX_MESSAGE_LENGTH - 3] + "..."
    post = session.post if session is not None else requests.post
    try:
        r = post(API_URL.format(token=bot_token), json={"chat_id": chat_id, "text": text}, timeout=10)
    except requests.RequestException as e:
        logger.warning("Telegram unreachable: %s", type(e).__name__)
        return False
    if r.status_code != 200:
        logger.warning("Telegram rejected alert: HTTP %s", r.status_code)
        return False
    return True


class Notifier:
    """
    Warnings raised by execution (failed stop-loss/take-profit orders,
    positions flagged for reconciliation). Always logged; relayed to
    Telegram when a bot token and chat id are configured.
    """

    def __init__(self, bot_token: str = "", chat_id: str = ""):
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._session: Optional[requests.Session] = None

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def warn(self, text: str) -> None:
        logger.warning(text)
        if not self.enabled:
            return
        if self._session is None:
            self._session = requests.Session()
        send_telegram(f"[autotrade] {text}", self._bot_token, self._chat_id, session=self._session)
