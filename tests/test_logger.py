"""Tests for core.logger secret masking."""

import logging

from autotrade.core.config import Config
from autotrade.core.logger import SecretMaskFilter, setup_logging


def _record(msg, *args):
    return logging.LogRecord("autotrade.test", logging.WARNING, __file__, 1, msg, args, None)


def test_mask_replaces_secret_in_args():
    token = "123456:ABCdefToken"
    record = _record("POST https://api.telegram.org/bot%s/sendMessage failed", token)
    assert SecretMaskFilter([token]).filter(record)
    assert token not in record.getMessage()
    assert "bot***/sendMessage" in record.getMessage()


def test_short_and_empty_values_ignored():
    record = _record("order 12345 filled")
    SecretMaskFilter(["", "123"]).filter(record)
    assert record.getMessage() == "order 12345 filled"


def test_setup_logging_writes_masked_file(tmp_path):
    config = Config(openai_api_key="sk-test-abcdef123456")
    logger = setup_logging("DEBUG", tmp_path, "run.log", secrets=config.secret_values())
    logger.getChild("llm").error("bad key %s", config.openai_api_key)
    for handler in logger.handlers:
        handler.close()
    text = (tmp_path / "run.log").read_text(encoding="utf-8")
    assert "bad key ***" in text
    assert "sk-test" not in text
    logger.handlers.clear()
