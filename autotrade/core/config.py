"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_ALLOWED_MODELS = (
    "gpt-3.5-turbo",
    "gpt-4",
    "gpt-4-turbo",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4.1",
)


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Env overrides (for secrets and overrides)
    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    llm = data.get("llm", {})
    market = data.get("market", {})
    risk = data.get("risk", {})
    execution = data.get("execution", {})
    storage = data.get("storage", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    overrides = {str(k).upper(): int(v) for k, v in (risk.get("leverage_overrides") or {}).items()}

    return Config(
        # API (env only; never put keys in config.yaml)
        binance_testnet_api_key=env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY"),
        binance_testnet_api_secret=env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET"),
        binance_mainnet_api_key=env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY"),
        binance_mainnet_api_secret=env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET"),
        openai_api_key=env("OPENAI_API_KEY"),
        market_data_timeout=env_float("MARKET_DATA_TIMEOUT", api.get("market_data_timeout", 10.0)),
        # LLM
        default_model=env("DEFAULT_MODEL", llm.get("default_model", "gpt-3.5-turbo")),
        allowed_models=tuple(llm.get("allowed_models", DEFAULT_ALLOWED_MODELS)),
        llm_timeout=env_float("LLM_TIMEOUT", llm.get("timeout", 30.0)),
        llm_max_tokens=int(llm.get("max_tokens", 1024)),
        # Market snapshot
        default_timeframe=env("DEFAULT_TIMEFRAME", market.get("default_timeframe", "1h")),
        candle_limit=env_int("CANDLE_LIMIT", market.get("candle_limit", 70)),
        prompt_candles=env_int("PROMPT_CANDLES", market.get("prompt_candles", 35)),
        # Risk
        default_leverage=env_int("DEFAULT_LEVERAGE", risk.get("default_leverage", 20)),
        leverage_overrides=overrides,
        risk_fraction=env_float("RISK_FRACTION", risk.get("risk_fraction", 0.2)),
        quote_asset=env("QUOTE_ASSET", risk.get("quote_asset", "USDT")).upper(),
        # Execution
        mock_success_rate=env_float("MOCK_SUCCESS_RATE", execution.get("mock_success_rate", 0.9)),
        # Storage
        database_url=env("DATABASE_URL", storage.get("database_url", "sqlite:///autotrade.db")),
        persistence_timeout=env_float("PERSISTENCE_TIMEOUT", storage.get("timeout", 10.0)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", str(telegram.get("bot_token") or "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", str(telegram.get("chat_id") or "")),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "autotrade.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_testnet_api_key", "binance_testnet_api_secret",
        "binance_mainnet_api_key", "binance_mainnet_api_secret",
        "openai_api_key", "market_data_timeout",
        "default_model", "allowed_models", "llm_timeout", "llm_max_tokens",
        "default_timeframe", "candle_limit", "prompt_candles",
        "default_leverage", "leverage_overrides", "risk_fraction", "quote_asset",
        "mock_success_rate",
        "database_url", "persistence_timeout",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_testnet_api_key: str = "",
        binance_testnet_api_secret: str = "",
        binance_mainnet_api_key: str = "",
        binance_mainnet_api_secret: str = "",
        openai_api_key: str = "",
        market_data_timeout: float = 10.0,
        default_model: str = "gpt-3.5-turbo",
        allowed_models: tuple = DEFAULT_ALLOWED_MODELS,
        llm_timeout: float = 30.0,
        llm_max_tokens: int = 1024,
        default_timeframe: str = "1h",
        candle_limit: int = 70,
        prompt_candles: int = 35,
        default_leverage: int = 20,
        leverage_overrides: Optional[dict] = None,
        risk_fraction: float = 0.2,
        quote_asset: str = "USDT",
        mock_success_rate: float = 0.9,
        database_url: str = "sqlite:///autotrade.db",
        persistence_timeout: float = 10.0,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "autotrade.log",
    ):
        self.binance_testnet_api_key = binance_testnet_api_key
        self.binance_testnet_api_secret = binance_testnet_api_secret
        self.binance_mainnet_api_key = binance_mainnet_api_key
        self.binance_mainnet_api_secret = binance_mainnet_api_secret
        self.openai_api_key = openai_api_key
        self.market_data_timeout = market_data_timeout
        self.default_model = default_model
        self.allowed_models = tuple(allowed_models)
        self.llm_timeout = llm_timeout
        self.llm_max_tokens = llm_max_tokens
        self.default_timeframe = default_timeframe
        self.candle_limit = candle_limit
        self.prompt_candles = prompt_candles
        self.default_leverage = default_leverage
        self.leverage_overrides = dict(leverage_overrides or {})
        self.risk_fraction = risk_fraction
        self.quote_asset = quote_asset
        self.mock_success_rate = mock_success_rate
        self.database_url = database_url
        self.persistence_timeout = persistence_timeout
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def leverage_for(self, symbol: str) -> int:
        """Per-symbol leverage override, else the default."""
        return self.leverage_overrides.get(symbol.upper(), self.default_leverage)

    def resolve_model(self, model: Optional[str]) -> str:
        """Whitelisted model name; unknown or empty falls back to the default."""
        if model and model in self.allowed_models:
            return model
        return self.default_model

    def secret_values(self) -> List[str]:
        """Configured credentials, for masking in log output."""
        return [
            self.binance_testnet_api_key, self.binance_testnet_api_secret,
            self.binance_mainnet_api_key, self.binance_mainnet_api_secret,
            self.openai_api_key, self.telegram_bot_token,
        ]
