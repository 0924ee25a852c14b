#!/usr/bin/env python3
"""
autotrade CLI: generate and execute AI futures signals, manage positions.
Usage:
  python main.py generate BTCUSDT [--model gpt-4o] [--timeframes 15m 1h 4h]
  python main.py execute <signal_id> [--live]
  python main.py manual '{"symbol": "BTCUSDT", "direction": "LONG", "entry": 65000, ...}' [--live]
  python main.py signals | positions | transactions [--limit N]
  python main.py close <position_id>
  python main.py performance
  python main.py open-position '{"symbol": "BTCUSDT", "direction": "LONG", "size": 0.01, "entryPrice": 65000, "leverage": 10}'
  python main.py price BTC
  python main.py balance [--testnet]
  python main.py status
  python main.py chart BTCUSDT [--timeframes 1h 4h] [--prompt]
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from autotrade.core.config import load_config
from autotrade.core.errors import TradingError
from autotrade.core.logger import setup_logging
from autotrade.service import ServiceResult, build_service


def _print(result: ServiceResult, prompt_only: bool = False) -> int:
    if prompt_only and result.success:
        print(result.data["prompt"])
        return 0
    print(json.dumps(result.to_response(), indent=2, default=str))
    return 0 if result.success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="autotrade CLI")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Generate a signal from the three agents + meta")
    p.add_argument("symbol")
    p.add_argument("--model", default=None, help="Model name (whitelisted; default from config)")
    p.add_argument("--timeframes", nargs="*", default=None, help="Kline intervals, e.g. 15m 1h 4h")

    for name, help_text in (("execute", "Execute a stored signal"), ("manual", "Execute a raw JSON signal")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("signal_id" if name == "execute" else "signal_json")
        p.add_argument("--live", action="store_true", help="Use the live exchange (default: testnet)")

    for name in ("signals", "positions", "transactions"):
        p = sub.add_parser(name, help=f"List {name}, most recent first")
        p.add_argument("--limit", type=int, default=50)

    p = sub.add_parser("close", help="Close an open position (reduce-only market order)")
    p.add_argument("position_id")

    sub.add_parser("performance", help="Realized performance over closed positions")

    p = sub.add_parser("open-position", help="Record a position opened outside the signal pipeline")
    p.add_argument("position_json")

    p = sub.add_parser("price", help="Last price, 24h change and volume")
    p.add_argument("symbol")

    p = sub.add_parser("balance", help="Quote-asset wallet and available balance")
    p.add_argument("--testnet", action="store_true", help="Query the testnet account (default: live)")

    sub.add_parser("status", help="Exchange, reasoning provider and database connectivity")

    p = sub.add_parser("chart", help="Enriched candles per timeframe")
    p.add_argument("symbol")
    p.add_argument("--timeframes", nargs="*", default=None)
    p.add_argument("--prompt", action="store_true", help="Print only the market-data prompt block")
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, secrets=config.secret_values())
    logger = logging.getLogger("autotrade")

    try:
        service = build_service(config)
    except TradingError as e:
        logger.error("Startup failed: %s", e.message)
        return 1

    try:
        if args.command == "generate":
            return _print(service.generate_signal(args.symbol, args.model, args.timeframes))
        if args.command == "execute":
            return _print(service.execute_signal(args.signal_id, testnet=not args.live))
        if args.command == "manual":
            return _print(service.execute_manual(args.signal_json, testnet=not args.live))
        if args.command == "signals":
            return _print(service.list_signals(args.limit))
        if args.command == "positions":
            return _print(service.list_positions(args.limit))
        if args.command == "transactions":
            return _print(service.list_transactions(args.limit))
        if args.command == "close":
            return _print(service.close_position(args.position_id))
        if args.command == "performance":
            return _print(service.performance())
        if args.command == "open-position":
            return _print(service.create_position(args.position_json))
        if args.command == "price":
            return _print(service.price(args.symbol))
        if args.command == "balance":
            return _print(service.balance(testnet=args.testnet))
        if args.command == "status":
            return _print(service.connection_status())
        return _print(service.chart_data(args.symbol, args.timeframes), prompt_only=args.prompt)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    finally:
        service.close()


if __name__ == "__main__":
    exit(main())
