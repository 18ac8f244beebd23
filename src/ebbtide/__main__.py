"""Ebbtide Trading Cycle Engine - Entry Point

Usage:
    python -m ebbtide [--config PATH] [--log-level LEVEL] [--mode MODE] [COMMAND]

Commands:
    run       - Run a trading session until SIGINT/SIGTERM (default)
    position  - Show whether a live position exists
    resolve   - Resolve the configured option and show its depth
    orders    - List recent orders for the wallet
    version   - Show version

Examples:
    python -m ebbtide
    python -m ebbtide --config config/production.toml --mode maker
    python -m ebbtide --log-level DEBUG position
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog

from ebbtide import __version__
from ebbtide.core.errors import ConfigError, EbbtideError


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="ebbtide",
        description="Automated buy / hold / sell cycles on Opinion binary markets",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Ebbtide {__version__}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (TOML)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )

    parser.add_argument(
        "--mode",
        choices=["taker", "maker"],
        default=None,
        help="Override trading.mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser("run", help="Run a trading session (default)")
    subparsers.add_parser("position", help="Show whether a live position exists")
    subparsers.add_parser("resolve", help="Resolve the configured option and show depth")
    subparsers.add_parser("orders", help="List recent orders")
    subparsers.add_parser("version", help="Show version")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "run"
    return args


def find_config_file(specified: Path | None) -> Path | None:
    """Find configuration file."""
    if specified is not None:
        if not specified.exists():
            raise ConfigError(f"config file not found: {specified}")
        return specified

    search_paths = [
        Path("config/default.toml"),
        Path("ebbtide.toml"),
        Path("/etc/ebbtide/ebbtide.toml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


async def run_command(args: argparse.Namespace) -> int:
    """Load configuration, build the app and run the requested command."""
    from ebbtide.app import EbbtideApp
    from ebbtide.core.config import ConfigManager
    from ebbtide.core.logging import setup_logging
    from ebbtide.services.session import SessionStatus
    from ebbtide.strategies.base import StrategyKind

    config_path = find_config_file(args.config)
    config = ConfigManager(config_path)

    log_level = args.log_level or config.get_str("ebbtide.log_level", "INFO")
    setup_logging(level=log_level, json_output=config.get_bool("ebbtide.log_json", False))
    log = structlog.get_logger()

    log.info(
        "ebbtide_command",
        command=args.command,
        version=__version__,
        config=str(config_path) if config_path else "defaults",
    )

    mode = StrategyKind.parse(args.mode) if args.mode else None
    app = EbbtideApp(config, mode=mode)

    if args.command == "position":
        live, positions = await app.check_position()
        print(f"Live position: {'yes' if live else 'no'}")
        for position in positions:
            side = position.outcome_side.value if position.outcome_side else "?"
            print(f"  {position.market_title} {side}: {position.market_value}")
        return 0

    if args.command == "resolve":
        market, depth = await app.resolve()
        print(f"Market: {market.title} (question {market.question_id})")
        print(f"  YES token: {market.yes_token_id}")
        print(f"  NO token:  {market.no_token_id}")
        print(f"  Best ask:  {depth.best_ask.price} x {depth.best_ask.size}")
        print(f"  Best bid:  {depth.best_bid.price} x {depth.best_bid.size}")
        return 0

    if args.command == "orders":
        orders = await app.list_orders()
        if not orders:
            print("No orders")
        for order in orders:
            print(
                f"  {order.order_ref} {order.side.value} {order.amount} @ {order.price} "
                f"filled {order.filled_amount} [{order.status.value}]"
            )
        return 0

    report = await app.run()
    if report.status == SessionStatus.FAILED:
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command == "version":
        print(f"Ebbtide {__version__}")
        return 0

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        return 130
    except EbbtideError as e:
        structlog.get_logger().error("fatal_error", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
