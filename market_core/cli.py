"""Command-line interface for the lending market core."""
from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal, InvalidOperation

from .config import load_config
from .logging_setup import configure_logging
from .services import Dashboard


def _amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="market-core",
        description="Lending market metrics and supply/borrow actions",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("markets", help="Show market overview and per-market metrics")

    for name, help_text in (
        ("supply", "Supply the underlying asset to a market"),
        ("borrow", "Borrow the underlying asset from a market"),
    ):
        action_parser = sub.add_parser(name, help=help_text)
        action_parser.add_argument("market", help="Market (cToken) address")
        action_parser.add_argument(
            "--amount",
            type=_amount,
            default=None,
            help="Amount in underlying units (overrides config default)",
        )

    return parser


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    dashboard = Dashboard(config)

    if args.command == "markets":
        snapshot = await dashboard.refresh()
        print(Dashboard.format_snapshot(snapshot))
        return 0

    if args.command == "supply":
        outcome = await dashboard.supply(args.market, args.amount)
    elif args.command == "borrow":
        outcome = await dashboard.borrow(args.market, args.amount)
    else:
        build_parser().print_help()
        return 1

    if outcome.success:
        tx_hash = (outcome.receipt or {}).get("transactionHash", "")
        print(f"{args.command} confirmed {tx_hash}")
        print(Dashboard.format_snapshot(dashboard.snapshot))
        return 0

    print(f"{args.command} failed: {outcome.reason}")
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
