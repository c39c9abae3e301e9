"""
Command-line interface for the 0G compute client.
"""

from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence, Tuple

from .api import ConfigError, create_compute_client, load_compute_config
from .core.client import ComputeClient
from .core.errors import ComputeError, TransportError
from .core.models import PaymentOutcome, QueryResult

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_UNSETTLED = 3

_OUTCOME_STATUS = {
    PaymentOutcome.VERIFIED: "Payment verified and settled",
    PaymentOutcome.FALLBACK_SETTLED: "Payment settled with the fallback fee",
    PaymentOutcome.UNSETTLED: "Payment NOT settled",
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _positive_decimal(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"'{value}' is not a decimal number") from exc
    if not amount.is_finite() or amount <= 0:
        raise argparse.ArgumentTypeError(f"amount must be greater than zero, got '{value}'")
    return amount


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zg-compute",
        description="Query AI services on the 0G compute network and settle their fees",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing ZG_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    parser.add_argument(
        "-k",
        "--private-key",
        help="Wallet private key (or set ZG_PRIVATE_KEY)",
    )
    parser.add_argument(
        "-p",
        "--provider",
        metavar="ADDRESS",
        help="Provider address for queries and fee settlement",
    )
    parser.add_argument(
        "-f",
        "--fallback-fee",
        type=_positive_decimal,
        metavar="AMOUNT",
        help="Fee to settle manually if automatic settlement fails",
    )

    operations = parser.add_mutually_exclusive_group()
    operations.add_argument(
        "-l", "--ls", action="store_true", help="List available AI services"
    )
    operations.add_argument(
        "-d",
        "--deposit",
        type=_positive_decimal,
        metavar="AMOUNT",
        help="Deposit funds to your account",
    )
    operations.add_argument(
        "-a",
        "--add-ledger",
        type=_positive_decimal,
        metavar="AMOUNT",
        help="Add funds to your ledger",
    )
    operations.add_argument(
        "-b", "--balance", action="store_true", help="Show your current ledger balance"
    )
    operations.add_argument(
        "-s",
        "--settle-fee",
        type=_positive_decimal,
        metavar="AMOUNT",
        help="Manually settle a fee with --provider",
    )
    operations.add_argument(
        "-q", "--query", metavar="TEXT", help="Query text to send to --provider"
    )
    return parser


def _print_providers(client: ComputeClient) -> int:
    providers = client.list_providers()
    print(f"Found {len(providers)} services:")
    for index, provider in enumerate(providers, start=1):
        print(f"\n[{index}] Service Details:")
        print(f"- Model: {provider.model}")
        print(f"- Provider: {provider.address}")
        print(f"- Type: {provider.service_type}")
        print(f"- URL: {provider.endpoint}")
    return EXIT_OK


def _print_balance(client: ComputeClient) -> int:
    snapshot = client.get_balance()
    print(f"Balance: {snapshot.balance}")
    if snapshot.locked is not None:
        print(f"Locked: {snapshot.locked}")
        print(f"Available: {snapshot.available}")
    return EXIT_OK


def _render_result(result: QueryResult) -> int:
    print("Response from AI:")
    print(result.content if result.content is not None else "<no content>")
    print(f"\n{_OUTCOME_STATUS[result.payment_outcome]}")

    if result.payment_outcome is PaymentOutcome.VERIFIED:
        return EXIT_OK
    if result.payment_outcome is PaymentOutcome.FALLBACK_SETTLED:
        logging.warning(
            "Automatic settlement failed (%s); settled %s manually",
            result.settlement_error.detail if result.settlement_error else "unknown",
            result.fallback_fee,
        )
        return EXIT_OK

    if result.settlement_error is not None:
        logging.error("Automatic settlement failed: %s", result.settlement_error.detail)
    if result.fallback_error is not None:
        logging.error("Fallback settlement failed: %s", result.fallback_error.detail)
    logging.error(
        "Payment for %s is unresolved. Once the owed fee is known, run: "
        "zg-compute -p %s -s <fee>",
        result.correlation_id or "this response",
        result.provider_address,
    )
    return EXIT_UNSETTLED


def _dispatch(client: ComputeClient, args: argparse.Namespace) -> int:
    if args.ls:
        return _print_providers(client)
    if args.balance:
        return _print_balance(client)
    if args.deposit is not None:
        confirmation = client.deposit(args.deposit)
        logging.info("%s (%s)", confirmation.message, confirmation.amount)
        return _print_balance(client)
    if args.add_ledger is not None:
        confirmation = client.add_to_ledger(args.add_ledger)
        logging.info("%s (%s)", confirmation.message, confirmation.amount)
        return _print_balance(client)
    if args.settle_fee is not None:
        confirmation = client.settle_fee(args.provider, args.settle_fee)
        logging.info("%s (%s)", confirmation.message, confirmation.amount)
        return EXIT_OK

    result = client.send_query(args.provider, args.query, fallback_fee=args.fallback_fee)
    return _render_result(result)


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not (
        args.ls
        or args.balance
        or args.query is not None
        or args.deposit is not None
        or args.add_ledger is not None
        or args.settle_fee is not None
    ):
        print("No operation specified.")
        parser.print_help()
        return EXIT_USAGE
    if (args.query is not None or args.settle_fee is not None) and not args.provider:
        parser.error("Provider address is required with -p/--provider ADDRESS")

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_compute_config(
            env_file=args.env_file,
            overrides=overrides,
            private_key=args.private_key,
        )
    except (KeyError, ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return EXIT_ERROR

    logging.info("Using wallet %s", config.wallet_address)
    client = create_compute_client(config=config)

    try:
        return _dispatch(client, args)
    except TransportError as exc:
        logging.error("Error sending query: %s", exc.detail)
        if exc.status_code:
            logging.error("API Error status: %s", exc.status_code)
        return EXIT_ERROR
    except ComputeError as exc:
        logging.error("%s: %s", type(exc).__name__, exc.detail)
        return EXIT_ERROR


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
