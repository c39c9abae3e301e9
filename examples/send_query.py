"""
Minimal script that uses the public API to query a provider and settle its fee.
"""

from __future__ import annotations

import argparse
import logging
import sys

from zg_compute import (
    ComputeError,
    ConfigError,
    PaymentOutcome,
    create_compute_client,
    load_compute_config,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send one query through the SDK API")
    parser.add_argument("provider", help="Provider address")
    parser.add_argument("query", help="Prompt text")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing ZG_* settings",
    )
    parser.add_argument(
        "--fallback-fee",
        help="Fee to settle manually if automatic settlement fails (e.g. 0.01)",
    )
    parser.add_argument(
        "--broker-url",
        help="Override the broker gateway URL",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = load_compute_config(env_file=args.env_file, broker_url=args.broker_url)
    except (KeyError, ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_compute_client(config=config)
    for provider in client.list_providers():
        logging.info("Available: %s (%s) at %s", provider.model, provider.address, provider.endpoint)

    try:
        result = client.send_query(args.provider, args.query, fallback_fee=args.fallback_fee)
    except ComputeError as exc:
        logging.error("Query failed: %s", exc.detail)
        return 1

    print(result.content)
    if result.payment_outcome is PaymentOutcome.UNSETTLED:
        logging.error("Payment unresolved: %s", result.error)
        return 3

    logging.info("Payment outcome: %s", result.payment_outcome.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
