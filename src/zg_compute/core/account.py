"""
Funding and balance operations on the broker ledger.
"""

from __future__ import annotations

import logging
from typing import Optional

from .broker import PaymentBroker
from .errors import BrokerError, FallbackSettlementError, UpstreamUnavailableError
from .models import Confirmation, LedgerSnapshot
from .validation import AmountLike, normalize_address, parse_amount

__all__ = ["AccountManager"]


def _raw(result: object) -> dict:
    return dict(result) if isinstance(result, dict) else {"result": result}


class AccountManager:
    """Amounts are validated locally before the broker is contacted."""

    def __init__(self, broker: PaymentBroker) -> None:
        self.broker = broker

    def deposit(self, amount: Optional[AmountLike]) -> Confirmation:
        value = parse_amount(amount, "deposit amount")
        logging.info("Depositing %s", value)
        try:
            result = self.broker.deposit_fund(value)
        except BrokerError as exc:
            raise UpstreamUnavailableError(f"Failed to deposit funds: {exc.detail}") from exc
        return Confirmation("deposit", "Deposit successful", value, _raw(result))

    def add_to_ledger(self, amount: Optional[AmountLike]) -> Confirmation:
        value = parse_amount(amount, "ledger amount")
        logging.info("Adding %s to ledger", value)
        try:
            result = self.broker.add_ledger(value)
        except BrokerError as exc:
            raise UpstreamUnavailableError(
                f"Failed to add funds to ledger: {exc.detail}"
            ) from exc
        return Confirmation("add_ledger", "Funds added to ledger successfully", value, _raw(result))

    def get_balance(self) -> LedgerSnapshot:
        try:
            payload = self.broker.get_ledger()
        except BrokerError as exc:
            raise UpstreamUnavailableError(f"Failed to get balance: {exc.detail}") from exc
        return LedgerSnapshot.from_response(payload)

    def settle_fee_manually(
        self, provider_address: str, fee: Optional[AmountLike]
    ) -> Confirmation:
        """
        Settle ``fee`` with a provider directly.

        Used by the settlement fallback and by operators recovering a payment
        whose exact fee they already know.
        """
        address = normalize_address(provider_address)
        value = parse_amount(fee, "fee")
        logging.info("Settling fee of %s for provider %s", value, address)
        try:
            result = self.broker.settle_fee(address, value)
        except BrokerError as exc:
            raise FallbackSettlementError(f"Failed to settle fee: {exc.detail}") from exc
        return Confirmation("settle_fee", "Fee settled successfully", value, _raw(result))
