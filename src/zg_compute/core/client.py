"""
High-level client wiring the broker, resolver, inference and settlement steps.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

import requests

from .account import AccountManager
from .broker import BrokerClient, PaymentBroker
from .config import ComputeConfig
from .inference import InferenceClient
from .models import Confirmation, LedgerSnapshot, Provider, QueryResult
from .registry import ServiceRegistry
from .resolver import ProviderResolver
from .settlement import SettlementCoordinator
from .validation import AmountLike, normalize_address, parse_optional_fee

__all__ = ["ComputeClient", "send_query"]


class ComputeClient:
    """
    Entry point for listing providers, querying them and managing the ledger.

    ``broker`` defaults to a :class:`BrokerClient` built from ``config``; pass
    any :class:`PaymentBroker` to use another gateway.
    """

    def __init__(
        self,
        config: ComputeConfig,
        *,
        broker: Optional[PaymentBroker] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.broker = broker or BrokerClient(config, session=self.session)
        self.registry = ServiceRegistry(self.broker)
        self.resolver = ProviderResolver(self.broker)
        self.inference = InferenceClient(
            session=self.session, timeout=config.inference_timeout_seconds
        )
        self.accounts = AccountManager(self.broker)
        self.settlement = SettlementCoordinator(self.broker, accounts=self.accounts)

    def list_providers(self) -> List[Provider]:
        return self.registry.list_providers()

    def deposit(self, amount: AmountLike) -> Confirmation:
        return self.accounts.deposit(amount)

    def add_to_ledger(self, amount: AmountLike) -> Confirmation:
        return self.accounts.add_to_ledger(amount)

    def get_balance(self) -> LedgerSnapshot:
        return self.accounts.get_balance()

    def settle_fee(self, provider_address: str, fee: AmountLike) -> Confirmation:
        return self.accounts.settle_fee_manually(provider_address, fee)

    def send_query(
        self,
        provider_address: str,
        query: str,
        *,
        fallback_fee: Optional[AmountLike] = None,
    ) -> QueryResult:
        """
        Send ``query`` to a provider and settle payment for the answer.

        Raises :class:`TransportError` when no answer was received; nothing is
        settled in that case. Once an answer exists it is always returned,
        whatever happened to the payment.
        """
        address = normalize_address(provider_address)
        parse_optional_fee(fallback_fee)

        logging.info("Sending query to provider %s", address)
        metadata = self.resolver.resolve_metadata(address)
        headers = self.resolver.issue_headers(address, query)
        completion = self.inference.complete(metadata.endpoint, metadata.model, query, headers)

        result = self.settlement.settle(
            address,
            completion.content,
            completion.correlation_id,
            fallback_fee=fallback_fee,
        )
        return dataclasses.replace(result, model=metadata.model)


def send_query(
    config: ComputeConfig,
    provider_address: str,
    query: str,
    *,
    fallback_fee: Optional[AmountLike] = None,
    session: Optional[requests.Session] = None,
) -> QueryResult:
    """
    One-shot helper: build a :class:`ComputeClient` and send a single query.
    """
    client = ComputeClient(config, session=session)
    return client.send_query(provider_address, query, fallback_fee=fallback_fee)
