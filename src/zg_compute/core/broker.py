"""
Payment broker contract and an HTTP client for a broker gateway.

The broker owns the ledger, issues the per-request headers providers expect,
and verifies responses against their fees. Components in this package only
talk to it through :class:`PaymentBroker`, so tests and alternative gateways
can stand in for :class:`BrokerClient`.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import requests

from .config import ComputeConfig
from .errors import BrokerError
from .payloads import build_authorization_payload

__all__ = ["BrokerClient", "PaymentBroker"]


@runtime_checkable
class PaymentBroker(Protocol):
    """Operations the query and account workflows need from a broker.

    Every method raises :class:`BrokerError` on failure.
    """

    def list_providers(self) -> List[Mapping[str, Any]]: ...

    def get_service_metadata(self, provider_address: str) -> Mapping[str, Any]: ...

    def get_request_headers(self, provider_address: str, content: str) -> Mapping[str, Any]: ...

    def verify_and_settle(
        self, provider_address: str, content: str, correlation_id: str
    ) -> Any: ...

    def settle_fee(self, provider_address: str, fee: Decimal) -> Any: ...

    def deposit_fund(self, amount: Decimal) -> Any: ...

    def add_ledger(self, amount: Decimal) -> Any: ...

    def get_ledger(self) -> Mapping[str, Any]: ...


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        for key in ("detail", "error", "message"):
            if body.get(key):
                return str(body[key])
    return response.text


def _decode(response: requests.Response, url: str) -> Any:
    if response.status_code >= 400:
        raise BrokerError(
            f"Broker responded with {response.status_code}: {_error_detail(response)}",
            status_code=response.status_code,
        )
    if not response.content:
        return {}
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        raise BrokerError(
            f"Failed to parse JSON from broker at {url}: {response.text}",
            status_code=response.status_code,
        ) from exc


class BrokerClient:
    """
    Thin client for a broker gateway that fronts the 0G serving broker.

    Reads are plain ``GET`` requests; every ``POST`` carries a signed
    authorization envelope built from the configured wallet.
    """

    def __init__(
        self,
        config: ComputeConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()

    def _url(self, *parts: str) -> str:
        return "/".join([self.config.broker_url, *(quote(part, safe="") for part in parts)])

    def _get(self, *parts: str) -> Any:
        url = self._url(*parts)
        logging.info("Querying broker at %s", url)
        try:
            response = self.session.get(url, timeout=self.config.request_timeout_seconds)
        except requests.RequestException as exc:
            raise BrokerError(f"Broker request to {url} failed: {exc}") from exc
        return _decode(response, url)

    def _post(
        self,
        *parts: str,
        action: str,
        body: Optional[Dict[str, Any]] = None,
        target: Optional[str] = None,
        amount: Any = None,
    ) -> Any:
        url = self._url(*parts)
        payload = dict(body or {})
        payload["authorization"] = build_authorization_payload(
            self.config, action=action, target=target, amount=amount
        )
        logging.info("Submitting %s to broker at %s", action, url)
        try:
            response = self.session.post(
                url, json=payload, timeout=self.config.request_timeout_seconds
            )
        except requests.RequestException as exc:
            raise BrokerError(f"Broker request to {url} failed: {exc}") from exc
        return _decode(response, url)

    def list_providers(self) -> List[Mapping[str, Any]]:
        payload = self._get("services")
        if isinstance(payload, dict):
            payload = payload.get("services")
        if not isinstance(payload, list):
            raise BrokerError(f"Unexpected service listing from broker: {payload!r}")
        return payload

    def get_service_metadata(self, provider_address: str) -> Mapping[str, Any]:
        return self._get("services", provider_address)

    def get_request_headers(self, provider_address: str, content: str) -> Mapping[str, Any]:
        payload = self._post(
            "services",
            provider_address,
            "headers",
            action="getRequestHeaders",
            body={"content": content},
            target=provider_address,
        )
        if isinstance(payload, dict) and isinstance(payload.get("headers"), dict):
            return payload["headers"]
        return payload

    def verify_and_settle(
        self, provider_address: str, content: str, correlation_id: str
    ) -> Any:
        payload = self._post(
            "services",
            provider_address,
            "responses",
            action="processResponse",
            body={"content": content, "chatId": correlation_id},
            target=provider_address,
        )
        # A 2xx answer without a verdict counts as accepted.
        if isinstance(payload, dict) and "valid" in payload:
            return payload["valid"]
        return True

    def settle_fee(self, provider_address: str, fee: Decimal) -> Any:
        return self._post(
            "services",
            provider_address,
            "fees",
            action="settleFee",
            body={"fee": str(fee)},
            target=provider_address,
            amount=fee,
        )

    def deposit_fund(self, amount: Decimal) -> Any:
        return self._post(
            "ledger", "deposit", action="depositFund", body={"amount": str(amount)}, amount=amount
        )

    def add_ledger(self, amount: Decimal) -> Any:
        return self._post(
            "ledger", "add", action="addLedger", body={"amount": str(amount)}, amount=amount
        )

    def get_ledger(self) -> Mapping[str, Any]:
        payload = self._post("ledger", "query", action="getLedger")
        if not isinstance(payload, dict):
            raise BrokerError(f"Unexpected ledger payload from broker: {payload!r}")
        return payload
