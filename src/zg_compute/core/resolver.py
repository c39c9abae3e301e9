"""
Per-query resolution of a provider's endpoint, model and request headers.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from .broker import PaymentBroker
from .errors import AuthenticationError, BrokerError, UpstreamUnavailableError
from .models import RequestHeaders, ServiceMetadata
from .validation import normalize_address

__all__ = ["ProviderResolver"]


class ProviderResolver:
    """
    Resolves provider metadata and request headers through the broker.

    Nothing is cached: endpoints can move between queries and headers are
    single-use, bound to the prompt they were issued for.
    """

    def __init__(self, broker: PaymentBroker) -> None:
        self.broker = broker

    def resolve_metadata(self, provider_address: str) -> ServiceMetadata:
        address = normalize_address(provider_address)
        try:
            payload = self.broker.get_service_metadata(address)
        except BrokerError as exc:
            raise UpstreamUnavailableError(
                f"Failed to resolve service metadata for {address}: {exc.detail}"
            ) from exc

        if not isinstance(payload, Mapping):
            raise UpstreamUnavailableError(
                f"Broker returned malformed metadata for {address}: {payload!r}"
            )
        endpoint = payload.get("endpoint") or payload.get("url")
        model = payload.get("model")
        if not endpoint or not model:
            raise UpstreamUnavailableError(
                f"Broker returned incomplete metadata for {address}: {dict(payload)!r}"
            )
        logging.info("Provider %s serves %s at %s", address, model, endpoint)
        return ServiceMetadata(endpoint=str(endpoint), model=str(model))

    def issue_headers(self, provider_address: str, prompt_text: str) -> RequestHeaders:
        """
        Ask the broker for the headers authorizing one request for ``prompt_text``.

        Must be called with the exact text that will be sent, once per query:
        the broker may charge a request allowance for every call.
        """
        address = normalize_address(provider_address)
        try:
            raw_headers = self.broker.get_request_headers(address, prompt_text)
        except BrokerError as exc:
            raise AuthenticationError(
                f"Failed to obtain request headers for {address}: {exc.detail}"
            ) from exc

        if not isinstance(raw_headers, Mapping):
            raise AuthenticationError(
                f"Broker returned malformed request headers for {address}: {raw_headers!r}"
            )
        # Non-string values cannot be sent as HTTP headers.
        headers: Dict[str, str] = {
            key: value for key, value in raw_headers.items() if isinstance(value, str)
        }
        if not headers:
            raise AuthenticationError(f"Broker issued no request headers for {address}")
        logging.info("Obtained %d request headers for %s", len(headers), address)
        return headers
