"""
Listing of the inference providers known to the broker.
"""

from __future__ import annotations

import logging
from typing import List, Mapping

from .broker import PaymentBroker
from .errors import BrokerError, UpstreamUnavailableError
from .models import Provider

__all__ = ["ServiceRegistry"]


class ServiceRegistry:
    def __init__(self, broker: PaymentBroker) -> None:
        self.broker = broker

    def list_providers(self) -> List[Provider]:
        """Return a fresh listing; nothing is cached between calls."""
        try:
            services = self.broker.list_providers()
        except BrokerError as exc:
            raise UpstreamUnavailableError(f"Failed to list services: {exc.detail}") from exc

        if not isinstance(services, list) or not all(
            isinstance(service, Mapping) for service in services
        ):
            raise UpstreamUnavailableError(
                f"Broker returned a malformed service listing: {services!r}"
            )

        providers = [Provider.from_response(service) for service in services]
        logging.info("Broker listed %d services", len(providers))
        return providers
