"""
Exception types raised by the compute client.

Every error carries a human-readable ``detail`` so transports can render it
without inspecting the concrete class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .models import QueryResult

__all__ = [
    "AuthenticationError",
    "BrokerError",
    "ComputeError",
    "ConfigError",
    "FallbackSettlementError",
    "InvalidAddressError",
    "InvalidAmountError",
    "SettlementError",
    "TransportError",
    "UpstreamUnavailableError",
]


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


class BrokerError(RuntimeError):
    """
    Raised by a payment broker when one of its operations fails.

    Broker failures are opaque: only the detail string and, for HTTP brokers,
    the status code are known.
    """

    def __init__(self, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class ComputeError(Exception):
    """Base class for errors surfaced by the query and account workflows."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "detail": self.detail}


class InvalidAddressError(ComputeError):
    """The provider address is not a syntactically valid EVM address."""


class InvalidAmountError(ComputeError):
    """An amount or fee is not a positive decimal."""


class UpstreamUnavailableError(ComputeError):
    """A registry, metadata or ledger call to the broker failed."""


class AuthenticationError(ComputeError):
    """The broker could not issue request headers for a query."""


class TransportError(ComputeError):
    """The inference request failed at the network or HTTP level."""

    def __init__(self, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.status_code:
            result["status_code"] = self.status_code
        return result


class SettlementError(ComputeError):
    """Automatic verification and settlement of a response failed."""


class FallbackSettlementError(ComputeError):
    """
    Manual fee settlement failed.

    When raised from :meth:`QueryResult.raise_for_payment` the exception keeps
    the failed automatic attempt in ``settlement_error`` and the full result,
    including the already received content, in ``result``.
    """

    def __init__(
        self,
        detail: str,
        *,
        settlement_error: Optional[SettlementError] = None,
        result: Optional["QueryResult"] = None,
    ) -> None:
        super().__init__(detail)
        self.settlement_error = settlement_error
        self.result = result
