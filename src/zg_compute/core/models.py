"""
Value objects exchanged between the broker, the workflow components and callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import FallbackSettlementError, SettlementError

__all__ = [
    "Completion",
    "Confirmation",
    "LedgerSnapshot",
    "PaymentOutcome",
    "Provider",
    "QueryResult",
    "RequestHeaders",
    "ServiceMetadata",
    "SettlementAttempt",
    "SettlementPhase",
]

RequestHeaders = Mapping[str, str]


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


@dataclass(frozen=True)
class Provider:
    address: str
    model: str
    endpoint: str
    service_type: str
    input_price: Optional[Decimal] = None
    output_price: Optional[Decimal] = None
    verifiability: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "Provider":
        return cls(
            address=str(_first(payload, "provider", "address") or ""),
            model=str(_first(payload, "model") or ""),
            endpoint=str(_first(payload, "url", "endpoint") or ""),
            service_type=str(_first(payload, "serviceType", "service_type") or ""),
            input_price=_optional_decimal(_first(payload, "inputPrice", "input_price")),
            output_price=_optional_decimal(_first(payload, "outputPrice", "output_price")),
            verifiability=_first(payload, "verifiability"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class ServiceMetadata:
    endpoint: str
    model: str


@dataclass(frozen=True)
class Completion:
    content: Optional[str]
    correlation_id: str


class PaymentOutcome(str, Enum):
    VERIFIED = "verified"
    FALLBACK_SETTLED = "fallback_settled"
    UNSETTLED = "unsettled"


class SettlementPhase(str, Enum):
    AUTOMATIC = "automatic"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class SettlementAttempt:
    """One try at settling payment for a response."""

    provider_address: str
    phase: SettlementPhase
    succeeded: bool
    fee: Optional[Decimal] = None
    error_detail: Optional[str] = None


@dataclass(frozen=True)
class QueryResult:
    """
    Outcome of a query.

    ``content`` is always the answer received from the provider, whatever
    happened to the payment. ``payment_outcome`` tells the caller whether that
    answer has been paid for.
    """

    content: Optional[str]
    correlation_id: str
    payment_outcome: PaymentOutcome
    provider_address: str
    model: Optional[str] = None
    fallback_fee: Optional[Decimal] = None
    settlement_error: Optional[SettlementError] = None
    fallback_error: Optional[FallbackSettlementError] = None
    attempts: Tuple[SettlementAttempt, ...] = ()

    @property
    def payment_resolved(self) -> bool:
        return self.payment_outcome is not PaymentOutcome.UNSETTLED

    @property
    def error(self) -> Optional[Exception]:
        """The dominant error: the fallback failure if there was one."""
        if self.fallback_error is not None:
            return self.fallback_error
        if self.payment_outcome is PaymentOutcome.UNSETTLED:
            return self.settlement_error
        return None

    def raise_for_payment(self) -> None:
        """Raise if the payment for this answer is still unresolved."""
        if self.payment_resolved:
            return
        if self.fallback_error is not None:
            raise FallbackSettlementError(
                self.fallback_error.detail,
                settlement_error=self.settlement_error,
                result=self,
            ) from self.fallback_error
        if self.settlement_error is not None:
            raise self.settlement_error
        raise SettlementError("payment for the response was not settled")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "content": self.content,
            "correlationId": self.correlation_id,
            "paymentOutcome": self.payment_outcome.value,
            "provider": self.provider_address,
            "model": self.model,
        }
        if self.fallback_fee is not None:
            result["fallbackFee"] = str(self.fallback_fee)
        if self.settlement_error is not None:
            result["settlementError"] = self.settlement_error.detail
        if self.fallback_error is not None:
            result["fallbackError"] = self.fallback_error.detail
        return result


@dataclass(frozen=True)
class LedgerSnapshot:
    balance: Optional[Decimal]
    locked: Optional[Decimal]
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def available(self) -> Optional[Decimal]:
        if self.balance is None:
            return None
        return self.balance - (self.locked or Decimal(0))

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "LedgerSnapshot":
        info = payload.get("ledgerInfo")
        if isinstance(info, (list, tuple)) and info:
            balance = _optional_decimal(info[0])
            locked = _optional_decimal(info[1]) if len(info) > 1 else None
        else:
            balance = _optional_decimal(_first(payload, "balance", "totalBalance"))
            locked = _optional_decimal(_first(payload, "locked", "lockedBalance"))
        return cls(balance=balance, locked=locked, raw=dict(payload))


@dataclass(frozen=True)
class Confirmation:
    operation: str
    message: str
    amount: Optional[Decimal] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)
