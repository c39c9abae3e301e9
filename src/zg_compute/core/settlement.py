"""
Payment settlement for a received inference response.

Settlement runs in two phases. The automatic phase asks the broker to verify
the response and release its fee. If that fails and the caller supplied a
positive fallback fee, the fallback phase settles that fee manually. The
answer itself is never discarded: every path ends in a :class:`QueryResult`
carrying the content, with ``payment_outcome`` saying whether it was paid for.

Each ``(provider, correlation id)`` pair is dispatched for automatic
settlement at most once per coordinator. Callers racing on the same pair are
serialized on a per-pair lock, and everyone after the first receives the
first caller's result. The coordinator remembers a bounded number of pairs;
the least recently used settled pairs are forgotten first.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from .account import AccountManager
from .broker import PaymentBroker
from .errors import FallbackSettlementError, SettlementError
from .models import PaymentOutcome, QueryResult, SettlementAttempt, SettlementPhase
from .validation import AmountLike, normalize_address, parse_optional_fee

__all__ = ["SettlementCoordinator"]

DEFAULT_MAX_TRACKED_PAIRS = 4096

_PairKey = Tuple[str, str]


@dataclass
class _Claim:
    lock: threading.Lock
    dispatched: bool = False
    result: Optional[QueryResult] = None


class SettlementCoordinator:
    def __init__(
        self,
        broker: PaymentBroker,
        *,
        accounts: Optional[AccountManager] = None,
        max_tracked_pairs: int = DEFAULT_MAX_TRACKED_PAIRS,
    ) -> None:
        if max_tracked_pairs < 1:
            raise ValueError("max_tracked_pairs must be at least 1")
        self.broker = broker
        self.accounts = accounts or AccountManager(broker)
        self.max_tracked_pairs = max_tracked_pairs
        self._claims_lock = threading.Lock()
        self._claims: "OrderedDict[_PairKey, _Claim]" = OrderedDict()

    def _claim(self, key: _PairKey) -> _Claim:
        with self._claims_lock:
            claim = self._claims.get(key)
            if claim is None:
                claim = _Claim(lock=threading.Lock())
                self._claims[key] = claim
                self._evict()
            else:
                self._claims.move_to_end(key)
            return claim

    def _evict(self) -> None:
        # Caller holds _claims_lock. Pairs still waiting for dispatch, or
        # whose lock is held, are never dropped.
        excess = len(self._claims) - self.max_tracked_pairs
        if excess <= 0:
            return
        for key in list(self._claims):
            if excess <= 0:
                break
            claim = self._claims[key]
            if claim.dispatched and not claim.lock.locked():
                del self._claims[key]
                excess -= 1

    def is_consumed(self, provider_address: str, correlation_id: str) -> bool:
        key = (normalize_address(provider_address), correlation_id)
        with self._claims_lock:
            claim = self._claims.get(key)
        return claim is not None and claim.dispatched

    def settle(
        self,
        provider_address: str,
        content: Optional[str],
        correlation_id: Optional[str],
        fallback_fee: Optional[AmountLike] = None,
    ) -> QueryResult:
        """
        Settle payment for one response and return the query outcome.

        The provider address is validated and checksummed before any broker
        call, so a malformed address such as ``"0xAAA"`` raises
        :class:`InvalidAddressError`. An unparseable fallback fee raises
        :class:`InvalidAmountError`. Nothing else is raised: broker failures
        in either phase are recorded on the returned result.
        """
        address = normalize_address(provider_address)
        fee = parse_optional_fee(fallback_fee)
        correlation_id = correlation_id or ""

        if not correlation_id:
            logging.warning(
                "Response from %s carried no correlation id; skipping automatic settlement",
                address,
            )
            error = SettlementError(
                "response has no correlation id; automatic settlement is not possible"
            )
            return self._fallback(address, content, correlation_id, fee, error, [])

        claim = self._claim((address, correlation_id))
        with claim.lock:
            if claim.result is not None:
                logging.info(
                    "Response %s from %s was already settled; reusing outcome %s",
                    correlation_id,
                    address,
                    claim.result.payment_outcome.value,
                )
                return claim.result
            if claim.dispatched:
                logging.warning(
                    "Settlement of response %s from %s was dispatched but never finished; "
                    "not retrying",
                    correlation_id,
                    address,
                )
                return QueryResult(
                    content=content,
                    correlation_id=correlation_id,
                    payment_outcome=PaymentOutcome.UNSETTLED,
                    provider_address=address,
                    fallback_fee=fee,
                    settlement_error=SettlementError(
                        "automatic settlement for this response was already dispatched "
                        "and did not complete"
                    ),
                )
            claim.dispatched = True
            claim.result = self._run(address, content, correlation_id, fee)
            return claim.result

    def _run(
        self,
        address: str,
        content: Optional[str],
        correlation_id: str,
        fee: Optional[Decimal],
    ) -> QueryResult:
        logging.info("Processing payment for response %s from %s", correlation_id, address)
        try:
            valid = self.broker.verify_and_settle(address, content or "", correlation_id)
        except Exception as exc:  # noqa: BLE001
            error = SettlementError(f"Payment processing failed: {exc}")
        else:
            if not valid:
                error = SettlementError(
                    f"Broker rejected the response during verification (valid={valid!r})"
                )
            else:
                logging.info("Response %s verified and settled", correlation_id)
                attempt = SettlementAttempt(address, SettlementPhase.AUTOMATIC, True)
                return QueryResult(
                    content=content,
                    correlation_id=correlation_id,
                    payment_outcome=PaymentOutcome.VERIFIED,
                    provider_address=address,
                    fallback_fee=fee,
                    attempts=(attempt,),
                )

        logging.warning("Automatic settlement of %s failed: %s", correlation_id, error.detail)
        attempts = [
            SettlementAttempt(
                address, SettlementPhase.AUTOMATIC, False, error_detail=error.detail
            )
        ]
        return self._fallback(address, content, correlation_id, fee, error, attempts)

    def _fallback(
        self,
        address: str,
        content: Optional[str],
        correlation_id: str,
        fee: Optional[Decimal],
        settlement_error: SettlementError,
        attempts: List[SettlementAttempt],
    ) -> QueryResult:
        if fee is None or fee <= 0:
            logging.warning(
                "No fallback fee specified. Payment for %s may not have been processed.",
                correlation_id or "<no id>",
            )
            return QueryResult(
                content=content,
                correlation_id=correlation_id,
                payment_outcome=PaymentOutcome.UNSETTLED,
                provider_address=address,
                fallback_fee=fee,
                settlement_error=settlement_error,
                attempts=tuple(attempts),
            )

        logging.info("Using fallback fee of %s for %s", fee, address)
        fallback_error: Optional[FallbackSettlementError] = None
        try:
            self.accounts.settle_fee_manually(address, fee)
        except FallbackSettlementError as exc:
            fallback_error = exc
        except Exception as exc:  # noqa: BLE001
            fallback_error = FallbackSettlementError(f"Failed to settle fee: {exc}")

        if fallback_error is not None:
            logging.error("Fallback settlement for %s failed: %s", address, fallback_error.detail)
            attempts.append(
                SettlementAttempt(
                    address,
                    SettlementPhase.FALLBACK,
                    False,
                    fee,
                    error_detail=fallback_error.detail,
                )
            )
            return QueryResult(
                content=content,
                correlation_id=correlation_id,
                payment_outcome=PaymentOutcome.UNSETTLED,
                provider_address=address,
                fallback_fee=fee,
                settlement_error=settlement_error,
                fallback_error=fallback_error,
                attempts=tuple(attempts),
            )

        attempts.append(SettlementAttempt(address, SettlementPhase.FALLBACK, True, fee))
        return QueryResult(
            content=content,
            correlation_id=correlation_id,
            payment_outcome=PaymentOutcome.FALLBACK_SETTLED,
            provider_address=address,
            fallback_fee=fee,
            settlement_error=settlement_error,
            attempts=tuple(attempts),
        )
