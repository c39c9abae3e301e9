"""
Input checks shared by the resolver, coordinator and account manager.

All checks run before any network call is made.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from eth_utils import is_hex_address, to_checksum_address

from .errors import InvalidAddressError, InvalidAmountError

__all__ = [
    "AmountLike",
    "normalize_address",
    "parse_amount",
    "parse_optional_fee",
]

AmountLike = Union[Decimal, str, int, float]


def normalize_address(raw_address: Optional[str], field_name: str = "provider address") -> str:
    """Return the checksum form of ``raw_address`` or raise :class:`InvalidAddressError`."""
    if not isinstance(raw_address, str):
        raise InvalidAddressError(f"{field_name} must be a string")
    value = raw_address.strip()
    if not value:
        raise InvalidAddressError(f"{field_name} must not be empty")
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex_address(value):
        raise InvalidAddressError(f"{field_name} '{raw_address}' is not a valid EVM address")
    return to_checksum_address(value)


def _to_decimal(value: AmountLike, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmountError(f"{field_name} must be a decimal number, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidAmountError(
                f"{field_name} must be a decimal number, got '{value}'"
            ) from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"{field_name} must be a finite number, got '{value}'")
    return amount


def parse_amount(value: Optional[AmountLike], field_name: str = "amount") -> Decimal:
    """Parse a strictly positive amount."""
    if value is None:
        raise InvalidAmountError(f"{field_name} is required")
    amount = _to_decimal(value, field_name)
    if amount <= 0:
        raise InvalidAmountError(f"{field_name} must be greater than zero, got {amount}")
    return amount


def parse_optional_fee(value: Optional[AmountLike]) -> Optional[Decimal]:
    """
    Parse a fallback fee.

    ``None`` means no fee. Zero and negative fees are valid input but disable
    the fallback path, so they are returned as-is; only unparseable values
    raise.
    """
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return _to_decimal(value, "fallback fee")
