"""
Signed authorization envelopes attached to broker gateway requests.

Each envelope is an EIP-712 ``BrokerAction`` signed by the configured wallet,
so the gateway can tie ledger movements to the account that asked for them.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes

from .config import ComputeConfig

__all__ = [
    "BROKER_DOMAIN_NAME",
    "BROKER_DOMAIN_VERSION",
    "build_action_typed_data",
    "build_authorization_payload",
]

BROKER_DOMAIN_NAME = "0G Compute Broker"
BROKER_DOMAIN_VERSION = "1"

_ZERO_ADDRESS = "0x" + "0" * 40


def build_action_typed_data(
    config: ComputeConfig,
    *,
    action: str,
    target: Optional[str],
    amount: str,
    nonce: bytes,
    issued_at: int,
    expires_at: int,
) -> Dict[str, Any]:
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
            ],
            "BrokerAction": [
                {"name": "account", "type": "address"},
                {"name": "action", "type": "string"},
                {"name": "target", "type": "address"},
                {"name": "amount", "type": "string"},
                {"name": "nonce", "type": "bytes32"},
                {"name": "issuedAt", "type": "uint256"},
                {"name": "expiresAt", "type": "uint256"},
            ],
        },
        "primaryType": "BrokerAction",
        "domain": {
            "name": BROKER_DOMAIN_NAME,
            "version": BROKER_DOMAIN_VERSION,
            "chainId": config.chain_id,
        },
        "message": {
            "account": config.wallet_address,
            "action": action,
            "target": target or _ZERO_ADDRESS,
            "amount": amount,
            "nonce": HexBytes(nonce),
            "issuedAt": issued_at,
            "expiresAt": expires_at,
        },
    }


def build_authorization_payload(
    config: ComputeConfig,
    *,
    action: str,
    target: Optional[str] = None,
    amount: Any = None,
    now: Optional[int] = None,
    nonce: Optional[bytes] = None,
) -> Dict[str, Any]:
    """
    Sign a ``BrokerAction`` for ``action`` and return the JSON envelope.

    ``amount`` is carried as a decimal string (empty when the action moves no
    funds) so that no precision is lost on the way to the gateway.
    """
    now = int(time.time()) if now is None else now
    nonce_bytes = nonce if nonce is not None else secrets.token_bytes(32)
    expires_at = now + config.authorization_ttl_seconds
    amount_str = "" if amount is None else str(amount)

    typed_data = build_action_typed_data(
        config,
        action=action,
        target=target,
        amount=amount_str,
        nonce=nonce_bytes,
        issued_at=now,
        expires_at=expires_at,
    )
    account = Account.from_key(config.private_key)
    signable = encode_typed_data(full_message=typed_data)
    signature = account.sign_message(signable).signature

    return {
        "signature": "0x" + signature.hex().removeprefix("0x"),
        "action": {
            "account": config.wallet_address,
            "action": action,
            "target": target or _ZERO_ADDRESS,
            "amount": amount_str,
            "nonce": "0x" + nonce_bytes.hex(),
            "issuedAt": str(now),
            "expiresAt": str(expires_at),
        },
    }
