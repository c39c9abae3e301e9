"""
Public, high-level helpers for querying 0G compute providers.
"""

from __future__ import annotations

from typing import Mapping, Optional

import requests

from .core.broker import PaymentBroker
from .core.client import ComputeClient, send_query as _send_query
from .core.config import ComputeConfig, ComputeParameters, load_compute_config
from .core.errors import ConfigError
from .core.models import QueryResult
from .core.validation import AmountLike

__all__ = [
    "ComputeClient",
    "ComputeConfig",
    "ConfigError",
    "QueryResult",
    "create_compute_client",
    "load_compute_config",
    "send_query",
]


def _resolve_config(
    config: Optional[ComputeConfig],
    *,
    env_file: Optional[str],
    overrides: Optional[Mapping[str, str]],
    base: Optional[Mapping[str, str]],
    parameters: Optional[ComputeParameters],
    private_key: Optional[str],
    broker_url: Optional[str],
) -> ComputeConfig:
    if config is None:
        return load_compute_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
            private_key=private_key,
            broker_url=broker_url,
        )

    extras = (overrides, base, parameters, private_key, broker_url)
    if any(item is not None and item != {} for item in extras):
        raise ValueError(
            "Provide either a pre-built ComputeConfig or individual parameters, not both."
        )
    return config


def create_compute_client(
    *,
    config: Optional[ComputeConfig] = None,
    broker: Optional[PaymentBroker] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ComputeParameters] = None,
    private_key: Optional[str] = None,
    broker_url: Optional[str] = None,
) -> ComputeClient:
    """
    Construct a :class:`ComputeClient`.

    Callers can either supply a ready-made :class:`ComputeConfig` or let the
    helper assemble one from environment data.
    """
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        private_key=private_key,
        broker_url=broker_url,
    )
    return ComputeClient(cfg, broker=broker, session=session)


def send_query(
    provider_address: str,
    query: str,
    *,
    fallback_fee: Optional[AmountLike] = None,
    config: Optional[ComputeConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ComputeParameters] = None,
    private_key: Optional[str] = None,
    broker_url: Optional[str] = None,
) -> QueryResult:
    """
    Send one query and settle its payment, configuring everything on the way.
    """
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        private_key=private_key,
        broker_url=broker_url,
    )
    return _send_query(cfg, provider_address, query, fallback_fee=fallback_fee, session=session)
