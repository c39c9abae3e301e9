"""
Public facade for the 0G compute client package.

The most useful pieces are re-exported here so integrators can
``from zg_compute import ...`` without navigating the package.
"""

from .api import create_compute_client, send_query
from .core import (
    AccountManager,
    AuthenticationError,
    BrokerClient,
    BrokerError,
    ComputeClient,
    ComputeConfig,
    ComputeError,
    ComputeParameters,
    ConfigError,
    Confirmation,
    FallbackSettlementError,
    InferenceClient,
    InvalidAddressError,
    InvalidAmountError,
    LedgerSnapshot,
    PaymentBroker,
    PaymentOutcome,
    Provider,
    ProviderResolver,
    QueryResult,
    ServiceMetadata,
    ServiceRegistry,
    SettlementAttempt,
    SettlementCoordinator,
    SettlementError,
    TransportError,
    UpstreamUnavailableError,
    load_compute_config,
    load_env_file,
)

__all__ = (
    "AccountManager",
    "AuthenticationError",
    "BrokerClient",
    "BrokerError",
    "ComputeClient",
    "ComputeConfig",
    "ComputeError",
    "ComputeParameters",
    "ConfigError",
    "Confirmation",
    "FallbackSettlementError",
    "InferenceClient",
    "InvalidAddressError",
    "InvalidAmountError",
    "LedgerSnapshot",
    "PaymentBroker",
    "PaymentOutcome",
    "Provider",
    "ProviderResolver",
    "QueryResult",
    "ServiceMetadata",
    "ServiceRegistry",
    "SettlementAttempt",
    "SettlementCoordinator",
    "SettlementError",
    "TransportError",
    "UpstreamUnavailableError",
    "create_compute_client",
    "load_compute_config",
    "load_env_file",
    "send_query",
)
