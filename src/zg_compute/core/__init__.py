"""
Core primitives for querying 0G compute providers and settling their fees.
"""

from .account import AccountManager
from .broker import BrokerClient, PaymentBroker
from .client import ComputeClient, send_query
from .config import ComputeConfig, ComputeParameters, load_compute_config
from .environment import ComputeEnvironment, build_environment, load_env_file
from .errors import (
    AuthenticationError,
    BrokerError,
    ComputeError,
    ConfigError,
    FallbackSettlementError,
    InvalidAddressError,
    InvalidAmountError,
    SettlementError,
    TransportError,
    UpstreamUnavailableError,
)
from .inference import InferenceClient
from .models import (
    Completion,
    Confirmation,
    LedgerSnapshot,
    PaymentOutcome,
    Provider,
    QueryResult,
    ServiceMetadata,
    SettlementAttempt,
    SettlementPhase,
)
from .payloads import build_authorization_payload
from .registry import ServiceRegistry
from .resolver import ProviderResolver
from .settlement import SettlementCoordinator

__all__ = [
    "AccountManager",
    "AuthenticationError",
    "BrokerClient",
    "BrokerError",
    "Completion",
    "ComputeClient",
    "ComputeConfig",
    "ComputeEnvironment",
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
    "SettlementPhase",
    "TransportError",
    "UpstreamUnavailableError",
    "build_authorization_payload",
    "build_environment",
    "load_compute_config",
    "load_env_file",
    "send_query",
]
