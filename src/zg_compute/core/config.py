"""
Configuration for the compute client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from eth_account import Account

from .environment import build_environment
from .errors import ConfigError

__all__ = [
    "ComputeConfig",
    "ComputeParameters",
    "load_compute_config",
]

DEFAULT_BROKER_URL = "http://localhost:3000"
# 0G Galileo testnet
DEFAULT_CHAIN_ID = 16601

_PARAMETER_TO_ENV_KEY = {
    "private_key": "ZG_PRIVATE_KEY",
    "broker_url": "ZG_BROKER_URL",
    "chain_id": "ZG_CHAIN_ID",
    "request_timeout_seconds": "ZG_REQUEST_TIMEOUT_SECONDS",
    "inference_timeout_seconds": "ZG_INFERENCE_TIMEOUT_SECONDS",
    "authorization_ttl_seconds": "ZG_AUTHORIZATION_TTL_SECONDS",
}

# Older .env files name the key PRIVATE_KEY.
_LEGACY_PRIVATE_KEY_ENV = "PRIVATE_KEY"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class ComputeParameters:
    """
    Explicit parameter bundle for :class:`ComputeConfig`.

    Anything left as ``None`` falls back to the environment.
    """

    private_key: Optional[str] = None
    broker_url: Optional[str] = None
    chain_id: Optional[int | str] = None
    request_timeout_seconds: Optional[float | str] = None
    inference_timeout_seconds: Optional[float | str] = None
    authorization_ttl_seconds: Optional[int | str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[ComputeParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown compute parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("ZG_PRIVATE_KEY must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ConfigError("ZG_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    return key


def _positive_number(values: Mapping[str, str], key: str, default: str) -> float:
    raw = values.get(key, default)
    try:
        number = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from exc
    if number <= 0:
        raise ConfigError(f"{key} must be greater than zero")
    return number


@dataclass(frozen=True)
class ComputeConfig:
    private_key: str
    wallet_address: str
    broker_url: str = DEFAULT_BROKER_URL
    chain_id: int = DEFAULT_CHAIN_ID
    request_timeout_seconds: float = 30.0
    inference_timeout_seconds: float = 120.0
    authorization_ttl_seconds: int = 300

    def __repr__(self) -> str:
        return (
            f"ComputeConfig(wallet_address={self.wallet_address!r}, "
            f"broker_url={self.broker_url!r}, chain_id={self.chain_id})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ComputeConfig":
        raw_key = values.get("ZG_PRIVATE_KEY") or values.get(_LEGACY_PRIVATE_KEY_ENV)
        if raw_key is None:
            raise ConfigError(
                "A private key is required: set ZG_PRIVATE_KEY or pass private_key"
            )
        private_key = _normalize_private_key(raw_key)
        try:
            wallet_address = Account.from_key(private_key).address
        except Exception as exc:  # noqa: BLE001
            raise ConfigError("ZG_PRIVATE_KEY is not a valid private key") from exc

        broker_url = values.get("ZG_BROKER_URL", DEFAULT_BROKER_URL).strip().rstrip("/")
        if not broker_url.startswith(("http://", "https://")):
            raise ConfigError(f"ZG_BROKER_URL must be an http(s) URL, got '{broker_url}'")

        try:
            chain_id = int(values.get("ZG_CHAIN_ID", str(DEFAULT_CHAIN_ID)))
            ttl = int(values.get("ZG_AUTHORIZATION_TTL_SECONDS", "300"))
        except ValueError as exc:
            raise ConfigError(f"Invalid integer setting: {exc}") from exc
        if ttl <= 0:
            raise ConfigError("ZG_AUTHORIZATION_TTL_SECONDS must be greater than zero")

        return cls(
            private_key=private_key,
            wallet_address=wallet_address,
            broker_url=broker_url,
            chain_id=chain_id,
            request_timeout_seconds=_positive_number(
                values, "ZG_REQUEST_TIMEOUT_SECONDS", "30"
            ),
            inference_timeout_seconds=_positive_number(
                values, "ZG_INFERENCE_TIMEOUT_SECONDS", "120"
            ),
            authorization_ttl_seconds=ttl,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[ComputeParameters] = None,
        private_key: Optional[str] = None,
        broker_url: Optional[str] = None,
        chain_id: Optional[int | str] = None,
        request_timeout_seconds: Optional[float | str] = None,
        inference_timeout_seconds: Optional[float | str] = None,
        authorization_ttl_seconds: Optional[int | str] = None,
    ) -> "ComputeConfig":
        parameter_overrides = _collect_parameter_overrides(
            parameters,
            {
                "private_key": private_key,
                "broker_url": broker_url,
                "chain_id": chain_id,
                "request_timeout_seconds": request_timeout_seconds,
                "inference_timeout_seconds": inference_timeout_seconds,
                "authorization_ttl_seconds": authorization_ttl_seconds,
            },
        )
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_compute_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ComputeParameters] = None,
    private_key: Optional[str] = None,
    broker_url: Optional[str] = None,
    chain_id: Optional[int | str] = None,
    request_timeout_seconds: Optional[float | str] = None,
    inference_timeout_seconds: Optional[float | str] = None,
    authorization_ttl_seconds: Optional[int | str] = None,
) -> ComputeConfig:
    """
    Convenience wrapper that mirrors :meth:`ComputeConfig.from_env`.

    Settings may come from environment variables, a ``.env`` file, keyword
    arguments, or any combination of the three.
    """
    return ComputeConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        private_key=private_key,
        broker_url=broker_url,
        chain_id=chain_id,
        request_timeout_seconds=request_timeout_seconds,
        inference_timeout_seconds=inference_timeout_seconds,
        authorization_ttl_seconds=authorization_ttl_seconds,
    )
