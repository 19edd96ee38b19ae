"""
SDK configuration: RPC endpoint, network, default message values and polling.

- Loads sane defaults and supports overrides via environment variables (COUNTER_SDK_*).
- Provides helpers for building HTTP headers and validating endpoints.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .utils.units import to_nano
from .version import __version__

_MAINNET_RPC = "https://toncenter.com/api/v2/jsonRPC"
_TESTNET_RPC = "https://testnet.toncenter.com/api/v2/jsonRPC"

_TRUE = {"1", "true", "yes", "on"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _parse_bool(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in _TRUE


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


def default_endpoint(testnet: bool) -> str:
    return _TESTNET_RPC if testnet else _MAINNET_RPC


@dataclass
class SDKConfig:
    # Network
    endpoint: str = field(default_factory=lambda: _MAINNET_RPC)
    api_key: Optional[str] = None
    testnet: bool = False
    workchain: int = 0
    # HTTP behavior
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_factor: float = 0.25
    # Attached values (nano units)
    deploy_value: int = field(default_factory=lambda: to_nano("0.05"))
    message_value: int = field(default_factory=lambda: to_nano("0.05"))
    # Waiting for state changes
    poll_interval: float = 2.0
    poll_attempts: int = 30
    # Headers / identity
    user_agent: str = field(default_factory=lambda: f"counter-sdk-py/{__version__}")

    @classmethod
    def from_env(cls, prefix: str = "COUNTER_SDK_") -> "SDKConfig":
        """
        Create config from environment variables:

        COUNTER_SDK_TESTNET         (1/true/yes/on)
        COUNTER_SDK_ENDPOINT        (http/https; default depends on TESTNET)
        COUNTER_SDK_API_KEY         (str) optional
        COUNTER_SDK_WORKCHAIN       (int)
        COUNTER_SDK_TIMEOUT         (float seconds)
        COUNTER_SDK_MAX_RETRIES     (int)
        COUNTER_SDK_BACKOFF         (float)
        COUNTER_SDK_DEPLOY_VALUE    (coins, e.g. "0.05")
        COUNTER_SDK_MESSAGE_VALUE   (coins)
        COUNTER_SDK_POLL_INTERVAL   (float seconds)
        COUNTER_SDK_POLL_ATTEMPTS   (int)
        COUNTER_SDK_USER_AGENT      (str)
        """
        testnet = _parse_bool(_env(f"{prefix}TESTNET"))
        endpoint = _env(f"{prefix}ENDPOINT", default_endpoint(testnet))
        _ensure_scheme(endpoint, ("http", "https"))

        return cls(
            endpoint=endpoint or default_endpoint(testnet),
            api_key=_env(f"{prefix}API_KEY"),
            testnet=testnet,
            workchain=int(_env(f"{prefix}WORKCHAIN", "0")),
            request_timeout=float(_env(f"{prefix}TIMEOUT", "10.0")),
            max_retries=int(_env(f"{prefix}MAX_RETRIES", "3")),
            backoff_factor=float(_env(f"{prefix}BACKOFF", "0.25")),
            deploy_value=to_nano(_env(f"{prefix}DEPLOY_VALUE", "0.05")),
            message_value=to_nano(_env(f"{prefix}MESSAGE_VALUE", "0.05")),
            poll_interval=float(_env(f"{prefix}POLL_INTERVAL", "2.0")),
            poll_attempts=int(_env(f"{prefix}POLL_ATTEMPTS", "30")),
            user_agent=_env(f"{prefix}USER_AGENT", f"counter-sdk-py/{__version__}"),
        )

    @classmethod
    def with_overrides(
        cls, base: Optional["SDKConfig"] = None, **overrides: Any
    ) -> "SDKConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys and None values are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        given = {k: v for k, v in overrides.items() if k in data and v is not None}
        data.update(given)
        if "testnet" in given and "endpoint" not in given and base.endpoint == default_endpoint(base.testnet):
            data["endpoint"] = default_endpoint(bool(data["testnet"]))
        _ensure_scheme(data["endpoint"], ("http", "https"))
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "api_key": self.api_key,
            "testnet": bool(self.testnet),
            "workchain": int(self.workchain),
            "request_timeout": float(self.request_timeout),
            "max_retries": int(self.max_retries),
            "backoff_factor": float(self.backoff_factor),
            "deploy_value": int(self.deploy_value),
            "message_value": int(self.message_value),
            "poll_interval": float(self.poll_interval),
            "poll_attempts": int(self.poll_attempts),
            "user_agent": self.user_agent,
        }


__all__ = ["SDKConfig", "default_endpoint"]
