"""
Configuration models for the MEXC P2P client and proxy server.

Immutable configuration structures following state-first design.
"""

import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..constants import (
    DEFAULT_COIN_ID,
    DEFAULT_FIAT_UNIT,
    DEFAULT_GATEWAY,
    DEFAULT_TIMEOUT,
    GATEWAYS,
    MAX_TIMEOUT,
    MIN_TIMEOUT,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_MS,
)
from ..exceptions import ValidationError


class SignPolicy(Enum):
    """
    Canonical query string serialization policy.

    The two policies produce different signatures for the same parameters,
    so a deployment must use exactly one of them.
    """
    SORTED = "sorted"  # keys sorted, values percent-encoded
    INSERTION = "insertion"  # insertion order, raw values; no whitespace, &, = or #

    @classmethod
    def parse(cls, value: "str | SignPolicy") -> "SignPolicy":
        """Parse a policy name, rejecting anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValidationError(f"Unknown sign policy '{value}'. Choose from: {choices}")


def resolve_gateway(gateway: Optional[str]) -> str:
    """Map a gateway identifier to its origin URL. Unknown identifiers are rejected."""
    if not isinstance(gateway, str) or gateway not in GATEWAYS:
        raise ValidationError(
            f"Invalid gateway '{gateway}'. Choose from: {', '.join(GATEWAYS)}"
        )
    return GATEWAYS[gateway]


@dataclass(frozen=True)
class ConnectionConfig:
    """Configuration for a signed MEXC P2P connection."""
    api_key: str
    api_secret: str
    base_url: str = GATEWAYS[DEFAULT_GATEWAY]
    timeout: float = DEFAULT_TIMEOUT
    sign_policy: SignPolicy = SignPolicy.SORTED

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.api_key:
            raise ValidationError("API key cannot be empty")
        if not self.api_secret:
            raise ValidationError("Secret key cannot be empty")
        if self.base_url not in GATEWAYS.values():
            raise ValidationError(f"Unknown base URL '{self.base_url}'")
        if not MIN_TIMEOUT <= self.timeout <= MAX_TIMEOUT:
            raise ValidationError(
                f"Timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds, got {self.timeout}"
            )

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(api_key='***', api_secret='***', base_url='{self.base_url}', "
            f"timeout={self.timeout}, sign_policy={self.sign_policy.value})"
        )


# Environment variable -> ServerConfig field
_ENV_FIELDS = {
    "MEXC_P2P_HOST": "host",
    "MEXC_P2P_PORT": "port",
    "MEXC_P2P_LOG_LEVEL": "log_level",
    "MEXC_P2P_TIMEOUT": "timeout",
    "MEXC_P2P_SIGN_POLICY": "sign_policy",
    "MEXC_P2P_RATE_LIMIT_WINDOW_MS": "rate_limit_window_ms",
    "MEXC_P2P_RATE_LIMIT_MAX_REQUESTS": "rate_limit_max_requests",
    "MEXC_P2P_DEFAULT_FIAT_UNIT": "default_fiat_unit",
    "MEXC_P2P_DEFAULT_COIN_ID": "default_coin_id",
}


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the proxy HTTP server."""
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    timeout: float = DEFAULT_TIMEOUT
    sign_policy: SignPolicy = SignPolicy.SORTED
    rate_limit_window_ms: int = RATE_LIMIT_WINDOW_MS
    rate_limit_max_requests: int = RATE_LIMIT_MAX_REQUESTS
    default_fiat_unit: str = DEFAULT_FIAT_UNIT
    default_coin_id: str = DEFAULT_COIN_ID

    def __post_init__(self):
        """Coerce loosely typed values (YAML, environment) and validate."""
        object.__setattr__(self, "port", int(self.port))
        object.__setattr__(self, "timeout", float(self.timeout))
        object.__setattr__(self, "sign_policy", SignPolicy.parse(self.sign_policy))
        object.__setattr__(self, "rate_limit_window_ms", int(self.rate_limit_window_ms))
        object.__setattr__(self, "rate_limit_max_requests", int(self.rate_limit_max_requests))
        object.__setattr__(self, "log_level", str(self.log_level).upper())

        if not 0 < self.port < 65536:
            raise ValidationError(f"Port out of range: {self.port}")
        if not MIN_TIMEOUT <= self.timeout <= MAX_TIMEOUT:
            raise ValidationError(
                f"Timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds, got {self.timeout}"
            )
        if self.rate_limit_window_ms <= 0 or self.rate_limit_max_requests <= 0:
            raise ValidationError("Rate limit window and cap must be positive")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ServerConfig":
        """Build from a mapping (e.g. a parsed config.yml section), ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known and v is not None})

    @classmethod
    def from_env(cls, base: Optional["ServerConfig"] = None) -> "ServerConfig":
        """Overlay MEXC_P2P_* environment variables (and a .env file) on a base config."""
        load_dotenv()
        overrides = {
            field_name: os.environ[env_name]
            for env_name, field_name in _ENV_FIELDS.items()
            if os.environ.get(env_name)
        }
        return replace(base or cls(), **overrides)
