"""
Data models for the MEXC P2P client.

This package contains all data structures used throughout the client,
following the state-first principle with immutable data structures.
"""

from .config import ConnectionConfig, ServerConfig, SignPolicy, resolve_gateway
from .ads import (
    AdListingResult,
    BothSidesResult,
    ConnectOutcome,
    Credential,
    MarketAdsFilter,
    OwnAdsFilter,
    PageInfo,
    SideError,
    normalize_side,
)

__all__ = [
    # Configuration
    "ConnectionConfig",
    "ServerConfig",
    "SignPolicy",
    "resolve_gateway",
    # Credentials
    "Credential",
    "ConnectOutcome",
    # Filters
    "MarketAdsFilter",
    "OwnAdsFilter",
    "normalize_side",
    # Results
    "AdListingResult",
    "BothSidesResult",
    "PageInfo",
    "SideError",
]
