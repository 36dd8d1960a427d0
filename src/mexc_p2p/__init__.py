"""
MEXC P2P - signed, rate-limited proxy for MEXC P2P fiat advertisements.

This package provides the request signer, the per-identity rate limiter,
the signed API client and the single-slot credential session, plus a thin
aiohttp server exposing them to a browser dashboard.
"""

__version__ = "1.0.0"

from .auth import SignedQuery, Signer, build_canonical_string, generate_signature
from .credential_session import CredentialSession
from .exceptions import (
    DomainError,
    P2PClientError,
    RateLimitedError,
    TransportError,
    UnauthenticatedError,
    ValidationError,
)
from .models import (
    # Configuration
    ConnectionConfig,
    ServerConfig,
    SignPolicy,
    # Credentials
    Credential,
    ConnectOutcome,
    # Filters
    MarketAdsFilter,
    OwnAdsFilter,
    # Results
    AdListingResult,
    BothSidesResult,
    PageInfo,
    SideError,
)
from .p2p_client import MexcP2PClient, create_p2p_client
from .rate_limiter import AdmitDecision, SlidingWindowRateLimiter

__all__ = [
    "__version__",
    # Signing
    "Signer",
    "SignedQuery",
    "build_canonical_string",
    "generate_signature",
    # Rate limiting
    "SlidingWindowRateLimiter",
    "AdmitDecision",
    # Clients
    "MexcP2PClient",
    "create_p2p_client",
    "CredentialSession",
    # Models
    "ConnectionConfig",
    "ServerConfig",
    "SignPolicy",
    "Credential",
    "ConnectOutcome",
    "MarketAdsFilter",
    "OwnAdsFilter",
    "AdListingResult",
    "BothSidesResult",
    "PageInfo",
    "SideError",
    # Errors
    "P2PClientError",
    "ValidationError",
    "UnauthenticatedError",
    "RateLimitedError",
    "DomainError",
    "TransportError",
]
