"""
Exception hierarchy for the MEXC P2P client.

Every failure is one of five discriminable kinds so the HTTP layer can tell
a usable connection with bad parameters (DomainError) apart from broken
connectivity (TransportError).
"""

from typing import Any, Optional


class P2PClientError(Exception):
    """Base exception for all client errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data


class ValidationError(P2PClientError, ValueError):
    """Malformed caller input. Raised before any network call."""

    kind = "validation"


class UnauthenticatedError(P2PClientError):
    """Operation requires an active credential session but none exists."""

    kind = "unauthenticated"


class RateLimitedError(P2PClientError):
    """Sliding-window cap exceeded. Clears itself when the window rolls."""

    kind = "rate_limited"
    retryable = True


class DomainError(P2PClientError):
    """Upstream answered with a non-zero result code."""

    kind = "domain"

    def __init__(self, message: str, code: Any = None, response_data: Any = None):
        super().__init__(message, response_data=response_data)
        self.code = code


class TransportError(P2PClientError):
    """Network failure, non-2xx status, timeout or undecodable body."""

    kind = "transport"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Any = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, status_code=status_code, response_data=response_data)
        self.body = body
