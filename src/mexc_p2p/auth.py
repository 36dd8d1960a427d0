"""
Authentication and signing utilities for the MEXC P2P API.

Requests are authenticated with HMAC-SHA256 over a canonical query string
that always ends with a millisecond `timestamp`. The secret key is only ever
used as the HMAC key; it is never placed in a URL, header or log line.
"""

import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

from .constants import API_KEY_HEADER
from .exceptions import ValidationError
from .models.config import SignPolicy
from .utils import current_millis, format_param_value, sanitize_dict

# Characters JavaScript's encodeURIComponent leaves untouched
_UNRESERVED = "-_.!~*'()"

# Raw values containing these would break or extend the query string
_UNSAFE_RAW = re.compile(r"[\s&=#]")


@dataclass(frozen=True)
class SignedQuery:
    """Canonical string, its signature and the timestamp it was signed at."""
    canonical_string: str
    signature: str
    timestamp: int

    @property
    def query_string(self) -> str:
        """Query string to send: canonical parameters followed by the signature."""
        return f"{self.canonical_string}&signature={self.signature}"


def generate_signature(payload: str, secret: str) -> str:
    """
    Generate HMAC-SHA256 signature for the given payload.

    Args:
        payload: Exact byte string the server will verify (UTF-8)
        secret: Shared secret key

    Returns:
        Lowercase hex-encoded HMAC-SHA256 signature
    """
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def build_canonical_string(
    params: Mapping[str, Any],
    policy: SignPolicy = SignPolicy.SORTED,
) -> str:
    """
    Serialize parameters into `key=value` pairs joined by `&`.

    Empty and None values never appear in the output. With SORTED the keys
    are ordered alphabetically and values percent-encoded; with INSERTION the
    mapping order is kept and values are sent raw, so a value containing
    whitespace, `&`, `=` or `#` is rejected with ValidationError.
    """
    cleaned = sanitize_dict(dict(params))
    items = sorted(cleaned.items()) if policy is SignPolicy.SORTED else list(cleaned.items())

    pairs = []
    for key, value in items:
        try:
            rendered = format_param_value(value)
        except TypeError as e:
            raise ValidationError(f"Parameter '{key}': {e}") from e
        if policy is SignPolicy.SORTED:
            rendered = quote(rendered, safe=_UNRESERVED)
        elif _UNSAFE_RAW.search(rendered):
            raise ValidationError(
                f"Parameter '{key}' contains whitespace or query delimiters, "
                f"which the insertion sign policy cannot send"
            )
        pairs.append(f"{key}={rendered}")
    return "&".join(pairs)


class Signer:
    """
    Signs request parameters for MEXC API authentication.

    One signer is bound to one serialization policy for its whole lifetime.
    """

    def __init__(self, policy: SignPolicy = SignPolicy.SORTED):
        self.policy = policy

    def sign(
        self,
        params: Optional[Mapping[str, Any]],
        secret: str,
        timestamp: Optional[int] = None,
    ) -> SignedQuery:
        """
        Add a timestamp to the parameters and sign the result.

        Args:
            params: Request parameters (empty values are dropped)
            secret: Shared secret key
            timestamp: Epoch milliseconds; defaults to the current time

        Returns:
            SignedQuery with canonical string, signature and timestamp
        """
        if not secret:
            raise ValidationError("Secret key cannot be empty")

        if timestamp is None:
            timestamp = current_millis()

        signed_params: Dict[str, Any] = dict(params or {})
        signed_params.pop("timestamp", None)
        signed_params.pop("signature", None)
        signed_params["timestamp"] = timestamp

        canonical = build_canonical_string(signed_params, self.policy)
        return SignedQuery(
            canonical_string=canonical,
            signature=generate_signature(canonical, secret),
            timestamp=timestamp,
        )

    def sign_timestamp_only(self, secret: str, timestamp: Optional[int] = None) -> SignedQuery:
        """Sign a bare `timestamp=` query, used by endpoints that carry a JSON body."""
        return self.sign({}, secret, timestamp)


def get_auth_headers(api_key: str) -> Dict[str, str]:
    """
    Get authentication headers for API requests.

    Only the API key is transmitted.
    """
    return {
        "Content-Type": "application/json",
        API_KEY_HEADER: api_key,
    }
