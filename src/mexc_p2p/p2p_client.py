"""
MEXC P2P signed API client.

Turns semantic requests (side, fiat unit, coin, page, filters) into signed
outbound calls and normalizes the `{code, msg, data, page}` envelope:

- code == 0 -> AdListingResult
- any other code -> DomainError carrying the upstream msg and code
- transport problems -> TransportError (raised by HttpClient)

No call is retried here; callers decide.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from .auth import SignedQuery, Signer, get_auth_headers
from .constants import (
    DEFAULT_TIMEOUT,
    GATEWAYS,
    MARKET_ADS_PATH,
    MERCHANT_ADS_PATH,
    SAVE_OR_UPDATE_AD_PATH,
    SUCCESS_CODE,
)
from .exceptions import DomainError, P2PClientError, ValidationError
from .http_client import HttpClient
from .models import (
    AdListingResult,
    BothSidesResult,
    ConnectionConfig,
    MarketAdsFilter,
    OwnAdsFilter,
    SideError,
    SignPolicy,
    normalize_side,
    resolve_gateway,
)
from .monitoring import RequestMonitor, Statistics
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class MexcP2PClient:
    """
    Signed client for the MEXC P2P fiat endpoints.

    Bound to one gateway, one credential pair and one signing policy.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        session_manager: Optional[SessionManager] = None,
    ):
        """Initialize the client; a private session manager is created when none is shared."""
        self._config = config
        self._owns_session = session_manager is None
        self._session_manager = session_manager or SessionManager(config.timeout)
        self._http_client = HttpClient(self._session_manager, config.timeout)
        self._signer = Signer(config.sign_policy)
        self._monitor = RequestMonitor()

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def gateway(self) -> Optional[str]:
        for name, url in GATEWAYS.items():
            if url == self._config.base_url:
                return name
        return None

    @property
    def sign_policy(self) -> SignPolicy:
        return self._config.sign_policy

    @property
    def statistics(self) -> Statistics:
        return self._monitor.statistics

    @property
    def monitor(self) -> RequestMonitor:
        return self._monitor

    # Market ads

    async def fetch_ads(self, side: Optional[str], filters: Optional[MarketAdsFilter] = None):
        """Fetch one side, or both sides independently when no side is given."""
        if normalize_side(side) is None:
            return await self.fetch_both_sides(filters)
        return await self.fetch_market_ads(side, filters)

    async def fetch_market_ads(
        self,
        side: Optional[str],
        filters: Optional[MarketAdsFilter] = None,
    ) -> AdListingResult:
        """
        Fetch a page of market-wide ads.

        Args:
            side: BUY, SELL or None (unsided query)
            filters: Market filters; defaults to VND / USDT / page 1

        Returns:
            Parsed envelope with code 0

        Raises:
            ValidationError: side is not BUY/SELL
            DomainError: upstream code != 0
            TransportError: network, timeout or non-2xx
        """
        filters = filters or MarketAdsFilter()
        params = filters.to_params(normalize_side(side))
        return await self._signed_request("GET", MARKET_ADS_PATH, params)

    async def fetch_both_sides(self, filters: Optional[MarketAdsFilter] = None) -> BothSidesResult:
        """
        Fetch BUY and SELL concurrently.

        Each side's outcome is captured on its own; a failure on one side
        never fails the other or the call as a whole.
        """
        filters = filters or MarketAdsFilter()
        buy, sell = await asyncio.gather(
            self.fetch_market_ads("BUY", filters),
            self.fetch_market_ads("SELL", filters),
            return_exceptions=True,
        )
        return BothSidesResult(
            buy=self._side_outcome("BUY", buy),
            sell=self._side_outcome("SELL", sell),
        )

    @staticmethod
    def _side_outcome(side: str, result: Any):
        if isinstance(result, P2PClientError):
            logger.warning(f"{side} ads failed ({result.kind}): {result}")
            return SideError(error=str(result), kind=result.kind, code=getattr(result, "code", None))
        if isinstance(result, Exception):
            logger.error(f"{side} ads failed: {result!r}")
            return SideError(error=str(result) or type(result).__name__, kind="error")
        if isinstance(result, BaseException):
            raise result
        return result

    # Merchant ads

    async def fetch_own_ads(self, filters: Optional[OwnAdsFilter] = None) -> AdListingResult:
        """Fetch a page of the merchant's own ads."""
        filters = filters or OwnAdsFilter()
        return await self._signed_request("GET", MERCHANT_ADS_PATH, filters.to_params())

    async def save_or_update_ad(self, ad_data: Dict[str, Any]) -> AdListingResult:
        """
        Create an ad, or update it when `advNo` is present.

        Only the timestamp query is signed; the ad itself travels as a JSON body.
        """
        if not ad_data or not isinstance(ad_data, dict):
            raise ValidationError("Ad payload must be a non-empty object")
        signed = self._signer.sign_timestamp_only(self._config.api_secret)
        return await self._send("POST", SAVE_OR_UPDATE_AD_PATH, signed, json_body=ad_data)

    # Connection check

    async def test_connection(self) -> bool:
        """
        Check the credentials with a minimal signed market call.

        Returns True iff the upstream answered with code 0. Never raises.
        """
        try:
            result = await self.fetch_market_ads(None, MarketAdsFilter())
            return result.code == SUCCESS_CODE
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    # Internals

    async def _signed_request(self, method: str, path: str, params: Dict[str, Any]) -> AdListingResult:
        signed = self._signer.sign(params, self._config.api_secret)
        return await self._send(method, path, signed)

    async def _send(
        self,
        method: str,
        path: str,
        signed: SignedQuery,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> AdListingResult:
        start = time.perf_counter()
        outcome = "transport"
        try:
            envelope = await self._http_client.request(
                method,
                self._config.base_url,
                path,
                signed.query_string,
                headers=get_auth_headers(self._config.api_key),
                json_body=json_body,
            )
            outcome = "domain"
            result = self._normalize(envelope)
            outcome = "ok"
            return result
        finally:
            self._monitor.record(path, method, outcome, (time.perf_counter() - start) * 1000)

    @staticmethod
    def _normalize(envelope: Dict[str, Any]) -> AdListingResult:
        code = envelope.get("code")
        if code != SUCCESS_CODE:
            msg = envelope.get("msg") or "Unknown error"
            raise DomainError(
                f"MEXC API Error: {msg} (code: {code})",
                code=code,
                response_data=envelope,
            )
        return AdListingResult.from_envelope(envelope)

    # Lifecycle

    async def close(self) -> None:
        """Close the HTTP session if this client owns it."""
        if self._owns_session:
            await self._session_manager.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def create_p2p_client(
    api_key: str,
    secret_key: str,
    gateway: str = "mexc.com",
    timeout: float = DEFAULT_TIMEOUT,
    sign_policy: SignPolicy = SignPolicy.SORTED,
    session_manager: Optional[SessionManager] = None,
) -> MexcP2PClient:
    """
    Factory function to create a MexcP2PClient.

    Raises ValidationError for empty credentials or an unknown gateway.
    """
    config = ConnectionConfig(
        api_key=api_key,
        api_secret=secret_key,
        base_url=resolve_gateway(gateway),
        timeout=timeout,
        sign_policy=sign_policy,
    )
    return MexcP2PClient(config, session_manager)
