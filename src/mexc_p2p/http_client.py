"""
HTTP client for the MEXC P2P API.

Executes a single request (no retries) and turns every transport-level
problem into a TransportError: network errors, timeouts, non-2xx statuses
and bodies that are not a JSON object.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientResponse
from yarl import URL

from .constants import DEFAULT_TIMEOUT
from .exceptions import TransportError
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class HttpClient:
    """HTTP client specialized for MEXC API interactions."""

    def __init__(self, session_manager: SessionManager, timeout: float = DEFAULT_TIMEOUT):
        self._session_manager = session_manager
        self._timeout = timeout

    async def request(
        self,
        method: str,
        base_url: str,
        path: str,
        query_string: str = "",
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Execute one request and return the decoded JSON envelope.

        The query string is appended verbatim so the bytes the server sees are
        exactly the bytes that were signed.
        """
        url = f"{base_url}{path}"
        if query_string:
            url = f"{url}?{query_string}"

        # Path only: the query carries the signature
        logger.debug(f"[API] {method.upper()} {base_url}{path}")

        session = await self._session_manager.get_session()
        request_kwargs: Dict[str, Any] = {
            "method": method.upper(),
            # encoded=True keeps aiohttp from re-quoting the signed query
            "url": URL(url, encoded=True),
            "headers": headers or {},
            "timeout": aiohttp.ClientTimeout(total=self._timeout),
        }
        if json_body is not None:
            request_kwargs["json"] = json_body

        try:
            async with session.request(**request_kwargs) as response:
                return await self._process_response(response)
        except asyncio.TimeoutError as e:
            logger.error(f"[API Error] {method.upper()} {path} timed out after {self._timeout}s")
            raise TransportError(f"Request timed out after {self._timeout}s") from e
        except aiohttp.ClientError as e:
            logger.error(f"[API Error] {method.upper()} {path}: {e}")
            raise TransportError(f"Network error: {e}") from e

    async def _process_response(self, response: ClientResponse) -> Dict[str, Any]:
        """Check the status and decode the body."""
        response_text = await response.text()

        try:
            response_data = json.loads(response_text) if response_text else None
        except json.JSONDecodeError:
            response_data = None

        if not 200 <= response.status < 300:
            logger.error(f"[API Error] HTTP {response.status}: {response_text[:200]}")
            raise TransportError(
                f"HTTP {response.status}: {response_text[:200]}",
                status_code=response.status,
                response_data=response_data,
                body=response_text,
            )

        if not isinstance(response_data, dict):
            raise TransportError(
                f"Invalid JSON response (Status {response.status}): {response_text[:200]}",
                status_code=response.status,
                body=response_text,
            )

        return response_data
