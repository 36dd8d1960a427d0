"""
HTTP session management for the MEXC P2P client.

One aiohttp session is shared by every signed client of the process, so
replacing or dropping a client never cancels requests it already issued.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from .constants import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages the shared HTTP session lifecycle."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()

    async def get_session(self) -> aiohttp.ClientSession:
        """Return the open session, creating it on first use."""
        async with self._lock:
            if self._session is not None and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=20,
                ttl_dns_cache=300,
                use_dns_cache=True,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "User-Agent": "mexc-p2p-proxy/1.0",
                    "Accept": "application/json",
                },
            )
            logger.debug("HTTP session created")
            return self._session

    async def close(self) -> None:
        """Close the session and release connections."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")
        self._session = None

    @property
    def session(self) -> Optional[aiohttp.ClientSession]:
        """Current session without creating one."""
        return self._session
