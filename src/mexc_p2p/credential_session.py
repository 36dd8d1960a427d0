"""
Single-slot credential session.

Holds at most one connected MexcP2PClient for the process and gates every
authenticated operation behind `require_active()`.

State machine: Disconnected -> (connect succeeds) -> Connected
-> (disconnect | restart) -> Disconnected.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from .constants import DEFAULT_TIMEOUT
from .exceptions import UnauthenticatedError
from .models import ConnectionConfig, ConnectOutcome, Credential, SignPolicy, resolve_gateway
from .p2p_client import MexcP2PClient
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ConnectionConfig, Optional[SessionManager]], MexcP2PClient]


class CredentialSession:
    """
    Owner of the active signed client.

    Writes go through an asyncio.Lock and only a fully constructed, verified
    client is ever published; concurrent connects resolve last-write-wins.
    Every client built here shares one SessionManager, so dropped or
    replaced clients leave no open connections behind.
    """

    def __init__(
        self,
        session_manager: Optional[SessionManager] = None,
        timeout: float = DEFAULT_TIMEOUT,
        sign_policy: SignPolicy = SignPolicy.SORTED,
        client_factory: ClientFactory = MexcP2PClient,
    ):
        self._owns_session = session_manager is None
        self._session_manager = session_manager or SessionManager(timeout)
        self._timeout = timeout
        self._sign_policy = sign_policy
        self._client_factory = client_factory
        self._client: Optional[MexcP2PClient] = None
        self._gateway: Optional[str] = None
        self._lock = asyncio.Lock()

    async def connect(self, credential: Credential, gateway: str) -> ConnectOutcome:
        """
        Validate, verify and publish a new client.

        Raises:
            ValidationError: empty key/secret or unknown gateway (no network call)
        """
        credential.validate()
        base_url = resolve_gateway(gateway)

        client = self._client_factory(
            ConnectionConfig(
                api_key=credential.api_key,
                api_secret=credential.secret_key,
                base_url=base_url,
                timeout=self._timeout,
                sign_policy=self._sign_policy,
            ),
            self._session_manager,
        )

        if not await client.test_connection():
            logger.warning(f"Connection to MEXC P2P via {gateway} failed")
            return ConnectOutcome(
                success=False,
                message="Connection failed. Check your credentials.",
                gateway=gateway,
                base_url=base_url,
            )

        async with self._lock:
            self._client = client
            self._gateway = gateway

        logger.info(f"Connected to MEXC P2P via {gateway}")
        return ConnectOutcome(
            success=True,
            message="Connected successfully",
            gateway=gateway,
            base_url=base_url,
        )

    async def disconnect(self) -> None:
        """Drop the active client. Safe to call when already disconnected."""
        async with self._lock:
            was_connected = self._client is not None
            self._client = None
            self._gateway = None
        if was_connected:
            logger.info("Disconnected from MEXC P2P")

    async def close(self) -> None:
        """Disconnect and close the HTTP session if this object created it."""
        await self.disconnect()
        if self._owns_session:
            await self._session_manager.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def status(self) -> Dict[str, object]:
        """Connection status snapshot."""
        return {"connected": self._client is not None, "gateway": self._gateway}

    def require_active(self) -> MexcP2PClient:
        """Return the active client or raise UnauthenticatedError."""
        client = self._client
        if client is None:
            raise UnauthenticatedError(
                "Not connected. Please enter API credentials.",
                status_code=401,
            )
        return client
