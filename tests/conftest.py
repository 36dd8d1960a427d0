# -*- coding: utf-8 -*-
"""
Shared fixtures and utilities for testing the MEXC P2P client.
"""

import pytest
from typing import Any, Dict
from unittest.mock import AsyncMock

from mexc_p2p.models import ConnectionConfig, Credential, MarketAdsFilter, OwnAdsFilter
from mexc_p2p.p2p_client import MexcP2PClient
from mexc_p2p.session_manager import SessionManager

TEST_API_KEY = "mx0vglTestApiKey0001"
TEST_SECRET = "s3cr3t"
PINNED_TIMESTAMP = 1700000000000


# Credentials and configuration
@pytest.fixture
def credential() -> Credential:
    return Credential(api_key=TEST_API_KEY, secret_key=TEST_SECRET)


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(api_key=TEST_API_KEY, api_secret=TEST_SECRET)


@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager()


@pytest.fixture
def p2p_client(connection_config, session_manager) -> MexcP2PClient:
    """Client whose transport is replaced by an AsyncMock returning a success envelope."""
    client = MexcP2PClient(connection_config, session_manager)
    client._http_client.request = AsyncMock(return_value=market_envelope())
    return client


# Filters
@pytest.fixture
def market_filters() -> MarketAdsFilter:
    return MarketAdsFilter(fiat_unit="VND", coin_id="USDT", page=1)


@pytest.fixture
def own_filters() -> OwnAdsFilter:
    return OwnAdsFilter(coin_id="USDT", adv_status="OPEN", page=2, limit=20)


# Mock upstream envelopes
def market_envelope(side: str = "BUY", curr_page: int = 1, total_page: int = 3) -> Dict[str, Any]:
    """Successful market ads envelope."""
    return {
        "code": 0,
        "msg": "success",
        "data": [
            {
                "advNo": "a1b2c3",
                "side": side,
                "price": "25450",
                "coinName": "USDT",
                "fiatUnit": "VND",
                "availableQuantity": "1200.5",
                "minSingleTransAmount": "500000",
                "maxSingleTransAmount": "30000000",
                "merchant": {"nickName": "trader01"},
            }
        ],
        "page": {"currPage": curr_page, "totalPage": total_page},
    }


@pytest.fixture
def success_envelope() -> Dict[str, Any]:
    return market_envelope()


@pytest.fixture
def domain_error_envelope() -> Dict[str, Any]:
    return {"code": 10072, "msg": "Invalid fiat unit", "data": None}


def query_params(query_string: str) -> Dict[str, str]:
    """Split a raw query string into a dict without decoding."""
    return dict(pair.split("=", 1) for pair in query_string.split("&"))


class FakeClientFactory:
    """Builds real clients whose transport is an AsyncMock shared across clients."""

    def __init__(self, envelope=None, side_effect=None):
        self.transport = AsyncMock(return_value=envelope or {"code": 0, "data": []})
        if side_effect is not None:
            self.transport.side_effect = side_effect
        self.built = []

    def __call__(self, config: ConnectionConfig, session_manager) -> MexcP2PClient:
        client = MexcP2PClient(config, session_manager)
        client._http_client.request = self.transport
        self.built.append(client)
        return client
