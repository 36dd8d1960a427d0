# -*- coding: utf-8 -*-
"""
Tests for the aiohttp proxy surface.
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils

from conftest import TEST_API_KEY, TEST_SECRET, FakeClientFactory, market_envelope, query_params
from mexc_p2p.exceptions import TransportError
from mexc_p2p.models import ServerConfig
from mexc_p2p.server import LIMITER_KEY, SESSION_KEY, create_app

CREDENTIALS = {"apiKey": TEST_API_KEY, "secretKey": TEST_SECRET, "gateway": "mexc.com"}


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory(envelope=market_envelope())


async def _start(app):
    client = test_utils.TestClient(test_utils.TestServer(app))
    await client.start_server()
    return client


@pytest_asyncio.fixture
async def api(factory):
    client = await _start(create_app(ServerConfig(rate_limit_max_requests=1000), client_factory=factory))
    yield client
    await client.close()


async def connect(api) -> None:
    resp = await api.post("/api/connect", json=CREDENTIALS)
    assert (await resp.json())["code"] == 0


class TestPublicRoutes:

    @pytest.mark.asyncio
    async def test_health(self, api):
        resp = await api.get("/api/health")
        body = await resp.json()
        assert resp.status == 200
        assert body["status"] == "OK"
        assert body["version"] == "1.0.0"

    @pytest.mark.asyncio
    async def test_config(self, api):
        body = await (await api.get("/api/config")).json()
        assert body["code"] == 0
        assert [g["value"] for g in body["data"]["gateways"]] == ["mexc.com", "mexc.co"]
        assert body["data"]["defaultFiatUnit"] == "VND"

    @pytest.mark.asyncio
    async def test_gateways(self, api):
        body = await (await api.get("/api/gateways")).json()
        assert body["data"]["endpoints"]["mexc.co"] == "https://api.mexc.co"


class TestSessionRoutes:

    @pytest.mark.asyncio
    async def test_status_before_connect(self, api):
        body = await (await api.get("/api/status")).json()
        assert body == {"code": 0, "data": {"connected": False, "gateway": None}}

    @pytest.mark.asyncio
    async def test_connect_and_status(self, api):
        resp = await api.post("/api/connect", json=CREDENTIALS)
        body = await resp.json()

        assert resp.status == 200
        assert body["code"] == 0
        assert body["data"] == {"gateway": "mexc.com", "baseUrl": "https://api.mexc.com"}

        status = await (await api.get("/api/status")).json()
        assert status["data"]["connected"] is True
        assert status["data"]["stats"]["total_requests"] == 1
        assert status["data"]["endpoints"]["GET /api/v3/fiat/market/ads/pagination"]["successful_requests"] == 1
        assert status["data"]["recent"][0]["outcome"] == "ok"

    @pytest.mark.asyncio
    async def test_connect_defaults_gateway(self, api):
        resp = await api.post("/api/connect", json={"apiKey": TEST_API_KEY, "secretKey": TEST_SECRET})
        assert (await resp.json())["data"]["gateway"] == "mexc.com"

    @pytest.mark.asyncio
    async def test_connect_unknown_gateway(self, api, factory):
        resp = await api.post("/api/connect", json={**CREDENTIALS, "gateway": "mexc.io"})
        body = await resp.json()

        assert resp.status == 400
        assert body["error"] == "validation"
        assert factory.transport.call_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("gateway", [["x"], {"host": "mexc.com"}, 42])
    async def test_connect_non_string_gateway(self, api, factory, gateway):
        resp = await api.post("/api/connect", json={**CREDENTIALS, "gateway": gateway})
        body = await resp.json()

        assert resp.status == 400
        assert body["error"] == "validation"
        assert factory.transport.call_count == 0

    @pytest.mark.asyncio
    async def test_connect_non_string_credentials(self, api, factory):
        resp = await api.post("/api/connect", json={**CREDENTIALS, "secretKey": ["s3cr3t"]})
        assert resp.status == 400
        assert factory.transport.call_count == 0

    @pytest.mark.asyncio
    async def test_connect_missing_credentials(self, api):
        resp = await api.post("/api/connect", json={"apiKey": TEST_API_KEY})
        assert resp.status == 400
        assert (await resp.json())["msg"] == "API Key and Secret Key are required"

    @pytest.mark.asyncio
    async def test_connect_invalid_json(self, api):
        resp = await api.post("/api/connect", data="not json", headers={"Content-Type": "application/json"})
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_connect_check_failure(self, api, factory):
        factory.transport.return_value = {"code": 700002, "msg": "Signature invalid"}

        resp = await api.post("/api/connect", json=CREDENTIALS)
        body = await resp.json()

        assert body == {"code": -1, "msg": "Connection failed. Check your credentials."}
        assert api.server.app[SESSION_KEY].connected is False

    @pytest.mark.asyncio
    async def test_disconnect(self, api):
        await connect(api)
        resp = await api.post("/api/disconnect")
        assert (await resp.json()) == {"code": 0, "msg": "Disconnected"}

        resp = await api.get("/api/market/ads?side=BUY")
        assert resp.status == 401


class TestMarketAds:

    @pytest.mark.asyncio
    async def test_requires_connection(self, api, factory):
        resp = await api.get("/api/market/ads?side=BUY")
        body = await resp.json()

        assert resp.status == 401
        assert body["error"] == "unauthenticated"
        assert factory.transport.call_count == 0

    @pytest.mark.asyncio
    async def test_single_side(self, api, factory):
        await connect(api)
        resp = await api.get("/api/market/ads?side=buy&fiatUnit=USD&page=2&amount=&payMethod=5")
        body = await resp.json()

        assert resp.status == 200
        assert body["code"] == 0
        assert body["page"] == {"currPage": 1, "totalPage": 3}

        params = query_params(factory.transport.call_args.args[3])
        assert params["side"] == "BUY"
        assert params["fiatUnit"] == "USD"
        assert params["page"] == "2"
        assert params["payMethod"] == "5"
        assert "amount" not in params

    @pytest.mark.asyncio
    async def test_both_sides_when_side_absent(self, api, factory):
        await connect(api)

        async def fake_request(method, base_url, path, query_string, **kwargs):
            if "side=SELL" in query_string:
                raise TransportError("Request timed out after 15.0s")
            return market_envelope()

        factory.transport.side_effect = fake_request
        resp = await api.get("/api/market/ads")
        body = await resp.json()

        assert resp.status == 200
        assert body["data"]["buy"]["code"] == 0
        assert body["data"]["sell"] == {"error": "Request timed out after 15.0s", "kind": "transport"}

    @pytest.mark.asyncio
    async def test_unknown_gateway_query_rejected(self, api, factory):
        await connect(api)
        calls = factory.transport.call_count

        resp = await api.get("/api/market/ads?side=BUY&gateway=bogus-host")
        body = await resp.json()

        assert resp.status == 400
        assert body["error"] == "validation"
        assert factory.transport.call_count == calls

    @pytest.mark.asyncio
    async def test_gateway_query_must_match_connection(self, api, factory):
        await connect(api)
        calls = factory.transport.call_count

        resp = await api.get("/api/market/ads?side=BUY&gateway=mexc.co")
        assert resp.status == 400
        assert "connected gateway" in (await resp.json())["msg"]
        assert factory.transport.call_count == calls

    @pytest.mark.asyncio
    async def test_matching_gateway_query_accepted(self, api, factory):
        await connect(api)
        resp = await api.get("/api/market/ads?side=BUY&gateway=mexc.com")

        assert resp.status == 200
        assert "gateway" not in query_params(factory.transport.call_args.args[3])

    @pytest.mark.asyncio
    async def test_invalid_side(self, api):
        await connect(api)
        resp = await api.get("/api/market/ads?side=HOLD")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_invalid_page(self, api):
        await connect(api)
        resp = await api.get("/api/market/ads?side=BUY&page=zero")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_domain_error(self, api, factory):
        await connect(api)
        factory.transport.return_value = {"code": 10072, "msg": "Invalid fiat"}

        resp = await api.get("/api/market/ads?side=BUY")
        body = await resp.json()

        assert resp.status == 400
        assert body["error"] == "domain"
        assert body["upstreamCode"] == 10072

    @pytest.mark.asyncio
    async def test_transport_error(self, api, factory):
        await connect(api)
        factory.transport.side_effect = TransportError("HTTP 503: down", status_code=503)

        resp = await api.get("/api/market/ads?side=SELL")
        body = await resp.json()

        assert resp.status == 502
        assert body["error"] == "transport"
        assert body["upstreamStatus"] == 503

    @pytest.mark.asyncio
    async def test_unexpected_error(self, api, factory):
        await connect(api)
        factory.transport.side_effect = RuntimeError("boom")

        resp = await api.get("/api/market/ads?side=SELL")
        assert resp.status == 500
        assert (await resp.json())["error"] == "internal"


class TestMyAds:

    @pytest.mark.asyncio
    async def test_requires_connection(self, api):
        assert (await api.get("/api/my/ads")).status == 401
        assert (await api.post("/api/my/ads", json={"price": "1"})).status == 401

    @pytest.mark.asyncio
    async def test_list(self, api, factory):
        await connect(api)
        resp = await api.get("/api/my/ads?advStatus=OPEN&limit=5")
        assert resp.status == 200

        call = factory.transport.call_args
        assert call.args[2] == "/api/v3/fiat/merchant/ads/pagination"
        params = query_params(call.args[3])
        assert params["advStatus"] == "OPEN"
        assert params["limit"] == "5"
        assert params["coinId"] == "USDT"

    @pytest.mark.asyncio
    async def test_invalid_status(self, api):
        await connect(api)
        assert (await api.get("/api/my/ads?advStatus=PAUSED")).status == 400

    @pytest.mark.asyncio
    async def test_save(self, api, factory):
        await connect(api)
        factory.transport.return_value = {"code": 0, "data": "adv-9"}

        resp = await api.post("/api/my/ads", json={"price": "25500", "side": "SELL"})

        assert (await resp.json()) == {"code": 0, "data": "adv-9"}
        assert factory.transport.call_args.kwargs["json_body"] == {"price": "25500", "side": "SELL"}


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_429_after_cap(self, factory):
        api = await _start(create_app(ServerConfig(rate_limit_max_requests=2), client_factory=factory))
        try:
            assert (await api.get("/api/health")).status == 200
            assert (await api.get("/api/health")).status == 200

            resp = await api.get("/api/health")
            body = await resp.json()
            assert resp.status == 429
            assert body["error"] == "rate_limited"
            assert body["retryable"] is True
            assert api.server.app[LIMITER_KEY].count_for("127.0.0.1") == 2
        finally:
            await api.close()

    @pytest.mark.asyncio
    async def test_rate_limited_before_session_gate(self, factory):
        api = await _start(create_app(ServerConfig(rate_limit_max_requests=1), client_factory=factory))
        try:
            assert (await api.get("/api/market/ads?side=BUY")).status == 401
            assert (await api.get("/api/market/ads?side=BUY")).status == 429
        finally:
            await api.close()
