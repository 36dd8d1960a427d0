"""
HTTP surface of the P2P ads proxy.

A small aiohttp.web application: every /api route passes the per-address
rate limiter, authenticated routes resolve the active client through the
CredentialSession, and client errors are mapped to distinct HTTP statuses.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiohttp import web

from . import __version__
from .constants import ERROR_CODE, GATEWAYS, DEFAULT_GATEWAY, SUCCESS_CODE
from .credential_session import ClientFactory, CredentialSession
from .exceptions import (
    DomainError,
    P2PClientError,
    RateLimitedError,
    TransportError,
    UnauthenticatedError,
    ValidationError,
)
from .models import (
    BothSidesResult,
    Credential,
    MarketAdsFilter,
    OwnAdsFilter,
    ServerConfig,
    resolve_gateway,
)
from .p2p_client import MexcP2PClient
from .rate_limiter import SlidingWindowRateLimiter
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", ServerConfig)
SESSION_KEY = web.AppKey("credential_session", CredentialSession)
LIMITER_KEY = web.AppKey("rate_limiter", SlidingWindowRateLimiter)
HTTP_SESSION_KEY = web.AppKey("session_manager", SessionManager)

_STATUS_BY_ERROR = {
    ValidationError: 400,
    UnauthenticatedError: 401,
    RateLimitedError: 429,
    DomainError: 400,
    TransportError: 502,
}


def error_body(exc: P2PClientError) -> Dict[str, Any]:
    """JSON body for a client error; the `error` field names the failure kind."""
    body: Dict[str, Any] = {"code": ERROR_CODE, "msg": exc.message, "error": exc.kind}
    if isinstance(exc, DomainError):
        body["upstreamCode"] = exc.code
    elif isinstance(exc, TransportError) and exc.status_code is not None:
        body["upstreamStatus"] = exc.status_code
    elif isinstance(exc, RateLimitedError):
        body["retryable"] = True
    return body


def error_response(exc: P2PClientError) -> web.Response:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        500,
    )
    return web.json_response(error_body(exc), status=status)


@web.middleware
async def rate_limit_middleware(request: web.Request, handler):
    if request.path.startswith("/api"):
        identity = request.remote or "unknown"
        request.app[LIMITER_KEY].check(identity)
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except P2PClientError as e:
        if not isinstance(e, (ValidationError, UnauthenticatedError, RateLimitedError)):
            logger.error(f"{request.method} {request.path} failed: {e}")
        return error_response(e)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return web.json_response(
            {"code": ERROR_CODE, "msg": "Internal server error", "error": "internal"},
            status=500,
        )


async def _json_body(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _query(request: web.Request, name: str, default: Optional[str] = None) -> Optional[str]:
    value = request.query.get(name)
    return default if value is None or value == "" else value


# Public routes

async def health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    })


async def get_config(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    return web.json_response({
        "code": SUCCESS_CODE,
        "data": {
            "gateways": [{"label": f"{name} ({url})", "value": name} for name, url in GATEWAYS.items()],
            "defaultGateway": DEFAULT_GATEWAY,
            "defaultFiatUnit": config.default_fiat_unit,
            "defaultCoinId": config.default_coin_id,
        },
    })


async def list_gateways(request: web.Request) -> web.Response:
    return web.json_response({
        "code": SUCCESS_CODE,
        "data": {"gateways": list(GATEWAYS), "endpoints": GATEWAYS},
    })


# Session routes

async def connect(request: web.Request) -> web.Response:
    body = await _json_body(request)
    api_key = body.get("apiKey") or ""
    secret_key = body.get("secretKey") or ""
    if not isinstance(api_key, str) or not isinstance(secret_key, str):
        raise ValidationError("API Key and Secret Key must be strings")
    credential = Credential(api_key=api_key, secret_key=secret_key)
    gateway = body.get("gateway") or DEFAULT_GATEWAY

    outcome = await request.app[SESSION_KEY].connect(credential, gateway)
    if not outcome.success:
        return web.json_response({"code": ERROR_CODE, "msg": outcome.message})
    return web.json_response({
        "code": SUCCESS_CODE,
        "msg": outcome.message,
        "data": {"gateway": outcome.gateway, "baseUrl": outcome.base_url},
    })


async def disconnect(request: web.Request) -> web.Response:
    await request.app[SESSION_KEY].disconnect()
    return web.json_response({"code": SUCCESS_CODE, "msg": "Disconnected"})


async def status(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    data = session.status()
    if session.connected:
        client = session.require_active()
        data["stats"] = client.statistics.to_dict()
        data["endpoints"] = client.monitor.endpoint_summary()
        data["recent"] = [metrics.to_dict() for metrics in client.monitor.get_recent_requests()]
    return web.json_response({"code": SUCCESS_CODE, "data": data})


# Authenticated routes

def _check_gateway(request: web.Request, client: MexcP2PClient) -> None:
    """A `gateway` query must name a known host and match the connected one."""
    gateway = _query(request, "gateway")
    if gateway is None:
        return
    resolve_gateway(gateway)
    if gateway != client.gateway:
        raise ValidationError(
            f"Gateway '{gateway}' does not match the connected gateway '{client.gateway}'"
        )


async def market_ads(request: web.Request) -> web.Response:
    client: MexcP2PClient = request.app[SESSION_KEY].require_active()
    _check_gateway(request, client)
    config = request.app[CONFIG_KEY]

    filters = MarketAdsFilter(
        fiat_unit=_query(request, "fiatUnit", config.default_fiat_unit),
        coin_id=_query(request, "coinId", config.default_coin_id),
        page=_query(request, "page", "1"),
        amount=_query(request, "amount"),
        quantity=_query(request, "quantity"),
        country_code=_query(request, "countryCode"),
        pay_method=_query(request, "payMethod"),
    )

    result = await client.fetch_ads(_query(request, "side"), filters)
    if isinstance(result, BothSidesResult):
        return web.json_response({"code": SUCCESS_CODE, "data": result.to_dict()})
    return web.json_response(result.to_dict())


async def my_ads(request: web.Request) -> web.Response:
    client: MexcP2PClient = request.app[SESSION_KEY].require_active()
    config = request.app[CONFIG_KEY]

    filters = OwnAdsFilter(
        coin_id=_query(request, "coinId", config.default_coin_id),
        adv_status=_query(request, "advStatus"),
        page=_query(request, "page", "1"),
        limit=_query(request, "limit", "10"),
    )
    result = await client.fetch_own_ads(filters)
    return web.json_response(result.to_dict())


async def save_ad(request: web.Request) -> web.Response:
    client: MexcP2PClient = request.app[SESSION_KEY].require_active()
    result = await client.save_or_update_ad(await _json_body(request))
    return web.json_response(result.to_dict())


async def _close_http_session(app: web.Application) -> None:
    await app[HTTP_SESSION_KEY].close()


def create_app(
    config: Optional[ServerConfig] = None,
    client_factory: Optional[ClientFactory] = None,
) -> web.Application:
    """
    Build the proxy application.

    Args:
        config: Server configuration (defaults apply when omitted)
        client_factory: Override for building signed clients (tests)
    """
    config = config or ServerConfig()
    session_manager = SessionManager(config.timeout)

    session_kwargs: Dict[str, Any] = {
        "session_manager": session_manager,
        "timeout": config.timeout,
        "sign_policy": config.sign_policy,
    }
    if client_factory is not None:
        session_kwargs["client_factory"] = client_factory

    app = web.Application(middlewares=[error_middleware, rate_limit_middleware])
    app[CONFIG_KEY] = config
    app[HTTP_SESSION_KEY] = session_manager
    app[SESSION_KEY] = CredentialSession(**session_kwargs)
    app[LIMITER_KEY] = SlidingWindowRateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_ms=config.rate_limit_window_ms,
    )

    app.router.add_get("/api/health", health)
    app.router.add_get("/api/config", get_config)
    app.router.add_get("/api/gateways", list_gateways)
    app.router.add_post("/api/connect", connect)
    app.router.add_post("/api/disconnect", disconnect)
    app.router.add_get("/api/status", status)
    app.router.add_get("/api/market/ads", market_ads)
    app.router.add_get("/api/my/ads", my_ads)
    app.router.add_post("/api/my/ads", save_ad)

    app.on_cleanup.append(_close_http_session)

    logger.info(
        f"P2P proxy app created (sign policy: {config.sign_policy.value}, "
        f"rate limit: {config.rate_limit_max_requests}/{config.rate_limit_window_ms}ms)"
    )
    return app


def run(config: ServerConfig) -> None:
    """Serve the proxy until interrupted."""
    web.run_app(create_app(config), host=config.host, port=config.port, print=None)
