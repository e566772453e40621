"""HTTP API for the Telegram Mini App.

Every authenticated route validates the initData sent in the
``Authorization: tma <initData>`` header. Clients only ever see one
generic rejection message; the detailed reason is logged. Uses aiohttp.
"""

import logging
import time

from aiohttp import web

from .config import Config, is_allowed
from .validator import Verdict, validate_launch


logger = logging.getLogger(__name__)

INVALID_INIT_DATA = "invalid init data"
TOO_LARGE = "init data too large"


def _now(request: web.Request) -> int:
    return int(request.app["clock"]())


def _check_init_data(request: web.Request, init_data: str) -> Verdict:
    config: Config = request.app["config"]
    verdict = validate_launch(
        init_data, config.bot_token, config.max_auth_age, config.mode, _now(request),
    )
    if not verdict.ok:
        logger.info("[Auth] %s %s rejected: %s",
                    request.method, request.path, verdict.result.value)
    return verdict


def _too_large(config: Config, init_data: str) -> bool:
    return len(init_data.encode("utf-8", "surrogatepass")) > config.max_payload_bytes


def _extract_init_data(request: web.Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("tma "):
        return None
    return auth[4:]


async def handle_health(request: web.Request) -> web.Response:
    """GET /api/health — simple health check, no auth required."""
    return web.json_response({"status": "ok", "time": _now(request)})


async def handle_me(request: web.Request) -> web.Response:
    """GET /api/me — return the launch user of a validated payload."""
    config: Config = request.app["config"]
    init_data = _extract_init_data(request)
    if init_data is None:
        return web.json_response({"error": INVALID_INIT_DATA}, status=401)
    if _too_large(config, init_data):
        return web.json_response({"error": TOO_LARGE}, status=413)

    verdict = _check_init_data(request, init_data)
    if not verdict.ok:
        return web.json_response({"error": INVALID_INIT_DATA}, status=401)
    if not is_allowed(config, verdict.user_id):
        return web.json_response({"error": "forbidden"}, status=403)

    return web.json_response({"user": verdict.user, "auth_date": verdict.auth_date})


async def handle_validate(request: web.Request) -> web.Response:
    """POST /api/validate — check an initData string, answer valid or not.

    Body: {"init_data": "..."}
    """
    config: Config = request.app["config"]
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "invalid JSON body"}, status=400)

    init_data = body.get("init_data") if isinstance(body, dict) else None
    if not isinstance(init_data, str):
        return web.json_response({"error": "init_data must be a string"}, status=400)
    if _too_large(config, init_data):
        return web.json_response({"error": TOO_LARGE}, status=413)

    verdict = _check_init_data(request, init_data)
    return web.json_response({"valid": verdict.ok})


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.Response:
    """Add CORS headers for the Mini App frontend."""
    if request.method == "OPTIONS":
        response = web.Response()
    else:
        response = await handler(request)

    allowed_origin = request.app.get("cors_origin", "*")
    response.headers["Access-Control-Allow-Origin"] = allowed_origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
    return response


@web.middleware
async def logging_middleware(request: web.Request, handler) -> web.Response:
    """Log all incoming requests."""
    start = time.monotonic()
    try:
        response = await handler(request)
        elapsed = (time.monotonic() - start) * 1000
        logger.info("[API] %s %s → %s (%.0fms)",
                    request.method, request.path, response.status, elapsed)
        return response
    except Exception as e:
        elapsed = (time.monotonic() - start) * 1000
        logger.error("[API] %s %s → ERROR: %s (%.0fms)",
                     request.method, request.path, e, elapsed)
        raise


def create_web_app(config: Config, clock=time.time) -> web.Application:
    """Create and configure the aiohttp web application."""
    app = web.Application(middlewares=[logging_middleware, cors_middleware])
    app["config"] = config
    app["clock"] = clock
    app["cors_origin"] = config.cors_origin

    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/me", handle_me)
    app.router.add_post("/api/validate", handle_validate)

    return app
