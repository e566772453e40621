"""Tests for the Mini App HTTP API."""

import json
import logging

import pytest

from launch_guard.config import Config
from launch_guard.signature import sign_fields
from launch_guard.validator import Mode
from launch_guard.web_api import INVALID_INIT_DATA, create_web_app


BOT_TOKEN = "123456:ABC-DEF1234ghIkl-zyx57W2v1u123ew11"
NOW = 1700000000


def _make_config(**kwargs) -> Config:
    defaults = {"bot_token": BOT_TOKEN, "max_auth_age": 3600}
    defaults.update(kwargs)
    return Config(**defaults)


def _init_data(user_id: int = 42, auth_date: int = NOW - 60, bot_token: str = BOT_TOKEN) -> str:
    user = json.dumps({"id": user_id, "first_name": "Test"})
    return sign_fields({"auth_date": str(auth_date), "query_id": "AAF", "user": user}, bot_token)


def _tma(init_data: str) -> dict:
    """Return an Authorization header dict for initData."""
    return {"Authorization": f"tma {init_data}"}


@pytest.fixture
def app():
    return create_web_app(_make_config(), clock=lambda: NOW)


class TestHealth:
    @pytest.mark.asyncio
    async def test_no_auth(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok", "time": NOW}

    @pytest.mark.asyncio
    async def test_cors_headers(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]

    @pytest.mark.asyncio
    async def test_options(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.options("/api/me")
        assert resp.status == 200


class TestMe:
    @pytest.mark.asyncio
    async def test_valid(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma(_init_data()))
        assert resp.status == 200
        data = await resp.json()
        assert data["user"] == {"id": 42, "first_name": "Test"}
        assert data["auth_date"] == NOW - 60

    @pytest.mark.asyncio
    async def test_missing_header(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/me")
        assert resp.status == 401
        assert await resp.json() == {"error": INVALID_INIT_DATA}

    @pytest.mark.asyncio
    async def test_bearer_scheme_rejected(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers={"Authorization": f"Bearer {_init_data()}"})
        assert resp.status == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("init_data", [
        _init_data(bot_token="other:token"),
        _init_data(auth_date=NOW - 7200),
        "auth_date=%ZZ",
        "query_id=AAF&hash=" + "0" * 64,
        f"auth_date={NOW}&hash=" + "0" * 64,
    ])
    async def test_every_failure_is_generic(self, app, aiohttp_client, init_data):
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma(init_data))
        assert resp.status == 401
        assert await resp.json() == {"error": INVALID_INIT_DATA}

    @pytest.mark.asyncio
    async def test_reason_logged(self, app, aiohttp_client, caplog):
        caplog.set_level(logging.INFO, logger="launch_guard")
        client = await aiohttp_client(app)
        await client.get("/api/me", headers=_tma(_init_data(auth_date=NOW - 7200)))
        assert "rejected: stale" in caplog.text
        assert BOT_TOKEN not in caplog.text

    @pytest.mark.asyncio
    async def test_too_large(self, aiohttp_client):
        app = create_web_app(_make_config(max_payload_bytes=100), clock=lambda: NOW)
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma(_init_data()))
        assert resp.status == 413

    @pytest.mark.asyncio
    async def test_allowlist_forbids(self, aiohttp_client):
        app = create_web_app(_make_config(allowed_users={7}), clock=lambda: NOW)
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma(_init_data(user_id=42)))
        assert resp.status == 403

    @pytest.mark.asyncio
    async def test_allowlist_permits(self, aiohttp_client):
        app = create_web_app(_make_config(allowed_users={42}), clock=lambda: NOW)
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma(_init_data(user_id=42)))
        assert resp.status == 200

    @pytest.mark.asyncio
    async def test_bypass_mode_accepts_anything(self, aiohttp_client):
        app = create_web_app(_make_config(mode=Mode.BYPASS), clock=lambda: NOW)
        client = await aiohttp_client(app)
        resp = await client.get("/api/me", headers=_tma("garbage"))
        assert resp.status == 200
        assert await resp.json() == {"user": None, "auth_date": None}


class TestValidateEndpoint:
    @pytest.mark.asyncio
    async def test_valid(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/validate", json={"init_data": _init_data()})
        assert resp.status == 200
        assert await resp.json() == {"valid": True}

    @pytest.mark.asyncio
    async def test_invalid_reveals_nothing(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/validate", json={"init_data": _init_data(auth_date=1)})
        assert resp.status == 200
        assert await resp.json() == {"valid": False}

    @pytest.mark.asyncio
    async def test_bad_json(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/validate", data="not json")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_non_utf8_body(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post(
            "/api/validate", data=b"\xff\xfe", headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"init_data": 5}, [1, 2], "text"])
    async def test_wrong_shape(self, app, aiohttp_client, body):
        client = await aiohttp_client(app)
        resp = await client.post("/api/validate", json=body)
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_too_large(self, aiohttp_client):
        app = create_web_app(_make_config(max_payload_bytes=10), clock=lambda: NOW)
        client = await aiohttp_client(app)
        resp = await client.post("/api/validate", json={"init_data": _init_data()})
        assert resp.status == 413
