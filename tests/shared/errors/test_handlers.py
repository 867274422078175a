"""Tests for the JSON error handlers."""

import pytest
import pytest_asyncio
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from src.config.settings import Settings, settings
from src.features.auth.exceptions import RefreshTokenNotFoundException
from src.shared.errors.exceptions import ConflictException, InternalServerException
from src.shared.errors.handlers import register_exception_handlers


class Payload(BaseModel):
    name: str
    count: int


def build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/api/conflict")
    async def conflict():
        raise ConflictException(detail="Already there", code="DUPLICATE")

    @app.get("/api/stolen")
    async def stolen():
        raise RefreshTokenNotFoundException()

    @app.get("/api/internal")
    async def internal():
        raise InternalServerException()

    @app.get("/api/crash")
    async def crash():
        raise RuntimeError("database exploded")

    @app.post("/api/items")
    async def create_item(payload: Payload):
        return payload

    return app


@pytest_asyncio.fixture
async def error_client():
    transport = ASGITransport(app=build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestAPIExceptionHandler:
    async def test_body_shape(self, error_client):
        response = await error_client.get("/api/conflict")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"success": False, "error": "Already there", "code": "DUPLICATE"}
        assert "set-cookie" not in response.headers

    async def test_flagged_errors_clear_refresh_cookie(self, error_client):
        response = await error_client.get("/api/stolen")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"
        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith("refreshtoken=")
        assert "max-age=0" in cookie

    async def test_internal_error(self, error_client):
        response = await error_client.get("/api/internal")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["code"] == "INTERNAL_ERROR"


class TestValidationHandler:
    async def test_per_field_details(self, error_client):
        response = await error_client.post("/api/items", json={"count": "many"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert {detail["field"] for detail in body["details"]} == {"name", "count"}


class TestNotFoundHandler:
    async def test_unknown_api_endpoint(self, error_client):
        response = await error_client.get("/api/missing")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "ENDPOINT_NOT_FOUND"
        assert "GET /api/missing" in response.json()["error"]

    async def test_method_not_allowed(self, error_client):
        response = await error_client.delete("/api/conflict")

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"


class TestUnhandledExceptionHandler:
    async def test_message_hidden_by_default(self, error_client, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)

        response = await error_client.get("/api/crash")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}

    async def test_message_shown_in_debug(self, error_client, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)

        response = await error_client.get("/api/crash")

        assert response.json()["error"] == "database exploded"

    async def test_message_hidden_in_production_even_in_debug(self, error_client, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)
        monkeypatch.setattr(settings, "environment", "production")

        response = await error_client.get("/api/crash")

        assert response.json()["error"] == "Internal server error"


class TestPerAppSettings:
    @pytest_asyncio.fixture
    async def scoped_client(self, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)
        app = build_app()
        app.state.settings = Settings(
            _env_file=None,
            database_url="sqlite+aiosqlite:///:memory:",
            jwt_secret="access-secret",
            jwt_refresh_secret="refresh-secret",
            api_prefix="/api/v2",
            debug=True,
            environment="development",
        )
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    async def test_cookie_cleared_on_the_apps_own_path(self, scoped_client):
        response = await scoped_client.get("/api/stolen")
        assert "path=/api/v2/auth" in response.headers["set-cookie"].lower()

    async def test_debug_message_follows_the_apps_own_flag(self, scoped_client):
        response = await scoped_client.get("/api/crash")
        assert response.json()["error"] == "database exploded"

    async def test_not_found_uses_the_apps_own_prefix(self, scoped_client):
        response = await scoped_client.get("/api/missing")
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"
