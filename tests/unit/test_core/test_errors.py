"""Unit tests for the error envelope and exception handlers."""

import re

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from foxshrine_api.core.errors import (
    INSUFFICIENT_PERMISSIONS,
    NO_TOKEN,
    AuthError,
    ConflictError,
    InternalError,
    LockedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    register_exception_handlers,
    utc_timestamp,
)


class Payload(BaseModel):
    name: str


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/auth")
    async def auth() -> None:
        raise AuthError("Access token required", code=NO_TOKEN)

    @app.get("/forbidden")
    async def forbidden() -> None:
        raise PermissionDeniedError("config.write", ["config.read"])

    @app.get("/boom")
    async def boom() -> None:
        raise InternalError("Failed to fetch configuration", detail="connection refused")

    @app.post("/payload")
    async def payload(body: Payload) -> dict:
        return {"name": body.name}

    @app.get("/crash")
    async def crash() -> None:
        raise ValueError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorContent:
    def test_status_codes(self) -> None:
        assert ValidationError().status_code == 400
        assert AuthError().status_code == 401
        assert NotFoundError().status_code == 404
        assert ConflictError().status_code == 409
        assert LockedError().status_code == 423
        assert InternalError().status_code == 500

    def test_code_omitted_when_absent(self) -> None:
        assert NotFoundError("User not found").to_content() == {"success": False, "error": "User not found"}

    def test_permission_denied_lists_permissions(self) -> None:
        content = PermissionDeniedError("logs.read", ["config.read"]).to_content()
        assert content == {
            "success": False,
            "error": "Permission 'logs.read' required",
            "code": INSUFFICIENT_PERMISSIONS,
            "required": "logs.read",
            "userPermissions": ["config.read"],
        }

    def test_internal_error_without_detail(self) -> None:
        content = InternalError("Login failed").to_content()
        assert "message" not in content
        assert "timestamp" in content

    def test_timestamp_format(self) -> None:
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())


class TestHandlers:
    def test_auth_error_envelope(self, client: TestClient) -> None:
        response = client.get("/auth")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json() == {"success": False, "error": "Access token required", "code": NO_TOKEN}

    def test_permission_denied(self, client: TestClient) -> None:
        response = client.get("/forbidden")
        assert response.status_code == 403
        assert response.json()["required"] == "config.write"

    def test_internal_error_carries_detail(self, client: TestClient) -> None:
        body = client.get("/boom").json()
        assert body["error"] == "Failed to fetch configuration"
        assert body["message"] == "connection refused"

    def test_request_validation_is_400(self, client: TestClient) -> None:
        response = client.post("/payload", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("name:")

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/nowhere")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Endpoint not found"
        assert body["path"] == "/nowhere"

    def test_method_not_allowed_keeps_detail(self, client: TestClient) -> None:
        response = client.delete("/auth")
        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method Not Allowed"}

    def test_unhandled_exception_uses_envelope(self, client: TestClient) -> None:
        response = client.get("/crash")
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Internal server error"
        assert body["timestamp"].endswith("Z")
