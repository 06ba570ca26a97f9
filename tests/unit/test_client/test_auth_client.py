"""Tests for the token-holding API client, against an httpx mock transport."""

import json
from collections.abc import Callable

import httpx
import pytest

from foxshrine_api.client.auth import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    AuthClient,
    AuthenticationError,
    SessionExpiredError,
)
from foxshrine_api.client.storage import LocalStorage

BASE_URL = "http://shrine.test/api"

USER = {
    "id": 1,
    "username": "foxfan",
    "email": "foxfan@example.com",
    "displayName": "Foxfan",
    "role": "Moderator",
    "permissions": ["config.read", "config.write"],
}


def _client(handler: Callable[[httpx.Request], httpx.Response], storage: LocalStorage | None = None) -> AuthClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AuthClient(BASE_URL, storage=storage or LocalStorage(), http=http)


def _tokens(suffix: str) -> dict[str, str]:
    return {"accessToken": f"access-{suffix}", "refreshToken": f"refresh-{suffix}"}


class TestLogin:
    async def test_login_stores_tokens(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/auth/login"
            assert json.loads(request.content) == {"username": "foxfan", "password": "secret123"}
            return httpx.Response(200, json={"success": True, "user": USER, "tokens": _tokens("1")})

        client = _client(handler)
        user = await client.login("foxfan", "secret123")

        assert user == USER
        assert client.access_token == "access-1"
        assert client.refresh_token == "refresh-1"
        assert client.is_authenticated

    async def test_rejected_login(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "error": "Invalid credentials"})

        client = _client(handler)
        with pytest.raises(AuthenticationError, match="Invalid credentials") as exc_info:
            await client.login("foxfan", "wrong")
        assert exc_info.value.status_code == 401
        assert client.access_token is None

    async def test_register_sends_display_name(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True, "user": USER, "tokens": _tokens("r")})

        client = _client(handler)
        await client.register("foxfan", "foxfan@example.com", "secret123", display_name="Foxfan")
        assert seen[0]["displayName"] == "Foxfan"
        assert client.access_token == "access-r"


class TestRequest:
    async def test_attaches_bearer_token(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-1")

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer access-1"
            return httpx.Response(200, json={"success": True})

        response = await _client(handler, storage).request("GET", "/config")
        assert response.status_code == 200

    async def test_refreshes_once_and_retries(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-old")
        storage.set_item(REFRESH_TOKEN_KEY, "refresh-old")
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(f"{request.url.path} {request.headers.get('Authorization')}")
            if request.url.path == "/api/auth/refresh":
                assert json.loads(request.content) == {"refreshToken": "refresh-old"}
                return httpx.Response(200, json={"success": True, "tokens": _tokens("new")})
            if request.headers["Authorization"] == "Bearer access-old":
                return httpx.Response(401, json={"success": False, "code": "TOKEN_EXPIRED"})
            return httpx.Response(200, json={"success": True})

        client = _client(handler, storage)
        response = await client.request("GET", "/auth/profile")

        assert response.status_code == 200
        assert calls == [
            "/api/auth/profile Bearer access-old",
            "/api/auth/refresh None",
            "/api/auth/profile Bearer access-new",
        ]
        assert storage.get_item(REFRESH_TOKEN_KEY) == "refresh-new"

    async def test_failed_refresh_clears_session(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-old")
        storage.set_item(REFRESH_TOKEN_KEY, "refresh-old")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False})

        client = _client(handler, storage)
        with pytest.raises(SessionExpiredError, match="Session expired"):
            await client.request("GET", "/auth/profile")
        assert client.access_token is None
        assert client.refresh_token is None

    async def test_second_401_does_not_loop(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-old")
        storage.set_item(REFRESH_TOKEN_KEY, "refresh-old")
        refreshes = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal refreshes
            if request.url.path == "/api/auth/refresh":
                refreshes += 1
                return httpx.Response(200, json={"success": True, "tokens": _tokens("new")})
            return httpx.Response(401, json={"success": False})

        with pytest.raises(SessionExpiredError):
            await _client(handler, storage).request("GET", "/config")
        assert refreshes == 1
        assert storage.get_item(ACCESS_TOKEN_KEY) is None

    async def test_anonymous_401_is_returned(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "code": "NO_TOKEN"})

        response = await _client(handler).request("GET", "/auth/profile")
        assert response.status_code == 401


class TestSession:
    async def test_logout_clears_tokens_even_on_failure(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-1")

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        client = _client(handler, storage)
        await client.logout()
        assert client.access_token is None

    async def test_profile_without_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert await _client(handler).profile() is None

    async def test_profile_loads_user(self) -> None:
        storage = LocalStorage()
        storage.set_item(ACCESS_TOKEN_KEY, "access-1")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "user": USER})

        client = _client(handler, storage)
        assert await client.profile() == USER
        assert client.has_permission("config.write")
        assert not client.has_permission("config.delete")
        assert client.has_role("Moderator")
        assert not client.is_admin()

    async def test_checks_without_user(self) -> None:
        client = _client(lambda request: httpx.Response(200))
        assert not client.has_permission("config.read")
        assert not client.has_role("Member")
        assert not client.is_admin()
        assert not client.is_authenticated

    async def test_context_manager_keeps_injected_client_open(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        async with AuthClient(BASE_URL, storage=LocalStorage(), http=http):
            pass
        assert not http.is_closed
        await http.aclose()
