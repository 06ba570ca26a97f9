"""Async API client holding the user's tokens.

Every authenticated call goes through ``AuthClient.request``, which retries
once after refreshing the token pair when the API answers 401.
"""

from typing import Any

import httpx
from loguru import logger

from foxshrine_api.client.storage import LocalStorage

DEFAULT_BASE_URL = "http://localhost:3002/api"
DEFAULT_TIMEOUT = 10.0

ACCESS_TOKEN_KEY = "foxshrine_access_token"
REFRESH_TOKEN_KEY = "foxshrine_refresh_token"

ADMIN_ROLES = frozenset({"Admin", "Super Admin"})


class ClientError(Exception):
    """Base class for client-side API failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(ClientError):
    """Login or registration was rejected."""


class SessionExpiredError(ClientError):
    """The session could not be refreshed; stored credentials were cleared."""


def response_json(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body, or return an empty dict."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class AuthClient:
    """Session-aware client for the Fox Shrine API.

    Args:
        base_url: API root including the ``/api`` prefix.
        storage: Where tokens are kept between runs.
        http: Client to send requests with; one is created when omitted.
        timeout: Default request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        storage: LocalStorage | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else LocalStorage()
        self.http = http if http is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http is None
        self.user: dict[str, Any] | None = None

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @property
    def access_token(self) -> str | None:
        return self.storage.get_item(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> str | None:
        return self.storage.get_item(REFRESH_TOKEN_KEY)

    def store_tokens(self, tokens: dict[str, Any]) -> None:
        self.storage.set_item(ACCESS_TOKEN_KEY, tokens["accessToken"])
        self.storage.set_item(REFRESH_TOKEN_KEY, tokens["refreshToken"])

    def clear_tokens(self) -> None:
        self.storage.remove_item(ACCESS_TOKEN_KEY)
        self.storage.remove_item(REFRESH_TOKEN_KEY)
        self.user = None

    async def _send(self, method: str, path: str, token: str | None, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self.http.request(method, self._url(path), headers=headers, **kwargs)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request with the stored bearer token.

        On a 401 the token pair is refreshed once and the request retried.

        Raises:
            SessionExpiredError: The refresh failed or the retry was also
                rejected; stored credentials have been cleared.
            httpx.HTTPError: Transport failure.
        """
        token = self.access_token
        response = await self._send(method, path, token, **kwargs)
        if response.status_code != 401 or not token:
            return response

        if not await self.refresh():
            self.clear_tokens()
            msg = "Session expired"
            raise SessionExpiredError(msg, status_code=401)

        response = await self._send(method, path, self.access_token, **kwargs)
        if response.status_code == 401:
            self.clear_tokens()
            msg = "Session expired"
            raise SessionExpiredError(msg, status_code=401)
        return response

    async def refresh(self) -> bool:
        """Exchange the stored refresh token for a new pair.

        Returns:
            True when new tokens were stored.
        """
        refresh_token = self.refresh_token
        if not refresh_token:
            return False
        try:
            response = await self.http.post(self._url("/auth/refresh"), json={"refreshToken": refresh_token})
        except httpx.HTTPError as e:
            logger.warning(f"Token refresh failed: {e}")
            return False
        body = response_json(response)
        tokens = body.get("tokens")
        if not response.is_success or not isinstance(tokens, dict):
            logger.info(f"Token refresh rejected ({response.status_code})")
            return False
        self.store_tokens(tokens)
        return True

    async def _authenticate(self, path: str, payload: dict[str, Any], fallback: str) -> dict[str, Any]:
        response = await self.http.post(self._url(path), json=payload)
        body = response_json(response)
        if not response.is_success:
            raise AuthenticationError(body.get("error") or fallback, status_code=response.status_code)
        self.store_tokens(body["tokens"])
        self.user = body["user"]
        return self.user

    async def login(self, username: str, password: str) -> dict[str, Any]:
        """Log in with a username or email; returns the user profile."""
        return await self._authenticate("/auth/login", {"username": username, "password": password}, "Login failed")

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> dict[str, Any]:
        """Create an account and log into it; returns the user profile."""
        payload: dict[str, Any] = {"username": username, "email": email, "password": password}
        if display_name:
            payload["displayName"] = display_name
        return await self._authenticate("/auth/register", payload, "Registration failed")

    async def logout(self) -> None:
        """Close the server session (best effort) and forget the tokens."""
        try:
            if self.access_token:
                await self.request("POST", "/auth/logout")
        except (httpx.HTTPError, ClientError) as e:
            logger.warning(f"Logout error: {e}")
        finally:
            self.clear_tokens()

    async def profile(self) -> dict[str, Any] | None:
        """Load the current user's profile; None (and tokens cleared) when not logged in."""
        if not self.access_token:
            return None
        try:
            response = await self.request("GET", "/auth/profile")
        except (httpx.HTTPError, ClientError) as e:
            logger.warning(f"Failed to load user profile: {e}")
            self.clear_tokens()
            return None
        if not response.is_success:
            self.clear_tokens()
            return None
        self.user = response_json(response).get("user")
        return self.user

    def has_permission(self, permission: str) -> bool:
        return bool(self.user) and permission in (self.user.get("permissions") or [])

    def has_role(self, role: str) -> bool:
        return bool(self.user) and self.user.get("role") == role

    def is_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") in ADMIN_ROLES

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
