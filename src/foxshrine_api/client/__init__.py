"""Async client for the Fox Shrine API: token handling and the site configuration cache."""

from foxshrine_api.client.auth import AuthClient, AuthenticationError, ClientError, SessionExpiredError
from foxshrine_api.client.config_cache import DEFAULT_CONFIG, ConfigCache, ConfigUpdateError
from foxshrine_api.client.storage import LocalStorage

__all__ = [
    "DEFAULT_CONFIG",
    "AuthClient",
    "AuthenticationError",
    "ClientError",
    "ConfigCache",
    "ConfigUpdateError",
    "LocalStorage",
    "SessionExpiredError",
]
