"""Client-side site configuration cache.

Holds the merged site configuration, falls back to a persisted snapshot and
then to the built-in defaults when the API cannot be reached, and applies
edits optimistically with a whole-snapshot revert on failure.
"""

import asyncio
import contextlib
import copy
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger

from foxshrine_api.client.auth import AuthClient, ClientError, response_json
from foxshrine_api.client.storage import LocalStorage
from foxshrine_api.lib.config_store import DEFAULT_SITE_CONFIG, deep_merge, set_path

CONFIG_KEY = "foxshrine_config"
CONFIG_TIMESTAMP_KEY = "foxshrine_config_timestamp"

DEFAULT_CONFIG: dict[str, Any] = deep_merge(DEFAULT_SITE_CONFIG, {})

LOAD_TIMEOUT = 10.0
BULK_TIMEOUT = 15.0
STREAM_TIMEOUT = 5.0
REFRESH_INTERVAL = 300.0


class ConfigUpdateError(ClientError):
    """A configuration write failed; the local config was reverted."""


def _now() -> datetime:
    return datetime.now(UTC)


class ConfigCache:
    """Site configuration as seen by one client.

    Args:
        auth: Client used for every API call.
        storage: Where the snapshot is persisted (defaults to the auth client's storage).
        refresh_interval: Seconds between background reloads.
    """

    def __init__(
        self,
        auth: AuthClient,
        *,
        storage: LocalStorage | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        self.auth = auth
        self.storage = storage if storage is not None else auth.storage
        self.refresh_interval = refresh_interval
        self.config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.error: str | None = None
        self.last_sync: datetime | None = None
        self.online = True
        self._listeners: list[Callable[[dict[str, Any]], None]] = []
        self._refresh_task: asyncio.Task[None] | None = None

    def subscribe(self, listener: Callable[[dict[str, Any]], None]) -> Callable[[], None]:
        """Call ``listener`` with every newly published config; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _publish(self, config: dict[str, Any]) -> None:
        self.config = config
        for listener in list(self._listeners):
            listener(config)

    def _persist(self, config: dict[str, Any]) -> None:
        self.storage.set_item(CONFIG_KEY, json.dumps(config, ensure_ascii=False))
        self.storage.set_item(CONFIG_TIMESTAMP_KEY, _now().isoformat())

    def _load_cached(self) -> dict[str, Any] | None:
        cached = self.storage.get_item(CONFIG_KEY)
        if cached is None:
            return None
        try:
            config = json.loads(cached)
        except ValueError as e:
            logger.warning(f"Failed to parse cached configuration: {e}")
            return None
        if not isinstance(config, dict):
            return None
        timestamp = self.storage.get_item(CONFIG_TIMESTAMP_KEY)
        with contextlib.suppress(TypeError, ValueError):
            self.last_sync = datetime.fromisoformat(timestamp)
        return config

    async def load(self) -> dict[str, Any]:
        """Fetch the configuration and merge it onto the defaults.

        Falls back to the persisted snapshot, then to the defaults, and
        records the failure in ``error``.
        """
        self.error = None
        try:
            response = await self.auth.request("GET", "/config", timeout=LOAD_TIMEOUT)
            if not response.is_success:
                msg = f"HTTP error! status: {response.status_code}"
                raise ClientError(msg, status_code=response.status_code)
            body = response_json(response)
            data = body.get("data")
            if not body.get("success") or not isinstance(data, dict):
                raise ClientError(body.get("error") or "Invalid response format")
        except (httpx.HTTPError, ClientError) as e:
            logger.warning(f"Failed to load configuration: {e}")
            cached = self._load_cached()
            if cached is not None:
                self.error = f"Using cached data ({e})"
                self._publish(cached)
                return cached
            self.error = str(e)
            config = copy.deepcopy(DEFAULT_CONFIG)
            self._publish(config)
            return config

        config = deep_merge(DEFAULT_CONFIG, data)
        self._publish(config)
        self.last_sync = _now()
        self._persist(config)
        logger.debug("Configuration loaded from the API")
        return config

    def _revert(self, snapshot: dict[str, Any], message: str) -> None:
        self.error = message
        self._publish(snapshot)

    async def update(self, key: str, value: Any, category: str = "general") -> dict[str, Any]:
        """Set one dot-path key locally, then persist it through the API.

        Returns:
            The persisted row reported by the API.

        Raises:
            ConfigUpdateError: The write failed; the previous config is restored.
        """
        self.error = None
        snapshot = self.config
        updated = copy.deepcopy(snapshot)
        set_path(updated, key, value)
        self._publish(updated)

        try:
            response = await self.auth.request("PUT", f"/config/{key}", json={"value": value, "category": category})
        except (httpx.HTTPError, ClientError) as e:
            self._revert(snapshot, str(e))
            raise ConfigUpdateError(str(e), status_code=getattr(e, "status_code", None)) from e

        body = response_json(response)
        if not response.is_success or not body.get("success"):
            message = body.get("error") or f"HTTP error! status: {response.status_code}"
            self._revert(snapshot, message)
            raise ConfigUpdateError(message, status_code=response.status_code)

        self._persist(updated)
        self.last_sync = _now()
        logger.info(f"Configuration updated: {key}")
        return body.get("data") or {}

    async def update_many(self, entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Send a bulk update and reload the whole configuration.

        Raises:
            ConfigUpdateError: The bulk write failed.
        """
        self.error = None
        try:
            response = await self.auth.request("PUT", "/config", json={"configs": entries}, timeout=BULK_TIMEOUT)
        except (httpx.HTTPError, ClientError) as e:
            self.error = str(e)
            raise ConfigUpdateError(str(e), status_code=getattr(e, "status_code", None)) from e

        body = response_json(response)
        if not response.is_success or not body.get("success"):
            message = body.get("error") or f"HTTP error! status: {response.status_code}"
            self.error = message
            raise ConfigUpdateError(message, status_code=response.status_code)

        await self.load()
        logger.info(f"Bulk configuration updated: {len(entries)} items")
        return body.get("data") or []

    async def get_stream_status(self) -> dict[str, Any] | None:
        """Current stream status, or None when it cannot be fetched."""
        try:
            response = await self.auth.request("GET", "/stream/status", timeout=STREAM_TIMEOUT)
        except (httpx.HTTPError, ClientError) as e:
            logger.warning(f"Failed to get stream status: {e}")
            return None
        body = response_json(response)
        if not response.is_success or not body.get("success"):
            return None
        return body.get("data")

    async def set_online(self, online: bool) -> None:
        """Record connectivity; coming back online triggers a reload."""
        was_online = self.online
        self.online = online
        if online and not was_online:
            await self.load()

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            if self.online:
                await self.load()

    def start(self) -> None:
        """Start reloading in the background every ``refresh_interval`` seconds."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        """Stop the background reload."""
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._refresh_task
        self._refresh_task = None
