"""Integration tests for the health and liveness endpoints."""

from unittest.mock import AsyncMock, patch


class TestHealth:
    async def test_healthy(self, client) -> None:
        with patch("foxshrine_api.core.database.ping", AsyncMock(return_value=True)):
            resp = await client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["uptime"] >= 0
        assert body["version"]

    async def test_unreachable_store(self, client) -> None:
        with patch("foxshrine_api.core.database.ping", AsyncMock(side_effect=ConnectionRefusedError("refused"))):
            resp = await client.get("/api/health")
        assert resp.status_code == 503
        body = resp.json()
        assert body["status"] == "unhealthy"
        assert body["error"] == "refused"

    async def test_liveness(self, client) -> None:
        resp = await client.get("/api/test")
        assert resp.json()["message"] == "API is working"

    async def test_unknown_route(self, client) -> None:
        resp = await client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json()["path"] == "/api/nope"
