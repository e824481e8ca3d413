"""Unit tests for the operator routes."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from channel_digest.adapters.web.server import create_app
from channel_digest.config import AppConfig
from channel_digest.domain.models import DigestOutcome
from channel_digest.errors import ConfigurationError

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _fake_bot(outcome=None):
    bot = MagicMock()
    bot.config = AppConfig(discord_token="t", channel_id="100", user_id="42")
    bot.start = AsyncMock()
    bot.test = AsyncMock()
    bot.stop = AsyncMock()
    bot.send_digest_now = AsyncMock(
        return_value=outcome or DigestOutcome(status="delivered", fired_at=NOW, message_count=3, chunks_sent=1)
    )
    bot.status.return_value = {
        "enabled": True,
        "connected": True,
        "sessionId": "abc123",
        "messagesStored": 3,
        "reconnectAttempts": 0,
        "gateway": {"state": "connected"},
        "trigger": {"enabled": True},
    }
    return bot


@pytest.fixture
def bot():
    return _fake_bot()


@pytest.fixture
def transport(bot):
    return ASGITransport(app=create_app(bot_factory=lambda: bot))


class TestCommandRoutes:
    @pytest.mark.asyncio
    async def test_health(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.status_code == 200
        assert resp.text == "OK"

    @pytest.mark.asyncio
    async def test_root_lists_endpoints(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/")
        assert "/start" in resp.text
        assert "/digest" in resp.text

    @pytest.mark.asyncio
    async def test_start(self, transport, bot):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/start")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "message": "Bot started"}
        bot.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_test_default_delay(self, transport, bot):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/test")
        assert resp.status_code == 200
        assert "30 seconds" in resp.json()["message"]
        bot.test.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_test_custom_delay(self, transport, bot):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/test", json={"delaySeconds": 5})
        assert resp.status_code == 200
        assert "5 seconds" in resp.json()["message"]
        bot.test.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_test_bad_delay(self, transport, bot):
        bot.test.side_effect = ConfigurationError("delay must not be negative (got -1)")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/test", json={"delaySeconds": -1})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_stop(self, transport, bot):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/stop")
        assert resp.json()["message"] == "Bot stopped"
        bot.stop.assert_awaited_once()


class TestDigestRoute:
    @pytest.mark.asyncio
    async def test_delivered(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/digest")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "delivered"
        assert data["messageCount"] == 3
        assert data["chunksSent"] == 1

    @pytest.mark.asyncio
    async def test_failed(self):
        bot = _fake_bot(DigestOutcome(status="failed", fired_at=NOW, reason="Cannot DM user 42"))
        transport = ASGITransport(app=create_app(bot_factory=lambda: bot))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/digest")
        assert resp.status_code == 502
        assert "Cannot DM user" in resp.json()["detail"]


class TestStatusRoute:
    @pytest.mark.asyncio
    async def test_status(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["enabled"] is True
        assert data["sessionId"] == "abc123"
        assert data["messagesStored"] == 3

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        def factory():
            raise ConfigurationError("Missing required settings: DISCORD_TOKEN")

        transport = ASGITransport(app=create_app(bot_factory=factory))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
            health = await ac.get("/health")
        assert resp.status_code == 503
        assert health.status_code == 200

    @pytest.mark.asyncio
    async def test_bot_created_once(self, bot):
        calls = []

        def factory():
            calls.append(1)
            return bot

        transport = ASGITransport(app=create_app(bot_factory=factory))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            await ac.post("/start")
            await ac.get("/status")
        assert calls == [1]
