"""Tests for direct-message delivery and history backfill."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from channel_digest.adapters.discord.backfill import backfill_history, message_time
from channel_digest.adapters.discord.delivery import DirectMessageDelivery
from channel_digest.domain.models import Event
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.errors import ConfigurationError, DeliveryError
from channel_digest.ports.inbound import IncomingMessage

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _rest(send_side_effect=None):
    rest = MagicMock()
    rest.open_dm_channel = AsyncMock(return_value="dm1")
    rest.send_message = AsyncMock(side_effect=send_side_effect, return_value="m1")
    return rest


class TestDirectMessageDelivery:
    @pytest.mark.asyncio
    async def test_sends_chunks_in_order(self):
        rest = _rest()
        delivery = DirectMessageDelivery(rest, "42")
        sent = await delivery.deliver(["one", "two", "three"])
        assert sent == 3
        rest.open_dm_channel.assert_awaited_once_with("42")
        assert [c.args for c in rest.send_message.await_args_list] == [
            ("dm1", "one"),
            ("dm1", "two"),
            ("dm1", "three"),
        ]

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining(self):
        rest = _rest(send_side_effect=["m1", DeliveryError("boom", status=500), "m3"])
        delivery = DirectMessageDelivery(rest, "42")
        with pytest.raises(DeliveryError) as exc:
            await delivery.deliver(["one", "two", "three"])
        assert rest.send_message.await_count == 2
        assert exc.value.status == 500
        assert "chunk 2/3" in str(exc.value)

    @pytest.mark.asyncio
    async def test_blank_chunks_skipped(self):
        rest = _rest()
        delivery = DirectMessageDelivery(rest, "42")
        assert await delivery.deliver(["", "  ", "real"]) == 1
        rest.send_message.assert_awaited_once_with("dm1", "real")

    @pytest.mark.asyncio
    async def test_nothing_to_send(self):
        rest = _rest()
        delivery = DirectMessageDelivery(rest, "42")
        assert await delivery.deliver([]) == 0
        rest.open_dm_channel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_recipient(self):
        delivery = DirectMessageDelivery(_rest(), "")
        with pytest.raises(ConfigurationError):
            await delivery.deliver(["one"])

    @pytest.mark.asyncio
    async def test_dm_channel_refused(self):
        rest = _rest()
        rest.open_dm_channel = AsyncMock(side_effect=DeliveryError("DMs disabled", status=403))
        delivery = DirectMessageDelivery(rest, "42")
        with pytest.raises(DeliveryError):
            await delivery.deliver(["one"])
        rest.send_message.assert_not_awaited()


def _payload(message_id, at, channel="100", bot=False, content="hi"):
    return {
        "id": str(message_id),
        "channel_id": channel,
        "content": content,
        "timestamp": at.isoformat(),
        "author": {"id": "7", "username": "bob", "global_name": "Bobby", "bot": bot},
    }


class TestMessageTime:
    def test_uses_payload_timestamp(self):
        message = IncomingMessage.from_payload(_payload(1, NOW))
        assert message_time(message) == NOW

    def test_falls_back_to_snowflake(self):
        message = IncomingMessage.from_payload({
            "id": "175928847299117063",
            "channel_id": "100",
            "author": {"id": "7", "username": "bob"},
        })
        assert message_time(message) == datetime(2016, 4, 30, 11, 18, 25, 796000, tzinfo=timezone.utc)


class TestBackfill:
    @pytest.mark.asyncio
    async def test_records_history_oldest_first(self):
        buffer = RetentionBuffer("100", timedelta(hours=24))
        rest = MagicMock()
        # newest first, like Discord
        rest.fetch_channel_messages = AsyncMock(return_value=[
            _payload(3, NOW - timedelta(minutes=5), content="newest"),
            _payload(2, NOW - timedelta(hours=1), bot=True),
            _payload(1, NOW - timedelta(hours=2), content="oldest"),
            _payload(0, NOW - timedelta(hours=30), content="too old"),
        ])
        added = await backfill_history(rest, buffer, now=NOW)
        assert added == 2
        assert [e.id for e in buffer] == ["1", "3"]
        assert next(iter(buffer)).author_display_name == "Bobby"
        rest.fetch_channel_messages.assert_awaited_once_with("100", limit=100)

    @pytest.mark.asyncio
    async def test_skips_known_and_malformed(self):
        buffer = RetentionBuffer("100", timedelta(hours=24))
        buffer.record(Event("1", "Bobby", "7", "hi", NOW - timedelta(hours=2), "100"), now=NOW)
        rest = MagicMock()
        rest.fetch_channel_messages = AsyncMock(return_value=[
            _payload(2, NOW - timedelta(minutes=1)),
            {"content": "no id"},
            _payload(1, NOW - timedelta(hours=2)),
        ])
        added = await backfill_history(rest, buffer, now=NOW)
        assert added == 1
        assert [e.id for e in buffer] == ["1", "2"]
