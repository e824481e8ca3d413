"""Seed the retention buffer from channel history on start."""

import sys
from datetime import datetime, timezone
from typing import Optional

import discord

from channel_digest.adapters.discord.rest import DiscordRestClient
from channel_digest.domain.models import event_from_message
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.errors import ProtocolError
from channel_digest.ports.inbound import IncomingMessage


def _log(msg: str):
    print(msg, file=sys.stderr)


def message_time(message: IncomingMessage) -> datetime:
    """Creation time from the payload, else decoded from the snowflake id."""
    if message.created_at is not None:
        return message.created_at.astimezone(timezone.utc)
    return discord.utils.snowflake_time(int(message.id))


async def backfill_history(
    rest: DiscordRestClient,
    buffer: RetentionBuffer,
    now: Optional[datetime] = None,
    limit: int = 100,
) -> int:
    """Record recent channel history not already in the buffer. Returns count added."""
    now = now or datetime.now(timezone.utc)
    payloads = await rest.fetch_channel_messages(buffer.source_channel_id, limit=limit)
    known = {e.id for e in buffer}
    added = 0
    # Discord returns newest first; record oldest first
    for payload in reversed(payloads):
        try:
            message = IncomingMessage.from_payload(payload)
            received_at = message_time(message)
        except (ProtocolError, ValueError) as e:
            _log(f"[Backfill] skipping malformed message: {e}")
            continue
        if message.id in known:
            continue
        event = event_from_message(message, received_at)
        if buffer.record(event, now=now, author_is_bot=message.is_bot):
            added += 1
    _log(f"[Backfill] recorded {added} of {len(payloads)} message(s) from channel history")
    return added
