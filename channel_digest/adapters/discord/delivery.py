"""Direct-message delivery — implements DeliveryPort."""

import sys
from typing import List

from channel_digest.adapters.discord.rest import DiscordRestClient
from channel_digest.config import require
from channel_digest.errors import DeliveryError


def _log(msg: str):
    print(msg, file=sys.stderr)


class DirectMessageDelivery:
    """Sends digest chunks, in order, to one fixed recipient's DM channel."""

    def __init__(self, rest: DiscordRestClient, recipient_id: str):
        self._rest = rest
        self._recipient_id = recipient_id

    async def deliver(self, chunks: List[str]) -> int:
        recipient = require(self._recipient_id, "USER_ID")
        to_send = [c for c in chunks if c.strip()]
        if not to_send:
            return 0
        channel_id = await self._rest.open_dm_channel(recipient)
        sent = 0
        for chunk in to_send:
            try:
                await self._rest.send_message(channel_id, chunk)
            except DeliveryError as e:
                # Remaining chunks are dropped; the digest counts as one failure
                raise DeliveryError(
                    f"chunk {sent + 1}/{len(to_send)} failed, {len(to_send) - sent - 1} not sent: {e}",
                    status=e.status,
                ) from e
            sent += 1
        _log(f"[Delivery] sent {sent} message(s) to user {recipient}")
        return sent
