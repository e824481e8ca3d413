"""Discord REST adapters — delivery and history backfill."""

from channel_digest.adapters.discord.rest import DiscordRestClient, DEFAULT_GATEWAY_URL, DISCORD_API_BASE
from channel_digest.adapters.discord.delivery import DirectMessageDelivery
from channel_digest.adapters.discord.backfill import backfill_history

__all__ = [
    "DiscordRestClient",
    "DEFAULT_GATEWAY_URL",
    "DISCORD_API_BASE",
    "DirectMessageDelivery",
    "backfill_history",
]
