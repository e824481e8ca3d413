"""Discord REST client using aiohttp."""

import asyncio
import sys
from typing import Any, Dict, List

import aiohttp

from channel_digest import __version__
from channel_digest.errors import DeliveryError, TransportError

DISCORD_API_BASE = "https://discord.com/api/v10"
DEFAULT_GATEWAY_URL = "wss://gateway.discord.gg"
GATEWAY_QUERY = "/?v=10&encoding=json"

_TIMEOUT = aiohttp.ClientTimeout(total=15)


def _log(msg: str):
    print(msg, file=sys.stderr)


class DiscordRestClient:
    """Async Discord REST API client authenticated with a bot token."""

    def __init__(self, token: str, api_base: str = DISCORD_API_BASE):
        self._token = token
        self._api_base = api_base

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self._token}",
            "Content-Type": "application/json",
            "User-Agent": f"DiscordBot (https://github.com/channel-digest, {__version__})",
        }

    async def get_gateway_url(self) -> str:
        """Gateway websocket URL with version/encoding query.

        Falls back to the well-known gateway host if the lookup fails.
        """
        url = f"{self._api_base}/gateway/bot"
        try:
            async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
                async with session.get(url, headers=self._headers()) as resp:
                    data = await resp.json()
                    base = data.get("url") if resp.status == 200 and isinstance(data, dict) else None
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            _log(f"[DiscordRest] gateway lookup failed: {e}")
            base = None
        if not base:
            base = DEFAULT_GATEWAY_URL
        return base.rstrip("/") + GATEWAY_QUERY

    async def open_dm_channel(self, user_id: str) -> str:
        """Create (or fetch) the DM channel with user_id and return its id."""
        url = f"{self._api_base}/users/@me/channels"
        try:
            async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
                async with session.post(url, headers=self._headers(), json={"recipient_id": user_id}) as resp:
                    if resp.status == 403:
                        raise DeliveryError(f"Cannot DM user {user_id} - they may have DMs disabled", status=403)
                    if resp.status >= 300:
                        text = await resp.text()
                        raise DeliveryError(
                            f"Failed to create DM channel ({resp.status}): {text[:200]}", status=resp.status
                        )
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DeliveryError(f"Failed to create DM channel: {e}") from e
        if not isinstance(data, dict) or "id" not in data:
            raise DeliveryError(f"Unexpected DM channel response: {str(data)[:200]}")
        return str(data["id"])

    async def send_message(self, channel_id: str, content: str) -> str:
        """Post content to channel_id. Returns the new message id."""
        url = f"{self._api_base}/channels/{channel_id}/messages"
        try:
            async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
                async with session.post(url, headers=self._headers(), json={"content": content}) as resp:
                    if resp.status >= 300:
                        text = await resp.text()
                        raise DeliveryError(
                            f"Failed to send message ({resp.status}): {text[:200]}", status=resp.status
                        )
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DeliveryError(f"Failed to send message: {e}") from e
        return str(data.get("id", "")) if isinstance(data, dict) else ""

    async def fetch_channel_messages(self, channel_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent messages of a channel, newest first (Discord's order)."""
        url = f"{self._api_base}/channels/{channel_id}/messages"
        try:
            async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
                async with session.get(url, headers=self._headers(), params={"limit": str(limit)}) as resp:
                    if resp.status >= 300:
                        text = await resp.text()
                        raise TransportError(f"Discord API error ({resp.status}): {text[:200]}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(f"Failed to fetch channel messages: {e}") from e
        return data if isinstance(data, list) else []
