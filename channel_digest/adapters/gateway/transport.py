"""Gateway websocket transport on aiohttp."""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from channel_digest.errors import ProtocolError, TransportError

_CLOSING_TYPES = (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED)


class AiohttpTransport:
    """GatewayTransport over one aiohttp websocket. Owns its ClientSession."""

    def __init__(self, session: aiohttp.ClientSession, ws: aiohttp.ClientWebSocketResponse):
        self._session = session
        self._ws = ws
        self._close_code: Optional[int] = None

    @classmethod
    async def connect(cls, url: str) -> "AiohttpTransport":
        session = aiohttp.ClientSession()
        try:
            ws = await session.ws_connect(url, heartbeat=None, autoping=True, max_msg_size=0)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await session.close()
            raise TransportError(f"Failed to open gateway socket: {e}") from e
        except BaseException:
            await session.close()
            raise
        return cls(session, ws)

    @property
    def closed(self) -> bool:
        return self._ws.closed

    @property
    def close_code(self) -> Optional[int]:
        return self._close_code if self._close_code is not None else self._ws.close_code

    async def send_json(self, payload: Dict[str, Any]) -> None:
        if self._ws.closed:
            raise TransportError("gateway socket is closed")
        try:
            await self._ws.send_str(json.dumps(payload))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise TransportError(f"send failed: {e}") from e

    async def receive(self) -> Optional[Dict[str, Any]]:
        msg = await self._ws.receive()
        if msg.type == aiohttp.WSMsgType.TEXT:
            try:
                return json.loads(msg.data)
            except ValueError as e:
                raise ProtocolError(f"invalid JSON frame: {e}") from e
        if msg.type == aiohttp.WSMsgType.BINARY:
            raise ProtocolError("unexpected binary frame (compression is not negotiated)")
        if msg.type in _CLOSING_TYPES:
            await self._release()
            return None
        if msg.type == aiohttp.WSMsgType.ERROR:
            await self._release()
            raise TransportError(f"gateway socket error: {self._ws.exception()}")
        raise ProtocolError(f"unexpected websocket message type: {msg.type}")

    async def close(self, code: int = 1000) -> None:
        if self._close_code is None:
            self._close_code = code
        try:
            await self._ws.close(code=code)
        finally:
            await self._session.close()

    async def _release(self):
        if not self._session.closed:
            await self._session.close()
