"""Gateway session — handshake, heartbeat, dispatch and reconnection.

State machine:
    DISCONNECTED -> CONNECTING             start()/connect()
    CONNECTING -> AWAITING_IDENTIFY_ACK    transport open
    (HELLO: heartbeat started, then IDENTIFY sent)
    AWAITING_IDENTIFY_ACK -> CONNECTED     READY dispatch
    any -> DISCONNECTED                    transport close or stop()
"""

import asyncio
import platform
import sys
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import discord

from channel_digest.adapters.gateway.heartbeat import HeartbeatMonitor
from channel_digest.adapters.gateway.reconnect import BackoffReconnect, ReconnectPolicy
from channel_digest.domain.models import SessionState, SessionStatus, event_from_message
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.errors import ProtocolError, TransportError
from channel_digest.ports.inbound import GatewayFrame, IncomingMessage
from channel_digest.ports.outbound import GatewayTransport, TransportFactory

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_HELLO = 10
OP_HEARTBEAT_ACK = 11

# GUILDS | GUILD_MESSAGES == 513
GATEWAY_INTENTS = discord.Intents(guilds=True, guild_messages=True).value

ZOMBIE_CLOSE_CODE = 4000


def _log(msg: str):
    print(msg, file=sys.stderr)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GatewaySession:
    """One gateway connection feeding a RetentionBuffer.

    Holds at most one transport. connect() is a no-op while a connection is
    in flight or established; stop() cancels heartbeat and reconnect timers.
    """

    def __init__(
        self,
        token: str,
        buffer: RetentionBuffer,
        transport_factory: TransportFactory,
        gateway_url: Callable[[], Awaitable[str]],
        policy: Optional[ReconnectPolicy] = None,
        intents: int = GATEWAY_INTENTS,
        heartbeat_ack_timeout: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._token = token
        self._buffer = buffer
        self._transport_factory = transport_factory
        self._gateway_url = gateway_url
        self._policy: ReconnectPolicy = policy or BackoffReconnect()
        self._intents = intents
        self._clock = clock
        self.state = SessionState()
        self.heartbeat = HeartbeatMonitor(
            send=self._send_heartbeat,
            on_zombie=self._on_zombie,
            ack_timeout=heartbeat_ack_timeout,
        )
        self._transport: Optional[GatewayTransport] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._should_run = False

    # -- Public properties --

    @property
    def should_run(self) -> bool:
        return self._should_run

    @property
    def connected(self) -> bool:
        return self.state.status is SessionStatus.CONNECTED

    @property
    def is_idle(self) -> bool:
        """Disconnected with no connection attempt in flight."""
        return self.state.status is SessionStatus.DISCONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._policy.pending

    # -- Lifecycle --

    async def start(self):
        self._should_run = True
        self._policy.on_start(self)
        await self.connect()

    async def connect(self):
        if not self._should_run:
            _log("[Gateway] session is stopped, not connecting")
            return
        if self.state.status is not SessionStatus.DISCONNECTED:
            _log(f"[Gateway] connect skipped ({self.state.status.value})")
            return

        self.state.status = SessionStatus.CONNECTING
        try:
            url = await self._gateway_url()
            transport = await self._transport_factory(url)
        except TransportError as e:
            _log(f"[Gateway] failed to connect: {e}")
            self.state.status = SessionStatus.DISCONNECTED
            self.schedule_reconnect()
            return
        except BaseException:
            self.state.status = SessionStatus.DISCONNECTED
            raise

        if not self._should_run:
            # stop() arrived while the socket was opening
            await self._close_quietly(transport, 1000)
            self.state.status = SessionStatus.DISCONNECTED
            return

        _log("[Gateway] socket opened, awaiting HELLO")
        self._transport = transport
        self.state.status = SessionStatus.AWAITING_IDENTIFY_ACK
        self._reader_task = asyncio.create_task(self._read_loop(transport))

    async def stop(self):
        self._should_run = False
        self._policy.cancel()
        self.heartbeat.stop()
        reader, self._reader_task = self._reader_task, None
        transport, self._transport = self._transport, None
        if reader and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
        if transport:
            await self._close_quietly(transport, 1000)
        if self.state.status is not SessionStatus.CONNECTING:
            self.state.status = SessionStatus.DISCONNECTED
        _log("[Gateway] session stopped")

    # -- Frame handling --

    async def handle_frame(self, payload: Dict[str, Any]):
        frame = GatewayFrame.from_payload(payload)
        if frame.s is not None:
            self.state.sequence = frame.s

        if frame.op == OP_HELLO:
            interval_ms = frame.d.get("heartbeat_interval") if isinstance(frame.d, dict) else None
            if not isinstance(interval_ms, (int, float)) or interval_ms <= 0:
                raise ProtocolError(f"HELLO without heartbeat_interval: {frame.d!r}")
            self.heartbeat.start(interval_ms / 1000.0)
            await self._identify()
        elif frame.op == OP_DISPATCH:
            self._dispatch(frame.t, frame.d)
        elif frame.op == OP_HEARTBEAT:
            await self.heartbeat.beat_now()
        elif frame.op == OP_HEARTBEAT_ACK:
            self.heartbeat.ack()
        else:
            _log(f"[Gateway] ignoring unknown opcode {frame.op}")

    def _dispatch(self, event_type: Optional[str], data: Any):
        if event_type == "READY":
            self.state.session_id = data.get("session_id") if isinstance(data, dict) else None
            self.state.status = SessionStatus.CONNECTED
            self.state.reconnect_attempts = 0
            _log(f"[Gateway] ready, session {self.state.session_id}")
        elif event_type == "MESSAGE_CREATE":
            self._on_message_create(data)

    def _on_message_create(self, data: Any):
        message = IncomingMessage.from_payload(data)
        event = event_from_message(message, received_at=self._clock())
        if self._buffer.record(event, now=event.received_at, author_is_bot=message.is_bot):
            _log(f"[Gateway] stored message from {message.author_name}")

    async def _identify(self):
        await self._send({
            "op": OP_IDENTIFY,
            "d": {
                "token": self._token,
                "intents": self._intents,
                "properties": {
                    "os": platform.system().lower() or "linux",
                    "browser": "channel-digest",
                    "device": "channel-digest",
                },
            },
        })

    async def _send_heartbeat(self):
        await self._send({"op": OP_HEARTBEAT, "d": self.state.sequence})

    async def _send(self, payload: Dict[str, Any]):
        transport = self._transport
        if transport is None or transport.closed:
            return
        await transport.send_json(payload)

    # -- Close handling --

    async def _read_loop(self, transport: GatewayTransport):
        try:
            while True:
                try:
                    payload = await transport.receive()
                    if payload is None:
                        break
                    await self.handle_frame(payload)
                except ProtocolError as e:
                    _log(f"[Gateway] ignoring bad frame: {e}")
        except TransportError as e:
            _log(f"[Gateway] transport error: {e}")
        await self._handle_close(transport)

    async def _handle_close(self, transport: GatewayTransport):
        if transport is not self._transport:
            return
        self._transport = None
        self._reader_task = None
        self.heartbeat.stop()
        self.state.status = SessionStatus.DISCONNECTED
        _log(f"[Gateway] socket closed (code={transport.close_code})")
        if not transport.closed:
            await self._close_quietly(transport, 1000)
        self.schedule_reconnect()

    def schedule_reconnect(self):
        """Count an abnormal close and hand it to the reconnect policy."""
        if not self._should_run:
            return
        self.state.reconnect_attempts += 1
        self._policy.on_close(self)

    async def _on_zombie(self):
        transport = self._transport
        if transport is not None:
            _log("[Gateway] force-closing zombied connection")
            await self._close_quietly(transport, ZOMBIE_CLOSE_CODE)

    @staticmethod
    async def _close_quietly(transport: GatewayTransport, code: int):
        try:
            await transport.close(code=code)
        except Exception as e:
            _log(f"[Gateway] error while closing socket: {e}")

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.status.value,
            "connected": self.connected,
            "sessionId": self.state.session_id,
            "sequence": self.state.sequence,
            "reconnectAttempts": self.state.reconnect_attempts,
            "reconnectPending": self.reconnect_pending,
            "heartbeatInterval": self.heartbeat.interval,
            "lastHeartbeatAt": _iso(self.heartbeat.last_sent_at),
            "lastHeartbeatAckAt": _iso(self.heartbeat.last_ack_at),
        }
