"""DigestBot — wires gateway session, retention buffer, trigger and delivery."""

import sys
from datetime import timedelta
from typing import Any, Dict, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from channel_digest.adapters.discord.backfill import backfill_history
from channel_digest.adapters.discord.delivery import DirectMessageDelivery
from channel_digest.adapters.discord.rest import DiscordRestClient
from channel_digest.adapters.gateway.reconnect import build_policy
from channel_digest.adapters.gateway.session import GatewaySession
from channel_digest.adapters.gateway.transport import AiohttpTransport
from channel_digest.adapters.storage.event_store import JsonEventStore, MemoryEventStore
from channel_digest.config import AppConfig
from channel_digest.domain.models import DigestOutcome
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.domain.schedule import build_schedule
from channel_digest.engine import DigestTrigger
from channel_digest.errors import ConfigurationError, TransportError
from channel_digest.ports.outbound import DeliveryPort


def _log(msg: str):
    print(msg, file=sys.stderr)


def _display_zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"Invalid DISPLAY_TIMEZONE: {name!r}")


class DigestBot:
    """Owns one session, one buffer and one trigger.

    Public operations mirror the operator commands: start, test, stop,
    send_digest_now and status.
    """

    def __init__(
        self,
        config: AppConfig,
        buffer: RetentionBuffer,
        session: GatewaySession,
        trigger: DigestTrigger,
        rest: Optional[DiscordRestClient] = None,
    ):
        self.config = config
        self.buffer = buffer
        self.session = session
        self.trigger = trigger
        self._rest = rest
        self._backfilled = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        delivery: Optional[DeliveryPort] = None,
        session: Optional[GatewaySession] = None,
    ) -> "DigestBot":
        config.validate()
        storage = JsonEventStore(config.storage_dir) if config.storage_dir else MemoryEventStore()
        buffer = RetentionBuffer(
            source_channel_id=config.channel_id,
            retention=timedelta(hours=config.summary_interval_hours),
            storage=storage,
        )
        buffer.load()
        rest = DiscordRestClient(config.discord_token)
        if session is None:
            session = GatewaySession(
                token=config.discord_token,
                buffer=buffer,
                transport_factory=AiohttpTransport.connect,
                gateway_url=rest.get_gateway_url,
                policy=build_policy(config.gateway.reconnect_strategy, config.gateway.keepalive_seconds),
                heartbeat_ack_timeout=config.gateway.heartbeat_ack_timeout,
            )
        trigger = DigestTrigger(
            buffer=buffer,
            delivery=delivery or DirectMessageDelivery(rest, config.user_id),
            schedule=build_schedule(config.schedule.cron, config.schedule.hour),
            window_hours=config.summary_interval_hours,
            display_tz=_display_zone(config.schedule.display_timezone),
            send_empty_digest=config.schedule.send_empty_digest,
        )
        return cls(config, buffer, session, trigger, rest=rest)

    @property
    def enabled(self) -> bool:
        return self.trigger.state.enabled

    async def start(self):
        """Connect to the gateway and enable the recurring digest."""
        await self._maybe_backfill()
        await self.session.start()
        self.trigger.enable()
        _log(f"[DigestBot] monitoring channel {self.config.channel_id}, summaries to user {self.config.user_id}")

    async def test(self, delay_seconds: Optional[float] = None):
        """Connect and send a single digest after a short delay."""
        delay = self.config.schedule.test_delay_seconds if delay_seconds is None else delay_seconds
        if delay < 0:
            raise ConfigurationError(f"delay must not be negative (got {delay})")
        await self._maybe_backfill()
        await self.session.start()
        self.trigger.enable_one_shot(delay)

    async def stop(self):
        self.trigger.disable()
        await self.session.stop()

    async def send_digest_now(self) -> DigestOutcome:
        return await self.trigger.fire(explicit=True)

    async def _maybe_backfill(self):
        if not self.config.backfill_on_start or self._backfilled or not self._rest:
            return
        try:
            await backfill_history(self._rest, self.buffer)
            self._backfilled = True
        except TransportError as e:
            _log(f"[DigestBot] history backfill failed: {e}")

    def status(self) -> Dict[str, Any]:
        self.buffer.prune()
        session = self.session.status()
        return {
            "enabled": self.enabled,
            "connected": session["connected"],
            "sessionId": session["sessionId"],
            "messagesStored": len(self.buffer),
            "reconnectAttempts": session["reconnectAttempts"],
            "gateway": session,
            "trigger": self.trigger.status(),
        }
