"""Digest trigger — decides when to render and deliver a digest."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Optional

from channel_digest.domain.chunker import split_message
from channel_digest.domain.digest import render_digest, render_no_activity
from channel_digest.domain.models import DigestOutcome, TriggerMode, TriggerState
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.domain.schedule import Schedule
from channel_digest.errors import ConfigurationError, DeliveryError
from channel_digest.ports.outbound import DeliveryPort


def _log(msg: str):
    print(msg, file=sys.stderr)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DigestTrigger:
    """Fires digests on a recurring schedule or once after a delay.

    Each firing is serialized and delivered at most once. The enabled flag is
    re-checked right before delivery; a delivery already under way is never
    cut short by disable().
    """

    def __init__(
        self,
        buffer: RetentionBuffer,
        delivery: DeliveryPort,
        schedule: Schedule,
        window_hours: int,
        display_tz: tzinfo = timezone.utc,
        send_empty_digest: bool = False,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._buffer = buffer
        self._delivery = delivery
        self.schedule = schedule
        self.window_hours = window_hours
        self._display_tz = display_tz
        self._send_empty_digest = send_empty_digest
        self._clock = clock
        self._sleep = sleep
        self.state = TriggerState()
        self.last_outcome: Optional[DigestOutcome] = None
        self._task: Optional[asyncio.Task] = None
        self._firing_task: Optional[asyncio.Task] = None
        self._fire_lock = asyncio.Lock()

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def enable(self):
        """Start the recurring schedule."""
        self._cancel_task()
        self.state.mode = TriggerMode.RECURRING
        self.state.enabled = True
        self.state.next_fire_at = self.schedule.next_after(self._clock())
        _log(f"[Trigger] enabled ({self.schedule.describe()}), next digest at {self.state.next_fire_at.isoformat()}")
        self._task = asyncio.create_task(self._run())

    def enable_one_shot(self, delay_seconds: float):
        """Fire exactly once after delay_seconds, then disable."""
        if delay_seconds < 0:
            raise ConfigurationError(f"delay must not be negative (got {delay_seconds})")
        self._cancel_task()
        self.state.mode = TriggerMode.ONE_SHOT
        self.state.enabled = True
        self.state.next_fire_at = self._clock() + timedelta(seconds=delay_seconds)
        _log(f"[Trigger] one-shot digest in {delay_seconds:.0f}s")
        self._task = asyncio.create_task(self._run())

    def disable(self):
        """Stop scheduling. A digest already being delivered is let finish."""
        self.state.enabled = False
        self.state.next_fire_at = None
        self._cancel_task()
        _log("[Trigger] disabled")

    def _cancel_task(self):
        task, self._task = self._task, None
        if not task or task.done() or task is asyncio.current_task():
            return
        # A task mid-delivery is detached instead; it exits after its fire
        if task is not self._firing_task:
            task.cancel()

    async def _run(self):
        while self.state.enabled and self.state.next_fire_at is not None:
            target = self.state.next_fire_at
            delay = (target - self._clock()).total_seconds()
            if delay > 0:
                await self._sleep(delay)
            if not self.state.enabled or self.state.next_fire_at != target:
                break

            self._firing_task = asyncio.current_task()
            try:
                await self.fire()
            finally:
                self._firing_task = None
            if self._task is not asyncio.current_task():
                break

            if self.state.mode is TriggerMode.ONE_SHOT:
                self.state.enabled = False
                self.state.next_fire_at = None
                _log("[Trigger] one-shot digest done, trigger disabled")
                break
            # Strictly forward, and never backfill missed slots
            try:
                self.state.next_fire_at = self.schedule.next_after(max(self._clock(), target))
            except ConfigurationError as e:
                _log(f"[Trigger] no next digest time ({e}), trigger disabled")
                self.state.enabled = False
                self.state.next_fire_at = None
                break
            _log(f"[Trigger] next digest at {self.state.next_fire_at.isoformat()}")

    async def fire(self, explicit: bool = False) -> DigestOutcome:
        """Render and deliver the current window.

        A scheduled fire (explicit=False) only delivers while enabled; an
        explicit operator request delivers regardless. Never raises: any
        error becomes a "failed" outcome so the schedule keeps running.
        """
        async with self._fire_lock:
            now = self._clock()
            try:
                outcome = await self._fire_locked(now, explicit)
            except Exception as e:
                _log(f"[Trigger] digest fire failed: {e!r}")
                outcome = DigestOutcome(status="failed", fired_at=now, reason=f"unexpected error: {e!r}")
            self.last_outcome = outcome
            return outcome

    async def _fire_locked(self, now: datetime, explicit: bool) -> DigestOutcome:
        if not explicit and not self.state.enabled:
            return DigestOutcome(status="skipped", fired_at=now, reason="trigger disabled")

        self._buffer.prune(now)
        events = self._buffer.window(now, self.window)
        _log(f"[Trigger] found {len(events)} message(s) in the last {self.window_hours} hours")

        if not events and not self._send_empty_digest:
            return DigestOutcome(status="skipped", fired_at=now, reason="no messages in window")

        if events:
            text = render_digest(events, self.window_hours, self._display_tz)
        else:
            text = render_no_activity(self.window_hours)
        chunks = split_message(text)

        if not explicit and not self.state.enabled:
            return DigestOutcome(
                status="skipped", fired_at=now, message_count=len(events), reason="trigger disabled"
            )

        try:
            sent = await self._delivery.deliver(chunks)
        except (DeliveryError, ConfigurationError) as e:
            _log(f"[Trigger] digest not delivered: {e}")
            return DigestOutcome(status="failed", fired_at=now, message_count=len(events), reason=str(e))

        _log(f"[Trigger] digest delivered ({sent} message(s))")
        return DigestOutcome(status="delivered", fired_at=now, message_count=len(events), chunks_sent=sent)

    def status(self) -> dict:
        return {
            "enabled": self.state.enabled,
            "mode": self.state.mode.value,
            "nextFireAt": self.state.next_fire_at.isoformat() if self.state.next_fire_at else None,
            "schedule": self.schedule.describe(),
            "lastDigest": self.last_outcome.to_dict() if self.last_outcome else None,
        }
