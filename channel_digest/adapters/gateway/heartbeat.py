"""Heartbeat monitor — keeps a gateway connection alive."""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional


def _log(msg: str):
    print(msg, file=sys.stderr)


class HeartbeatMonitor:
    """Sends a heartbeat every interval on a cancellable task.

    With ack_timeout enabled, a heartbeat still unacknowledged when the next
    one is due means the connection is zombied: on_zombie is awaited and the
    timer stops.
    """

    def __init__(
        self,
        send: Callable[[], Awaitable[None]],
        on_zombie: Optional[Callable[[], Awaitable[None]]] = None,
        ack_timeout: bool = True,
    ):
        self._send = send
        self._on_zombie = on_zombie
        self._ack_timeout = ack_timeout
        self._task: Optional[asyncio.Task] = None
        self._awaiting_ack = False
        self.interval: Optional[float] = None
        self.last_sent_at: Optional[datetime] = None
        self.last_ack_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval: float):
        """(Re)start the periodic timer at interval seconds."""
        if interval <= 0:
            raise ValueError(f"heartbeat interval must be positive (got {interval})")
        self.stop()
        self.interval = interval
        self._awaiting_ack = False
        self._task = asyncio.create_task(self._run(interval))

    def stop(self):
        task, self._task = self._task, None
        # Never cancel ourselves: stop() may be reached from on_zombie
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def ack(self):
        self._awaiting_ack = False
        self.last_ack_at = datetime.now(timezone.utc)

    async def beat_now(self):
        """Out-of-band heartbeat (remote asked for one)."""
        await self._beat()

    async def _beat(self):
        self._awaiting_ack = True
        self.last_sent_at = datetime.now(timezone.utc)
        await self._send()

    async def _run(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            if self._ack_timeout and self._awaiting_ack:
                _log(f"[Heartbeat] no ack within {interval:.1f}s, connection zombied")
                if self._on_zombie:
                    await self._on_zombie()
                return
            try:
                await self._beat()
            except Exception as e:
                _log(f"[Heartbeat] send failed: {e}")
