"""Reconnection policies for the gateway session.

Two strategies share one interface:
- BackoffReconnect schedules a reconnect from the close handler, with
  exponential backoff.
- KeepAliveReconnect leaves the close alone and reconnects from a recurring
  keep-alive tick.
"""

import asyncio
import sys
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol

if TYPE_CHECKING:
    from channel_digest.adapters.gateway.session import GatewaySession

BASE_DELAY_SECONDS = 5.0
MAX_DELAY_SECONDS = 60.0
KEEPALIVE_SECONDS = 30.0


def _log(msg: str):
    print(msg, file=sys.stderr)


def backoff_delay(
    attempt: int,
    base: float = BASE_DELAY_SECONDS,
    cap: float = MAX_DELAY_SECONDS,
) -> float:
    """min(base * 2^(attempt-1), cap) for attempt >= 1."""
    if attempt < 1:
        attempt = 1
    return min(base * (2 ** (attempt - 1)), cap)


class ReconnectPolicy(Protocol):
    def on_start(self, session: "GatewaySession") -> None: ...
    def on_close(self, session: "GatewaySession") -> None: ...
    def cancel(self) -> None: ...

    @property
    def pending(self) -> bool: ...


class BackoffReconnect:
    """Reconnect after min(5s * 2^(n-1), 60s), n = consecutive failures."""

    def __init__(
        self,
        base: float = BASE_DELAY_SECONDS,
        cap: float = MAX_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._base = base
        self._cap = cap
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.last_delay: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_start(self, session: "GatewaySession") -> None:
        pass

    def on_close(self, session: "GatewaySession") -> None:
        self.cancel()
        delay = backoff_delay(session.state.reconnect_attempts, self._base, self._cap)
        self.last_delay = delay
        _log(f"[Reconnect] attempt {session.state.reconnect_attempts} in {delay:.0f}s")
        self._task = asyncio.create_task(self._reconnect_later(session, delay))

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _reconnect_later(self, session: "GatewaySession", delay: float):
        await self._sleep(delay)
        if not session.should_run:
            _log("[Reconnect] session stopped during backoff, giving up")
            return
        self._task = None
        try:
            await session.connect()
        except Exception as e:
            _log(f"[Reconnect] connect failed unexpectedly: {e!r}")
            session.schedule_reconnect()


class KeepAliveReconnect:
    """Recurring keep-alive tick; reconnects whenever the session is down."""

    def __init__(
        self,
        interval: float = KEEPALIVE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_start(self, session: "GatewaySession") -> None:
        if not self.pending:
            self._task = asyncio.create_task(self._tick_loop(session))

    def on_close(self, session: "GatewaySession") -> None:
        _log("[Reconnect] will reconnect on next keep-alive tick")

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _tick_loop(self, session: "GatewaySession"):
        while session.should_run:
            await self._sleep(self._interval)
            if not session.should_run:
                break
            if session.is_idle:
                _log("[Reconnect] keep-alive: reconnecting gateway")
                try:
                    await session.connect()
                except Exception as e:
                    _log(f"[Reconnect] keep-alive connect failed: {e}")


def build_policy(strategy: str, keepalive_seconds: float = KEEPALIVE_SECONDS) -> ReconnectPolicy:
    if strategy == "keepalive":
        return KeepAliveReconnect(interval=keepalive_seconds)
    return BackoffReconnect()
