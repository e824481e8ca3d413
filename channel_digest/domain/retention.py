"""Retention buffer — sliding window of recent source-channel messages.

Pure domain logic; persistence goes through an optional EventStore.
"""

import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from channel_digest.domain.models import Event
from channel_digest.ports.outbound import EventStore


def _log(msg: str):
    print(msg, file=sys.stderr)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetentionBuffer:
    """Holds events for one source channel, oldest first.

    Foreign-channel and bot/system messages are rejected at record time.
    Every mutation is persisted when a storage port is given.
    """

    def __init__(
        self,
        source_channel_id: str,
        retention: timedelta,
        storage: Optional[EventStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if retention <= timedelta(0):
            raise ValueError(f"retention must be positive (got {retention})")
        self.source_channel_id = str(source_channel_id)
        self.retention = retention
        self._storage = storage
        self._clock = clock
        self._events: List[Event] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def record(self, event: Event, now: Optional[datetime] = None, author_is_bot: bool = False) -> bool:
        """Append event in arrival order. Returns False if it was rejected."""
        if event.source_channel_id != self.source_channel_id:
            return False
        if author_is_bot:
            return False
        now = now or self._clock()
        cutoff = now - self.retention
        if event.received_at < cutoff:
            return False
        self._events.append(event)
        self._drop_expired(cutoff)
        self._save()
        return True

    def window(self, now: datetime, duration: timedelta) -> List[Event]:
        """Events received in [now - duration, now], ascending by received_at."""
        cutoff = now - duration
        selected = [e for e in self._events if cutoff <= e.received_at <= now]
        selected.sort(key=lambda e: e.received_at)
        return selected

    def prune(self, now: Optional[datetime] = None, duration: Optional[timedelta] = None) -> int:
        """Drop events strictly older than now - duration. Returns count dropped."""
        now = now or self._clock()
        dropped = self._drop_expired(now - (duration or self.retention))
        if dropped:
            self._save()
        return dropped

    def clear(self):
        self._events.clear()
        self._save()

    def load(self, now: Optional[datetime] = None) -> int:
        """Restore persisted events, discarding anything outside the window."""
        if not self._storage:
            return 0
        now = now or self._clock()
        stored = self._storage.load()
        self._events = [e for e in stored if e.source_channel_id == self.source_channel_id]
        self._drop_expired(now - self.retention)
        _log(f"[RetentionBuffer] restored {len(self._events)} event(s)")
        return len(self._events)

    def _drop_expired(self, cutoff: datetime) -> int:
        before = len(self._events)
        self._events = [e for e in self._events if e.received_at >= cutoff]
        return before - len(self._events)

    def _save(self):
        if not self._storage:
            return
        try:
            self._storage.save(list(self._events))
        except Exception as e:
            _log(f"[RetentionBuffer] save failed: {e}")
