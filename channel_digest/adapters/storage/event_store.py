"""Event store adapters — persist the retention buffer between restarts."""

import json
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from channel_digest.domain.models import Event


def _log(msg: str):
    print(msg, file=sys.stderr)


class JsonEventStore:
    """Keeps the buffered events in one JSON document under storage_dir.

    The document is {"saved_at": <iso>, "events": [...]}. A missing or
    unreadable file loads as empty; items that no longer parse are skipped.
    """

    def __init__(self, storage_dir: str = "memory", filename: str = "messages.json"):
        self.path = Path(storage_dir) / filename
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> List[Event]:
        if not self.path.exists():
            return []
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            _log(f"[EventStore] unreadable {self.path.name}: {e}")
            return []
        items = document.get("events", []) if isinstance(document, dict) else []
        events = []
        for item in items:
            try:
                event = Event.from_dict(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                _log(f"[EventStore] skipping bad stored event: {e!r}")
                continue
            if event.received_at.tzinfo is None:
                event = replace(event, received_at=event.received_at.replace(tzinfo=timezone.utc))
            events.append(event)
        return events

    def save(self, events: List[Event]) -> None:
        document = {
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "events": [e.to_dict() for e in events],
        }
        tmp = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        try:
            tmp.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise


class MemoryEventStore:
    """Keeps events in process only, used when STORAGE_DIR is empty."""

    def __init__(self, events: List[Event] = None):
        self._events = list(events or [])

    def load(self) -> List[Event]:
        return list(self._events)

    def save(self, events: List[Event]) -> None:
        self._events = list(events)
