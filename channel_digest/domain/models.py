"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from channel_digest.ports.inbound import IncomingMessage


@dataclass(frozen=True)
class Event:
    """A message accepted from the source channel."""

    id: str
    author_display_name: str
    author_id: str
    content: str
    received_at: datetime  # timezone-aware, UTC
    source_channel_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author_display_name": self.author_display_name,
            "author_id": self.author_id,
            "content": self.content,
            "received_at": self.received_at.isoformat(),
            "source_channel_id": self.source_channel_id,
        }

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> "Event":
        return cls(
            id=str(item["id"]),
            author_display_name=str(item.get("author_display_name", "")),
            author_id=str(item.get("author_id", "")),
            content=str(item.get("content", "")),
            received_at=datetime.fromisoformat(item["received_at"]),
            source_channel_id=str(item.get("source_channel_id", "")),
        )


class SessionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_IDENTIFY_ACK = "awaiting_identify_ack"
    CONNECTED = "connected"


@dataclass
class SessionState:
    """Mutable state of one gateway session. Owned by GatewaySession."""

    status: SessionStatus = SessionStatus.DISCONNECTED
    sequence: Optional[int] = None  # last "s" seen from the gateway
    session_id: Optional[str] = None  # from READY, diagnostics only
    reconnect_attempts: int = 0


class TriggerMode(Enum):
    RECURRING = "recurring"
    ONE_SHOT = "one_shot"


@dataclass
class TriggerState:
    enabled: bool = False
    next_fire_at: Optional[datetime] = None
    mode: TriggerMode = TriggerMode.RECURRING


@dataclass
class DigestOutcome:
    """Result of one trigger firing."""

    status: str  # "delivered" | "skipped" | "failed"
    fired_at: datetime
    message_count: int = 0
    chunks_sent: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "firedAt": self.fired_at.isoformat(),
            "messageCount": self.message_count,
            "chunksSent": self.chunks_sent,
            "reason": self.reason,
        }


def event_from_message(message: IncomingMessage, received_at: datetime) -> Event:
    return Event(
        id=message.id,
        author_display_name=message.author_name,
        author_id=message.author_id,
        content=message.content,
        received_at=received_at,
        source_channel_id=message.channel_id,
    )
