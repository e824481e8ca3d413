"""Inbound port — gateway frames and the message payloads they carry."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from channel_digest.errors import ProtocolError


@dataclass
class GatewayFrame:
    """One decoded gateway payload: {op, d, s, t}."""

    op: int
    d: Any = None
    s: Optional[int] = None
    t: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "GatewayFrame":
        if not isinstance(payload, dict) or not isinstance(payload.get("op"), int):
            raise ProtocolError(f"frame without integer opcode: {str(payload)[:120]!r}")
        seq = payload.get("s")
        return cls(
            op=payload["op"],
            d=payload.get("d"),
            s=seq if isinstance(seq, int) else None,
            t=payload.get("t"),
        )


@dataclass
class IncomingMessage:
    """Platform payload of a created message, reduced to what the digest needs."""

    id: str
    channel_id: str
    author_id: str
    author_name: str
    content: str
    is_bot: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "IncomingMessage":
        if not isinstance(data, dict) or "id" not in data or "channel_id" not in data:
            raise ProtocolError("message payload missing id/channel_id")
        author = data.get("author") or {}
        created_at = None
        if data.get("timestamp"):
            try:
                created_at = datetime.fromisoformat(str(data["timestamp"]))
            except ValueError:
                created_at = None
        return cls(
            id=str(data["id"]),
            channel_id=str(data["channel_id"]),
            author_id=str(author.get("id", "")),
            author_name=str(author.get("global_name") or author.get("username") or "unknown"),
            content=str(data.get("content") or ""),
            is_bot=bool(author.get("bot") or author.get("system")),
            created_at=created_at,
        )
