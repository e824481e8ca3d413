"""Digest renderer — turns a window of events into readable text."""

from datetime import tzinfo
from typing import Sequence

from channel_digest.domain.models import Event

MAX_CONTENT_LENGTH = 100
EMPTY_CONTENT_PLACEHOLDER = "_[attachment or embed]_"
ELLIPSIS = "..."


def pluralize(count: int, noun: str = "message") -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_content(content: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    """Blank content becomes a placeholder; long content is cut to limit chars."""
    if not content.strip():
        return EMPTY_CONTENT_PLACEHOLDER
    if len(content) > limit:
        return content[: limit - len(ELLIPSIS)] + ELLIPSIS
    return content


def format_event(event: Event, tz: tzinfo) -> str:
    time_of_day = event.received_at.astimezone(tz).strftime("%H:%M")
    return f"• **{event.author_display_name}** ({time_of_day}): {format_content(event.content)}"


def render_digest(events: Sequence[Event], hours: int, tz: tzinfo) -> str:
    """Render events oldest to newest with a header and a total footer."""
    ordered = sorted(events, key=lambda e: e.received_at)
    lines = [f"📊 **Message Summary** (Last {hours} hours)", ""]
    lines.extend(format_event(e, tz) for e in ordered)
    lines.append("")
    lines.append(f"Total: {pluralize(len(ordered))}")
    return "\n".join(lines)


def render_no_activity(hours: int) -> str:
    return f"📭 **No Activity**\n\nNo messages were posted in the last {hours} hours."
