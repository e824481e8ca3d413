"""Domain layer — pure Python, no framework dependencies."""

from channel_digest.domain.models import (
    DigestOutcome,
    Event,
    SessionState,
    SessionStatus,
    TriggerMode,
    TriggerState,
    event_from_message,
)
from channel_digest.domain.retention import RetentionBuffer
from channel_digest.domain.digest import render_digest, render_no_activity, pluralize
from channel_digest.domain.chunker import split_message
from channel_digest.domain.schedule import (
    CronSchedule,
    FixedHourSchedule,
    Schedule,
    build_schedule,
    next_fixed_hour,
)

__all__ = [
    "DigestOutcome",
    "Event",
    "SessionState",
    "SessionStatus",
    "TriggerMode",
    "TriggerState",
    "event_from_message",
    "RetentionBuffer",
    "render_digest",
    "render_no_activity",
    "pluralize",
    "split_message",
    "CronSchedule",
    "FixedHourSchedule",
    "Schedule",
    "build_schedule",
    "next_fixed_hour",
]
