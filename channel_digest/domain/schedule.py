"""Trigger schedules — when the next digest is due.

Pure domain logic, no framework dependencies. All times are UTC.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Protocol, Tuple

from channel_digest.errors import ConfigurationError

# (name, min, max)
_CRON_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day of month", 1, 31),
    ("month", 1, 12),
    ("day of week", 0, 7),
)

_CRON_ITEM_RE = re.compile(r"^(\*|\d+(?:-\d+)?)(?:/(\d+))?$")

# Search horizon for the next cron match (covers Feb 29 schedules)
_MAX_LOOKAHEAD_DAYS = 366 * 5


class Schedule(Protocol):
    def next_after(self, now: datetime) -> datetime: ...
    def describe(self) -> str: ...


def next_fixed_hour(now: datetime, hour: int) -> datetime:
    """Next HH:00 UTC strictly after now; rolls to tomorrow if already passed."""
    if not 0 <= hour <= 23:
        raise ConfigurationError(f"Invalid hour: {hour} (expected 0-23)")
    now_utc = now.astimezone(timezone.utc)
    target = now_utc.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now_utc:
        target += timedelta(days=1)
    return target


@dataclass(frozen=True)
class FixedHourSchedule:
    hour: int

    def next_after(self, now: datetime) -> datetime:
        return next_fixed_hour(now, self.hour)

    def describe(self) -> str:
        return f"daily {self.hour:02d}:00 UTC"


@dataclass(frozen=True)
class CronSchedule:
    """Five-field cron expression: minute hour day-of-month month day-of-week."""

    expression: str
    minutes: FrozenSet[int]
    hours: FrozenSet[int]
    days: FrozenSet[int]
    months: FrozenSet[int]
    weekdays: FrozenSet[int]  # 0 = Sunday
    days_restricted: bool
    weekdays_restricted: bool

    @classmethod
    def parse(cls, expression: str) -> "CronSchedule":
        parts = expression.split()
        if len(parts) != 5:
            raise ConfigurationError(
                f"Invalid cron expression {expression!r}: expected 5 fields, got {len(parts)}"
            )
        parsed = [_parse_field(p, *spec) for p, spec in zip(parts, _CRON_FIELDS)]
        weekdays = frozenset(d % 7 for d in parsed[4][0])  # 7 is also Sunday
        return cls(
            expression=expression.strip(),
            minutes=parsed[0][0],
            hours=parsed[1][0],
            days=parsed[2][0],
            months=parsed[3][0],
            weekdays=weekdays,
            days_restricted=parsed[2][1],
            weekdays_restricted=parsed[4][1],
        )

    def describe(self) -> str:
        return f"cron {self.expression} (UTC)"

    def _day_matches(self, day: datetime) -> bool:
        if day.month not in self.months:
            return False
        in_dom = day.day in self.days
        in_dow = (day.isoweekday() % 7) in self.weekdays
        # Classic cron: when both are restricted, either one matching is enough
        if self.days_restricted and self.weekdays_restricted:
            return in_dom or in_dow
        if self.days_restricted:
            return in_dom
        if self.weekdays_restricted:
            return in_dow
        return True

    def next_after(self, now: datetime) -> datetime:
        """First matching minute strictly after now."""
        start = now.astimezone(timezone.utc).replace(second=0, microsecond=0) + timedelta(minutes=1)
        day = start.replace(hour=0, minute=0)
        hours = sorted(self.hours)
        minutes = sorted(self.minutes)
        for _ in range(_MAX_LOOKAHEAD_DAYS):
            if self._day_matches(day):
                for hour in hours:
                    for minute in minutes:
                        candidate = day.replace(hour=hour, minute=minute)
                        if candidate >= start:
                            return candidate
            day += timedelta(days=1)
        raise ConfigurationError(f"Cron expression {self.expression!r} never fires")


def _parse_field(raw: str, name: str, low: int, high: int) -> Tuple[FrozenSet[int], bool]:
    """Parse one cron field. Returns (values, restricted)."""
    values = set()
    restricted = raw != "*"
    for item in raw.split(","):
        m = _CRON_ITEM_RE.match(item)
        if not m:
            raise ConfigurationError(f"Invalid cron {name} field: {raw!r}")
        base, step = m.group(1), m.group(2)
        if base == "*":
            start, end = low, high
        elif "-" in base:
            start, end = (int(x) for x in base.split("-"))
        else:
            start = end = int(base)
            if step:
                end = high
        step_n = int(step) if step else 1
        if step_n <= 0 or start > end or start < low or end > high:
            raise ConfigurationError(f"Invalid cron {name} field: {raw!r}")
        values.update(range(start, end + 1, step_n))
    return frozenset(values), restricted


def build_schedule(cron: str, hour: int) -> Schedule:
    """Cron expression wins when given, otherwise the fixed daily hour."""
    if cron:
        return CronSchedule.parse(cron)
    return FixedHourSchedule(hour)
