"""Configuration loaded from the environment (.env supported)."""

import os
import sys
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from channel_digest.errors import ConfigurationError

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

SUPPORTED_RECONNECT_STRATEGIES = ("backoff", "keepalive")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid integer {name}={raw!r}, falling back to {default}")
        return default


@dataclass
class GatewayConfig:
    reconnect_strategy: str = "backoff"
    keepalive_seconds: int = 30
    heartbeat_ack_timeout: bool = True


@dataclass
class ScheduleConfig:
    cron: str = ""  # 5-field cron expression, UTC; wins over hour when set
    hour: int = 9  # fixed-hour trigger, UTC
    test_delay_seconds: int = 30
    send_empty_digest: bool = False
    display_timezone: str = "UTC"


@dataclass
class AppConfig:
    """Typed configuration for the digest bot."""

    discord_token: str = ""
    channel_id: str = ""
    user_id: str = ""
    summary_interval_hours: int = 24
    storage_dir: str = "memory"
    backfill_on_start: bool = False
    auto_start: bool = False
    port: int = 3000
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        strategy = os.getenv("RECONNECT_STRATEGY", "backoff").strip().lower()
        if strategy not in SUPPORTED_RECONNECT_STRATEGIES:
            _stderr_print(f"Unsupported RECONNECT_STRATEGY={strategy!r}, falling back to 'backoff'")
            strategy = "backoff"
        return cls(
            discord_token=os.getenv("DISCORD_TOKEN", "").strip(),
            channel_id=os.getenv("CHANNEL_ID", "").strip(),
            user_id=os.getenv("USER_ID", "").strip(),
            summary_interval_hours=_env_int("SUMMARY_INTERVAL", 24),
            storage_dir=os.getenv("STORAGE_DIR", "memory"),
            backfill_on_start=_env_bool("BACKFILL_ON_START", False),
            auto_start=_env_bool("AUTO_START", False),
            port=_env_int("PORT", 3000),
            gateway=GatewayConfig(
                reconnect_strategy=strategy,
                keepalive_seconds=_env_int("KEEPALIVE_SECONDS", 30),
                heartbeat_ack_timeout=_env_bool("HEARTBEAT_ACK_TIMEOUT", True),
            ),
            schedule=ScheduleConfig(
                cron=os.getenv("SUMMARY_CRON", "").strip(),
                hour=_env_int("SUMMARY_TIME_HOUR", 9),
                test_delay_seconds=_env_int("TEST_DELAY_SECONDS", 30),
                send_empty_digest=_env_bool("SEND_EMPTY_DIGEST", False),
                display_timezone=os.getenv("DISPLAY_TIMEZONE", "UTC").strip() or "UTC",
            ),
        )

    def missing(self) -> List[str]:
        """Names of required settings that are not set."""
        names = []
        if not self.discord_token:
            names.append("DISCORD_TOKEN")
        if not self.channel_id:
            names.append("CHANNEL_ID")
        if not self.user_id:
            names.append("USER_ID")
        return names

    def validate(self) -> "AppConfig":
        """Raise ConfigurationError unless the config is usable."""
        missing = self.missing()
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        if self.summary_interval_hours <= 0:
            raise ConfigurationError(
                f"SUMMARY_INTERVAL must be a positive number of hours (got {self.summary_interval_hours})"
            )
        if not self.schedule.cron and not (0 <= self.schedule.hour <= 23):
            raise ConfigurationError(f"SUMMARY_TIME_HOUR must be 0-23 (got {self.schedule.hour})")
        return self


def require(value: Optional[str], name: str) -> str:
    """Return value, or raise ConfigurationError naming the missing setting."""
    if not value:
        raise ConfigurationError(f"Missing {name}")
    return value
