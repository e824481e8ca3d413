"""Tests for the typed AppConfig dataclass."""

import pytest

from channel_digest.config import AppConfig, GatewayConfig, ScheduleConfig, require
from channel_digest.errors import ConfigurationError

_ENV_NAMES = (
    "DISCORD_TOKEN", "CHANNEL_ID", "USER_ID", "SUMMARY_INTERVAL", "SUMMARY_CRON",
    "SUMMARY_TIME_HOUR", "TEST_DELAY_SECONDS", "RECONNECT_STRATEGY", "KEEPALIVE_SECONDS",
    "HEARTBEAT_ACK_TIMEOUT", "SEND_EMPTY_DIGEST", "DISPLAY_TIMEZONE", "BACKFILL_ON_START",
    "AUTO_START", "STORAGE_DIR", "PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_app_config(self):
        c = AppConfig()
        assert c.summary_interval_hours == 24
        assert c.port == 3000
        assert c.auto_start is False
        assert isinstance(c.gateway, GatewayConfig)
        assert isinstance(c.schedule, ScheduleConfig)

    def test_gateway_config(self):
        c = GatewayConfig()
        assert c.reconnect_strategy == "backoff"
        assert c.keepalive_seconds == 30
        assert c.heartbeat_ack_timeout is True

    def test_schedule_config(self):
        c = ScheduleConfig()
        assert c.cron == ""
        assert c.hour == 9
        assert c.test_delay_seconds == 30
        assert c.send_empty_digest is False
        assert c.display_timezone == "UTC"


class TestFromEnv:
    def test_reads_environment(self, clean_env):
        clean_env.setenv("DISCORD_TOKEN", " tok ")
        clean_env.setenv("CHANNEL_ID", "100")
        clean_env.setenv("USER_ID", "42")
        clean_env.setenv("SUMMARY_INTERVAL", "12")
        clean_env.setenv("SUMMARY_CRON", "0 18 * * 1-5")
        clean_env.setenv("RECONNECT_STRATEGY", "KeepAlive")
        clean_env.setenv("SEND_EMPTY_DIGEST", "yes")
        clean_env.setenv("HEARTBEAT_ACK_TIMEOUT", "false")
        clean_env.setenv("AUTO_START", "1")

        c = AppConfig.from_env()
        assert c.discord_token == "tok"
        assert c.channel_id == "100"
        assert c.summary_interval_hours == 12
        assert c.schedule.cron == "0 18 * * 1-5"
        assert c.gateway.reconnect_strategy == "keepalive"
        assert c.gateway.heartbeat_ack_timeout is False
        assert c.schedule.send_empty_digest is True
        assert c.auto_start is True

    def test_bad_values_fall_back(self, clean_env):
        clean_env.setenv("SUMMARY_INTERVAL", "soon")
        clean_env.setenv("RECONNECT_STRATEGY", "telepathy")
        c = AppConfig.from_env()
        assert c.summary_interval_hours == 24
        assert c.gateway.reconnect_strategy == "backoff"


class TestValidate:
    def test_missing_required(self):
        with pytest.raises(ConfigurationError) as exc:
            AppConfig(discord_token="t").validate()
        assert "CHANNEL_ID" in str(exc.value)
        assert "USER_ID" in str(exc.value)

    def test_missing_lists_names(self):
        assert AppConfig().missing() == ["DISCORD_TOKEN", "CHANNEL_ID", "USER_ID"]

    def test_bad_interval(self):
        c = AppConfig(discord_token="t", channel_id="1", user_id="2", summary_interval_hours=0)
        with pytest.raises(ConfigurationError):
            c.validate()

    def test_bad_hour(self):
        c = AppConfig(discord_token="t", channel_id="1", user_id="2", schedule=ScheduleConfig(hour=25))
        with pytest.raises(ConfigurationError):
            c.validate()

    def test_hour_ignored_with_cron(self):
        c = AppConfig(
            discord_token="t", channel_id="1", user_id="2",
            schedule=ScheduleConfig(cron="0 9 * * *", hour=25),
        )
        assert c.validate() is c

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            AppConfig().validate()


def test_require():
    assert require("42", "USER_ID") == "42"
    with pytest.raises(ConfigurationError, match="USER_ID"):
        require("", "USER_ID")
