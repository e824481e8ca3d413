"""Tests for digest rendering."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from channel_digest.domain.digest import (
    EMPTY_CONTENT_PLACEHOLDER,
    format_content,
    format_event,
    pluralize,
    render_digest,
    render_no_activity,
)
from channel_digest.domain.models import Event
from channel_digest.domain.retention import RetentionBuffer

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _event(event_id, at, content="hello", name="alice"):
    return Event(
        id=str(event_id),
        author_display_name=name,
        author_id="42",
        content=content,
        received_at=at,
        source_channel_id="100",
    )


class TestPluralize:
    def test_one(self):
        assert pluralize(1) == "1 message"

    def test_zero(self):
        assert pluralize(0) == "0 messages"

    def test_many(self):
        assert pluralize(3) == "3 messages"


class TestFormatContent:
    def test_short_content_unchanged(self):
        assert format_content("hi there") == "hi there"

    def test_exact_limit_unchanged(self):
        text = "a" * 100
        assert format_content(text) == text

    def test_long_content_truncated(self):
        result = format_content("a" * 150)
        assert len(result) == 100
        assert result.endswith("...")

    def test_blank_content_placeholder(self):
        assert format_content("   \n ") == EMPTY_CONTENT_PLACEHOLDER
        assert format_content("") == EMPTY_CONTENT_PLACEHOLDER


class TestFormatEvent:
    def test_line_shape(self):
        line = format_event(_event(1, NOW, content="ship it"), timezone.utc)
        assert line == "• **alice** (12:00): ship it"

    def test_display_timezone(self):
        line = format_event(_event(1, NOW), ZoneInfo("Asia/Seoul"))
        assert "(21:00)" in line


class TestRenderDigest:
    def test_header_names_window(self):
        text = render_digest([_event(1, NOW)], 24, timezone.utc)
        assert text.splitlines()[0] == "📊 **Message Summary** (Last 24 hours)"

    def test_single_event_ends_with_one_message(self):
        text = render_digest([_event(1, NOW)], 24, timezone.utc)
        assert text.endswith("1 message")

    def test_zero_and_many_pluralized(self):
        assert render_digest([], 24, timezone.utc).endswith("0 messages")
        events = [_event(i, NOW - timedelta(minutes=i)) for i in range(2)]
        assert render_digest(events, 24, timezone.utc).endswith("2 messages")

    def test_resorts_oldest_first(self):
        events = [
            _event("b", NOW - timedelta(minutes=10), content="second"),
            _event("a", NOW - timedelta(hours=1), content="first"),
        ]
        text = render_digest(events, 24, timezone.utc)
        assert text.index("first") < text.index("second")

    def test_window_end_to_end(self):
        buffer = RetentionBuffer("100", timedelta(hours=24), clock=lambda: NOW)
        buffer.record(_event(1, NOW - timedelta(hours=3), content="three hours ago"))
        buffer.record(_event(2, NOW - timedelta(hours=1), content="one hour ago"))
        buffer.record(_event(3, NOW - timedelta(minutes=10), content="ten minutes ago"))

        full = render_digest(buffer.window(NOW, timedelta(hours=24)), 24, timezone.utc)
        lines = [l for l in full.splitlines() if l.startswith("•")]
        assert [l.split(": ", 1)[1] for l in lines] == [
            "three hours ago",
            "one hour ago",
            "ten minutes ago",
        ]
        assert full.endswith("3 messages")

        recent = render_digest(buffer.window(NOW, timedelta(hours=2)), 2, timezone.utc)
        assert "three hours ago" not in recent
        assert "one hour ago" in recent
        assert "ten minutes ago" in recent
        assert recent.endswith("2 messages")


def test_render_no_activity():
    text = render_no_activity(24)
    assert "No Activity" in text
    assert "24 hours" in text
