"""Tests for the join notification formatter."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from vc_notify.notifications import MessageFormatter, format_local_time
from vc_notify.notifications.formatter import JOIN_COLOR

from .conftest import FIXED_NOW, VOICE, FakeChannel, FakeMember, make_intent


class TestFormatLocalTime:
    def test_converts_to_tokyo(self) -> None:
        result = format_local_time(FIXED_NOW, ZoneInfo("Asia/Tokyo"), "JST")
        assert result == "2025-10-25 17:00:00 JST"

    def test_naive_datetime_is_utc(self) -> None:
        result = format_local_time(datetime(2025, 12, 31, 20, 30, 5), ZoneInfo("Asia/Tokyo"), "JST")
        assert result == "2026-01-01 05:30:05 JST"


class TestMessageFormatter:
    def _format(self, formatter: MessageFormatter) -> dict:
        return formatter.format_join(
            make_intent(rule_name="Dev team", rule_id="rule-42"),
            FakeChannel(id=VOICE, name="Lounge", voice=True),
            FakeMember(id="1", tag="alice#0001", avatar_url="https://cdn.example/a.png"),
        )

    def test_embed_layout(self) -> None:
        payload = self._format(MessageFormatter(clock=lambda: FIXED_NOW))

        assert len(payload["embeds"]) == 1
        embed = payload["embeds"][0]
        assert embed["title"] == "🔔 Dev team"
        assert embed["color"] == JOIN_COLOR
        assert embed["author"] == {
            "name": "alice#0001",
            "icon_url": "https://cdn.example/a.png",
        }
        assert embed["fields"] == [
            {"name": "Voice Channel", "value": "Lounge", "inline": True},
            {"name": "Time", "value": "2025-10-25 17:00:00 JST", "inline": True},
        ]
        assert embed["footer"] == {"text": "Rule ID: rule-42"}
        assert embed["timestamp"] == "2025-10-25T08:00:00+00:00"

    def test_configured_timezone(self) -> None:
        formatter = MessageFormatter(
            timezone_name="UTC", timezone_label="UTC", clock=lambda: FIXED_NOW
        )

        time_field = self._format(formatter)["embeds"][0]["fields"][1]

        assert time_field["value"] == "2025-10-25 08:00:00 UTC"

    def test_unknown_timezone_falls_back_to_utc(self) -> None:
        formatter = MessageFormatter(
            timezone_name="Not/AZone",
            timezone_label="UTC",
            clock=lambda: datetime(2025, 1, 1, tzinfo=timezone.utc),
        )

        time_field = self._format(formatter)["embeds"][0]["fields"][1]

        assert time_field["value"] == "2025-01-01 00:00:00 UTC"
