"""
Discord Message Formatter.

Formats voice channel join notifications as Discord embeds.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

if TYPE_CHECKING:
    from ..models import NotificationIntent
    from .remote import RemoteChannel, RemoteMember

JOIN_COLOR = 0x57F287  # Discord green
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_local_time(moment: datetime, tz: ZoneInfo, label: str) -> str:
    """
    Format a moment as local wall-clock time with a zone label.

    Naive datetimes are assumed to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return f"{moment.astimezone(tz).strftime(TIME_FORMAT)} {label}"


@dataclass
class MessageFormatter:
    """Builds the fixed join notification embed."""

    timezone_name: str = "Asia/Tokyo"
    timezone_label: str = "JST"
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False)

    def __post_init__(self) -> None:
        try:
            self._timezone = ZoneInfo(self.timezone_name)
        except ZoneInfoNotFoundError:
            self._timezone = ZoneInfo("UTC")

    def format_join(
        self,
        intent: NotificationIntent,
        voice_channel: RemoteChannel,
        member: RemoteMember,
    ) -> dict[str, Any]:
        """
        Format a join notification as a message payload.

        Args:
            intent: The notification being delivered
            voice_channel: Resolved voice channel that was joined
            member: Resolved joining member

        Returns:
            Message payload with a single embed
        """
        now = self.clock()
        embed: dict[str, Any] = {
            "title": f"🔔 {intent.rule_name}",
            "color": JOIN_COLOR,
            "author": {
                "name": member.tag,
                "icon_url": member.avatar_url,
            },
            "fields": [
                {"name": "Voice Channel", "value": voice_channel.name, "inline": True},
                {
                    "name": "Time",
                    "value": format_local_time(now, self._timezone, self.timezone_label),
                    "inline": True,
                },
            ],
            "footer": {"text": f"Rule ID: {intent.rule_id}"},
            "timestamp": now.isoformat(),
        }
        return {"embeds": [embed]}
