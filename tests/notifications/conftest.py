"""Fakes for notification dispatch tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pytest

from vc_notify.models import NotificationIntent
from vc_notify.notifications import (
    DuplicateSuppressor,
    MessageFormatter,
    NotificationDispatcher,
)

GUILD = "100000000000000001"
VOICE = "200000000000000001"
TEXT = "300000000000000001"
USER = "400000000000000001"

FIXED_NOW = datetime(2025, 10, 25, 8, 0, 0, tzinfo=timezone.utc)


@dataclass
class FakeChannel:
    id: str
    name: str = "General"
    voice: bool = False
    text: bool = True
    errors: list[BaseException] = field(default_factory=list)
    sent: list[dict[str, Any]] = field(default_factory=list)
    attempts: int = 0

    def is_voice_based(self) -> bool:
        return self.voice

    def is_text_based(self) -> bool:
        return self.text

    async def send(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Raise queued errors first, then record the payload."""
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        self.sent.append(payload)
        return {"id": str(len(self.sent))}


@dataclass
class FakeMember:
    id: str
    tag: str = "alice"
    avatar_url: str = "https://cdn.example/avatar.png"


@dataclass
class FakeGuild:
    id: str
    channels: dict[str, FakeChannel] = field(default_factory=dict)
    members: dict[str, FakeMember] = field(default_factory=dict)
    cached: set[str] = field(default_factory=set)
    channel_error: BaseException | None = None
    member_error: BaseException | None = None

    def get_cached_channel(self, channel_id: str) -> FakeChannel | None:
        if channel_id in self.cached:
            return self.channels.get(channel_id)
        return None

    async def fetch_channel(self, channel_id: str) -> FakeChannel | None:
        if self.channel_error is not None:
            raise self.channel_error
        return self.channels.get(channel_id)

    async def fetch_member(self, user_id: str) -> FakeMember | None:
        if self.member_error is not None:
            raise self.member_error
        return self.members.get(user_id)


@dataclass
class FakeClient:
    guilds: dict[str, FakeGuild] = field(default_factory=dict)
    channels: dict[str, FakeChannel] = field(default_factory=dict)
    guild_error: BaseException | None = None
    guild_fetches: int = 0

    async def fetch_guild(self, guild_id: str) -> FakeGuild | None:
        self.guild_fetches += 1
        if self.guild_error is not None:
            raise self.guild_error
        return self.guilds.get(guild_id)

    async def fetch_channel(self, channel_id: str) -> FakeChannel | None:
        return self.channels.get(channel_id)


class _ManualHandle:
    def __init__(self, scheduler: ManualScheduler, callback: Callable[[], None]):
        self._scheduler = scheduler
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire on flush()."""

    def __init__(self) -> None:
        self.handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def flush(self) -> int:
        """Fire every pending timer, returning how many fired."""
        fired = 0
        for handle in self.pending:
            handle.callback()
            fired += 1
        return fired


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_intent(**overrides: str) -> NotificationIntent:
    values = {
        "owner_id": GUILD,
        "watched_channel_id": VOICE,
        "user_id": USER,
        "destination_channel_id": TEXT,
        "rule_id": "rule-1",
        "rule_name": "Dev team",
    }
    values.update(overrides)
    return NotificationIntent(**values)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def destination() -> FakeChannel:
    return FakeChannel(id=TEXT, name="notifications")


@pytest.fixture
def voice_channel() -> FakeChannel:
    return FakeChannel(id=VOICE, name="General", voice=True)


@pytest.fixture
def guild(voice_channel: FakeChannel) -> FakeGuild:
    return FakeGuild(
        id=GUILD,
        channels={VOICE: voice_channel},
        members={USER: FakeMember(id=USER)},
        cached={VOICE},
    )


@pytest.fixture
def fake_client(guild: FakeGuild, destination: FakeChannel) -> FakeClient:
    return FakeClient(guilds={GUILD: guild}, channels={TEXT: destination})


@pytest.fixture
def suppressor(scheduler: ManualScheduler, clock: ManualClock) -> DuplicateSuppressor:
    return DuplicateSuppressor(ttl_seconds=5.0, scheduler=scheduler, clock=clock)


@pytest.fixture
def dispatcher(
    fake_client: FakeClient,
    suppressor: DuplicateSuppressor,
    sleep: RecordingSleep,
) -> NotificationDispatcher:
    return NotificationDispatcher(
        fake_client,
        formatter=MessageFormatter(clock=lambda: FIXED_NOW),
        suppressor=suppressor,
        sleep=sleep,
    )
