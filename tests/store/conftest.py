"""Fixtures for rule store tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from vc_notify.models import NewRule
from vc_notify.store import SQLiteRuleStore


class SteppingClock:
    """Returns a time one second later on every call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


class SequentialIds:
    def __init__(self, prefix: str = "rule") -> None:
        self.prefix = prefix
        self.issued = 0

    def __call__(self) -> str:
        self.issued += 1
        return f"{self.prefix}-{self.issued}"


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "bot.db"


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest_asyncio.fixture
async def store(temp_db_path: Path, clock: SteppingClock) -> AsyncGenerator[SQLiteRuleStore, None]:
    """Create and initialize a test store."""
    store = SQLiteRuleStore(db_path=temp_db_path, id_factory=SequentialIds(), clock=clock)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def make_new_rule() -> Callable[..., NewRule]:
    def factory(
        owner_id: str = "100000000000000001",
        name: str = "Dev team",
        watched: tuple[str, ...] = ("200000000000000001", "200000000000000002"),
        targets: tuple[str, ...] = ("400000000000000001",),
        destination: str = "300000000000000001",
        enabled: bool = True,
    ) -> NewRule:
        return NewRule(
            owner_id=owner_id,
            name=name,
            watched_channel_ids=frozenset(watched),
            target_user_ids=frozenset(targets),
            destination_channel_id=destination,
            enabled=enabled,
        )

    return factory
