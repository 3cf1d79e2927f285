"""Fixtures for rule service tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from vc_notify.models import CreateRuleInput, NotificationRule, UpdateRuleInput
from vc_notify.services import RuleService
from vc_notify.store import SQLiteRuleStore

GUILD = "100000000000000001"
VOICE = "200000000000000001"
VOICE_2 = "200000000000000002"
TEXT = "300000000000000001"
USER = "400000000000000001"
USER_2 = "400000000000000002"


def make_rule(
    rule_id: str = "rule-1",
    owner_id: str = GUILD,
    name: str = "rule",
    watched: tuple[str, ...] = (VOICE,),
    targets: tuple[str, ...] = (),
    destination: str = TEXT,
    enabled: bool = True,
) -> NotificationRule:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return NotificationRule(
        id=rule_id,
        owner_id=owner_id,
        name=name,
        watched_channel_ids=frozenset(watched),
        target_user_ids=frozenset(targets),
        destination_channel_id=destination,
        enabled=enabled,
        created_at=now,
        updated_at=now,
    )


def make_create_input(**overrides) -> CreateRuleInput:
    values = {
        "owner_id": GUILD,
        "name": "Dev team",
        "watched_channel_ids": [VOICE],
        "target_user_ids": [],
        "destination_channel_id": TEXT,
    }
    values.update(overrides)
    return CreateRuleInput(**values)


def make_update_input(**overrides) -> UpdateRuleInput:
    values = {
        "name": "Renamed",
        "watched_channel_ids": [VOICE_2],
        "target_user_ids": [USER],
        "destination_channel_id": TEXT,
    }
    values.update(overrides)
    return UpdateRuleInput(**values)


@pytest.fixture
def mock_store() -> AsyncMock:
    """A RuleStore double with an empty guild."""
    store = AsyncMock()
    store.count_by_owner.return_value = 0
    store.find_by_id.return_value = None
    store.list_by_owner.return_value = []
    store.list_enabled_by_owner.return_value = []
    return store


@pytest.fixture
def service(mock_store: AsyncMock) -> RuleService:
    return RuleService(mock_store)


@pytest_asyncio.fixture
async def sqlite_service(tmp_path: Path) -> AsyncGenerator[RuleService, None]:
    """RuleService backed by a real SQLite store."""
    store = SQLiteRuleStore(db_path=tmp_path / "rules.db")
    await store.initialize()
    yield RuleService(store)
    await store.close()
