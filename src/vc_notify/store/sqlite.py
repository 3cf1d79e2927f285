"""
SQLite Implementation of the Rule Store.

Watched channel and target user sets are stored as JSON arrays.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ..core.logging import get_logger
from ..errors import DuplicateRuleIdError, MigrationError, RuleNotFoundError
from ..models import NewRule, NotificationRule, RuleFields
from .migrations import MigrationRunner

logger = get_logger(__name__)

_SELECT_COLUMNS = """
    id, guild_id, name, watched_voice_channel_ids, target_user_ids,
    notification_channel_id, enabled, created_at, updated_at
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_rule_id() -> str:
    return str(uuid.uuid4())


def _encode_ids(ids: frozenset[str]) -> str:
    return json.dumps(sorted(ids))


def _decode_ids(raw: str | None, rule_id: str, column: str) -> frozenset[str]:
    """
    Decode a stored JSON id array.

    Malformed values decode to an empty set so a single corrupt row cannot
    break rule evaluation for the whole guild.
    """
    try:
        value = json.loads(raw) if raw is not None else None
    except (TypeError, ValueError) as e:
        logger.warning("Malformed %s for rule %s, treating as empty: %s", column, rule_id, e)
        return frozenset()

    if not isinstance(value, list):
        logger.warning("Malformed %s for rule %s, expected a JSON array", column, rule_id)
        return frozenset()

    return frozenset(str(item) for item in value)


class SQLiteRuleStore:
    """
    SQLite implementation of RuleStore.

    Connection configuration:
        PRAGMA journal_mode=WAL
        PRAGMA busy_timeout=5000
        PRAGMA foreign_keys=ON
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        id_factory: Callable[[], str] = _new_rule_id,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to database file. Defaults to the configured db_path.
            id_factory: Generates ids for new rules.
            clock: Returns the current time for created_at/updated_at.
        """
        if db_path is None:
            from ..core.config import get_settings

            db_path = get_settings().resolved_db_path

        self.db_path = Path(db_path)
        self._id_factory = id_factory
        self._clock = clock
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """
        Open the database and run migrations.

        Must be called before any other operations.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA busy_timeout=5000")
        await self._db.execute("PRAGMA foreign_keys=ON")

        try:
            await MigrationRunner(self._db).apply_pending()
        except MigrationError:
            await self._db.close()
            self._db = None
            raise

        self._db.row_factory = aiosqlite.Row

        logger.info("Rule store initialized: %s", self.db_path)

    async def close(self) -> None:
        """Close the store and release resources."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Rule store closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection, raising if not initialized."""
        if self._db is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._db

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, rule: NewRule) -> NotificationRule:
        rule_id = self._id_factory()
        now = self._clock()

        try:
            await self.db.execute(
                """
                INSERT INTO notification_rules (
                    id, guild_id, name, watched_voice_channel_ids, target_user_ids,
                    notification_channel_id, enabled, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule_id,
                    rule.owner_id,
                    rule.name,
                    _encode_ids(rule.watched_channel_ids),
                    _encode_ids(rule.target_user_ids),
                    rule.destination_channel_id,
                    int(rule.enabled),
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
        except sqlite3.IntegrityError as e:
            await self.db.rollback()
            raise DuplicateRuleIdError(rule_id) from e
        await self.db.commit()

        return NotificationRule(
            id=rule_id,
            owner_id=rule.owner_id,
            name=rule.name,
            watched_channel_ids=frozenset(rule.watched_channel_ids),
            target_user_ids=frozenset(rule.target_user_ids),
            destination_channel_id=rule.destination_channel_id,
            enabled=rule.enabled,
            created_at=now,
            updated_at=now,
        )

    async def update(self, rule_id: str, fields: RuleFields) -> NotificationRule:
        cursor = await self.db.execute(
            """
            UPDATE notification_rules
            SET name = ?, watched_voice_channel_ids = ?, target_user_ids = ?,
                notification_channel_id = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                fields.name,
                _encode_ids(fields.watched_channel_ids),
                _encode_ids(fields.target_user_ids),
                fields.destination_channel_id,
                self._clock().isoformat(),
                rule_id,
            ),
        )
        await self.db.commit()

        if cursor.rowcount == 0:
            raise RuleNotFoundError(rule_id)

        updated = await self.find_by_id(rule_id)
        if updated is None:
            raise RuleNotFoundError(rule_id)
        return updated

    async def delete(self, rule_id: str) -> None:
        cursor = await self.db.execute(
            "DELETE FROM notification_rules WHERE id = ?",
            (rule_id,),
        )
        await self.db.commit()

        if cursor.rowcount == 0:
            raise RuleNotFoundError(rule_id)

    async def set_enabled(self, rule_id: str, enabled: bool) -> NotificationRule | None:
        cursor = await self.db.execute(
            "UPDATE notification_rules SET enabled = ?, updated_at = ? WHERE id = ?",
            (int(enabled), self._clock().isoformat(), rule_id),
        )
        await self.db.commit()

        if cursor.rowcount == 0:
            return None
        return await self.find_by_id(rule_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_by_id(self, rule_id: str) -> NotificationRule | None:
        cursor = await self.db.execute(
            f"SELECT {_SELECT_COLUMNS} FROM notification_rules WHERE id = ?",
            (rule_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_rule(row) if row else None

    async def list_by_owner(self, owner_id: str) -> list[NotificationRule]:
        cursor = await self.db.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM notification_rules
            WHERE guild_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (owner_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(row) for row in rows]

    async def list_enabled_by_owner(self, owner_id: str) -> list[NotificationRule]:
        cursor = await self.db.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM notification_rules
            WHERE guild_id = ? AND enabled = 1
            ORDER BY created_at ASC, rowid ASC
            """,
            (owner_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(row) for row in rows]

    async def count_by_owner(self, owner_id: str) -> int:
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM notification_rules WHERE guild_id = ?",
            (owner_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_rule(row: aiosqlite.Row) -> NotificationRule:
        rule_id = row["id"]
        return NotificationRule(
            id=rule_id,
            owner_id=row["guild_id"],
            name=row["name"],
            watched_channel_ids=_decode_ids(
                row["watched_voice_channel_ids"], rule_id, "watched_voice_channel_ids"
            ),
            target_user_ids=_decode_ids(row["target_user_ids"], rule_id, "target_user_ids"),
            destination_channel_id=row["notification_channel_id"],
            enabled=bool(row["enabled"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
