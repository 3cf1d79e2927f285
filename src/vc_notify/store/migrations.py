"""
Rule Store Schema Migrations.

Migrations are SQL files named ``NNN_description.sql`` in the bundled
``migrations/`` directory. Each pending file runs inside a single
transaction together with its ``schema_migrations`` row: either the whole
script and its version are committed, or nothing is.
"""

from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.logging import get_logger
from ..errors import MigrationError

if TYPE_CHECKING:
    import aiosqlite

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_CREATE_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    applied_at INTEGER NOT NULL,
    description TEXT
)
"""


@dataclass(frozen=True)
class Migration:
    """One versioned schema script."""

    version: int
    description: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> Migration | None:
        """Parse ``003_add_index.sql``; None when the name has no numeric prefix."""
        prefix, _, rest = path.stem.partition("_")
        if not prefix.isdigit():
            return None
        return cls(version=int(prefix), description=rest.replace("_", " "), path=path)

    @property
    def label(self) -> str:
        return f"{self.version:03d} {self.description}".strip()


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Migrations in a directory, ordered by version."""
    found = []
    for path in directory.glob("*.sql"):
        migration = Migration.from_path(path)
        if migration is None:
            logger.warning("Ignoring migration file without version prefix: %s", path.name)
            continue
        found.append(migration)
    return sorted(found, key=lambda m: m.version)


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class MigrationRunner:
    """Brings a rule database up to the newest bundled schema version."""

    def __init__(self, db: aiosqlite.Connection, migrations_dir: Path = MIGRATIONS_DIR):
        self.db = db
        self.migrations_dir = migrations_dir

    async def current_version(self) -> int:
        """Highest applied version, 0 for a fresh database."""
        await self.db.execute(_CREATE_VERSION_TABLE)
        await self.db.commit()
        cursor = await self.db.execute("SELECT MAX(version) FROM schema_migrations")
        row = await cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    async def apply_pending(self) -> list[Migration]:
        """
        Apply every migration newer than the current version.

        Returns:
            The migrations applied, in order

        Raises:
            MigrationError: A script failed; its changes were rolled back and
                later migrations were not attempted
        """
        current = await self.current_version()
        pending = [m for m in discover_migrations(self.migrations_dir) if m.version > current]

        for migration in pending:
            await self._apply(migration)

        if pending:
            logger.info(
                "Rule database migrated from version %d to %d", current, pending[-1].version
            )
        return pending

    async def _apply(self, migration: Migration) -> None:
        sql = migration.path.read_text(encoding="utf-8")
        # executescript cannot bind parameters; the version row is inlined so it
        # commits in the same transaction as the schema change
        script = (
            "BEGIN;\n"
            f"{sql}\n;\n"
            "INSERT INTO schema_migrations (version, applied_at, description) "
            f"VALUES ({migration.version}, {int(time.time())}, {_quote(migration.description)});\n"
            "COMMIT;"
        )

        logger.info("Applying migration %s", migration.label)
        try:
            await self.db.executescript(script)
        except sqlite3.Error as e:
            await self.db.rollback()
            logger.error("Migration %s failed and was rolled back: %s", migration.label, e)
            raise MigrationError(migration.path.name, e) from e
