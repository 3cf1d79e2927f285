"""
Rule Store - Persistent Storage for Notification Rules.

Key Components:
- SQLiteRuleStore: aiosqlite implementation with versioned migrations
- RuleStore: Protocol the rule service depends on

Usage:
    from vc_notify.store import SQLiteRuleStore

    store = SQLiteRuleStore(db_path="data/bot.db")
    await store.initialize()
    rules = await store.list_enabled_by_owner(guild_id)
"""

from .migrations import MigrationRunner
from .protocol import RuleStore
from .sqlite import SQLiteRuleStore

__all__ = [
    "MigrationRunner",
    "RuleStore",
    "SQLiteRuleStore",
]
