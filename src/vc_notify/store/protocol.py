"""
Rule Store Protocol Interface.

Defines the storage contract the rule service depends on, so tests and
alternative backends can substitute the SQLite implementation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import NewRule, NotificationRule, RuleFields


@runtime_checkable
class RuleStore(Protocol):
    """
    Persistence contract for notification rules.

    Listing operations return rules in creation order (oldest first).
    Every write is atomic with respect to a single rule row.
    """

    async def create(self, rule: NewRule) -> NotificationRule:
        """Persist a new rule. Raises DuplicateRuleIdError on id collision."""
        ...

    async def find_by_id(self, rule_id: str) -> NotificationRule | None:
        ...

    async def list_by_owner(self, owner_id: str) -> list[NotificationRule]:
        ...

    async def list_enabled_by_owner(self, owner_id: str) -> list[NotificationRule]:
        ...

    async def update(self, rule_id: str, fields: RuleFields) -> NotificationRule:
        """Replace mutable fields. Raises RuleNotFoundError if absent."""
        ...

    async def delete(self, rule_id: str) -> None:
        """Hard delete. Raises RuleNotFoundError if absent."""
        ...

    async def set_enabled(self, rule_id: str, enabled: bool) -> NotificationRule | None:
        """Set the enabled flag, returning None when no row changed."""
        ...

    async def count_by_owner(self, owner_id: str) -> int:
        ...
