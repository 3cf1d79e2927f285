"""
Rule Service.

Validates rule input, enforces the per-guild quota and answers which
enabled rules apply to a voice channel join. Rules are never cached: every
call reads the store, so a toggle takes effect on the next event.
"""

from __future__ import annotations

from ..core.logging import get_logger
from ..errors import (
    RuleLimitExceededError,
    RuleNotFoundError,
    RuleRepositoryConflictError,
    RuleValidationError,
)
from ..models import CreateRuleInput, NotificationRule, UpdateRuleInput
from ..store.protocol import RuleStore
from .validation import validate_create_input, validate_update_input

logger = get_logger(__name__)

RULES_PER_GUILD_LIMIT = 50


class RuleService:
    """Business operations over notification rules."""

    def __init__(self, store: RuleStore, rules_per_guild_limit: int = RULES_PER_GUILD_LIMIT):
        self._store = store
        self.rules_per_guild_limit = rules_per_guild_limit

    async def create_rule(self, data: CreateRuleInput) -> NotificationRule:
        """
        Validate and persist a new, enabled rule.

        Raises:
            RuleValidationError: With every violated constraint
            RuleLimitExceededError: When the guild is at its quota
        """
        outcome = validate_create_input(data)
        if not outcome.valid or outcome.normalized is None:
            logger.warning(
                "Rule creation rejected for guild %s: %s",
                data.owner_id,
                "; ".join(str(v) for v in outcome.violations),
            )
            raise RuleValidationError(outcome.violations)

        new_rule = outcome.normalized
        count = await self._store.count_by_owner(new_rule.owner_id)
        if count >= self.rules_per_guild_limit:
            logger.warning(
                "Rule limit reached for guild %s (%d/%d)",
                new_rule.owner_id,
                count,
                self.rules_per_guild_limit,
            )
            raise RuleLimitExceededError(new_rule.owner_id, self.rules_per_guild_limit)

        created = await self._store.create(new_rule)
        logger.info("Rule %s created for guild %s", created.id, created.owner_id)
        return created

    async def update_rule(self, rule_id: str, data: UpdateRuleInput) -> NotificationRule:
        """Replace the mutable fields of an existing rule."""
        await self._require_rule(rule_id, "update")

        outcome = validate_update_input(data)
        if not outcome.valid or outcome.normalized is None:
            logger.warning(
                "Rule update rejected for %s: %s",
                rule_id,
                "; ".join(str(v) for v in outcome.violations),
            )
            raise RuleValidationError(outcome.violations)

        updated = await self._store.update(rule_id, outcome.normalized)
        logger.info("Rule %s updated", rule_id)
        return updated

    async def delete_rule(self, rule_id: str) -> None:
        await self._require_rule(rule_id, "delete")
        await self._store.delete(rule_id)
        logger.info("Rule %s deleted", rule_id)

    async def toggle_rule(self, rule_id: str, enabled: bool | None = None) -> NotificationRule:
        """
        Set or flip the enabled flag.

        Args:
            rule_id: Rule to toggle
            enabled: Explicit value; flips the current value when None

        Raises:
            RuleNotFoundError: The rule does not exist
            RuleRepositoryConflictError: The row vanished between the
                existence check and the write
        """
        existing = await self._require_rule(rule_id, "toggle")
        next_state = (not existing.enabled) if enabled is None else enabled

        toggled = await self._store.set_enabled(rule_id, next_state)
        if toggled is None:
            logger.error(
                "Rule store inconsistency while toggling %s (expected enabled=%s)",
                rule_id,
                next_state,
            )
            raise RuleRepositoryConflictError(rule_id)

        logger.info("Rule %s toggled (enabled=%s)", rule_id, toggled.enabled)
        return toggled

    async def list_rules(
        self, owner_id: str, include_disabled: bool = False
    ) -> list[NotificationRule]:
        if include_disabled:
            return await self._store.list_by_owner(owner_id)
        return await self._store.list_enabled_by_owner(owner_id)

    async def get_applicable_rules(
        self, owner_id: str, watched_channel_id: str, user_id: str
    ) -> list[NotificationRule]:
        """
        Enabled rules matching a join, in creation order.

        A rule matches when it watches the channel and either targets all
        users (empty target set) or lists the joining user.
        """
        rules = await self._store.list_enabled_by_owner(owner_id)
        return [rule for rule in rules if rule.watches(watched_channel_id) and rule.targets(user_id)]

    async def _require_rule(self, rule_id: str, action: str) -> NotificationRule:
        existing = await self._store.find_by_id(rule_id)
        if existing is None:
            logger.warning("Cannot %s rule %s: not found", action, rule_id)
            raise RuleNotFoundError(rule_id)
        return existing
