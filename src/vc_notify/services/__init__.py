"""Rule management services."""

from .rule_service import RULES_PER_GUILD_LIMIT, RuleService
from .validation import RuleViolation, ValidationOutcome

__all__ = [
    "RULES_PER_GUILD_LIMIT",
    "RuleService",
    "RuleViolation",
    "ValidationOutcome",
]
