"""
Exception hierarchy for vc_notify.

Rule service errors carry a stable ``code`` so command layers can map them
to user-facing text. Dispatch errors chain the underlying remote failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .services.validation import RuleViolation


class VcNotifyError(Exception):
    """Base class for all vc_notify errors."""


class ConfigurationError(VcNotifyError):
    """Required configuration is missing."""


# =============================================================================
# Rule Service
# =============================================================================


class RuleServiceError(VcNotifyError):
    """Business error returned to the calling layer."""

    code = "RULE_SERVICE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RuleValidationError(RuleServiceError):
    """Rule input violated one or more field constraints."""

    code = "RULE_VALIDATION_ERROR"

    def __init__(self, violations: list[RuleViolation]) -> None:
        super().__init__("Rule validation failed")
        self.violations = violations

    @property
    def messages(self) -> list[str]:
        return [str(v) for v in self.violations]

    def __str__(self) -> str:
        return f"{self.message}: {'; '.join(self.messages)}"


class RuleLimitExceededError(RuleServiceError):
    """The guild already owns the maximum number of rules."""

    code = "RULE_LIMIT_EXCEEDED"

    def __init__(self, owner_id: str, limit: int) -> None:
        super().__init__(f"Rule limit of {limit} exceeded for guild {owner_id}")
        self.owner_id = owner_id
        self.limit = limit


class RuleNotFoundError(RuleServiceError):
    """The referenced rule id does not exist."""

    code = "RULE_NOT_FOUND"

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id


class RuleRepositoryConflictError(RuleServiceError):
    """The store returned inconsistent state after an existence check."""

    code = "RULE_REPOSITORY_CONFLICT"

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule repository returned inconsistent state for {rule_id}")
        self.rule_id = rule_id


# =============================================================================
# Rule Store
# =============================================================================


class MigrationError(VcNotifyError):
    """A schema migration failed and was rolled back."""

    def __init__(self, migration: str, cause: BaseException) -> None:
        super().__init__(f"Failed to apply database migrations ({migration}): {cause}")
        self.migration = migration
        self.cause = cause


class DuplicateRuleIdError(VcNotifyError):
    """A generated rule id collided with an existing row."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule id already exists: {rule_id}")
        self.rule_id = rule_id


# =============================================================================
# Notification Dispatch
# =============================================================================


class TransientResolutionError(VcNotifyError):
    """A remote lookup failed in a way that may succeed on a later event."""

    def __init__(self, step: str, cause: BaseException) -> None:
        super().__init__(f"Failed to resolve {step}: {cause}")
        self.step = step
        self.cause = cause


class NotificationSendError(VcNotifyError):
    """Sending a notification failed after the retry policy was applied."""

    def __init__(self, cause: BaseException, attempts: int) -> None:
        super().__init__(f"Failed to send notification after {attempts} attempt(s): {cause}")
        self.cause = cause
        self.attempts = attempts
