"""
Rule Input Validation.

Normalizes raw command input (trimming strings, coercing ids to str) and
collects every violated constraint rather than stopping at the first.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ..models import CreateRuleInput, NewRule, RuleFields, UpdateRuleInput

SNOWFLAKE_PATTERN = re.compile(r"^\d{17,19}$")

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 50
WATCHED_CHANNEL_MIN = 1
WATCHED_CHANNEL_MAX = 10
TARGET_USER_MAX = 50

T = TypeVar("T")


@dataclass
class RuleViolation:
    """A single violated field constraint."""

    field: str  # Field name (e.g., "watched_channel_ids")
    code: str  # Error code (e.g., "TOO_MANY_ITEMS")
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationOutcome(Generic[T]):
    """Violations found, plus the normalized value when there are none."""

    violations: list[RuleViolation] = field(default_factory=list)
    normalized: T | None = None

    @property
    def valid(self) -> bool:
        return not self.violations and self.normalized is not None


def is_snowflake(value: str) -> bool:
    return bool(SNOWFLAKE_PATTERN.match(value))


def _normalize_id(value: object) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    return str(value).strip() if value is not None else ""


def _normalize_id_list(
    name: str, raw: object, violations: list[RuleViolation]
) -> list[str] | None:
    """Coerce a list of ids, or record a violation when it is not a list."""
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        violations.append(RuleViolation(name, "NOT_A_LIST", "must be a list of ids."))
        return None
    return [_normalize_id(item) for item in raw]


def validate_rule_fields(
    name: object,
    watched_channel_ids: object,
    target_user_ids: object,
    destination_channel_id: object,
) -> ValidationOutcome[RuleFields]:
    """Validate the fields shared by create and update."""
    violations: list[RuleViolation] = []

    normalized_name = name.strip() if isinstance(name, str) else ""
    if not NAME_MIN_LENGTH <= len(normalized_name) <= NAME_MAX_LENGTH:
        violations.append(
            RuleViolation(
                "name",
                "INVALID_LENGTH",
                f"must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters.",
            )
        )

    watched = _normalize_id_list("watched_channel_ids", watched_channel_ids, violations)
    if watched is not None:
        distinct = set(watched)
        if not WATCHED_CHANNEL_MIN <= len(distinct) <= WATCHED_CHANNEL_MAX:
            violations.append(
                RuleViolation(
                    "watched_channel_ids",
                    "INVALID_COUNT",
                    f"must contain between {WATCHED_CHANNEL_MIN} and "
                    f"{WATCHED_CHANNEL_MAX} channels.",
                )
            )
        if not all(is_snowflake(channel_id) for channel_id in watched):
            violations.append(
                RuleViolation("watched_channel_ids", "INVALID_ID", "must contain valid snowflake ids.")
            )

    targets = _normalize_id_list("target_user_ids", target_user_ids, violations)
    if targets is not None:
        if len(set(targets)) > TARGET_USER_MAX:
            violations.append(
                RuleViolation(
                    "target_user_ids",
                    "TOO_MANY_ITEMS",
                    f"must not exceed {TARGET_USER_MAX} users.",
                )
            )
        if not all(is_snowflake(user_id) for user_id in targets):
            violations.append(
                RuleViolation("target_user_ids", "INVALID_ID", "must contain valid snowflake ids.")
            )

    destination = _normalize_id(destination_channel_id)
    if not is_snowflake(destination):
        violations.append(
            RuleViolation("destination_channel_id", "INVALID_ID", "must be a valid snowflake id.")
        )

    if violations or watched is None or targets is None:
        return ValidationOutcome(violations=violations)

    return ValidationOutcome(
        normalized=RuleFields(
            name=normalized_name,
            watched_channel_ids=frozenset(watched),
            target_user_ids=frozenset(targets),
            destination_channel_id=destination,
        )
    )


def validate_create_input(data: CreateRuleInput) -> ValidationOutcome[NewRule]:
    common = validate_rule_fields(
        data.name,
        data.watched_channel_ids,
        data.target_user_ids,
        data.destination_channel_id,
    )
    violations = list(common.violations)

    owner_id = _normalize_id(data.owner_id)
    if not is_snowflake(owner_id):
        violations.append(RuleViolation("owner_id", "INVALID_ID", "must be a valid snowflake id."))

    if violations or common.normalized is None:
        return ValidationOutcome(violations=violations)

    fields = common.normalized
    return ValidationOutcome(
        normalized=NewRule(
            owner_id=owner_id,
            name=fields.name,
            watched_channel_ids=fields.watched_channel_ids,
            target_user_ids=fields.target_user_ids,
            destination_channel_id=fields.destination_channel_id,
            enabled=True,
        )
    )


def validate_update_input(data: UpdateRuleInput) -> ValidationOutcome[RuleFields]:
    return validate_rule_fields(
        data.name,
        data.watched_channel_ids,
        data.target_user_ids,
        data.destination_channel_id,
    )
