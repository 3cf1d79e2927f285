"""
Domain models for voice-channel join notifications.

NotificationRule is the only persisted entity. NotificationIntent and
VoiceStateChange are transient values passed between components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class NotificationRule:
    """A per-guild rule mapping watched voice channels to a text channel."""

    id: str
    owner_id: str
    name: str
    watched_channel_ids: frozenset[str]
    target_user_ids: frozenset[str]
    destination_channel_id: str
    enabled: bool
    created_at: datetime
    updated_at: datetime

    @property
    def targets_all_users(self) -> bool:
        """An empty target set matches every user."""
        return not self.target_user_ids

    def watches(self, channel_id: str) -> bool:
        return channel_id in self.watched_channel_ids

    def targets(self, user_id: str) -> bool:
        return self.targets_all_users or user_id in self.target_user_ids


@dataclass
class RuleFields:
    """Normalized mutable fields of a rule, as written to the store."""

    name: str
    watched_channel_ids: frozenset[str]
    target_user_ids: frozenset[str]
    destination_channel_id: str


@dataclass
class NewRule:
    """Normalized input for creating a rule."""

    owner_id: str
    name: str
    watched_channel_ids: frozenset[str]
    target_user_ids: frozenset[str]
    destination_channel_id: str
    enabled: bool = True


@dataclass
class CreateRuleInput:
    """Raw rule creation input from a command layer (not yet validated)."""

    owner_id: object
    name: object
    watched_channel_ids: object
    target_user_ids: object = field(default_factory=list)
    destination_channel_id: object = None


@dataclass
class UpdateRuleInput:
    """Raw full-replacement update input (not yet validated)."""

    name: object
    watched_channel_ids: object
    target_user_ids: object = field(default_factory=list)
    destination_channel_id: object = None


@dataclass(frozen=True)
class NotificationIntent:
    """One notification to deliver, derived from a matching rule."""

    owner_id: str
    watched_channel_id: str
    user_id: str
    destination_channel_id: str
    rule_id: str
    rule_name: str

    @property
    def suppression_key(self) -> tuple[str, str, str]:
        """Key used for duplicate suppression: (destination, user, watched channel)."""
        return (self.destination_channel_id, self.user_id, self.watched_channel_id)


class VoiceTransition(str, Enum):
    """Classification of a voice state change."""

    JOIN = "join"
    LEAVE = "leave"
    MOVE = "move"
    NONE = "none"


@dataclass(frozen=True)
class VoiceStateChange:
    """A presence transition for one user in one guild."""

    owner_id: str
    user_id: str
    previous_channel_id: str | None
    new_channel_id: str | None

    @property
    def transition(self) -> VoiceTransition:
        previous = self.previous_channel_id
        new = self.new_channel_id
        if previous is None and new is not None:
            return VoiceTransition.JOIN
        if previous is not None and new is None:
            return VoiceTransition.LEAVE
        if previous is not None and new is not None and previous != new:
            return VoiceTransition.MOVE
        return VoiceTransition.NONE
