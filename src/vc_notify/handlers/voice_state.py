"""
Voice State Handler.

Turns voice state changes into notifications:

1. Only joins (no channel -> channel) are evaluated; moves and leaves are ignored
2. Applicable rules are read fresh from the rule service
3. One intent per destination channel, the earliest created rule wins
4. Intents are dispatched concurrently; each failure is logged on its own

Nothing raised here reaches the gateway event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from ..core.logging import get_logger
from ..models import NotificationIntent, VoiceStateChange, VoiceTransition
from .gateway import VoiceStateTracker

if TYPE_CHECKING:
    from ..models import NotificationRule

logger = get_logger(__name__)


class ApplicableRuleSource(Protocol):
    async def get_applicable_rules(
        self, owner_id: str, watched_channel_id: str, user_id: str
    ) -> list[NotificationRule]: ...


class NotificationSender(Protocol):
    async def send_notification(self, intent: NotificationIntent) -> None: ...


def build_intents(
    event: VoiceStateChange, rules: Iterable[NotificationRule]
) -> list[NotificationIntent]:
    """
    Build one intent per destination channel.

    Rules are taken in the given order; later rules targeting an already
    claimed destination are dropped.
    """
    if event.new_channel_id is None:
        return []

    intents: dict[str, NotificationIntent] = {}
    for rule in rules:
        if rule.destination_channel_id in intents:
            continue
        intents[rule.destination_channel_id] = NotificationIntent(
            owner_id=event.owner_id,
            watched_channel_id=event.new_channel_id,
            user_id=event.user_id,
            destination_channel_id=rule.destination_channel_id,
            rule_id=rule.id,
            rule_name=rule.name,
        )
    return list(intents.values())


class VoiceStateHandler:
    """Evaluates voice state changes against notification rules."""

    def __init__(
        self,
        rule_service: ApplicableRuleSource,
        dispatcher: NotificationSender,
        tracker: VoiceStateTracker | None = None,
    ):
        self._rule_service = rule_service
        self._dispatcher = dispatcher
        self.tracker = tracker or VoiceStateTracker()

    async def handle(self, event: VoiceStateChange) -> None:
        """Handle one voice state change. Never raises."""
        if event.transition is not VoiceTransition.JOIN or event.new_channel_id is None:
            return

        try:
            rules = await self._rule_service.get_applicable_rules(
                event.owner_id, event.new_channel_id, event.user_id
            )
        except Exception:
            logger.error(
                "Failed to load notification rules (guild=%s channel=%s user=%s)",
                event.owner_id,
                event.new_channel_id,
                event.user_id,
                exc_info=True,
            )
            return

        intents = build_intents(event, rules)
        if not intents:
            return

        logger.debug(
            "Dispatching %d notification(s) for join (guild=%s channel=%s)",
            len(intents),
            event.owner_id,
            event.new_channel_id,
        )
        await asyncio.gather(*(self._dispatch(intent) for intent in intents))

    def handle_guild_create(self, payload: dict[str, Any]) -> None:
        """Load a guild's current voice states from a GUILD_CREATE payload."""
        voice_states = payload.get("voice_states") or []
        self.tracker.seed(str(payload["id"]), voice_states)
        logger.debug("Loaded %d voice state(s) for guild %s", len(voice_states), payload["id"])

    def handle_guild_delete(self, payload: dict[str, Any]) -> None:
        """Drop voice state for a guild that was left or became unavailable."""
        self.tracker.forget_guild(str(payload["id"]))

    async def handle_gateway_payload(self, payload: dict[str, Any]) -> None:
        """
        Handle a raw VOICE_STATE_UPDATE dispatch payload.

        Updates for guilds not yet loaded through ``handle_guild_create``
        are ignored.
        """
        event = self.tracker.observe(payload)
        if event is not None:
            await self.handle(event)

    async def _dispatch(self, intent: NotificationIntent) -> None:
        try:
            await self._dispatcher.send_notification(intent)
        except Exception as e:
            logger.error(
                "Notification delivery failed (guild=%s voice=%s destination=%s rule=%s): %s",
                intent.owner_id,
                intent.watched_channel_id,
                intent.destination_channel_id,
                intent.rule_id,
                e,
            )
