"""
Gateway Voice State Tracking.

Discord's VOICE_STATE_UPDATE dispatch only carries the user's new channel.
The tracker remembers the last known channel per (guild, user) so each
update can be turned into a full previous -> new transition.

Guild state comes from the ``voice_states`` array of GUILD_CREATE, which
Discord sends for every guild when a session starts. Until a guild has been
loaded that way, a user's previous channel is unknown: an update could be a
mute in a channel the user was already in, so it is dropped. The seed
replaces whatever the guild held before.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..core.logging import get_logger
from ..models import VoiceStateChange

logger = get_logger(__name__)


def _optional_id(value: Any) -> str | None:
    return str(value) if value is not None else None


@dataclass
class VoiceStateTracker:
    """Last known voice channel per (guild_id, user_id)."""

    _channels: dict[tuple[str, str], str] = field(default_factory=dict, repr=False)
    _loaded_guilds: set[str] = field(default_factory=set, repr=False)

    def seed(self, guild_id: str, voice_states: Iterable[dict[str, Any]]) -> None:
        """
        Load a guild's current voice states, replacing anything known.

        After seeding, updates for the guild are reported as transitions.
        """
        guild_id = str(guild_id)
        self.forget_guild(guild_id)
        for state in voice_states:
            user_id = _optional_id(state.get("user_id"))
            channel_id = _optional_id(state.get("channel_id"))
            if user_id is not None and channel_id is not None:
                self._channels[(guild_id, user_id)] = channel_id
        self._loaded_guilds.add(guild_id)

    def is_loaded(self, guild_id: str) -> bool:
        return str(guild_id) in self._loaded_guilds

    def observe(self, payload: dict[str, Any]) -> VoiceStateChange | None:
        """
        Record a VOICE_STATE_UPDATE payload and return the transition.

        Returns None for payloads outside a guild and for guilds that have
        not been seeded.
        """
        guild_id = _optional_id(payload.get("guild_id"))
        user_id = _optional_id(payload.get("user_id"))
        if guild_id is None or user_id is None:
            return None

        if guild_id not in self._loaded_guilds:
            logger.debug(
                "Voice state for guild %s before GUILD_CREATE, previous channel unknown", guild_id
            )
            return None

        key = (guild_id, user_id)
        new_channel_id = _optional_id(payload.get("channel_id"))
        previous_channel_id = self._channels.get(key)

        if new_channel_id is None:
            self._channels.pop(key, None)
        else:
            self._channels[key] = new_channel_id

        return VoiceStateChange(
            owner_id=guild_id,
            user_id=user_id,
            previous_channel_id=previous_channel_id,
            new_channel_id=new_channel_id,
        )

    def forget_guild(self, guild_id: str) -> None:
        """Drop all state for a guild (GUILD_DELETE)."""
        guild_id = str(guild_id)
        for key in [key for key in self._channels if key[0] == guild_id]:
            del self._channels[key]
        self._loaded_guilds.discard(guild_id)

    def __len__(self) -> int:
        return len(self._channels)
