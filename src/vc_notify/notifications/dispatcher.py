"""
Notification Dispatcher.

Delivers one notification intent:

1. Skip if the (destination, user, voice channel) key was delivered within
   the duplicate window
2. Resolve guild -> voice channel -> member -> destination channel
3. Render the embed
4. Send with retry (rate limit: one retry after retry-after; network
   failures: linear backoff, bounded)
5. Mark the key as delivered

Permanent resolution failures are logged and also mark the key, so a rule
pointing at a deleted channel does not produce an error on every join.
Transient resolution failures raise and leave the key unmarked.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from ..core.logging import get_logger
from ..errors import NotificationSendError, TransientResolutionError
from .formatter import MessageFormatter
from .remote import (
    FailureKind,
    PermanentFailure,
    RemoteChannel,
    RemoteClient,
    RemoteGuild,
    RemoteMember,
    Resolution,
    Resolved,
    TransientFailure,
    classify_failure,
)
from .suppression import DuplicateSuppressor

if TYPE_CHECKING:
    from ..core.config import VcNotifySettings
    from ..models import NotificationIntent

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_DUPLICATE_WINDOW_MS = 5000
DEFAULT_RATE_LIMIT_FALLBACK_MS = 1000
DEFAULT_NETWORK_MAX_RETRIES = 2
DEFAULT_NETWORK_BACKOFF_MS = 1000


class NotificationDispatcher:
    """
    Resolves, renders and sends join notifications.

    Collaborators are injected so tests can drive time deterministically:
    ``suppressor`` owns the duplicate window timers and ``sleep`` is awaited
    for every retry backoff.
    """

    def __init__(
        self,
        client: RemoteClient,
        formatter: MessageFormatter | None = None,
        suppressor: DuplicateSuppressor | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rate_limit_fallback_ms: int = DEFAULT_RATE_LIMIT_FALLBACK_MS,
        retry_after_unit: str = "seconds",
        network_max_retries: int = DEFAULT_NETWORK_MAX_RETRIES,
        network_backoff_ms: int = DEFAULT_NETWORK_BACKOFF_MS,
    ):
        self._client = client
        self._formatter = formatter or MessageFormatter()
        self._suppressor = suppressor or DuplicateSuppressor(
            ttl_seconds=DEFAULT_DUPLICATE_WINDOW_MS / 1000
        )
        self._sleep = sleep
        self.rate_limit_fallback_ms = rate_limit_fallback_ms
        self.retry_after_unit = retry_after_unit
        self.network_max_retries = network_max_retries
        self.network_backoff_ms = network_backoff_ms

    @classmethod
    def from_settings(
        cls,
        client: RemoteClient,
        settings: VcNotifySettings,
        **overrides: Any,
    ) -> NotificationDispatcher:
        """Build a dispatcher using configured delivery policy."""
        options: dict[str, Any] = {
            "formatter": MessageFormatter(
                timezone_name=settings.timezone,
                timezone_label=settings.timezone_label,
            ),
            "suppressor": DuplicateSuppressor(ttl_seconds=settings.duplicate_window_ms / 1000),
            "rate_limit_fallback_ms": settings.rate_limit_fallback_ms,
            "retry_after_unit": settings.retry_after_unit,
            "network_max_retries": settings.network_max_retries,
            "network_backoff_ms": settings.network_backoff_ms,
        }
        options.update(overrides)
        return cls(client, **options)

    @property
    def suppressor(self) -> DuplicateSuppressor:
        return self._suppressor

    async def send_notification(self, intent: NotificationIntent) -> None:
        """
        Deliver one notification.

        Raises:
            TransientResolutionError: A lookup failed transiently
            NotificationSendError: The send failed after applying retry policy
        """
        key = intent.suppression_key
        if self._suppressor.is_suppressed(key):
            logger.debug(
                "Suppressed duplicate notification (channel=%s user=%s voice=%s)",
                intent.destination_channel_id,
                intent.user_id,
                intent.watched_channel_id,
            )
            return

        guild_result = await self._resolve_guild(intent)
        if not isinstance(guild_result, Resolved):
            self._handle_unresolved(intent, "guild", guild_result)
            return
        guild = guild_result.value

        voice_result = await self._resolve_voice_channel(guild, intent)
        if not isinstance(voice_result, Resolved):
            self._handle_unresolved(intent, "voice channel", voice_result)
            return
        voice_channel = voice_result.value

        member_result = await self._resolve_member(guild, intent)
        if not isinstance(member_result, Resolved):
            self._handle_unresolved(intent, "member", member_result)
            return
        member = member_result.value

        destination_result = await self._resolve_destination(intent)
        if not isinstance(destination_result, Resolved):
            self._handle_unresolved(intent, "notification channel", destination_result)
            return
        destination = destination_result.value

        payload = self._formatter.format_join(intent, voice_channel, member)
        await self._send_with_retry(destination, payload, intent)

        self._suppressor.mark(key)
        logger.info(
            "Notification sent (guild=%s channel=%s rule=%s)",
            intent.owner_id,
            intent.destination_channel_id,
            intent.rule_id,
        )

    def cleanup(self) -> None:
        """Cancel all duplicate-window timers."""
        removed = self._suppressor.cleanup()
        logger.debug("Dispatcher cleanup released %d suppression timer(s)", removed)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def _resolve_guild(self, intent: NotificationIntent) -> Resolution[RemoteGuild]:
        return await _attempt(
            lambda: self._client.fetch_guild(intent.owner_id),
            missing=f"guild {intent.owner_id} not found",
        )

    async def _resolve_voice_channel(
        self, guild: RemoteGuild, intent: NotificationIntent
    ) -> Resolution[RemoteChannel]:
        channel_id = intent.watched_channel_id
        cached = guild.get_cached_channel(channel_id)
        if cached is not None:
            result: Resolution[RemoteChannel] = Resolved(cached)
        else:
            result = await _attempt(
                lambda: guild.fetch_channel(channel_id),
                missing=f"voice channel {channel_id} not found",
            )

        if isinstance(result, Resolved) and not result.value.is_voice_based():
            return PermanentFailure(f"channel {channel_id} is not a voice channel")
        return result

    async def _resolve_member(
        self, guild: RemoteGuild, intent: NotificationIntent
    ) -> Resolution[RemoteMember]:
        return await _attempt(
            lambda: guild.fetch_member(intent.user_id),
            missing=f"member {intent.user_id} not found",
        )

    async def _resolve_destination(self, intent: NotificationIntent) -> Resolution[RemoteChannel]:
        channel_id = intent.destination_channel_id
        result = await _attempt(
            lambda: self._client.fetch_channel(channel_id),
            missing=f"notification channel {channel_id} not found",
        )
        if isinstance(result, Resolved) and not result.value.is_text_based():
            return PermanentFailure(f"channel {channel_id} is not a text channel")
        return result

    def _handle_unresolved(
        self,
        intent: NotificationIntent,
        step: str,
        result: PermanentFailure | TransientFailure,
    ) -> None:
        if isinstance(result, PermanentFailure):
            logger.warning(
                "Skipping notification, %s (guild=%s rule=%s)",
                result.reason,
                intent.owner_id,
                intent.rule_id,
            )
            self._suppressor.mark(intent.suppression_key)
            return

        logger.warning(
            "Transient error while resolving %s (guild=%s rule=%s): %s",
            step,
            intent.owner_id,
            intent.rule_id,
            result.cause,
        )
        raise TransientResolutionError(step, result.cause) from result.cause

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def _send_with_retry(
        self,
        channel: RemoteChannel,
        payload: dict[str, Any],
        intent: NotificationIntent,
    ) -> None:
        """
        Send a payload, retrying per failure class.

        - Rate limited: wait retry-after, retry once
        - Network: wait attempt x backoff, retry up to network_max_retries
        - Anything else: no retry
        """
        attempt = 0
        rate_limit_retried = False
        network_retries = 0

        while True:
            attempt += 1
            try:
                await channel.send(payload)
                return
            except Exception as e:
                kind = classify_failure(e)

                if kind is FailureKind.RATE_LIMITED and not rate_limit_retried:
                    rate_limit_retried = True
                    delay = self._rate_limit_delay(e)
                elif kind is FailureKind.NETWORK and network_retries < self.network_max_retries:
                    network_retries += 1
                    delay = network_retries * self.network_backoff_ms / 1000
                else:
                    logger.error(
                        "Failed to send notification (guild=%s channel=%s rule=%s attempts=%d): %s",
                        intent.owner_id,
                        intent.destination_channel_id,
                        intent.rule_id,
                        attempt,
                        e,
                    )
                    raise NotificationSendError(e, attempt) from e

                logger.warning(
                    "Retrying notification send (%s) attempt=%d delay=%.3fs rule=%s",
                    kind.value,
                    attempt,
                    delay,
                    intent.rule_id,
                )
                await self._sleep(delay)

    def _rate_limit_delay(self, error: BaseException) -> float:
        """Seconds to wait after a rate limit, from the error's retry-after."""
        raw = getattr(error, "retry_after", None)
        try:
            value = float(raw) if raw is not None else math.nan
        except (TypeError, ValueError):
            value = math.nan

        if not math.isfinite(value) or value < 0:
            return self.rate_limit_fallback_ms / 1000
        if self.retry_after_unit == "milliseconds":
            return value / 1000
        return value


async def _attempt(lookup: Callable[[], Awaitable[T | None]], missing: str) -> Resolution[T]:
    """Await a remote lookup and convert its outcome into a Resolution."""
    try:
        value = await lookup()
    except Exception as e:
        if classify_failure(e) is FailureKind.PERMANENT:
            return PermanentFailure(f"{missing} ({e})")
        return TransientFailure(e)

    if value is None:
        return PermanentFailure(missing)
    return Resolved(value)
