"""
Discord Notification Module.

Delivers voice channel join notifications to Discord text channels.

Components:
- NotificationDispatcher: Resolve, render, send with retry, suppress duplicates
- DuplicateSuppressor: Per-key duplicate window with pruning timers
- MessageFormatter: Intent -> Discord embed payload
- DiscordRestClient: httpx client for the Discord REST API
- RemoteAPIError / classify_failure: Failure taxonomy for retry decisions

Usage:
    from vc_notify.notifications import DiscordRestClient, NotificationDispatcher

    client = DiscordRestClient(token=settings.discord_token)
    dispatcher = NotificationDispatcher.from_settings(client, settings)
    await dispatcher.send_notification(intent)
"""

from .discord_client import DiscordChannel, DiscordGuild, DiscordMember, DiscordRestClient
from .dispatcher import NotificationDispatcher
from .formatter import MessageFormatter, format_local_time
from .remote import (
    FailureKind,
    PermanentFailure,
    RemoteAPIError,
    Resolved,
    TransientFailure,
    classify_failure,
)
from .suppression import AsyncioScheduler, DuplicateSuppressor

__all__ = [
    # Dispatch
    "NotificationDispatcher",
    "DuplicateSuppressor",
    "AsyncioScheduler",
    "MessageFormatter",
    "format_local_time",
    # Remote
    "DiscordRestClient",
    "DiscordGuild",
    "DiscordChannel",
    "DiscordMember",
    "RemoteAPIError",
    "FailureKind",
    "classify_failure",
    "Resolved",
    "PermanentFailure",
    "TransientFailure",
]
