"""
Discord REST API Client.

Resolves guilds, channels and members and posts messages through the
Discord HTTP API. Failures surface as RemoteAPIError with the HTTP status,
the Discord error code and, for 429 responses, the retry-after value.
Retrying is the dispatcher's job; this client makes exactly one request
per call.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from ..core.logging import get_logger
from .remote import RemoteAPIError

logger = get_logger(__name__)

DEFAULT_API_BASE = "https://discord.com/api/v10"
CDN_BASE = "https://cdn.discordapp.com"
DEFAULT_CHANNEL_CACHE_TTL = 300.0
UNKNOWN_CHANNEL = 10003

# Channel types (https://discord.com/developers/docs/resources/channel)
GUILD_TEXT = 0
DM = 1
GUILD_VOICE = 2
GROUP_DM = 3
GUILD_ANNOUNCEMENT = 5
ANNOUNCEMENT_THREAD = 10
PUBLIC_THREAD = 11
PRIVATE_THREAD = 12
GUILD_STAGE_VOICE = 13

VOICE_CHANNEL_TYPES = {GUILD_VOICE, GUILD_STAGE_VOICE}
TEXT_CHANNEL_TYPES = {
    GUILD_TEXT,
    DM,
    GUILD_VOICE,
    GROUP_DM,
    GUILD_ANNOUNCEMENT,
    ANNOUNCEMENT_THREAD,
    PUBLIC_THREAD,
    PRIVATE_THREAD,
    GUILD_STAGE_VOICE,
}


@dataclass
class DiscordChannel:
    """A guild or DM channel."""

    id: str
    name: str
    type: int
    guild_id: str | None
    _client: DiscordRestClient = field(repr=False)

    @classmethod
    def from_payload(cls, data: dict[str, Any], client: DiscordRestClient) -> DiscordChannel:
        guild_id = data.get("guild_id")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            type=int(data.get("type", GUILD_TEXT)),
            guild_id=str(guild_id) if guild_id is not None else None,
            _client=client,
        )

    def is_voice_based(self) -> bool:
        return self.type in VOICE_CHANNEL_TYPES

    def is_text_based(self) -> bool:
        return self.type in TEXT_CHANNEL_TYPES

    async def send(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._client.send_message(self.id, payload)


@dataclass
class DiscordMember:
    """A guild member, reduced to what notifications display."""

    id: str
    username: str
    discriminator: str | None = None
    avatar: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> DiscordMember:
        user = data.get("user") or {}
        return cls(
            id=str(user["id"]),
            username=user.get("username") or "",
            discriminator=user.get("discriminator"),
            avatar=user.get("avatar"),
        )

    @property
    def tag(self) -> str:
        """username#1234 for legacy accounts, the bare username otherwise."""
        if self.discriminator and self.discriminator != "0":
            return f"{self.username}#{self.discriminator}"
        return self.username

    @property
    def avatar_url(self) -> str:
        if self.avatar:
            extension = "gif" if self.avatar.startswith("a_") else "png"
            return f"{CDN_BASE}/avatars/{self.id}/{self.avatar}.{extension}"
        if self.discriminator and self.discriminator != "0":
            index = int(self.discriminator) % 5
        else:
            index = (int(self.id) >> 22) % 6
        return f"{CDN_BASE}/embed/avatars/{index}.png"


@dataclass
class DiscordGuild:
    """A guild handle bound to the client that fetched it."""

    id: str
    name: str
    _client: DiscordRestClient = field(repr=False)

    def get_cached_channel(self, channel_id: str) -> DiscordChannel | None:
        channel = self._client.cached_channel(channel_id)
        if channel is not None and channel.guild_id == self.id:
            return channel
        return None

    async def fetch_channel(self, channel_id: str) -> DiscordChannel | None:
        """Fetch a channel, returning None if it belongs to another guild."""
        channel = await self._client.fetch_channel(channel_id)
        if channel.guild_id != self.id:
            return None
        return channel

    async def fetch_member(self, user_id: str) -> DiscordMember:
        data = await self._client.request("GET", f"/guilds/{self.id}/members/{user_id}")
        return DiscordMember.from_payload(data)


@dataclass
class DiscordRestClient:
    """
    HTTP client for the Discord REST API (bot token auth).

    Features:
    - Typed errors: RemoteAPIError(status, code, retry_after)
    - Transport failures mapped to network error codes
    - Channel cache for the guild channel fast path, entries expire after
      channel_cache_ttl seconds and are dropped on Unknown Channel
    - Send metrics for status reporting
    """

    token: str
    base_url: str = DEFAULT_API_BASE
    timeout: float = 30.0
    channel_cache_ttl: float = DEFAULT_CHANNEL_CACHE_TTL
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    # Metrics
    _total_sent: int = 0
    _total_failed: int = 0
    _last_success: datetime | None = None
    _last_failure: datetime | None = None
    _consecutive_failures: int = 0

    _channel_cache: dict[str, tuple[float, DiscordChannel]] = field(
        default_factory=dict, repr=False
    )
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bot {self.token}",
                    "Content-Type": "application/json",
                },
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, path: str, json: Any = None) -> Any:
        """
        Perform one API request.

        Returns:
            Decoded JSON body, or None for 204 responses

        Raises:
            RemoteAPIError: For non-2xx responses and transport failures
        """
        client = await self._get_client()

        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise RemoteAPIError(f"Discord request timed out: {method} {path}", code="ETIMEDOUT") from e
        except httpx.RequestError as e:
            raise RemoteAPIError(f"Discord request error: {e}", code="ECONNRESET") from e

        if response.status_code == 204:
            return None
        if response.is_success:
            return response.json()

        raise self._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> RemoteAPIError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = response.status_code
        message = body.get("message") or f"HTTP {status}"
        retry_after: float | None = None

        if status == 429:
            raw = body.get("retry_after", response.headers.get("Retry-After"))
            try:
                retry_after = float(raw) if raw is not None else None
            except (TypeError, ValueError):
                retry_after = None
            logger.warning("Discord rate limited, retry after %s", raw)

        return RemoteAPIError(
            f"Discord API error {status}: {message}",
            status=status,
            code=body.get("code"),
            retry_after=retry_after,
        )

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    async def fetch_guild(self, guild_id: str) -> DiscordGuild:
        data = await self.request("GET", f"/guilds/{guild_id}")
        return DiscordGuild(id=str(data["id"]), name=data.get("name") or "", _client=self)

    async def fetch_channel(self, channel_id: str) -> DiscordChannel:
        try:
            data = await self.request("GET", f"/channels/{channel_id}")
        except RemoteAPIError as e:
            if _is_unknown_channel(e):
                self.invalidate_channel(channel_id)
            raise
        channel = DiscordChannel.from_payload(data, self)
        self._channel_cache[channel.id] = (self.clock() + self.channel_cache_ttl, channel)
        return channel

    def cached_channel(self, channel_id: str) -> DiscordChannel | None:
        """A previously fetched channel, or None once its entry has expired."""
        entry = self._channel_cache.get(channel_id)
        if entry is None:
            return None
        expires_at, channel = entry
        if self.clock() >= expires_at:
            del self._channel_cache[channel_id]
            return None
        return channel

    def invalidate_channel(self, channel_id: str) -> None:
        if self._channel_cache.pop(channel_id, None) is not None:
            logger.debug("Dropped cached channel %s", channel_id)

    async def send_message(self, channel_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            message = await self.request("POST", f"/channels/{channel_id}/messages", json=payload)
        except RemoteAPIError as e:
            self._record_failure()
            if _is_unknown_channel(e):
                self.invalidate_channel(channel_id)
            raise

        self._total_sent += 1
        self._last_success = datetime.now()
        self._consecutive_failures = 0
        return message

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def _record_failure(self) -> None:
        self._total_failed += 1
        self._last_failure = datetime.now()
        self._consecutive_failures += 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0 to 1.0)."""
        total = self._total_sent + self._total_failed
        if total == 0:
            return 1.0
        return self._total_sent / total

    @property
    def is_healthy(self) -> bool:
        """Check if client is healthy (not in extended failure state)."""
        if self._consecutive_failures >= 10:
            return False
        if self._last_failure is None:
            return True
        if self._last_success is None:
            return self._consecutive_failures < 3
        return self._last_success > self._last_failure

    def get_metrics(self) -> dict[str, Any]:
        """Get client metrics for status reporting."""
        return {
            "total_sent": self._total_sent,
            "total_failed": self._total_failed,
            "success_rate": round(self.success_rate, 3),
            "consecutive_failures": self._consecutive_failures,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_failure": self._last_failure.isoformat() if self._last_failure else None,
            "is_healthy": self.is_healthy,
        }


def _is_unknown_channel(error: RemoteAPIError) -> bool:
    return error.code == UNKNOWN_CHANNEL or error.status == 404
