"""
Remote Platform Interfaces.

Minimal capability protocols for the chat platform objects the dispatcher
reads, the platform error type, and the failure classification used to
pick a retry policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar, Union

T = TypeVar("T")

# HTTP statuses for entities that are missing or inaccessible
PERMANENT_STATUS_CODES = {400, 401, 403, 404}

# Discord JSON error codes for unknown/inaccessible entities
PERMANENT_API_CODES = {
    10003,  # Unknown Channel
    10004,  # Unknown Guild
    10007,  # Unknown Member
    10013,  # Unknown User
    50001,  # Missing Access
    50013,  # Missing Permissions
}

# Socket-level error codes treated as network failures
NETWORK_ERROR_CODES = {
    "ECONNRESET",
    "ECONNREFUSED",
    "ECONNABORTED",
    "ETIMEDOUT",
    "EPIPE",
    "EAI_AGAIN",
    "ENOTFOUND",
    "UND_ERR_CONNECT_TIMEOUT",
}


class RemoteAPIError(Exception):
    """
    Failure reported by the remote platform.

    Attributes:
        status: HTTP status, if a response was received
        code: Platform error code (int) or socket error code (str)
        retry_after: Raw retry-after value from a rate-limit response
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: int | str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.retry_after = retry_after

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


class FailureKind(str, Enum):
    """How a remote failure should be handled."""

    RATE_LIMITED = "rate_limited"
    PERMANENT = "permanent"
    NETWORK = "network"
    OTHER = "other"


def classify_failure(error: BaseException) -> FailureKind:
    """
    Classify a remote failure.

    - 429 -> RATE_LIMITED
    - not found / forbidden / wrong entity -> PERMANENT
    - timeouts, connection resets, 5xx -> NETWORK
    - anything else -> OTHER
    """
    status = getattr(error, "status", None)
    code = getattr(error, "code", None)

    if status == 429:
        return FailureKind.RATE_LIMITED
    if status in PERMANENT_STATUS_CODES or code in PERMANENT_API_CODES:
        return FailureKind.PERMANENT
    if isinstance(status, int) and status >= 500:
        return FailureKind.NETWORK
    if isinstance(code, str) and code.upper() in NETWORK_ERROR_CODES:
        return FailureKind.NETWORK
    if isinstance(error, (TimeoutError, ConnectionError)):
        return FailureKind.NETWORK
    return FailureKind.OTHER


# =============================================================================
# Capability Protocols
# =============================================================================


class RemoteChannel(Protocol):
    id: str
    name: str

    def is_voice_based(self) -> bool: ...

    def is_text_based(self) -> bool: ...

    async def send(self, payload: dict[str, Any]) -> Any: ...


class RemoteMember(Protocol):
    id: str

    @property
    def tag(self) -> str: ...

    @property
    def avatar_url(self) -> str: ...


class RemoteGuild(Protocol):
    id: str

    def get_cached_channel(self, channel_id: str) -> RemoteChannel | None: ...

    async def fetch_channel(self, channel_id: str) -> RemoteChannel | None: ...

    async def fetch_member(self, user_id: str) -> RemoteMember | None: ...


class RemoteClient(Protocol):
    async def fetch_guild(self, guild_id: str) -> RemoteGuild | None: ...

    async def fetch_channel(self, channel_id: str) -> RemoteChannel | None: ...


# =============================================================================
# Resolution Results
# =============================================================================


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T


@dataclass(frozen=True)
class PermanentFailure:
    reason: str


@dataclass(frozen=True)
class TransientFailure:
    cause: BaseException


Resolution = Union[Resolved[T], PermanentFailure, TransientFailure]
