"""
vc_notify - Voice channel join notifications for Discord guilds.

When a member joins a watched voice channel, every enabled rule of the
guild is evaluated and a notification embed is posted to each distinct
destination channel.
"""

from .errors import (
    ConfigurationError,
    DuplicateRuleIdError,
    MigrationError,
    NotificationSendError,
    RuleLimitExceededError,
    RuleNotFoundError,
    RuleRepositoryConflictError,
    RuleServiceError,
    RuleValidationError,
    TransientResolutionError,
    VcNotifyError,
)
from .models import (
    CreateRuleInput,
    NotificationIntent,
    NotificationRule,
    UpdateRuleInput,
    VoiceStateChange,
    VoiceTransition,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "NotificationRule",
    "NotificationIntent",
    "CreateRuleInput",
    "UpdateRuleInput",
    "VoiceStateChange",
    "VoiceTransition",
    # Errors
    "VcNotifyError",
    "ConfigurationError",
    "MigrationError",
    "RuleServiceError",
    "RuleValidationError",
    "RuleLimitExceededError",
    "RuleNotFoundError",
    "RuleRepositoryConflictError",
    "DuplicateRuleIdError",
    "TransientResolutionError",
    "NotificationSendError",
]
