"""Gateway event handlers."""

from .gateway import VoiceStateTracker
from .voice_state import VoiceStateHandler, build_intents

__all__ = [
    "VoiceStateHandler",
    "VoiceStateTracker",
    "build_intents",
]
