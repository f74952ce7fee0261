"""Error taxonomy for the voice pipeline."""

from typing import Optional


class VoiceAssistantError(Exception):
    """Base class for all pipeline errors."""
    category = "VoiceAssistantError"


class CaptureError(VoiceAssistantError):
    """Microphone could not be opened or read."""
    category = "CaptureError"


class SocketFailure(VoiceAssistantError):
    """Transport-level failure of a streaming socket session."""
    category = "SocketFailure"


class RequestFailure(VoiceAssistantError):
    """AI query or speech synthesis request failed."""
    category = "RequestFailure"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class InvalidTransition(VoiceAssistantError):
    """A pipeline transition was requested from a state that does not allow it."""
    category = "InvalidTransition"
