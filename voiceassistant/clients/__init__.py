"""HTTP clients for the AI query and speech synthesis endpoints."""

from .ai_query import AiQueryClient
from .speech_synthesis import SpeechSynthesisClient

__all__ = [
    "AiQueryClient",
    "SpeechSynthesisClient",
]
