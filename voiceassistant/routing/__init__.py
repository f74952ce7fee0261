"""Transcript routing and intent handling."""

from .router import TranscriptRouter, APP_IDENTIFIERS
from .responder import IntentResponder, AI_ERROR_PHRASE, AI_EMPTY_PHRASE

__all__ = [
    "TranscriptRouter",
    "APP_IDENTIFIERS",
    "IntentResponder",
    "AI_ERROR_PHRASE",
    "AI_EMPTY_PHRASE",
]
