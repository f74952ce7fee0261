"""Streaming transport to the remote wake word and speech-to-text services."""

from .socket_session import StreamingSocketSession, NORMAL_CLOSURE

__all__ = [
    "StreamingSocketSession",
    "NORMAL_CLOSURE",
]
