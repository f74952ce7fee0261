"""Data models for the voice assistant pipeline."""

from .audio import AudioStats, AudioEvent, SAMPLE_RATE, CHANNELS, SAMPLE_WIDTH
from .session import CaptureSession, SessionRole, SocketState, PipelineState
from .intents import (
    IntentResult,
    TimeIntent,
    DateIntent,
    LocationIntent,
    OpenAppIntent,
    AiQueryIntent,
)
from .events import (
    PipelineEvent,
    SocketOpened,
    SocketMessage,
    SocketFailed,
    SocketClosed,
    SilenceDetected,
    TranscriptWaitExpired,
    CaptureFailed,
    ResponseFinished,
    ShutdownRequested,
    STATE_TOPIC,
    INDICATOR_TOPIC,
)

__all__ = [
    "AudioStats",
    "AudioEvent",
    "SAMPLE_RATE",
    "CHANNELS",
    "SAMPLE_WIDTH",
    "CaptureSession",
    "SessionRole",
    "SocketState",
    "PipelineState",
    # Intents
    "IntentResult",
    "TimeIntent",
    "DateIntent",
    "LocationIntent",
    "OpenAppIntent",
    "AiQueryIntent",
    # Pipeline events
    "PipelineEvent",
    "SocketOpened",
    "SocketMessage",
    "SocketFailed",
    "SocketClosed",
    "SilenceDetected",
    "TranscriptWaitExpired",
    "CaptureFailed",
    "ResponseFinished",
    "ShutdownRequested",
    "STATE_TOPIC",
    "INDICATOR_TOPIC",
]
