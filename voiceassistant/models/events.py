"""Events posted into the pipeline's single ordered event queue."""

from dataclasses import dataclass
from typing import Optional

from .session import SessionRole


@dataclass(frozen=True)
class PipelineEvent:
    """Base class for everything the orchestrator reacts to."""


@dataclass(frozen=True)
class SocketOpened(PipelineEvent):
    session_id: str
    role: SessionRole


@dataclass(frozen=True)
class SocketMessage(PipelineEvent):
    session_id: str
    role: SessionRole
    text: str


@dataclass(frozen=True)
class SocketFailed(PipelineEvent):
    session_id: str
    role: SessionRole
    error: Exception


@dataclass(frozen=True)
class SocketClosed(PipelineEvent):
    session_id: str
    role: SessionRole
    code: Optional[int] = None
    reason: str = ""


@dataclass(frozen=True)
class SilenceDetected(PipelineEvent):
    session_id: str
    silent_for_ms: float


@dataclass(frozen=True)
class TranscriptWaitExpired(PipelineEvent):
    session_id: str


@dataclass(frozen=True)
class CaptureFailed(PipelineEvent):
    capture_id: str
    error: Exception


@dataclass(frozen=True)
class ResponseFinished(PipelineEvent):
    transcript: str
    spoken: Optional[str] = None


@dataclass(frozen=True)
class ShutdownRequested(PipelineEvent):
    """Stop the driver loop and release every resource."""


# Pub/sub topics for status notifications
STATE_TOPIC = "pipeline.state"
INDICATOR_TOPIC = "pipeline.indicator"
