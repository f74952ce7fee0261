"""Session-related data models."""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionRole(Enum):
    """What a streaming socket session is used for."""
    WAKE_DETECTION = "wake_detection"
    TRANSCRIPTION = "transcription"


class SocketState(Enum):
    """Lifecycle of a streaming socket session."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class PipelineState(Enum):
    """States of the voice pipeline."""
    IDLE = "idle"
    WAKE_LISTENING = "wake_listening"
    TRANSITIONING = "transitioning"
    TRANSCRIBING = "transcribing"
    ROUTING = "routing"
    RESPONDING = "responding"
    STOPPED = "stopped"


@dataclass
class CaptureSession:
    """Handle for one microphone capture session.

    Only one of these may be active at a time. The stream, thread and stop
    event are owned by AudioCapture and released by AudioCapture.stop().
    """
    session_id: str
    started_at: float
    destination: Optional[str] = None  # session id of the socket being fed
    is_active: bool = True
    total_chunks: int = 0
    stream: Any = field(default=None, repr=False)
    pyaudio_instance: Any = field(default=None, repr=False)
    thread: Optional[threading.Thread] = field(default=None, repr=False)
    stop_event: threading.Event = field(default_factory=threading.Event, repr=False)
    release_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    released: bool = False
