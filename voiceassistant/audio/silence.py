"""RMS based silence detection for end-of-utterance cutoff."""

import math
import threading
import time
import logging
from typing import Callable, Union

import numpy as np

from ..models.audio import AudioEvent

logger = logging.getLogger(__name__)


def calculate_rms(frame: bytes) -> float:
    """Root-mean-square amplitude of little-endian 16-bit samples.

    An empty frame yields 0.0. A trailing odd byte is ignored.
    """
    usable = len(frame) - (len(frame) % 2)
    if usable <= 0:
        return 0.0
    samples = np.frombuffer(frame[:usable], dtype="<i2").astype(np.float64)
    return math.sqrt(float(np.mean(samples * samples)))


class RmsSilenceDetector:
    """Tracks when the last loud frame was seen.

    ``observe`` is called from the capture thread while ``time_since_last_loud``
    is polled from the event loop, so access to ``last_loud_at`` is locked.
    """

    def __init__(self,
                 threshold_rms: float = 1500.0,
                 timeout_ms: int = 1200,
                 clock: Callable[[], float] = time.monotonic):
        self.threshold_rms = threshold_rms
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._lock = threading.Lock()
        self.last_loud_at = clock()
        self.last_rms = 0.0

    def reset(self) -> None:
        """Start a fresh utterance window."""
        with self._lock:
            self.last_loud_at = self._clock()
            self.last_rms = 0.0
        logger.debug(f"Silence tracker reset (threshold={self.threshold_rms}, timeout={self.timeout_ms}ms)")

    def observe(self, frame: Union[bytes, AudioEvent]) -> float:
        """Update the tracker with one frame and return its RMS."""
        if isinstance(frame, AudioEvent):
            frame = frame.audio_data
        rms = calculate_rms(frame)
        with self._lock:
            self.last_rms = rms
            if rms > self.threshold_rms:
                self.last_loud_at = self._clock()
        return rms

    def time_since_last_loud(self) -> float:
        """Milliseconds since the last frame above the threshold."""
        with self._lock:
            return (self._clock() - self.last_loud_at) * 1000.0

    def is_silent(self) -> bool:
        return self.time_since_last_loud() > self.timeout_ms
