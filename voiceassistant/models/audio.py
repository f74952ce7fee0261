"""Audio-related data models."""

from dataclasses import dataclass, field
from typing import Optional


# Fixed capture profile: 16 kHz, mono, 16-bit signed little-endian PCM
SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int


@dataclass
class AudioEvent:
    """Audio chunk captured from the microphone."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    chunk_duration_ms: Optional[int] = field(default=None)

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            bytes_per_second = self.sample_rate * self.channels * SAMPLE_WIDTH
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)
