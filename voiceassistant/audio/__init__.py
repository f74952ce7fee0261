"""Audio capture, silence detection and playback."""

from .capture import AudioCapture
from .silence import RmsSilenceDetector, calculate_rms
from .playback import AudioPlayer, PlaybackSink
from .tone import AcknowledgmentTone

__all__ = [
    'AudioCapture',
    'RmsSilenceDetector',
    'calculate_rms',
    'AudioPlayer',
    'PlaybackSink',
    'AcknowledgmentTone',
]
