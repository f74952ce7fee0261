"""Short acknowledgment beep played when the wake phrase is heard."""

import asyncio
import time
import logging

import numpy as np
import pyaudio

logger = logging.getLogger(__name__)


def generate_tone(frequency_hz: float = 880.0,
                  duration_ms: int = 200,
                  sample_rate: int = 16000,
                  volume: float = 0.4) -> bytes:
    """Sine tone as 16-bit PCM with a short fade in/out to avoid clicks."""
    samples = int(sample_rate * duration_ms / 1000)
    t = np.arange(samples) / sample_rate
    wave_data = np.sin(2 * np.pi * frequency_hz * t) * volume
    fade = min(samples // 2, int(sample_rate * 0.005))
    if fade:
        ramp = np.linspace(0.0, 1.0, fade)
        wave_data[:fade] *= ramp
        wave_data[-fade:] *= ramp[::-1]
    return (wave_data * 32767).astype(np.int16).tobytes()


class AcknowledgmentTone:
    """Plays the beep and releases the output device after a fixed delay."""

    def __init__(self,
                 frequency_hz: float = 880.0,
                 duration_ms: int = 200,
                 release_ms: int = 250,
                 sample_rate: int = 16000):
        self.sample_rate = sample_rate
        self.release_ms = release_ms
        self.pcm = generate_tone(frequency_hz, duration_ms, sample_rate)

    async def play(self) -> None:
        # The worker thread always releases the device, even if this task is cancelled
        await asyncio.to_thread(self._play_blocking)

    def _play_blocking(self) -> None:
        started = time.monotonic()
        pa = pyaudio.PyAudio()
        stream = None
        try:
            stream = pa.open(format=pyaudio.paInt16, channels=1, rate=self.sample_rate, output=True)
            stream.write(self.pcm)
            remaining = self.release_ms / 1000 - (time.monotonic() - started)
            if remaining > 0:
                time.sleep(remaining)
        except OSError as e:
            logger.warning(f"[PlaybackError] Acknowledgment tone failed: {e}")
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            pa.terminate()
