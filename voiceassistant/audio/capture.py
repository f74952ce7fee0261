"""Microphone capture delivering fixed-size PCM frames to a sink."""

import itertools
import threading
import time
import logging
from datetime import datetime
from typing import Callable, Optional

import pyaudio

from ..errors import CaptureError
from ..models.audio import AudioEvent, AudioStats, SAMPLE_RATE, CHANNELS
from ..models.session import CaptureSession


logger = logging.getLogger(__name__)

FrameSink = Callable[[AudioEvent], None]


class AudioCapture:
    """Continuous microphone capture, one session at a time."""

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        chunk_size: int = 1024,
        channels: int = CHANNELS,
        format: int = pyaudio.paInt16,
        stop_timeout: float = 2.0,
        on_error: Optional[Callable[[CaptureSession, Exception], None]] = None,
    ):
        """Initialize audio capture.

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Samples per frame delivered to the sink
            channels: Number of audio channels (1 for mono)
            format: PyAudio sample format (16-bit signed int)
            stop_timeout: Grace period for the capture thread to exit on stop
            on_error: Called from the capture thread when a read fails
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.stop_timeout = stop_timeout
        self.on_error = on_error

        self._lock = threading.Lock()
        self._active: Optional[CaptureSession] = None
        self._ids = itertools.count(1)

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

    @property
    def is_recording(self) -> bool:
        session = self._active
        return session is not None and session.is_active

    @property
    def active_session(self) -> Optional[CaptureSession]:
        return self._active

    def start(self, sink: FrameSink, destination: Optional[str] = None) -> CaptureSession:
        """Open the microphone and stream frames to ``sink`` on a background thread.

        Raises:
            CaptureError: if the device cannot be opened. ``sink`` is not called.
        """
        with self._lock:
            previous = self._active
        if previous is not None:
            logger.warning(f"Capture {previous.session_id} still active, stopping it first")
            self.stop(previous)

        with self._lock:
            session = CaptureSession(
                session_id=f"capture_{next(self._ids)}",
                started_at=time.time(),
                destination=destination,
            )
            pyaudio_instance = pyaudio.PyAudio()
            try:
                stream = pyaudio_instance.open(
                    format=self.format,
                    channels=self.channels,
                    rate=self.sample_rate,
                    input=True,
                    frames_per_buffer=self.chunk_size,
                    stream_callback=None
                )
            except (OSError, IOError) as e:
                pyaudio_instance.terminate()
                raise CaptureError(f"Unable to open microphone: {e}") from e

            session.stream = stream
            session.pyaudio_instance = pyaudio_instance
            logger.info(f"Audio stream opened for {session.session_id}: {self.sample_rate}Hz, "
                        f"{self.chunk_size} samples/chunk -> {destination}")

            session.thread = threading.Thread(
                target=self._record_continuously, args=(session, sink), daemon=True
            )
            session.thread.name = "AudioCaptureThread"
            self._active = session
            self.start_time = datetime.now()
            self.total_chunks = 0
            session.thread.start()
        return session

    def stop(self, session: Optional[CaptureSession] = None) -> None:
        """Stop a capture session and release the device. Safe to call repeatedly."""
        with self._lock:
            if session is None:
                session = self._active
            if session is None:
                return
            if self._active is session:
                self._active = None
            if not session.is_active and session.released:
                return
            session.is_active = False
            session.stop_event.set()

        thread = session.thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=self.stop_timeout)
            if thread.is_alive():
                logger.warning(f"Capture thread for {session.session_id} did not stop cleanly")
        # The thread releases on exit; releasing here covers a stuck read
        self._release(session)
        logger.info(f"Capture {session.session_id} stopped. Total chunks: {session.total_chunks}")

    def _release(self, session: CaptureSession) -> None:
        with session.release_lock:
            if session.released:
                return
            session.released = True
            stream = session.stream
            if stream is not None:
                try:
                    stream.stop_stream()
                    stream.close()
                except OSError as e:
                    logger.debug(f"Ignoring error while closing stream: {e}")
            if session.pyaudio_instance is not None:
                session.pyaudio_instance.terminate()
            session.stream = None
            session.pyaudio_instance = None

    def _record_continuously(self, session: CaptureSession, sink: FrameSink) -> None:
        """Internal method: capture loop running on the capture thread."""
        try:
            while not session.stop_event.is_set():
                audio_chunk = session.stream.read(self.chunk_size, exception_on_overflow=False)
                if session.stop_event.is_set():
                    break
                session.total_chunks += 1
                self.total_chunks += 1
                sink(AudioEvent(
                    chunk_id=f"{session.session_id}_{session.total_chunks}",
                    audio_data=audio_chunk,
                    timestamp=time.time(),
                    sequence_number=session.total_chunks,
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                ))
        except Exception as e:
            if session.stop_event.is_set():
                logger.debug(f"Read interrupted by stop for {session.session_id}: {e}")
            else:
                logger.error(f"[CaptureError] Capture {session.session_id} failed: {e}")
                session.is_active = False
                if self.on_error:
                    self.on_error(session, CaptureError(str(e)))
        finally:
            with self._lock:
                if self._active is session:
                    self._active = None
            session.is_active = False
            self._release(session)

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )
