"""Unit tests for AudioCapture class."""

import threading
import time
from unittest.mock import Mock

import pyaudio
import pytest

from voiceassistant.audio.capture import AudioCapture
from voiceassistant.errors import CaptureError


def collecting_sink():
    frames = []
    return frames, frames.append


def wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while not predicate():
        if time.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        time.sleep(0.005)


@pytest.mark.unit
class TestAudioCapture:
    """Test cases for AudioCapture class."""

    def test_initialization(self):
        """Test AudioCapture initialization with default parameters."""
        capture = AudioCapture()

        assert capture.sample_rate == 16000
        assert capture.chunk_size == 1024
        assert capture.channels == 1
        assert capture.format == pyaudio.paInt16
        assert capture.is_recording is False
        assert capture.active_session is None

    def test_start_opens_fixed_pcm_profile(self, mock_pyaudio):
        capture = AudioCapture()
        frames, sink = collecting_sink()

        session = capture.start(sink, destination="wake_detection_1")
        try:
            mock_pyaudio['instance'].open.assert_called_once_with(
                format=pyaudio.paInt16,
                channels=1,
                rate=16000,
                input=True,
                frames_per_buffer=1024,
                stream_callback=None
            )
            assert session.destination == "wake_detection_1"
            assert capture.is_recording is True
            assert session.thread.daemon is True
        finally:
            capture.stop(session)

    def test_frames_delivered_in_capture_order(self, mock_pyaudio):
        counter = iter(range(1, 10_000))
        mock_pyaudio['stream'].read.side_effect = lambda *args, **kwargs: bytes([next(counter) % 256]) * 2048
        capture = AudioCapture()
        frames, sink = collecting_sink()

        session = capture.start(sink)
        wait_for(lambda: len(frames) >= 20)
        capture.stop(session)

        sequence = [frame.sequence_number for frame in frames]
        assert sequence == list(range(1, len(frames) + 1))
        assert [frame.audio_data[0] for frame in frames[:5]] == [1, 2, 3, 4, 5]
        assert all(len(frame.audio_data) == 2048 for frame in frames)
        assert frames[0].chunk_duration_ms == 64

    def test_stop_releases_device(self, mock_pyaudio):
        capture = AudioCapture()
        _, sink = collecting_sink()

        session = capture.start(sink)
        capture.stop(session)

        assert capture.is_recording is False
        assert session.is_active is False
        assert session.released is True
        assert not session.thread.is_alive()
        mock_pyaudio['stream'].stop_stream.assert_called_once()
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_stop_is_idempotent(self, mock_pyaudio):
        capture = AudioCapture()
        _, sink = collecting_sink()
        session = capture.start(sink)

        capture.stop(session)
        capture.stop(session)
        capture.stop()

        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_stop_without_session(self):
        capture = AudioCapture()
        capture.stop()
        assert capture.is_recording is False

    def test_stop_from_another_thread_during_read(self, mock_pyaudio):
        read_started = threading.Event()

        def slow_read(*args, **kwargs):
            read_started.set()
            time.sleep(0.05)
            return b'\x00' * 2048

        mock_pyaudio['stream'].read.side_effect = slow_read
        capture = AudioCapture()
        _, sink = collecting_sink()
        session = capture.start(sink)
        assert read_started.wait(1.0)

        stopper = threading.Thread(target=capture.stop, args=(session,))
        stopper.start()
        stopper.join(timeout=3.0)

        assert not stopper.is_alive()
        assert session.released is True
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_open_failure_raises_capture_error(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("Invalid input device")
        capture = AudioCapture()
        sink = Mock()

        with pytest.raises(CaptureError):
            capture.start(sink)

        sink.assert_not_called()
        assert capture.is_recording is False
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_start_while_active_stops_previous_session(self, mock_pyaudio):
        capture = AudioCapture()
        _, sink = collecting_sink()

        first = capture.start(sink)
        second = capture.start(sink)
        try:
            assert first.released is True
            assert not first.thread.is_alive()
            assert capture.active_session is second
        finally:
            capture.stop(second)

    def test_read_failure_reports_error_and_releases(self, mock_pyaudio):
        mock_pyaudio['stream'].read.side_effect = OSError("device unplugged")
        errors = []
        capture = AudioCapture(on_error=lambda session, error: errors.append((session, error)))
        sink = Mock()

        session = capture.start(sink)
        session.thread.join(timeout=2.0)

        assert len(errors) == 1
        assert errors[0][0] is session
        assert isinstance(errors[0][1], CaptureError)
        assert session.released is True
        assert capture.is_recording is False
        sink.assert_not_called()

    def test_recording_stats(self, mock_pyaudio):
        capture = AudioCapture()
        frames, sink = collecting_sink()

        session = capture.start(sink)
        wait_for(lambda: len(frames) >= 3)
        capture.stop(session)

        stats = capture.get_recording_stats()
        assert stats.is_recording is False
        assert stats.total_chunks == len(frames)
        assert stats.sample_rate == 16000
        assert stats.duration_seconds >= 0
