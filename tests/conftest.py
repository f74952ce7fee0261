"""Pytest configuration and fixtures for voice assistant tests."""

import logging
import tempfile
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from voiceassistant.errors import RequestFailure


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network or audio hardware")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop pub/sub listeners registered by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", samples=1024, sample_rate=16000):
        """Generate 16-bit PCM audio for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'alternating', 'silence')
            samples: Number of samples
            sample_rate: Sample rate in Hz
        """
        if pattern == "sine":
            t = np.arange(samples) / sample_rate
            audio_data = (np.sin(2 * np.pi * 440 * t) * 32767).astype(np.int16)
        elif pattern == "alternating":
            audio_data = np.tile(np.array([32767, -32767], dtype=np.int16), samples // 2)
        elif pattern == "silence":
            audio_data = np.zeros(samples, dtype=np.int16)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")
        return audio_data.astype("<i2").tobytes()

    return generate_audio


@pytest.fixture
def request_failure():
    return RequestFailure("connection refused")
