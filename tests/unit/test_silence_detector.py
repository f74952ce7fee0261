"""Unit tests for RMS silence detection."""

import math

import pytest

from voiceassistant.audio.silence import RmsSilenceDetector, calculate_rms
from voiceassistant.models.audio import AudioEvent
from tests.helpers import FakeClock


@pytest.mark.unit
class TestCalculateRms:

    def test_all_zero_frame_is_zero(self, audio_test_data):
        assert calculate_rms(audio_test_data("silence")) == 0.0

    def test_empty_frame_is_zero(self):
        assert calculate_rms(b"") == 0.0

    def test_alternating_full_scale_frame(self, audio_test_data):
        rms = calculate_rms(audio_test_data("alternating"))
        assert rms == pytest.approx(32767, abs=1)

    def test_sine_wave_rms(self, audio_test_data):
        # RMS of a full-scale sine is peak / sqrt(2)
        rms = calculate_rms(audio_test_data("sine", samples=16000))
        assert rms == pytest.approx(32767 / math.sqrt(2), rel=0.01)

    def test_samples_are_little_endian(self):
        # 0x0100 little-endian = 1, big-endian would be 256
        assert calculate_rms(b"\x01\x00\x01\x00") == pytest.approx(1.0)

    def test_trailing_odd_byte_ignored(self):
        assert calculate_rms(b"\x00\x00\xff") == 0.0


@pytest.mark.unit
class TestRmsSilenceDetector:

    def test_defaults(self):
        detector = RmsSilenceDetector()
        assert detector.threshold_rms == 1500.0
        assert detector.timeout_ms == 1200

    def test_silence_reported_after_timeout(self, audio_test_data):
        clock = FakeClock()
        detector = RmsSilenceDetector(clock=clock)
        detector.reset()

        for _ in range(10):
            detector.observe(audio_test_data("silence"))
            clock.advance_ms(100)
        assert detector.time_since_last_loud() == pytest.approx(1000)
        assert detector.is_silent() is False

        clock.advance_ms(250)
        detector.observe(audio_test_data("silence"))
        assert detector.is_silent() is True

    def test_loud_frame_resets_last_loud(self, audio_test_data):
        clock = FakeClock()
        detector = RmsSilenceDetector(clock=clock)
        detector.reset()
        clock.advance_ms(5000)
        assert detector.is_silent() is True

        rms = detector.observe(audio_test_data("alternating"))

        assert rms > detector.threshold_rms
        assert detector.last_loud_at == clock.now
        assert detector.time_since_last_loud() == 0
        assert detector.is_silent() is False

    def test_quiet_frame_below_threshold_does_not_reset(self):
        clock = FakeClock()
        detector = RmsSilenceDetector(clock=clock)
        detector.reset()
        clock.advance_ms(500)

        # constant amplitude 1000 is below the 1500 threshold
        quiet = (1000).to_bytes(2, "little", signed=True) * 512
        detector.observe(quiet)

        assert detector.last_rms == pytest.approx(1000)
        assert detector.time_since_last_loud() == pytest.approx(500)

    def test_reset_starts_new_window(self):
        clock = FakeClock()
        detector = RmsSilenceDetector(clock=clock, timeout_ms=200)
        clock.advance_ms(1000)
        assert detector.is_silent() is True

        detector.reset()

        assert detector.is_silent() is False
        assert detector.time_since_last_loud() == 0

    def test_observe_accepts_audio_events(self, audio_test_data):
        clock = FakeClock()
        detector = RmsSilenceDetector(clock=clock)
        clock.advance_ms(300)
        event = AudioEvent(chunk_id="c1", audio_data=audio_test_data("alternating"),
                           timestamp=0.0, sequence_number=1)

        detector.observe(event)

        assert detector.time_since_last_loud() == 0
