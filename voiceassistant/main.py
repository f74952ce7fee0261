"""Main application entry point for the voice assistant."""

import sys
import asyncio
import argparse
import functools
import logging
from pathlib import Path

from voiceassistant import __version__
from voiceassistant.audio.capture import AudioCapture
from voiceassistant.audio.playback import PlaybackSink
from voiceassistant.audio.silence import RmsSilenceDetector
from voiceassistant.audio.tone import AcknowledgmentTone
from voiceassistant.clients.ai_query import AiQueryClient
from voiceassistant.clients.speech_synthesis import SpeechSynthesisClient
from voiceassistant.collaborators import (
    BrowserAppLauncher,
    ConfiguredLocationProvider,
    ConsoleIndicator,
    announce_running,
)
from voiceassistant.routing.responder import IntentResponder
from voiceassistant.routing.router import TranscriptRouter
from voiceassistant.services.orchestrator import VoicePipelineOrchestrator
from voiceassistant.services.reconnect import ReconnectPolicy
from voiceassistant.services.status_publisher import StatusPublisher
from voiceassistant.transport.socket_session import StreamingSocketSession

from .config import VoiceAssistantConfig, DEFAULT_CONFIG_FILE

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: str, log_level: str = None):
        # Load configuration
        self.config = VoiceAssistantConfig(config_path)
        # Set up logging (command line overrides config)
        log_level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)
        self.orchestrator = None

    def init(self):
        logger.info("Initializing services...")
        endpoints = self.config.get_endpoints()

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        request_timeout = self.config.get('requests.timeout_seconds', 15.0)
        self.wake_marker = self.config.get('wake.marker', 'wake word')

        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")

        self.capture = AudioCapture(sample_rate=sample_rate, chunk_size=chunk_size, channels=channels)
        self.detector = RmsSilenceDetector(
            threshold_rms=self.config.get('silence.threshold_rms', 1500.0),
            timeout_ms=self.config.get('silence.timeout_ms', 1200),
        )
        self.indicator = ConsoleIndicator()
        self.indicator.attach()

        responder = IntentResponder(
            ai_client=AiQueryClient(endpoints.ai_url, timeout_seconds=request_timeout),
            location_provider=ConfiguredLocationProvider(
                description=self.config.get('location.description'),
                latitude=self.config.get('location.latitude'),
                longitude=self.config.get('location.longitude'),
            ),
            app_launcher=BrowserAppLauncher(self.config.get_app_launch_urls()),
        )

        self.orchestrator = VoicePipelineOrchestrator(
            wake_url=endpoints.wake_ws_url,
            stt_url=endpoints.stt_ws_url,
            capture=self.capture,
            router=TranscriptRouter(),
            responder=responder,
            synthesizer=SpeechSynthesisClient(endpoints.tts_url, timeout_seconds=request_timeout),
            playback=PlaybackSink(scratch_directory=self.config.get_scratch_directory()),
            detector=self.detector,
            tone=AcknowledgmentTone(
                frequency_hz=self.config.get('playback.tone_frequency_hz', 880.0),
                duration_ms=self.config.get('playback.tone_duration_ms', 200),
                release_ms=self.config.get('playback.tone_release_ms', 250),
            ),
            publisher=StatusPublisher(),
            reconnect=ReconnectPolicy(
                initial_delay_ms=self.config.get('reconnect.initial_delay_ms', 500),
                max_delay_ms=self.config.get('reconnect.max_delay_ms', 30000),
                multiplier=self.config.get('reconnect.multiplier', 2.0),
            ),
            socket_factory=functools.partial(
                StreamingSocketSession,
                connect_timeout=self.config.get('sockets.connect_timeout_seconds', 10.0),
                heartbeat=self.config.get('sockets.heartbeat_seconds', 5.0),
                close_timeout=self.config.get('sockets.close_timeout_seconds', 1.0),
                max_backlog_frames=self.config.get('sockets.max_backlog_frames', 200),
            ),
            wake_marker=self.wake_marker,
            poll_interval_ms=self.config.get('silence.poll_interval_ms', 100),
            transcript_grace_ms=self.config.get('silence.transcript_grace_ms', 3000),
        )

    def run(self):
        announce_running(self.indicator.console, self.wake_marker)
        try:
            asyncio.run(self.orchestrator.run())
        finally:
            self.cleanup()

    def cleanup(self):
        # Capture and sockets are released by the orchestrator; this covers an aborted start
        self.capture.stop()
        self.indicator.detach()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voiceassistant.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("="*50)
    logger.info("Voice assistant starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for the voice assistant."""
    parser = argparse.ArgumentParser(
        description="Voice assistant - wake word, speech-to-text and spoken answers"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to configuration YAML file (default: {DEFAULT_CONFIG_FILE})"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"voiceassistant v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        server.run()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
