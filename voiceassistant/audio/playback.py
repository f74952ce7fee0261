"""Playback of synthesized speech through a single reusable decoder."""

import asyncio
import logging
import os
import tempfile
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, NamedTuple, Optional

import pyaudio
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

logger = logging.getLogger(__name__)


class PlayerState(Enum):
    IDLE = "idle"
    INITIALIZED = "initialized"
    PREPARED = "prepared"
    STARTED = "started"
    RELEASED = "released"


class DecodedAudio(NamedTuple):
    raw_data: bytes
    frame_rate: int
    channels: int
    sample_width: int


class AudioPlayer:
    """Decoder plus output stream, reset and reused between playbacks.

    ``prepare`` decodes off the event loop; ``start`` plays on a worker thread
    and returns a future that resolves True on completion or False if the
    player was reset first.
    """

    def __init__(self, chunk_size: int = 1024):
        self.chunk_size = chunk_size
        self.state = PlayerState.IDLE
        self.generation = 0
        self.data_source: Optional[str] = None
        self._decoded: Optional[DecodedAudio] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._completion: Optional[asyncio.Future] = None

    def set_data_source(self, path: str) -> None:
        if self.state != PlayerState.IDLE:
            raise RuntimeError(f"set_data_source called in state {self.state.value}")
        self.data_source = path
        self.state = PlayerState.INITIALIZED

    async def prepare(self) -> bool:
        """Decode the data source. Returns False if reset while decoding."""
        if self.state != PlayerState.INITIALIZED:
            raise RuntimeError(f"prepare called in state {self.state.value}")
        generation = self.generation
        decoded = await asyncio.to_thread(self._decode, self.data_source)
        if generation != self.generation:
            return False
        self._decoded = decoded
        self.state = PlayerState.PREPARED
        return True

    def start(self) -> asyncio.Future:
        if self.state != PlayerState.PREPARED:
            raise RuntimeError(f"start called in state {self.state.value}")
        loop = asyncio.get_running_loop()
        self._completion = loop.create_future()
        self._stop_event = threading.Event()
        generation = self.generation
        decoded = self._decoded
        stop_event = self._stop_event

        def run():
            try:
                self._play_blocking(decoded, stop_event)
            except OSError as e:
                logger.error(f"[PlaybackError] Output stream failed: {e}")
            finally:
                loop.call_soon_threadsafe(self._on_completion, generation)

        self._thread = threading.Thread(target=run, daemon=True, name="AudioPlaybackThread")
        self.state = PlayerState.STARTED
        self._thread.start()
        return self._completion

    def _on_completion(self, generation: int) -> None:
        if generation != self.generation:
            return
        if self._completion is not None and not self._completion.done():
            self._completion.set_result(not self._stop_event.is_set())

    def reset(self) -> None:
        """Stop any playback and return to IDLE."""
        if self.state == PlayerState.RELEASED:
            raise RuntimeError("reset called on a released player")
        self.generation += 1
        self._stop_event.set()
        if self._completion is not None and not self._completion.done():
            self._completion.set_result(False)
        self._completion = None
        self._decoded = None
        self.data_source = None
        self.state = PlayerState.IDLE

    def release(self) -> None:
        if self.state == PlayerState.RELEASED:
            return
        self.reset()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        self.state = PlayerState.RELEASED

    def _decode(self, path: str) -> DecodedAudio:
        segment = AudioSegment.from_file(path)
        return DecodedAudio(
            raw_data=segment.raw_data,
            frame_rate=segment.frame_rate,
            channels=segment.channels,
            sample_width=segment.sample_width,
        )

    def _play_blocking(self, decoded: DecodedAudio, stop_event: threading.Event) -> None:
        pa = pyaudio.PyAudio()
        stream = None
        try:
            stream = pa.open(
                format=pa.get_format_from_width(decoded.sample_width),
                channels=decoded.channels,
                rate=decoded.frame_rate,
                output=True,
            )
            step = self.chunk_size * decoded.channels * decoded.sample_width
            for offset in range(0, len(decoded.raw_data), step):
                if stop_event.is_set():
                    break
                stream.write(decoded.raw_data[offset:offset + step])
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            pa.terminate()


class PlaybackSink:
    """Plays synthesized audio bytes, one item at a time."""

    def __init__(self,
                 scratch_directory: Optional[str] = None,
                 player_factory: Callable[[], AudioPlayer] = AudioPlayer,
                 suffix: str = ".mp3"):
        self.scratch_directory = scratch_directory
        self.suffix = suffix
        self._player_factory = player_factory
        self._player: Optional[AudioPlayer] = None
        if scratch_directory:
            Path(scratch_directory).mkdir(parents=True, exist_ok=True)

    @property
    def live_decoders(self) -> int:
        if self._player is None or self._player.state == PlayerState.RELEASED:
            return 0
        return 1

    @property
    def player(self) -> Optional[AudioPlayer]:
        return self._player

    def _write_scratch(self, data: bytes) -> str:
        fd, path = tempfile.mkstemp(prefix="tts", suffix=self.suffix, dir=self.scratch_directory)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        return path

    async def play(self, data: bytes) -> bool:
        """Play ``data``; returns True once playback completes.

        Returns False if a later call interrupted this one or playback failed.
        """
        path = self._write_scratch(data)
        try:
            if self._player is None or self._player.state == PlayerState.RELEASED:
                self._player = self._player_factory()
            else:
                self._player.reset()
            player = self._player
            player.set_data_source(path)
            generation = player.generation

            if not await player.prepare():
                logger.debug("Playback superseded while preparing")
                return False
            completed = await player.start()
            if completed and player.generation == generation:
                player.reset()
            return completed
        except (OSError, CouldntDecodeError) as e:
            logger.error(f"[PlaybackError] Unable to play {len(data)} bytes: {e}")
            return False
        finally:
            try:
                os.unlink(path)
            except OSError:
                logger.debug(f"Scratch file already removed: {path}")

    def release(self) -> None:
        if self._player is not None:
            self._player.release()
            self._player = None
