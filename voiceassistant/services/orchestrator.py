"""Voice pipeline state machine.

Socket callbacks, capture failures and timers never touch pipeline state
directly. They post events into one ordered queue and a single driver loop
applies them, so the first event dequeued always wins a race (for example a
transcript arriving together with the silence timeout).
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional, Set

from ..audio.capture import AudioCapture
from ..audio.playback import PlaybackSink
from ..audio.silence import RmsSilenceDetector
from ..audio.tone import AcknowledgmentTone
from ..clients.speech_synthesis import SpeechSynthesisClient
from ..errors import CaptureError, InvalidTransition, RequestFailure, SocketFailure
from ..models.audio import AudioEvent
from ..models.events import (
    PipelineEvent,
    SocketOpened,
    SocketMessage,
    SocketFailed,
    SocketClosed,
    SilenceDetected,
    TranscriptWaitExpired,
    CaptureFailed,
    ResponseFinished,
    ShutdownRequested,
)
from ..models.session import CaptureSession, PipelineState, SessionRole
from ..routing.responder import IntentResponder
from ..routing.router import TranscriptRouter
from ..transport.socket_session import StreamingSocketSession, PostEvent
from .reconnect import ReconnectPolicy
from .status_publisher import StatusPublisher

logger = logging.getLogger(__name__)

SocketFactory = Callable[[str, SessionRole, PostEvent], StreamingSocketSession]

ANY_ACTIVE_STATE = (
    PipelineState.IDLE,
    PipelineState.WAKE_LISTENING,
    PipelineState.TRANSITIONING,
    PipelineState.TRANSCRIBING,
    PipelineState.ROUTING,
    PipelineState.RESPONDING,
)


class VoicePipelineOrchestrator:
    """Owns the capture session, the streaming session and every spawned task."""

    def __init__(self,
                 wake_url: str,
                 stt_url: str,
                 capture: AudioCapture,
                 router: TranscriptRouter,
                 responder: IntentResponder,
                 synthesizer: SpeechSynthesisClient,
                 playback: PlaybackSink,
                 detector: Optional[RmsSilenceDetector] = None,
                 tone: Optional[AcknowledgmentTone] = None,
                 publisher: Optional[StatusPublisher] = None,
                 reconnect: Optional[ReconnectPolicy] = None,
                 socket_factory: SocketFactory = StreamingSocketSession,
                 wake_marker: str = "wake word",
                 poll_interval_ms: int = 100,
                 transcript_grace_ms: int = 3000):
        self.wake_url = wake_url
        self.stt_url = stt_url
        self.capture = capture
        self.router = router
        self.responder = responder
        self.synthesizer = synthesizer
        self.playback = playback
        self.detector = detector or RmsSilenceDetector()
        self.tone = tone
        self.publisher = publisher or StatusPublisher()
        self.reconnect = reconnect or ReconnectPolicy()
        self.wake_marker = wake_marker.lower()
        self.poll_interval = poll_interval_ms / 1000.0
        self.transcript_grace = transcript_grace_ms / 1000.0
        self._socket_factory = socket_factory

        self.state = PipelineState.IDLE
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: Optional[asyncio.Queue] = None
        self._tasks: Set[asyncio.Task] = set()
        self._socket: Optional[StreamingSocketSession] = None
        self._capture_session: Optional[CaptureSession] = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._grace_task: Optional[asyncio.Task] = None
        self._silence_fired = False

        self._handlers = {
            SocketOpened: self._on_socket_opened,
            SocketMessage: self._on_socket_message,
            SocketFailed: self._on_socket_failed,
            SocketClosed: self._on_socket_closed,
            SilenceDetected: self._on_silence_detected,
            TranscriptWaitExpired: self._on_transcript_wait_expired,
            CaptureFailed: self._on_capture_failed,
            ResponseFinished: self._on_response_finished,
        }

    @property
    def socket(self) -> Optional[StreamingSocketSession]:
        return self._socket

    @property
    def capture_session(self) -> Optional[CaptureSession]:
        return self._capture_session

    # ------------------------------------------------------------------
    # Driver loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run until ``shutdown`` is requested or the task is cancelled."""
        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self.capture.on_error = self._on_capture_thread_error
        logger.info("Voice pipeline starting")
        try:
            self._enter_wake_listening()
            while True:
                event = await self._events.get()
                if isinstance(event, ShutdownRequested):
                    logger.info("Shutdown requested")
                    break
                await self._dispatch(event)
        finally:
            await self._shutdown()

    def post(self, event: PipelineEvent) -> None:
        """Queue an event for the driver loop. Safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Dropping {event!r}: pipeline not running")
            return
        loop.call_soon_threadsafe(self._events.put_nowait, event)

    def shutdown(self) -> None:
        self.post(ShutdownRequested())

    async def _dispatch(self, event: PipelineEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"No handler for {event!r}")
            return
        try:
            await handler(event)
        except InvalidTransition as e:
            logger.warning(f"Rejected {type(event).__name__}: {e}")
        except Exception as e:
            logger.error(f"Unhandled error while handling {type(event).__name__}: {e}", exc_info=True)
            await self._recover()

    def _transition(self, new_state: PipelineState, allowed: Iterable[PipelineState]) -> None:
        if self.state not in allowed:
            raise InvalidTransition(f"{self.state.value} -> {new_state.value}")
        previous, self.state = self.state, new_state
        logger.info(f"Pipeline {previous.value} -> {new_state.value}")
        self.publisher.publish_state(new_state, previous)

    def _is_current(self, session_id: str) -> bool:
        return self._socket is not None and self._socket.session_id == session_id

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _on_socket_opened(self, event: SocketOpened) -> None:
        if not self._is_current(event.session_id):
            logger.debug(f"Ignoring open of stale session {event.session_id}")
            return
        self.reconnect.reset()
        socket = self._socket

        if event.role == SessionRole.WAKE_DETECTION and self.state == PipelineState.WAKE_LISTENING:
            await self._start_capture(socket)
        elif event.role == SessionRole.TRANSCRIPTION and self.state == PipelineState.TRANSITIONING:
            self._transition(PipelineState.TRANSCRIBING, (PipelineState.TRANSITIONING,))
            self.detector.reset()
            self._silence_fired = False
            if await self._start_capture(socket):
                self._monitor_task = self._spawn(
                    self._monitor_silence(socket.session_id), f"silence_{socket.session_id}"
                )
        else:
            logger.warning(f"Unexpected open of {event.session_id} in state {self.state.value}")

    async def _on_socket_message(self, event: SocketMessage) -> None:
        if not self._is_current(event.session_id):
            logger.debug(f"Ignoring message from stale session {event.session_id}")
            return

        if event.role == SessionRole.WAKE_DETECTION and self.state == PipelineState.WAKE_LISTENING:
            if self.wake_marker not in event.text.lower():
                logger.debug(f"Wake session message without marker: {event.text!r}")
                return
            await self._on_wake_detected()
        elif event.role == SessionRole.TRANSCRIPTION and self.state == PipelineState.TRANSCRIBING:
            await self._on_transcript(event.text)
        else:
            logger.debug(f"Ignoring message in state {self.state.value}: {event.text!r}")

    async def _on_wake_detected(self) -> None:
        logger.info("Wake word detected")
        self._transition(PipelineState.TRANSITIONING, (PipelineState.WAKE_LISTENING,))
        if self.tone is not None:
            self._spawn(self.tone.play(), "ack_tone")
        self.publisher.publish_indicator(True)
        await self._stop_capture()
        await self._close_socket("Wake word detected")
        self._open_session(SessionRole.TRANSCRIPTION, self.stt_url)

    async def _on_transcript(self, transcript: str) -> None:
        logger.info(f"Transcript received: {transcript!r}")
        self._transition(PipelineState.ROUTING, (PipelineState.TRANSCRIBING,))
        self.publisher.publish_indicator(False)
        self._cancel_timers()
        await self._close_socket("Transcript received")
        await self._stop_capture()

        intent = self.router.classify(transcript)
        self._transition(PipelineState.RESPONDING, (PipelineState.ROUTING,))
        self._spawn(self._respond(transcript, intent), "response")

    async def _on_silence_detected(self, event: SilenceDetected) -> None:
        if (not self._is_current(event.session_id)
                or self.state != PipelineState.TRANSCRIBING
                or self._silence_fired):
            logger.debug(f"Ignoring stale silence event for {event.session_id}")
            return
        self._silence_fired = True
        # Stop forwarding audio now; the remote side is expected to answer or close
        await self._stop_capture()
        logger.info(f"Silence detected after {event.silent_for_ms:.0f}ms, mic stopped")
        self._grace_task = self._spawn(
            self._expire_transcript_wait(event.session_id), f"grace_{event.session_id}"
        )

    async def _on_transcript_wait_expired(self, event: TranscriptWaitExpired) -> None:
        if not self._is_current(event.session_id) or self.state != PipelineState.TRANSCRIBING:
            return
        logger.warning(f"No transcript within {self.transcript_grace:.1f}s of silence")
        await self._abandon_session(delay=0.0)

    async def _on_socket_closed(self, event: SocketClosed) -> None:
        if not self._is_current(event.session_id):
            return
        logger.info(f"Session {event.session_id} closed by remote ({event.code} {event.reason})")
        if self.state == PipelineState.WAKE_LISTENING:
            await self._abandon_session(delay=self.reconnect.next_delay())
        elif self.state in (PipelineState.TRANSITIONING, PipelineState.TRANSCRIBING):
            await self._abandon_session(delay=0.0)

    async def _on_socket_failed(self, event: SocketFailed) -> None:
        if not self._is_current(event.session_id):
            logger.debug(f"Ignoring failure of stale session {event.session_id}")
            return
        logger.error(f"[SocketFailure] {event.role.value} session {event.session_id}: {event.error}")
        await self._abandon_session(delay=self.reconnect.next_delay())

    async def _on_capture_failed(self, event: CaptureFailed) -> None:
        session = self._capture_session
        if session is None or session.session_id != event.capture_id:
            return
        logger.error(f"[CaptureError] {event.capture_id}: {event.error}")
        await self._abandon_session(delay=self.reconnect.next_delay())

    async def _on_response_finished(self, event: ResponseFinished) -> None:
        if self.state != PipelineState.RESPONDING:
            return
        logger.info(f"Finished responding to {event.transcript!r}")
        self._enter_wake_listening()

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def _enter_wake_listening(self, delay: float = 0.0) -> None:
        self._transition(PipelineState.WAKE_LISTENING, ANY_ACTIVE_STATE)
        self._open_session(SessionRole.WAKE_DETECTION, self.wake_url, delay)

    def _open_session(self, role: SessionRole, url: str, delay: float = 0.0) -> None:
        socket = self._socket_factory(url, role, self.post)
        self._socket = socket
        if delay:
            logger.info(f"Opening {socket.session_id} in {delay:.1f}s")
        self._spawn(self._open_after(socket, delay), f"open_{socket.session_id}")

    async def _open_after(self, socket: StreamingSocketSession, delay: float) -> None:
        if delay:
            await asyncio.sleep(delay)
        try:
            await socket.open()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error opening {socket.session_id}: {e}", exc_info=True)
            self.post(SocketFailed(socket.session_id, socket.role, SocketFailure(str(e))))

    async def _abandon_session(self, delay: float) -> None:
        """Drop the current session and heal back to wake listening."""
        self._cancel_timers()
        await self._stop_capture()
        await self._close_socket("Session abandoned")
        self.publisher.publish_indicator(False)
        self._enter_wake_listening(delay)

    async def _recover(self) -> None:
        if self.state == PipelineState.STOPPED:
            return
        try:
            await self._abandon_session(delay=self.reconnect.next_delay())
        except InvalidTransition as e:
            logger.error(f"Recovery failed: {e}")

    async def _close_socket(self, reason: str) -> None:
        socket, self._socket = self._socket, None
        if socket is not None:
            await socket.close(reason=reason)

    async def _start_capture(self, socket: StreamingSocketSession) -> bool:
        detector = self.detector if socket.role == SessionRole.TRANSCRIPTION else None

        def forward(frame: AudioEvent) -> None:
            # Runs on the capture thread, in capture order
            if detector is not None:
                detector.observe(frame.audio_data)
            socket.send(frame.audio_data)

        try:
            self._capture_session = await asyncio.to_thread(self.capture.start, forward, socket.session_id)
        except CaptureError as e:
            logger.error(f"[CaptureError] Could not start capture for {socket.session_id}: {e}")
            await self._abandon_session(delay=self.reconnect.next_delay())
            return False
        return True

    async def _stop_capture(self) -> None:
        session, self._capture_session = self._capture_session, None
        if session is not None:
            await asyncio.to_thread(self.capture.stop, session)

    def _on_capture_thread_error(self, session: CaptureSession, error: Exception) -> None:
        self.post(CaptureFailed(session.session_id, error))

    # ------------------------------------------------------------------
    # Timers and spawned work
    # ------------------------------------------------------------------

    async def _monitor_silence(self, session_id: str) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            silent_for = self.detector.time_since_last_loud()
            if silent_for > self.detector.timeout_ms:
                self.post(SilenceDetected(session_id, silent_for))
                return

    async def _expire_transcript_wait(self, session_id: str) -> None:
        await asyncio.sleep(self.transcript_grace)
        self.post(TranscriptWaitExpired(session_id))

    def _cancel_timers(self) -> None:
        for task in (self._monitor_task, self._grace_task):
            if task is not None and not task.done():
                task.cancel()
        self._monitor_task = None
        self._grace_task = None

    async def _respond(self, transcript: str, intent) -> None:
        spoken = None
        try:
            spoken = await self.responder.respond(intent)
            await self.speak(spoken)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Responding to {transcript!r} failed: {e}", exc_info=True)
        finally:
            self.post(ResponseFinished(transcript, spoken))

    async def speak(self, text: str) -> bool:
        """Synthesize and play ``text``. Failures are logged and playback skipped."""
        logger.info(f"Speaking: {text!r}")
        try:
            audio = await self.synthesizer.synthesize(text)
        except RequestFailure as e:
            logger.error(f"[RequestFailure] Speech synthesis failed: {e}")
            return False
        return await self.playback.play(audio)

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Task {task.get_name()} failed: {task.exception()!r}")

    async def _shutdown(self) -> None:
        logger.info("Voice pipeline shutting down")
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._cancel_timers()
        await self._stop_capture()
        await self._close_socket("Service destroyed")
        self.publisher.publish_indicator(False)
        self.playback.release()
        previous, self.state = self.state, PipelineState.STOPPED
        self.publisher.publish_state(PipelineState.STOPPED, previous)
        self.capture.on_error = None
        self._loop = None
