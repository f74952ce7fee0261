"""Fakes and helpers shared by the test suite."""

import asyncio
import time

from voiceassistant.errors import CaptureError
from voiceassistant.models.audio import AudioEvent
from voiceassistant.models.events import SocketOpened, SocketMessage, SocketFailed, SocketClosed
from voiceassistant.models.session import CaptureSession, SocketState


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005):
    """Poll ``predicate`` on the running loop until it is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class FakeSocket:
    """Stands in for StreamingSocketSession; tests drive remote behavior."""

    def __init__(self, registry, url, role, post):
        self.session_id = f"fake_{role.value}_{len(registry) + 1}"
        self.url = url
        self.role = role
        self.post = post
        self.state = SocketState.CONNECTING
        self.sent = []
        self.closed_with = None
        self.close_calls = 0
        self.open_fails = False
        registry.append(self)

    async def open(self):
        if self.open_fails:
            self.fail(ConnectionRefusedError("refused"))
            return False
        self.state = SocketState.OPEN
        self.post(SocketOpened(self.session_id, self.role))
        return True

    def send(self, data):
        if self.state != SocketState.OPEN:
            return False
        self.sent.append(data)
        return True

    async def close(self, code=1000, reason=""):
        self.close_calls += 1
        if self.state in (SocketState.CLOSING, SocketState.CLOSED):
            return
        self.state = SocketState.CLOSED
        self.closed_with = (code, reason)

    # Remote side
    def emit(self, text):
        self.post(SocketMessage(self.session_id, self.role, text))

    def fail(self, error):
        self.state = SocketState.CLOSED
        self.post(SocketFailed(self.session_id, self.role, error))

    def remote_close(self, code=1000, reason=""):
        self.state = SocketState.CLOSED
        self.post(SocketClosed(self.session_id, self.role, code, reason))


class FakeCapture:
    """Stands in for AudioCapture; asserts only one session is live."""

    def __init__(self):
        self.on_error = None
        self.sessions = []
        self.active = None
        self.sink = None
        self.stop_calls = 0
        self.fail_next = 0

    def start(self, sink, destination=None):
        if self.fail_next:
            self.fail_next -= 1
            raise CaptureError("microphone unavailable")
        assert self.active is None, "two capture sessions would read the device"
        session = CaptureSession(
            session_id=f"capture_{len(self.sessions) + 1}",
            started_at=time.time(),
            destination=destination,
        )
        self.sink = sink
        self.active = session
        self.sessions.append(session)
        return session

    def stop(self, session=None):
        self.stop_calls += 1
        session = session or self.active
        if session is None:
            return
        session.is_active = False
        session.released = True
        if self.active is session:
            self.active = None

    def push(self, pcm: bytes):
        session = self.active
        session.total_chunks += 1
        self.sink(AudioEvent(
            chunk_id=f"{session.session_id}_{session.total_chunks}",
            audio_data=pcm,
            timestamp=time.time(),
            sequence_number=session.total_chunks,
        ))


class FakeAiClient:
    def __init__(self, answer="Paris is the capital of France", error=None):
        self.answer = answer
        self.error = error
        self.queries = []

    async def query(self, text):
        self.queries.append(text)
        if self.error:
            raise self.error
        return self.answer


class FakeSynthesizer:
    def __init__(self, error=None):
        self.error = error
        self.texts = []

    async def synthesize(self, text):
        self.texts.append(text)
        if self.error:
            raise self.error
        return f"mp3:{text}".encode()


class FakePlayback:
    def __init__(self):
        self.played = []
        self.released = False

    async def play(self, data):
        self.played.append(data)
        return True

    def release(self):
        self.released = True


class FakeTone:
    def __init__(self):
        self.plays = 0

    async def play(self):
        self.plays += 1


class FakeLauncher:
    def __init__(self):
        self.opened = []

    def open(self, identifier):
        self.opened.append(identifier)
        return True


