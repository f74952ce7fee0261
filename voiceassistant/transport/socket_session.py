"""Duplex websocket session with a remote streaming endpoint."""

import asyncio
import itertools
import logging
from typing import Callable, Optional, Set

import aiohttp

from ..errors import SocketFailure
from ..models.events import PipelineEvent, SocketOpened, SocketMessage, SocketFailed, SocketClosed
from ..models.session import SessionRole, SocketState

logger = logging.getLogger(__name__)

PostEvent = Callable[[PipelineEvent], None]

_session_ids = itertools.count(1)

NORMAL_CLOSURE = 1000

# About 13 s of 16 kHz audio in 1024-sample frames
DEFAULT_MAX_BACKLOG_FRAMES = 200


class StreamingSocketSession:
    """One single-purpose websocket session.

    Binary audio frames go out through ``send``, which may be called from any
    thread. Incoming text messages, failures and remote closes are reported
    through ``post`` as pipeline events. A failed session is dead and must
    not be reused.
    """

    def __init__(self,
                 url: str,
                 role: SessionRole,
                 post: PostEvent,
                 connect_timeout: float = 10.0,
                 heartbeat: Optional[float] = 5.0,
                 close_timeout: float = 1.0,
                 max_backlog_frames: int = DEFAULT_MAX_BACKLOG_FRAMES):
        self.session_id = f"{role.value}_{next(_session_ids)}"
        self.url = url
        self.role = role
        self.connect_timeout = connect_timeout
        self.heartbeat = heartbeat
        self.close_timeout = close_timeout
        self.max_backlog_frames = max_backlog_frames
        self.state = SocketState.CONNECTING
        self.frames_sent = 0
        self.frames_dropped = 0
        self.failed = False

        self._post = post
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self.state == SocketState.OPEN

    async def open(self) -> bool:
        """Connect and start the reader/writer tasks.

        Returns True once open. A connection error posts ``SocketFailed``
        and returns False.
        """
        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue()
        self._http = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=self.connect_timeout)
        )
        logger.info(f"Opening {self.session_id} -> {self.url}")
        try:
            ws = await self._http.ws_connect(self.url, heartbeat=self.heartbeat)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self._fail(e)
            await self._release()
            return False
        except asyncio.CancelledError:
            self.state = SocketState.CLOSED
            await self._release()
            raise

        if self.state != SocketState.CONNECTING:
            # close() was called while the handshake was in flight
            await self._close_ws(ws)
            await self._release()
            return False

        self._ws = ws
        self.state = SocketState.OPEN
        logger.info(f"Socket {self.session_id} open")
        self._post(SocketOpened(self.session_id, self.role))
        self._spawn(self._read_loop(), "reader")
        self._spawn(self._write_loop(), "writer")
        return True

    def send(self, data: bytes) -> bool:
        """Queue a binary frame. Non-blocking, best effort, thread-safe."""
        if self.state != SocketState.OPEN or self._loop is None:
            logger.debug(f"Dropping {len(data)} bytes for {self.session_id} in state {self.state.value}")
            return False
        try:
            self._loop.call_soon_threadsafe(self._enqueue, data)
        except RuntimeError:
            # event loop already closed
            return False
        return True

    def _enqueue(self, data: bytes) -> None:
        if self.state != SocketState.OPEN or self._outbox is None:
            return
        if self._outbox.qsize() >= self.max_backlog_frames:
            self.frames_dropped += 1
            logger.debug(f"Outbox of {self.session_id} full, dropped {self.frames_dropped} frames so far")
            return
        self._outbox.put_nowait(data)

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the session. Idempotent and safe after a failure."""
        if self.state in (SocketState.CLOSING, SocketState.CLOSED):
            return
        if self.state == SocketState.CONNECTING and self._ws is None:
            # open() releases the connection once the handshake returns
            self.state = SocketState.CLOSED
            return
        self.state = SocketState.CLOSING
        logger.info(f"Closing {self.session_id} ({code} {reason})")
        if self._outbox is not None:
            self._outbox.put_nowait(None)
        try:
            await self._close_ws(self._ws, code, reason)
        finally:
            self.state = SocketState.CLOSED
            await self._release()

    async def _read_loop(self) -> None:
        ws = self._ws
        try:
            while True:
                msg = await ws.receive()
                if msg.type == aiohttp.WSMsgType.TEXT:
                    logger.debug(f"{self.session_id} message: {msg.data!r}")
                    self._post(SocketMessage(self.session_id, self.role, msg.data))
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    logger.debug(f"{self.session_id} ignoring {len(msg.data)} binary bytes")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    await self._fail(ws.exception() or msg.data)
                    return
                else:
                    # CLOSE, CLOSING or CLOSED
                    if ws.exception() is not None:
                        # heartbeat timeout or broken transport
                        await self._fail(ws.exception())
                        return
                    reason = msg.extra if isinstance(msg.extra, str) else ""
                    break
        except (aiohttp.ClientError, ConnectionError) as e:
            await self._fail(e)
            return

        if self.state == SocketState.OPEN:
            self.state = SocketState.CLOSED
            logger.info(f"Socket {self.session_id} closed by remote: {ws.close_code} {reason}")
            self._post(SocketClosed(self.session_id, self.role, ws.close_code, reason))
            await self._release()

    async def _write_loop(self) -> None:
        ws = self._ws
        while True:
            data = await self._outbox.get()
            if data is None:
                return
            try:
                await ws.send_bytes(data)
                self.frames_sent += 1
            except (aiohttp.ClientError, ConnectionError) as e:
                await self._fail(e)
                return

    async def _fail(self, error) -> None:
        if self.failed or self.state not in (SocketState.CONNECTING, SocketState.OPEN):
            return
        self.failed = True
        self.state = SocketState.CLOSED
        failure = error if isinstance(error, SocketFailure) else SocketFailure(
            f"{self.role.value} socket {self.url}: {error!r}"
        )
        logger.error(f"[SocketFailure] {self.session_id}: {error!r}")
        self._post(SocketFailed(self.session_id, self.role, failure))
        await self._release()

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(f"{self.session_id}_{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _release(self) -> None:
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        ws, self._ws = self._ws, None
        await self._close_ws(ws)
        http, self._http = self._http, None
        if http is not None and not http.closed:
            await http.close()

    async def _close_ws(self, ws: Optional[aiohttp.ClientWebSocketResponse],
                        code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Send the close frame and wait at most ``close_timeout`` for the peer."""
        if ws is None or ws.closed:
            return
        try:
            await asyncio.wait_for(ws.close(code=code, message=reason.encode("utf-8")),
                                   timeout=self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.session_id} peer did not acknowledge close within {self.close_timeout}s")
        except (aiohttp.ClientError, ConnectionError) as e:
            logger.debug(f"Error while closing {self.session_id}: {e}")
