"""Streaming connection to the speech recognition service.

State machine::

    IDLE -> CONNECTING -> OPEN -> CLOSING -> CLOSED
                 \\          \\
                  +----------+--> ERRORED

The connection runs on a private asyncio event loop in a daemon thread.
``send`` and ``close`` may be called from any thread; they hand work to the
loop and never block on the network. Audio sent while the channel is not
OPEN is dropped, not queued.

Callbacks (``on_ready``, ``on_segment``, ``on_error``, ``on_closed``) run on
the channel thread. At most one of ``on_error`` and ``on_closed`` fires per
connection.
"""

import asyncio
import logging
import threading
from typing import Callable, Dict, Optional

import aiohttp

from ..exceptions import (
    AbnormalCloseError,
    ChannelError,
    MalformedMessageError,
    TranscriptionConnectionError,
)
from ..models.channel import ChannelConfig, ChannelState
from ..models.transcript import TranscriptSegment
from .messages import parse_result_message

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "wss://api.deepgram.com/v1/listen"
NORMAL_CLOSURE = 1000

_CLOSE = object()


class TranscriptionChannel:
    """One streaming recognition connection."""

    def __init__(self,
                 config: ChannelConfig,
                 credential: str,
                 endpoint: str = DEFAULT_ENDPOINT,
                 on_ready: Optional[Callable[[], None]] = None,
                 on_segment: Optional[Callable[[TranscriptSegment], None]] = None,
                 on_error: Optional[Callable[[ChannelError], None]] = None,
                 on_closed: Optional[Callable[[Optional[int]], None]] = None,
                 connect_timeout: float = 10.0,
                 close_timeout: float = 5.0):
        """Initialize the channel without connecting.

        Args:
            config: Recognition parameters, sent as query parameters
            credential: API token, sent as the Authorization header
            endpoint: WebSocket URL of the recognition service
            on_ready: Called once the handshake completes
            on_segment: Called with each non-empty recognized segment
            on_error: Called once with the error that ended the connection
            on_closed: Called with the close code after a clean close
            connect_timeout: Seconds allowed for the handshake
            close_timeout: Seconds allowed for the closing handshake
        """
        self.config = config
        self.endpoint = endpoint
        self.connect_timeout = connect_timeout
        self.close_timeout = close_timeout
        self._credential = credential

        self.on_ready = on_ready
        self.on_segment = on_segment
        self.on_error = on_error
        self.on_closed = on_closed

        self._state = ChannelState.IDLE
        self._state_lock = threading.Lock()
        self._close_reason = ""

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._main_task: Optional[asyncio.Task] = None
        self._outbound: Optional[asyncio.Queue] = None
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self.frames_sent = 0
        self.frames_dropped = 0
        self.messages_received = 0
        self.messages_discarded = 0

    @property
    def state(self) -> ChannelState:
        with self._state_lock:
            return self._state

    def connect(self) -> None:
        """Start the handshake in the background. Valid only from IDLE."""
        with self._state_lock:
            if self._state is not ChannelState.IDLE:
                raise RuntimeError(f"Cannot connect a channel in state {self._state.value}")
            self._loop = asyncio.new_event_loop()
            self._main_task = self._loop.create_task(self._run())
            self._state = ChannelState.CONNECTING

        logger.info(f"Connecting to {self.endpoint} (model={self.config.model}, "
                    f"language={self.config.language})")

        self._thread = threading.Thread(target=self._thread_main, daemon=True)
        self._thread.name = "TranscriptionChannelThread"
        self._thread.start()

    def send(self, frame: bytes) -> bool:
        """Queue one binary audio frame.

        Returns:
            True if the frame was handed to the connection, False if dropped
        """
        if self.state is not ChannelState.OPEN:
            self.frames_dropped += 1
            return False
        if not self._call_in_loop(self._outbound.put_nowait, frame):
            self.frames_dropped += 1
            return False
        return True

    def close(self, reason: str = "Recording stopped", timeout: float = 2.0) -> None:
        """Close with a normal-closure code. Safe to call in any state."""
        with self._state_lock:
            state = self._state
            if state is ChannelState.IDLE:
                self._state = ChannelState.CLOSED
                return
            if state not in (ChannelState.CONNECTING, ChannelState.OPEN):
                return
            self._state = ChannelState.CLOSING
            self._close_reason = reason

        logger.info(f"Closing channel from {state.value}: {reason}")
        if state is ChannelState.CONNECTING:
            self._call_in_loop(self._main_task.cancel)
        else:
            self._call_in_loop(self._outbound.put_nowait, _CLOSE)

        self.join(timeout)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the channel thread to finish, unless called from it."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Channel thread did not stop cleanly")

    def _thread_main(self) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._main_task)
        except asyncio.CancelledError:
            # Cancelled before _run got to its first await
            self._finish_closed(None)
        finally:
            loop.close()
            logger.debug("Channel event loop closed")

    def _call_in_loop(self, callback, *args) -> bool:
        try:
            self._loop.call_soon_threadsafe(callback, *args)
            return True
        except RuntimeError:
            logger.debug("Channel event loop already closed")
            return False

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Token {self._credential}"}

    async def _run(self) -> None:
        try:
            async with aiohttp.ClientSession() as session:
                ws = await asyncio.wait_for(self._open(session), timeout=self.connect_timeout)
                try:
                    await self._serve(ws)
                finally:
                    await ws.close()
        except asyncio.CancelledError:
            logger.info("Channel cancelled before it opened")
            self._finish_closed(None)
        except ChannelError as e:
            self._fail(e)
        except asyncio.TimeoutError as e:
            self._fail(TranscriptionConnectionError(cause=e))
        except (aiohttp.ClientError, OSError) as e:
            logger.error(f"Connection failed: {e}")
            self._fail(TranscriptionConnectionError(cause=e))

    async def _open(self, session: aiohttp.ClientSession) -> aiohttp.ClientWebSocketResponse:
        return await session.ws_connect(
            self.endpoint,
            params=self.config.to_query_params(),
            headers=self._auth_headers(),
        )

    async def _serve(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._outbound = asyncio.Queue()
        with self._state_lock:
            opened = self._state is ChannelState.CONNECTING
            if opened:
                self._state = ChannelState.OPEN

        if not opened:
            await ws.close(code=NORMAL_CLOSURE, message=self._close_reason.encode())
            self._finish_closed(ws.close_code)
            return

        logger.info("Connected to recognition service")
        self._notify(self.on_ready)

        sender = asyncio.ensure_future(self._pump_outbound(ws))
        try:
            reason = await self._pump_inbound(ws)
            if self.state is ChannelState.CLOSING:
                # Let the outbound side finish the closing handshake
                await asyncio.wait({sender}, timeout=self.close_timeout)
        finally:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)

        code = ws.close_code
        logger.info(f"Channel closed: code={code} reason={reason!r} "
                    f"(sent={self.frames_sent}, dropped={self.frames_dropped}, "
                    f"received={self.messages_received}, discarded={self.messages_discarded})")
        if self.state is ChannelState.CLOSING or code == NORMAL_CLOSURE:
            self._finish_closed(code)
        else:
            self._fail(AbnormalCloseError(code, reason))

    async def _pump_outbound(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            frame = await self._outbound.get()
            if frame is _CLOSE:
                await ws.close(code=NORMAL_CLOSURE, message=self._close_reason.encode())
                return
            try:
                await ws.send_bytes(frame)
                self.frames_sent += 1
            except (ConnectionError, aiohttp.ClientError) as e:
                logger.warning(f"Audio frame not sent: {e}")
                return

    async def _pump_inbound(self, ws: aiohttp.ClientWebSocketResponse) -> str:
        """Read until the connection closes. Returns the close reason."""
        while True:
            msg = await ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                self._handle_message(msg.data)
            elif msg.type == aiohttp.WSMsgType.BINARY:
                logger.debug(f"Ignoring {len(msg.data)} byte binary message")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise TranscriptionConnectionError(cause=ws.exception())
            elif msg.type == aiohttp.WSMsgType.CLOSE:
                return msg.extra or ""
            else:
                # CLOSING or CLOSED
                return ""

    def _handle_message(self, raw: str) -> None:
        self.messages_received += 1
        try:
            segment = parse_result_message(raw)
        except MalformedMessageError as e:
            self.messages_discarded += 1
            logger.warning(f"Error parsing result message: {e}")
            return

        if segment is None:
            self.messages_discarded += 1
            return

        logger.debug(f"Received {'final' if segment.is_final else 'interim'} result: "
                     f"'{segment.text}' ({segment.confidence:.2f})")
        self._notify(self.on_segment, segment)

    def _finish_closed(self, code: Optional[int]) -> None:
        with self._state_lock:
            if self._state in (ChannelState.CLOSED, ChannelState.ERRORED):
                return
            self._state = ChannelState.CLOSED
        self._notify(self.on_closed, code)

    def _fail(self, error: ChannelError) -> None:
        with self._state_lock:
            if self._state in (ChannelState.CLOSED, ChannelState.ERRORED):
                return
            if self._state is ChannelState.CLOSING:
                # Failures during a requested close are not surfaced
                self._state = ChannelState.CLOSED
                error = None
            else:
                self._state = ChannelState.ERRORED

        if error is None:
            self._notify(self.on_closed, None)
            return
        logger.error(f"Channel error: {error}")
        self._notify(self.on_error, error)

    def _notify(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Channel callback error: {e}", exc_info=True)
