"""Transport sessions that deliver topic messages to the stream subscriber.

A session owns one connection attempt: it connects, performs the STOMP
handshake, subscribes to the topic and then reports frames to its
listener until it is closed or the connection drops. Sessions are never
reused; reconnecting means asking the factory for a new one.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Protocol
from urllib.parse import urlparse

import websocket

from poolwatch.exceptions import ProtocolError, TransportError
from poolwatch.stomp.framing import FrameDecoder, StompCommand, StompFrame, build_frame
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)

STOMP_VERSION = "1.2"
DEFAULT_SUBSCRIPTION_ID = "sub-0"


class TransportListener(Protocol):
    """Receives session events on the event loop thread."""

    def on_connected(self, session: TransportSession) -> None: ...

    def on_message(self, session: TransportSession, body: str) -> None: ...

    def on_protocol_error(self, session: TransportSession, error: ProtocolError) -> None: ...

    def on_closed(self, session: TransportSession, error: TransportError) -> None: ...


class TransportSession(ABC):
    """Abstract base for one connection to the log topic."""

    def __init__(self, listener: TransportListener) -> None:
        self._listener = listener
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Human-readable address of the remote end, for logging."""

    @abstractmethod
    def open(self) -> None:
        """Start connecting. Must not block; progress is reported to the listener."""

    @abstractmethod
    def close(self) -> None:
        """Tear the session down. Idempotent; no events follow a close."""


TransportFactory = Callable[[TransportListener], TransportSession]


class StompWebSocketSession(TransportSession):
    """STOMP 1.2 subscription over a plain WebSocket.

    Blocking websocket-client calls run in worker threads through
    ``asyncio.to_thread``; listener callbacks always run on the loop.
    """

    def __init__(
        self,
        listener: TransportListener,
        *,
        url: str,
        topic: str,
        origin: str | None = None,
        handshake_timeout_s: float = 10.0,
        subscription_id: str = DEFAULT_SUBSCRIPTION_ID,
    ) -> None:
        super().__init__(listener)
        self._url = url
        self._topic = topic
        self._origin = origin
        self._handshake_timeout_s = handshake_timeout_s
        self._subscription_id = subscription_id
        self._decoder = FrameDecoder()
        self._ws: websocket.WebSocket | None = None
        self._task: asyncio.Task[None] | None = None
        self._subscribed = False

    @property
    def endpoint(self) -> str:
        return self._url

    def open(self) -> None:
        if self._task is not None or self._closed:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        ws = self._ws
        if ws is not None:
            if self._subscribed:
                try:
                    ws.send(build_frame(StompCommand.DISCONNECT).decode("utf-8"))
                except (websocket.WebSocketException, OSError):
                    logger.debug("stomp_disconnect_frame_failed", url=self._url)
            # Unblocks the worker thread parked in recv()
            ws.abort()
        if self._task is not None:
            self._task.cancel()

    async def _run(self) -> None:
        try:
            await self._handshake()
            while not self._closed:
                raw = await asyncio.to_thread(self._recv)
                self._dispatch(raw)
        except asyncio.CancelledError:
            pass
        except TransportError as exc:
            self._finish(exc)
        except (websocket.WebSocketException, OSError) as exc:
            self._finish(TransportError(f"{type(exc).__name__}: {exc}"))
        finally:
            if self._ws is not None:
                self._ws.shutdown()

    async def _handshake(self) -> None:
        self._ws = await asyncio.to_thread(
            websocket.create_connection,
            self._url,
            timeout=self._handshake_timeout_s,
            origin=self._origin,
        )
        host = urlparse(self._url).hostname or "localhost"
        await self._send(build_frame(StompCommand.CONNECT, {
            "accept-version": STOMP_VERSION,
            "host": host,
            "heart-beat": "0,0",
        }))

        while True:
            try:
                raw = await asyncio.to_thread(self._recv)
            except websocket.WebSocketTimeoutException as exc:
                raise TransportError("STOMP handshake timed out") from exc
            frame = self._first_connected(raw)
            if frame is not None:
                break

        # Idle topics are normal; only the handshake is bounded.
        self._ws.settimeout(None)
        await self._send(build_frame(StompCommand.SUBSCRIBE, {
            "id": self._subscription_id,
            "destination": self._topic,
            "ack": "auto",
        }))
        self._subscribed = True
        logger.debug(
            "stomp_subscribed",
            url=self._url,
            topic=self._topic,
            server=frame.headers.get("server", ""),
        )
        if not self._closed:
            self._listener.on_connected(self)

    def _first_connected(self, raw: str | bytes) -> StompFrame | None:
        """Decode handshake input, reporting anything but CONNECTED."""
        self._decoder.feed(raw)
        while True:
            try:
                frame = self._decoder.next_frame()
            except ProtocolError as exc:
                self._report_protocol_error(exc)
                continue
            if frame is None:
                return None
            if frame.command == StompCommand.CONNECTED:
                return frame
            self._handle_frame(frame)

    async def _send(self, frame: bytes) -> None:
        assert self._ws is not None
        await asyncio.to_thread(self._ws.send, frame.decode("utf-8"))

    def _recv(self) -> str | bytes:
        assert self._ws is not None
        raw = self._ws.recv()
        if not raw and not self._ws.connected:
            raise TransportError("Connection closed by server")
        return raw

    def _dispatch(self, raw: str | bytes) -> None:
        self._decoder.feed(raw)
        while not self._closed:
            try:
                frame = self._decoder.next_frame()
            except ProtocolError as exc:
                self._report_protocol_error(exc)
                continue
            if frame is None:
                return
            self._handle_frame(frame)

    def _handle_frame(self, frame: StompFrame) -> None:
        if self._closed:
            return
        if frame.command == StompCommand.MESSAGE:
            if frame.headers.get("subscription", self._subscription_id) == self._subscription_id:
                self._listener.on_message(self, frame.body)
        elif frame.command == StompCommand.ERROR:
            message = frame.headers.get("message") or frame.body or "STOMP ERROR frame"
            self._report_protocol_error(ProtocolError(message))
        elif frame.command == StompCommand.RECEIPT:
            logger.debug("stomp_receipt", receipt_id=frame.headers.get("receipt-id"))
        else:
            self._report_protocol_error(
                ProtocolError(f"Unexpected {frame.command} frame from server")
            )

    def _report_protocol_error(self, error: ProtocolError) -> None:
        if not self._closed:
            self._listener.on_protocol_error(self, error)

    def _finish(self, error: TransportError) -> None:
        if self._closed:
            return
        self._closed = True
        self._listener.on_closed(self, error)


def stomp_session_factory(
    url: str,
    topic: str,
    *,
    origin: str | None = None,
    handshake_timeout_s: float = 10.0,
) -> TransportFactory:
    """Return a factory producing STOMP sessions bound to one endpoint and topic."""

    def _factory(listener: TransportListener) -> TransportSession:
        return StompWebSocketSession(
            listener,
            url=url,
            topic=topic,
            origin=origin,
            handshake_timeout_s=handshake_timeout_s,
        )

    return _factory
