"""Live log stream: a reconnecting topic subscription feeding a shared log.

StreamSubscriber is a small state machine (DISCONNECTED -> CONNECTING ->
CONNECTED) driven by two inputs: the public connect()/disconnect() calls
and events from the current transport session. All of them run on the
event loop thread, so state is never touched concurrently. Events from a
session other than the current one are ignored, which is what keeps late
callbacks from a torn-down connection out of the log.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Callable

from poolwatch.core.clock import Clock, TimerHandle
from poolwatch.exceptions import ProtocolError, TransportError
from poolwatch.models.log import Diagnostic, DiagnosticKind, LogEntry
from poolwatch.stomp.transport import TransportFactory, TransportSession
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TOPIC = "/topic/logs"
DEFAULT_RECONNECT_DELAY_S = 5.0

LogObserver = Callable[[tuple[LogEntry, ...]], None]
DiagnosticListener = Callable[[Diagnostic], None]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Subscription:
    """Handle returned by :meth:`LogStream.subscribe`."""

    def __init__(self, stream: LogStream, observer: LogObserver) -> None:
        self._stream = stream
        self._observer = observer
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._stream._remove(self._observer)


class LogStream:
    """Append-only log sequence broadcast to observers as full snapshots.

    Every observer receives the complete current sequence on subscribe and
    again after each append or clear, so all observers always agree.
    """

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []
        self._observers: list[LogObserver] = []
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def lines(self) -> list[str]:
        return [entry.text for entry in self._entries]

    def subscribe(self, observer: LogObserver) -> Subscription:
        self._observers.append(observer)
        self._notify_one(observer, self.entries())
        return Subscription(self, observer)

    def append(self, text: str) -> LogEntry:
        entry = LogEntry(seq=self._next_seq, text=text)
        self._next_seq += 1
        self._entries.append(entry)
        self._broadcast()
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._broadcast()

    def _remove(self, observer: LogObserver) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def _broadcast(self) -> None:
        snapshot = self.entries()
        for observer in list(self._observers):
            self._notify_one(observer, snapshot)

    @staticmethod
    def _notify_one(observer: LogObserver, snapshot: tuple[LogEntry, ...]) -> None:
        try:
            observer(snapshot)
        except Exception:
            logger.exception("log_observer_failed")


class StreamSubscriber:
    """Keeps a subscription to the log topic alive and feeds a LogStream.

    Connection-level failures schedule a reconnect after a fixed delay,
    forever, until disconnect() is called. Broker-level errors are only
    reported.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        clock: Clock,
        *,
        log_stream: LogStream | None = None,
        topic: str = DEFAULT_TOPIC,
        reconnect_delay_s: float = DEFAULT_RECONNECT_DELAY_S,
    ) -> None:
        self._transport_factory = transport_factory
        self._clock = clock
        self._log = log_stream if log_stream is not None else LogStream()
        self._topic = topic
        self._reconnect_delay_s = reconnect_delay_s
        self._state = ConnectionState.DISCONNECTED
        self._session: TransportSession | None = None
        self._reconnect_timer: TimerHandle | None = None
        self._wanted = False
        self._diagnostic_listeners: list[DiagnosticListener] = []
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def attempts(self) -> int:
        """Connection attempts made since construction, retries included."""
        return self._attempts

    def log_stream(self) -> LogStream:
        return self._log

    def clear_logs(self) -> None:
        self._log.clear()

    def add_diagnostic_listener(self, listener: DiagnosticListener) -> None:
        self._diagnostic_listeners.append(listener)

    # --- Commands ---

    def connect(self) -> None:
        if self._state is not ConnectionState.DISCONNECTED:
            return
        self._wanted = True
        self._cancel_reconnect()
        self._open_session()

    def disconnect(self) -> None:
        self._wanted = False
        self._cancel_reconnect()
        if self._state is ConnectionState.DISCONNECTED:
            return
        session, self._session = self._session, None
        self._state = ConnectionState.DISCONNECTED
        if session is not None:
            session.close()
        logger.info("stream_disconnected", topic=self._topic)

    # --- Transport events ---

    def on_connected(self, session: TransportSession) -> None:
        if session is not self._session:
            return
        self._state = ConnectionState.CONNECTED
        logger.info("stream_connected", endpoint=session.endpoint, topic=self._topic)

    def on_message(self, session: TransportSession, body: str) -> None:
        if session is not self._session or self._state is not ConnectionState.CONNECTED:
            return
        self._log.append(body)
        logger.debug("stream_message", size=len(body))

    def on_protocol_error(self, session: TransportSession, error: ProtocolError) -> None:
        if session is not self._session:
            return
        logger.error("stream_protocol_error", topic=self._topic, error=str(error))
        self._emit(Diagnostic(kind=DiagnosticKind.PROTOCOL, message=str(error)))

    def on_closed(self, session: TransportSession, error: TransportError) -> None:
        if session is not self._session:
            return
        self._session = None
        self._state = ConnectionState.DISCONNECTED
        logger.warning("stream_transport_error", endpoint=session.endpoint, error=str(error))
        self._emit(Diagnostic(kind=DiagnosticKind.TRANSPORT, message=str(error)))
        if self._wanted:
            self._schedule_reconnect()

    # --- Internals ---

    def _open_session(self) -> None:
        self._state = ConnectionState.CONNECTING
        self._attempts += 1
        session = self._transport_factory(self)
        self._session = session
        logger.info(
            "stream_connecting",
            endpoint=session.endpoint,
            topic=self._topic,
            attempt=self._attempts,
        )
        try:
            session.open()
        except (TransportError, OSError, RuntimeError) as exc:
            error = exc if isinstance(exc, TransportError) else TransportError(str(exc))
            self.on_closed(session, error)

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        self._reconnect_timer = self._clock.call_later(
            self._reconnect_delay_s, self._on_reconnect_due,
        )
        logger.info("stream_reconnect_scheduled", delay_s=self._reconnect_delay_s)
        self._emit(Diagnostic(
            kind=DiagnosticKind.RECONNECT,
            message=f"Reconnecting in {self._reconnect_delay_s:g}s",
        ))

    def _on_reconnect_due(self) -> None:
        self._reconnect_timer = None
        if self._wanted and self._state is ConnectionState.DISCONNECTED:
            self._open_session()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _emit(self, diagnostic: Diagnostic) -> None:
        for listener in list(self._diagnostic_listeners):
            try:
                listener(diagnostic)
            except Exception:
                logger.exception("diagnostic_listener_failed")
