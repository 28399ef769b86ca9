"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest
import structlog

from poolwatch.core.clock import Clock
from poolwatch.exceptions import ProtocolError, TransportError
from poolwatch.stomp.transport import TransportListener, TransportSession


class FakeTimer:
    """Timer handle owned by FakeClock."""

    def __init__(self, clock: FakeClock, due: float, callback: Callable[[], None]) -> None:
        self._clock = clock
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._clock._discard(self)


class FakeClock(Clock):
    """Manually advanced clock; timers fire synchronously inside advance()."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self._start = start
        self.elapsed = 0.0
        self._timers: list[FakeTimer] = []

    @property
    def pending(self) -> int:
        return len(self._timers)

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self.elapsed)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self, self.elapsed + delay_s, callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = [t for t in self._timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.elapsed = timer.due
            timer.callback()
        self.elapsed = target

    def _discard(self, timer: FakeTimer) -> None:
        if timer in self._timers:
            self._timers.remove(timer)


class FakeSession(TransportSession):
    """Transport session driven by the test instead of a socket."""

    def __init__(self, listener: TransportListener, fail_on_open: Exception | None = None) -> None:
        super().__init__(listener)
        self.opened = False
        self._fail_on_open = fail_on_open

    @property
    def endpoint(self) -> str:
        return "fake://ws-logs"

    def open(self) -> None:
        if self._fail_on_open is not None:
            raise self._fail_on_open
        self.opened = True

    def close(self) -> None:
        self._closed = True

    # --- Server-side events ---

    def accept(self) -> None:
        self._listener.on_connected(self)

    def deliver(self, body: str) -> None:
        self._listener.on_message(self, body)

    def broker_error(self, message: str) -> None:
        self._listener.on_protocol_error(self, ProtocolError(message))

    def drop(self, reason: str = "Connection refused") -> None:
        self._closed = True
        self._listener.on_closed(self, TransportError(reason))


class FakeTransportFactory:
    """Records every session the subscriber asks for."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []
        self.fail_on_open: Exception | None = None

    def __call__(self, listener: TransportListener) -> FakeSession:
        session = FakeSession(listener, fail_on_open=self.fail_on_open)
        self.sessions.append(session)
        return session

    @property
    def latest(self) -> FakeSession:
        return self.sessions[-1]

    @property
    def open_sessions(self) -> list[FakeSession]:
        return [s for s in self.sessions if not s.is_closed]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep logging configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
