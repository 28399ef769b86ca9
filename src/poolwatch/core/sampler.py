"""Interval sampling of the pool size into a sliding window."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable

from pydantic import ValidationError

from poolwatch.core.clock import Clock, TimerHandle, time_label
from poolwatch.core.series import SlidingWindowSeries
from poolwatch.exceptions import FetchError
from poolwatch.models.log import Diagnostic, DiagnosticKind
from poolwatch.models.series import Sample
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_S = 2.0

SizeFetcher = Callable[[], Awaitable[float]]
SnapshotListener = Callable[[tuple[Sample, ...]], None]
DiagnosticListener = Callable[[Diagnostic], None]


class SamplingState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class PollingSampler:
    """Fetches the pool size every interval and appends it to a window.

    Each tick schedules the next one before issuing its fetch, so at most
    one timer is pending at any time. A fetch belongs to the run it was
    issued in; results from an earlier run (before a stop) are dropped.
    Failed fetches leave a gap instead of a zero point.
    """

    def __init__(
        self,
        fetch: SizeFetcher,
        window: SlidingWindowSeries,
        clock: Clock,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ) -> None:
        self._fetch = fetch
        self._window = window
        self._clock = clock
        self._interval_s = interval_s
        self._state = SamplingState.IDLE
        self._timer: TimerHandle | None = None
        self._run_id = 0
        self._ticks = 0
        self._in_flight: set[asyncio.Task[None]] = set()
        self._listeners: list[SnapshotListener] = []
        self._diagnostic_listeners: list[DiagnosticListener] = []

    @property
    def state(self) -> SamplingState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SamplingState.RUNNING

    @property
    def window(self) -> SlidingWindowSeries:
        return self._window

    @property
    def ticks(self) -> int:
        """Ticks fired in the current run."""
        return self._ticks

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_diagnostic_listener(self, listener: DiagnosticListener) -> None:
        self._diagnostic_listeners.append(listener)

    def start(self) -> None:
        if self._state is SamplingState.RUNNING:
            logger.warning("sampler_already_running")
            return
        self._state = SamplingState.RUNNING
        self._run_id += 1
        self._ticks = 0
        self._schedule_tick()
        logger.info("sampler_started", interval_s=self._interval_s)

    def stop(self) -> None:
        if self._state is SamplingState.IDLE:
            logger.warning("sampler_not_running")
            return
        self._state = SamplingState.IDLE
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("sampler_stopped", ticks=self._ticks, in_flight=len(self._in_flight))

    def clear(self) -> None:
        """Empty the window and push the empty snapshot to listeners."""
        self._window.clear()
        self._notify()

    # --- Internals ---

    def _schedule_tick(self) -> None:
        self._timer = self._clock.call_later(self._interval_s, self._on_tick)

    def _on_tick(self) -> None:
        self._timer = None
        if self._state is not SamplingState.RUNNING:
            return
        self._ticks += 1
        self._schedule_tick()
        task = asyncio.get_running_loop().create_task(self._sample(self._run_id, self._ticks))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _sample(self, run_id: int, tick: int) -> None:
        try:
            value = await self._fetch()
            sample = Sample(time_label=time_label(self._clock.now()), value=value)
        except (FetchError, ValidationError) as exc:
            if run_id == self._run_id and self._state is SamplingState.RUNNING:
                logger.error("sampler_fetch_failed", tick=tick, error=str(exc))
                self._emit(Diagnostic(kind=DiagnosticKind.FETCH, message=str(exc)))
            return
        except Exception as exc:
            if run_id == self._run_id and self._state is SamplingState.RUNNING:
                logger.exception("sampler_fetch_failed", tick=tick, error=str(exc))
                self._emit(Diagnostic(
                    kind=DiagnosticKind.FETCH,
                    message=f"{type(exc).__name__}: {exc}",
                ))
            return

        if run_id != self._run_id or self._state is not SamplingState.RUNNING:
            logger.debug("sampler_result_discarded", tick=tick)
            return

        self._window.append(sample)
        logger.debug("sampler_sample", tick=tick, label=sample.time_label, value=sample.value)
        self._notify()

    def _notify(self) -> None:
        snapshot = self._window.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("sampler_listener_failed")

    def _emit(self, diagnostic: Diagnostic) -> None:
        for listener in list(self._diagnostic_listeners):
            try:
                listener(diagnostic)
            except Exception:
                logger.exception("diagnostic_listener_failed")
