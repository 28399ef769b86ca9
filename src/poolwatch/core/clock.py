"""Time source and timer scheduling used by the monitoring components.

Components never call ``asyncio`` timers or ``datetime.now`` directly; they
receive a Clock so tests can substitute a manually advanced one.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Protocol


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None: ...


class Clock(ABC):
    """Abstract time source with one-shot delayed callbacks."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local wall-clock time."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay_s`` seconds."""


class LoopClock(Clock):
    """Clock backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def now(self) -> datetime:
        return datetime.now()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)


def time_label(moment: datetime) -> str:
    """Format a moment as the chart's x-axis label (HH:MM:SS)."""
    return moment.strftime("%H:%M:%S")
