"""Real-time monitoring core: log stream subscription and pool size sampling."""

from poolwatch.core.clock import Clock, LoopClock
from poolwatch.core.log_stream import ConnectionState, LogStream, StreamSubscriber
from poolwatch.core.sampler import PollingSampler, SamplingState
from poolwatch.core.series import SlidingWindowSeries

__all__ = [
    "Clock",
    "ConnectionState",
    "LogStream",
    "LoopClock",
    "PollingSampler",
    "SamplingState",
    "SlidingWindowSeries",
    "StreamSubscriber",
]
