"""Composition root wiring the Control API client to the monitoring core."""

from __future__ import annotations

from poolwatch.config import MonitorSettings
from poolwatch.control.client import ControlClient
from poolwatch.core.clock import Clock, LoopClock
from poolwatch.core.log_stream import StreamSubscriber
from poolwatch.core.sampler import PollingSampler
from poolwatch.core.series import SlidingWindowSeries
from poolwatch.models.pool import ProcessCounts
from poolwatch.stomp.transport import TransportFactory, stomp_session_factory
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)


class Monitor:
    """One log subscriber, one sampler and one window sharing a Control API client.

    Every collaborator can be injected; anything omitted is built from
    ``settings``.
    """

    def __init__(
        self,
        settings: MonitorSettings | None = None,
        *,
        control: ControlClient | None = None,
        transport_factory: TransportFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self.clock = clock or LoopClock()
        self.control = control or ControlClient(
            self.settings.api_base_url,
            timeout_s=self.settings.request_timeout_s,
        )
        self.window = SlidingWindowSeries(self.settings.window_capacity)
        self.subscriber = StreamSubscriber(
            transport_factory or stomp_session_factory(
                self.settings.stream_url,
                self.settings.topic,
                origin=self.settings.stream_origin,
                handshake_timeout_s=self.settings.handshake_timeout_s,
            ),
            self.clock,
            topic=self.settings.topic,
            reconnect_delay_s=self.settings.reconnect_delay_s,
        )
        self.sampler = PollingSampler(
            self.control.get_pool_size,
            self.window,
            self.clock,
            interval_s=self.settings.poll_interval_s,
        )

    async def start_processes(self, counts: ProcessCounts) -> str:
        """Start backend processes, then begin sampling the pool size."""
        response = await self.control.start(counts)
        if not self.sampler.is_running:
            self.sampler.start()
        return response

    async def clear_logs(self) -> str:
        """Clear logs on the backend, then the local log sequence."""
        response = await self.control.clear_logs()
        self.subscriber.clear_logs()
        return response

    async def aclose(self) -> None:
        if self.sampler.is_running:
            self.sampler.stop()
        self.subscriber.disconnect()
        await self.control.aclose()
        logger.info("monitor_closed")
