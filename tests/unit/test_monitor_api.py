"""Unit tests for poolwatch.monitor and the /api/monitor routes."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from poolwatch.api.app import create_app
from poolwatch.config import MonitorSettings
from poolwatch.control.client import ControlClient
from poolwatch.core.log_stream import ConnectionState
from poolwatch.core.sampler import SamplingState
from poolwatch.models.pool import ProcessCounts
from poolwatch.models.series import Sample
from poolwatch.monitor import Monitor


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class BackendStub:
    """Answers Control API requests the way the simulation backend does."""

    def __init__(self) -> None:
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        if request.url.path.endswith("/size"):
            return httpx.Response(200, text="7")
        return httpx.Response(200, text="done")


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
def monitor(backend, transport, clock) -> Monitor:
    control = ControlClient(
        "http://backend/api/ticket-pool",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
    )
    return Monitor(
        MonitorSettings(window_capacity=5),
        control=control,
        transport_factory=transport,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Monitor
# ---------------------------------------------------------------------------

class TestMonitor:

    def test_window_uses_configured_capacity(self, monitor):
        assert monitor.window.capacity == 5
        assert monitor.sampler.window is monitor.window

    def test_start_processes_starts_sampling(self, monitor, backend, clock):
        asyncio.run(monitor.start_processes(ProcessCounts()))
        assert backend.paths == ["/api/ticket-pool/start"]
        assert monitor.sampler.state is SamplingState.RUNNING
        assert clock.pending == 1

    def test_second_start_keeps_single_timer(self, monitor, clock):
        asyncio.run(monitor.start_processes(ProcessCounts()))
        asyncio.run(monitor.start_processes(ProcessCounts()))
        assert clock.pending == 1

    def test_sampler_polls_pool_size(self, monitor, clock):
        async def scenario():
            await monitor.start_processes(ProcessCounts())
            clock.advance(2.0)
            for _ in range(10):
                await asyncio.sleep(0)
            monitor.sampler.stop()

        asyncio.run(scenario())
        assert monitor.window.values() == (7.0,)

    def test_clear_logs_clears_backend_and_local(self, monitor, backend, transport):
        monitor.subscriber.connect()
        transport.latest.accept()
        transport.latest.deliver("line")
        asyncio.run(monitor.clear_logs())
        assert backend.paths == ["/api/ticket-pool/clear-logs"]
        assert monitor.subscriber.log_stream().lines() == []

    def test_aclose_stops_everything(self, monitor, transport, clock):
        monitor.subscriber.connect()
        monitor.sampler.start()
        asyncio.run(monitor.aclose())
        assert monitor.sampler.state is SamplingState.IDLE
        assert monitor.subscriber.state is ConnectionState.DISCONNECTED
        assert transport.open_sessions == []
        assert clock.pending == 0


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------

class TestMonitorRoutes:

    def _client(self, monitor) -> TestClient:
        return TestClient(create_app(monitor=monitor, enable_ui=False))

    def test_status(self, monitor, transport):
        monitor.subscriber.connect()
        transport.latest.accept()
        body = self._client(monitor).get("/api/monitor/status").json()
        assert body == {
            "connection": "connected",
            "reconnect_pending": False,
            "sampling": "idle",
            "window_size": 0,
            "window_capacity": 5,
            "log_entries": 0,
        }

    def test_window(self, monitor):
        monitor.window.append(Sample(time_label="12:00:02", value=3))
        body = self._client(monitor).get("/api/monitor/window").json()
        assert body == [{"time_label": "12:00:02", "value": 3.0}]

    def test_logs_since(self, monitor, transport):
        monitor.subscriber.connect()
        transport.latest.accept()
        for text in ("a", "b", "c"):
            transport.latest.deliver(text)
        client = self._client(monitor)
        assert [e["text"] for e in client.get("/api/monitor/logs").json()] == ["a", "b", "c"]
        assert client.get("/api/monitor/logs", params={"since": 1}).json() == [
            {"seq": 2, "text": "c"},
        ]
