"""Read-only endpoints exposing the monitor's live state."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from poolwatch.core.log_stream import ConnectionState
from poolwatch.core.sampler import SamplingState
from poolwatch.models.log import LogEntry
from poolwatch.models.series import Sample
from poolwatch.monitor import Monitor

router = APIRouter(tags=["monitor"])


class MonitorStatus(BaseModel):
    connection: ConnectionState
    reconnect_pending: bool
    sampling: SamplingState
    window_size: int
    window_capacity: int
    log_entries: int


def _monitor(request: Request) -> Monitor:
    return request.app.state.monitor


@router.get("/monitor/status", response_model=MonitorStatus)
async def get_status(request: Request) -> MonitorStatus:
    monitor = _monitor(request)
    return MonitorStatus(
        connection=monitor.subscriber.state,
        reconnect_pending=monitor.subscriber.reconnect_pending,
        sampling=monitor.sampler.state,
        window_size=len(monitor.window),
        window_capacity=monitor.window.capacity,
        log_entries=len(monitor.subscriber.log_stream()),
    )


@router.get("/monitor/window", response_model=list[Sample])
async def get_window(request: Request) -> list[Sample]:
    """Current pool size window, oldest first."""
    return list(_monitor(request).window.snapshot())


@router.get("/monitor/logs", response_model=list[LogEntry])
async def get_logs(
    request: Request,
    since: int = Query(default=-1, description="Only entries with seq greater than this"),
) -> list[LogEntry]:
    entries = _monitor(request).subscriber.log_stream().entries()
    return [e for e in entries if e.seq > since]
