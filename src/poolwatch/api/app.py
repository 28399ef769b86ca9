"""FastAPI application factory and lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from poolwatch import __version__
from poolwatch.config import MonitorSettings
from poolwatch.monitor import Monitor
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(
    settings: MonitorSettings | None = None,
    *,
    monitor: Monitor | None = None,
    enable_ui: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Endpoint and timing settings; defaults to the environment.
        monitor: Pre-built monitor, mainly for tests.
        enable_ui: Whether to mount the NiceGUI dashboard.

    Returns:
        Configured FastAPI application instance.
    """
    monitor = monitor or Monitor(settings or MonitorSettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("poolwatch_starting", api=monitor.settings.api_base_url)
        monitor.subscriber.connect()
        yield
        await monitor.aclose()
        logger.info("poolwatch_stopped")

    app = FastAPI(
        title="poolwatch",
        description="Live monitor and control client for the ticket-pool simulation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.monitor = monitor

    from poolwatch.api.routes import monitor as monitor_routes
    app.include_router(monitor_routes.router, prefix="/api")

    if enable_ui:
        from poolwatch.ui.main import setup_ui
        setup_ui(app, monitor)

    return app
