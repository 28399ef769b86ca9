"""NiceGUI web dashboard setup and page registration."""

from __future__ import annotations

from fastapi import FastAPI
from nicegui import ui

from poolwatch.monitor import Monitor


def setup_ui(fastapi_app: FastAPI, monitor: Monitor) -> None:
    """Register NiceGUI pages with the FastAPI application."""

    @ui.page("/")
    def index():
        from poolwatch.ui.pages.dashboard import dashboard_page
        dashboard_page(monitor)

    ui.run_with(
        fastapi_app,
        title="Ticket Pool Monitor",
    )
