"""Pool size line chart rendered with ECharts."""

from __future__ import annotations

from typing import Any

from nicegui import ui

from poolwatch.exceptions import RenderError
from poolwatch.models.series import Sample
from poolwatch.ui.theme import COLORS
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)

SERIES_NAME = "Ticket Pool Size"


def build_chart_options(snapshot: tuple[Sample, ...] = ()) -> dict[str, Any]:
    """Return the ECharts option dict for a window snapshot."""
    return {
        "backgroundColor": "transparent",
        "animation": False,
        "textStyle": {"color": COLORS["text_secondary"]},
        "tooltip": {"trigger": "axis"},
        "legend": {
            "data": [SERIES_NAME],
            "textStyle": {"color": COLORS["text_secondary"]},
        },
        "xAxis": {
            "type": "category",
            "name": "Time",
            "data": [s.time_label for s in snapshot],
            "axisLine": {"lineStyle": {"color": COLORS["border"]}},
        },
        "yAxis": {
            "type": "value",
            "name": "Pool Size",
            "min": 0,
            "axisLine": {"lineStyle": {"color": COLORS["border"]}},
            "splitLine": {"lineStyle": {"color": COLORS["border"] + "40"}},
        },
        "series": [
            {
                "name": SERIES_NAME,
                "type": "line",
                "smooth": 0.4,
                "data": [s.value for s in snapshot],
                "lineStyle": {"color": COLORS["purple"]},
                "itemStyle": {"color": COLORS["purple"]},
                "areaStyle": {"color": COLORS["purple"] + "1a"},
            },
        ],
    }


class ChartRenderer:
    """Projects window snapshots onto an ECharts line chart.

    Holds no samples of its own. Without a drawing surface it runs headless:
    render() becomes a no-op and the rest of the monitor is unaffected.
    """

    def __init__(self) -> None:
        self._chart: ui.echart | None = None

    @property
    def is_headless(self) -> bool:
        return self._chart is None

    def initialize(self, mount_point: ui.element | None) -> bool:
        """Create the chart inside ``mount_point``.

        Returns:
            True if the chart is bound, False if running headless.
        """
        self.teardown()
        try:
            if mount_point is None:
                raise RenderError("Chart mount point not found")
            with mount_point:
                self._chart = ui.echart(build_chart_options()).classes("w-full").style(
                    "height: 320px"
                )
        except (RenderError, RuntimeError) as exc:
            self._chart = None
            logger.error("chart_init_failed", error=str(exc), mode="headless")
            return False
        logger.info("chart_initialized")
        return True

    def render(self, snapshot: tuple[Sample, ...]) -> None:
        """Redraw all labels and values from ``snapshot``."""
        if self._chart is None:
            return
        self._chart.options["xAxis"]["data"] = [s.time_label for s in snapshot]
        self._chart.options["series"][0]["data"] = [s.value for s in snapshot]
        self._chart.update()

    def teardown(self) -> None:
        chart, self._chart = self._chart, None
        if chart is not None:
            chart.delete()
