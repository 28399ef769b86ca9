"""Unit tests for poolwatch.ui.chart - option building and headless rendering."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from poolwatch.models.series import Sample
from poolwatch.ui.chart import SERIES_NAME, ChartRenderer, build_chart_options


def _snapshot(*values: float) -> tuple[Sample, ...]:
    return tuple(Sample(time_label=f"12:00:{i:02d}", value=v) for i, v in enumerate(values))


def _bind(mock_ui: MagicMock) -> MagicMock:
    """Make ui.echart(...).classes(...).style(...) return a chart with real options."""
    chart = MagicMock()
    chart.options = build_chart_options()
    mock_ui.echart.return_value.classes.return_value.style.return_value = chart
    return chart


class TestBuildChartOptions:

    def test_empty_snapshot(self):
        options = build_chart_options()
        assert options["xAxis"]["data"] == []
        assert options["series"][0]["data"] == []

    def test_axes_and_series(self):
        options = build_chart_options(_snapshot(10, 20))
        assert options["xAxis"]["type"] == "category"
        assert options["xAxis"]["name"] == "Time"
        assert options["yAxis"]["name"] == "Pool Size"
        assert options["yAxis"]["min"] == 0
        series = options["series"][0]
        assert series["name"] == SERIES_NAME == "Ticket Pool Size"
        assert series["type"] == "line"
        assert series["data"] == [10.0, 20.0]
        assert options["xAxis"]["data"] == ["12:00:00", "12:00:01"]


class TestChartRenderer:

    @patch("poolwatch.ui.chart.ui")
    def test_initialize_binds_chart(self, mock_ui):
        _bind(mock_ui)
        renderer = ChartRenderer()
        assert renderer.initialize(MagicMock()) is True
        assert not renderer.is_headless
        mock_ui.echart.assert_called_once()

    @patch("poolwatch.ui.chart.ui")
    def test_missing_mount_point_runs_headless(self, mock_ui):
        renderer = ChartRenderer()
        assert renderer.initialize(None) is False
        assert renderer.is_headless
        mock_ui.echart.assert_not_called()

    @patch("poolwatch.ui.chart.ui")
    def test_echart_failure_runs_headless(self, mock_ui):
        mock_ui.echart.side_effect = RuntimeError("no client context")
        renderer = ChartRenderer()
        assert renderer.initialize(MagicMock()) is False
        assert renderer.is_headless

    def test_render_headless_is_noop(self):
        renderer = ChartRenderer()
        renderer.render(_snapshot(1, 2, 3))
        assert renderer.is_headless

    @patch("poolwatch.ui.chart.ui")
    def test_render_replaces_labels_and_values(self, mock_ui):
        chart = _bind(mock_ui)
        renderer = ChartRenderer()
        renderer.initialize(MagicMock())
        renderer.render(_snapshot(5, 6))
        renderer.render(_snapshot(7))
        assert chart.options["xAxis"]["data"] == ["12:00:00"]
        assert chart.options["series"][0]["data"] == [7.0]
        assert chart.update.call_count == 2

    @patch("poolwatch.ui.chart.ui")
    def test_teardown_deletes_once(self, mock_ui):
        chart = _bind(mock_ui)
        renderer = ChartRenderer()
        renderer.initialize(MagicMock())
        renderer.teardown()
        renderer.teardown()
        chart.delete.assert_called_once()
        assert renderer.is_headless

    @patch("poolwatch.ui.chart.ui")
    def test_reinitialize_replaces_previous_chart(self, mock_ui):
        first = _bind(mock_ui)
        renderer = ChartRenderer()
        renderer.initialize(MagicMock())
        _bind(mock_ui)
        renderer.initialize(MagicMock())
        first.delete.assert_called_once()
