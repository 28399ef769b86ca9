"""Unit tests for poolwatch.control.client - request shapes and error mapping."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from poolwatch.control.client import ControlClient
from poolwatch.exceptions import ControlError, FetchError
from poolwatch.models.pool import PoolConfiguration, ProcessCounts

BASE = "http://localhost:8080/api/ticket-pool"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays one response."""

    def __init__(self, status: int = 200, text: str = "OK", exc: Exception | None = None):
        self.status = status
        self.text = text
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, text=self.text)


def _call(handler: RecordingHandler, method: str, *args):
    async def _run():
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = ControlClient(BASE, http_client=http)
        try:
            return await getattr(client, method)(*args)
        finally:
            await http.aclose()

    return asyncio.run(_run())


# ---------------------------------------------------------------------------
# Lifecycle actions
# ---------------------------------------------------------------------------

class TestActions:

    def test_initialize_sends_camel_case_params(self):
        handler = RecordingHandler(text="Ticket pool initialized.")
        result = _call(handler, "initialize", PoolConfiguration())
        request = handler.requests[0]
        assert result == "Ticket pool initialized."
        assert request.method == "POST"
        assert request.url.path == "/api/ticket-pool/initialize"
        assert dict(request.url.params) == {
            "maxTicketCapacity": "200",
            "totalTickets": "100",
            "ticketReleaseRate": "5",
            "customerTicketRetrievalRate": "1",
        }

    def test_start_sends_counts(self):
        handler = RecordingHandler(text="Processes started.")
        _call(handler, "start", ProcessCounts(vendor_count=3, consumer_count=2))
        request = handler.requests[0]
        assert request.url.path.endswith("/start")
        assert dict(request.url.params) == {"vendorCount": "3", "consumerCount": "2"}

    @pytest.mark.parametrize("method, path", [
        ("stop", "/stop"),
        ("reset", "/reset"),
        ("clear_logs", "/clear-logs"),
        ("send_test_log", "/send-log"),
    ])
    def test_parameterless_actions(self, method, path):
        handler = RecordingHandler()
        _call(handler, method)
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == f"/api/ticket-pool{path}"
        assert request.url.query == b""

    def test_save_sends_config(self):
        handler = RecordingHandler()
        _call(handler, "save", PoolConfiguration(max_ticket_capacity=50, total_tickets=10))
        params = handler.requests[0].url.params
        assert params["maxTicketCapacity"] == "50"
        assert params["totalTickets"] == "10"

    def test_http_error_raises_control_error(self):
        handler = RecordingHandler(status=500, text="boom")
        with pytest.raises(ControlError, match="Stopping processes failed.") as exc_info:
            _call(handler, "stop")
        assert exc_info.value.status_code == 500

    def test_network_error_raises_control_error(self):
        handler = RecordingHandler(exc=httpx.ConnectError("refused"))
        with pytest.raises(ControlError, match="Resetting pool failed.") as exc_info:
            _call(handler, "reset")
        assert exc_info.value.status_code is None

    def test_trailing_slash_in_base_url(self):
        assert ControlClient(BASE + "/", http_client=httpx.AsyncClient()).base_url == BASE


# ---------------------------------------------------------------------------
# Pool size
# ---------------------------------------------------------------------------

class TestGetPoolSize:

    def test_integer_body(self):
        handler = RecordingHandler(text="42")
        assert _call(handler, "get_pool_size") == 42
        assert handler.requests[0].method == "GET"
        assert handler.requests[0].url.path == "/api/ticket-pool/size"

    def test_float_body(self):
        assert _call(RecordingHandler(text="12.5"), "get_pool_size") == 12.5

    def test_zero_is_valid(self):
        assert _call(RecordingHandler(text="0"), "get_pool_size") == 0

    def test_http_error(self):
        with pytest.raises(FetchError, match="HTTP 503") as exc_info:
            _call(RecordingHandler(status=503, text="down"), "get_pool_size")
        assert exc_info.value.status_code == 503

    def test_network_error(self):
        handler = RecordingHandler(exc=httpx.ReadTimeout("slow"))
        with pytest.raises(FetchError, match="ReadTimeout"):
            _call(handler, "get_pool_size")

    @pytest.mark.parametrize("body", ["not json", "", "{"])
    def test_non_json_body(self, body):
        with pytest.raises(FetchError, match="not JSON"):
            _call(RecordingHandler(text=body), "get_pool_size")

    @pytest.mark.parametrize("body", ['"12"', "true", "null", "[1]", '{"size": 3}'])
    def test_non_numeric_json(self, body):
        with pytest.raises(FetchError, match="not a number"):
            _call(RecordingHandler(text=body), "get_pool_size")

    @pytest.mark.parametrize("body", ["-1", "NaN", "Infinity"])
    def test_out_of_range(self, body):
        with pytest.raises(FetchError, match="out of range"):
            _call(RecordingHandler(text=body), "get_pool_size")

    def test_integer_too_large_for_float(self):
        with pytest.raises(FetchError, match="out of range"):
            _call(RecordingHandler(text="1" + "0" * 400), "get_pool_size")

    def test_integer_over_digit_limit(self):
        with pytest.raises(FetchError, match="not JSON"):
            _call(RecordingHandler(text="9" * 5000), "get_pool_size")


class TestLifecycle:

    def test_owned_client_closed_on_exit(self):
        async def _run():
            async with ControlClient(BASE) as client:
                http = client._http
            return http

        assert asyncio.run(_run()).is_closed

    def test_injected_client_left_open(self):
        async def _run():
            http = httpx.AsyncClient(transport=httpx.MockTransport(RecordingHandler()))
            async with ControlClient(BASE, http_client=http):
                pass
            closed = http.is_closed
            await http.aclose()
            return closed

        assert asyncio.run(_run()) is False
