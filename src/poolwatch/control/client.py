"""Async client for the ticket-pool Control API."""

from __future__ import annotations

import json
import math
from types import TracebackType

import httpx

from poolwatch.exceptions import ControlError, FetchError
from poolwatch.models.pool import PoolConfiguration, ProcessCounts
from poolwatch.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080/api/ticket-pool"


class ControlClient:
    """Thin request/response wrapper over the simulation's REST endpoints.

    Lifecycle actions return the backend's text response and raise
    ControlError on failure. ``get_pool_size`` raises FetchError instead,
    which the sampler treats as a skipped tick.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_s: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> ControlClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # --- Lifecycle actions ---

    async def initialize(self, config: PoolConfiguration) -> str:
        """Configure the pool and refill it with ``total_tickets`` tickets."""
        return await self._post("/initialize", "Initialization failed.", config.to_query_params())

    async def start(self, counts: ProcessCounts) -> str:
        """Start or resume vendor and consumer threads."""
        return await self._post("/start", "Start or resume processes failed.", counts.to_query_params())

    async def stop(self) -> str:
        return await self._post("/stop", "Stopping processes failed.")

    async def reset(self) -> str:
        return await self._post("/reset", "Resetting pool failed.")

    async def save(self, config: PoolConfiguration) -> str:
        """Persist the configuration on the backend."""
        return await self._post("/save", "Saving configuration failed.", config.to_query_params())

    async def clear_logs(self) -> str:
        return await self._post("/clear-logs", "Clearing logs failed.")

    async def send_test_log(self) -> str:
        """Ask the backend to publish a test line on the log topic."""
        return await self._post("/send-log", "Sending test log failed.")

    # --- Sampling ---

    async def get_pool_size(self) -> float:
        """Return the number of tickets currently in the pool.

        Raises:
            FetchError: On transport failure, error status, or a body that is
                not a non-negative number.
        """
        url = f"{self._base_url}/size"
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            value = json.loads(resp.text)
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Pool size request failed: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Pool size request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise FetchError(f"Pool size response is not JSON: {resp.text[:64]!r}") from exc

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FetchError(f"Pool size response is not a number: {value!r}")
        try:
            in_range = math.isfinite(value) and value >= 0
        except OverflowError:
            in_range = False
        if not in_range:
            raise FetchError(f"Pool size out of range: {str(value)[:64]}")
        logger.debug("pool_size_fetched", size=value)
        return value

    # --- Internals ---

    async def _post(
        self,
        path: str,
        failure_message: str,
        params: dict[str, int] | None = None,
    ) -> str:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.post(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "control_request_failed",
                path=path,
                status=exc.response.status_code,
                detail=exc.response.text,
            )
            raise ControlError(failure_message, status_code=exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("control_request_failed", path=path, error=type(exc).__name__)
            raise ControlError(failure_message) from exc

        logger.info("control_request_ok", path=path, response=resp.text)
        return resp.text
