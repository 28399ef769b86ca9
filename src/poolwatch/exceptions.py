"""Exception hierarchy for the monitoring subsystem and the Control API client."""

from __future__ import annotations


class PoolWatchError(Exception):
    """Base exception for all poolwatch errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(PoolWatchError):
    """Connection to the log stream was refused, dropped or timed out."""


class ProtocolError(PoolWatchError):
    """Malformed frame or broker-reported error on the log stream."""


class FetchError(PoolWatchError):
    """A pool size request failed or returned an unusable value."""


class RenderError(PoolWatchError):
    """The chart could not be bound to a drawing surface."""


class ControlError(PoolWatchError):
    """A Control API lifecycle action failed."""
