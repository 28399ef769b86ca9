"""Control API client."""

from poolwatch.control.client import ControlClient

__all__ = ["ControlClient"]
