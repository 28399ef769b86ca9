"""Runtime settings for the monitor: endpoints, intervals and window size."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

ENV_PREFIX = "POOLWATCH_"


class MonitorSettings(BaseModel):
    """Connection and timing settings shared by the CLI and the dashboard."""
    model_config = {"frozen": True}

    api_base_url: str = "http://localhost:8080/api/ticket-pool"
    stream_url: str = "ws://localhost:8080/ws-logs/websocket"
    stream_origin: str | None = "http://localhost:4200"
    topic: str = "/topic/logs"
    reconnect_delay_s: float = Field(default=5.0, gt=0)
    poll_interval_s: float = Field(default=2.0, gt=0)
    window_capacity: int = Field(default=20, ge=1)
    request_timeout_s: float = Field(default=5.0, gt=0)
    handshake_timeout_s: float = Field(default=10.0, gt=0)

    @classmethod
    def from_env(cls, **overrides: object) -> MonitorSettings:
        """Build settings from ``POOLWATCH_*`` environment variables.

        Explicit keyword overrides win over the environment; ``None``
        overrides are ignored so unset CLI options fall through.
        """
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
