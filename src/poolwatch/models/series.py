"""Pool size sample model."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Sample(BaseModel):
    """One pool size reading, labelled with the wall-clock time it was taken."""
    model_config = {"frozen": True}

    time_label: str
    value: float = Field(ge=0, description="Tickets currently in the pool")
