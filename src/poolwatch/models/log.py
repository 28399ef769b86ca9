"""Log stream entries and diagnostic records."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class LogEntry(BaseModel):
    """A single log line as received from the stream topic."""
    model_config = {"frozen": True}

    seq: int
    text: str


class DiagnosticKind(StrEnum):
    """Category of a non-fatal failure reported by a monitoring component."""
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    RECONNECT = "reconnect"
    FETCH = "fetch"


class Diagnostic(BaseModel):
    """A failure surfaced to observers without interrupting the component."""
    model_config = {"frozen": True}

    kind: DiagnosticKind
    message: str
