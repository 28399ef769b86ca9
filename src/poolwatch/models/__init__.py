"""Pydantic data models for poolwatch."""

from poolwatch.models.log import Diagnostic, DiagnosticKind, LogEntry
from poolwatch.models.pool import PoolConfiguration, ProcessCounts
from poolwatch.models.series import Sample

__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "LogEntry",
    "PoolConfiguration",
    "ProcessCounts",
    "Sample",
]
