"""Simulation configuration models sent to the Control API."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class PoolConfiguration(BaseModel):
    """Ticket pool parameters accepted by /initialize and /save."""

    max_ticket_capacity: int = Field(default=200, ge=1)
    total_tickets: int = Field(default=100, ge=1)
    ticket_release_rate: int = Field(default=5, ge=1)
    customer_ticket_retrieval_rate: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_capacity(self) -> PoolConfiguration:
        if self.total_tickets > self.max_ticket_capacity:
            raise ValueError("Total tickets cannot exceed max capacity.")
        return self

    def to_query_params(self) -> dict[str, int]:
        """Return the camelCase query parameters the backend expects."""
        return {
            "maxTicketCapacity": self.max_ticket_capacity,
            "totalTickets": self.total_tickets,
            "ticketReleaseRate": self.ticket_release_rate,
            "customerTicketRetrievalRate": self.customer_ticket_retrieval_rate,
        }


class ProcessCounts(BaseModel):
    """Number of vendor and consumer threads to start on the backend."""

    vendor_count: int = Field(default=1, ge=1)
    consumer_count: int = Field(default=1, ge=1)

    def to_query_params(self) -> dict[str, int]:
        return {
            "vendorCount": self.vendor_count,
            "consumerCount": self.consumer_count,
        }
