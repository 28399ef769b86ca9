"""poolwatch - live monitor and control client for the ticket-pool simulation."""

__version__ = "0.1.0"
