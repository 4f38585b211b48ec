"""Availability scheduling and calendar-grid interaction engine."""

__version__ = "0.1.0"
