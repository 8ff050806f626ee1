"""Realtime collaboration layer for a helpdesk dashboard."""

__version__ = "0.1.0"
