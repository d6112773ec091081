"""Tabletop: timer lists with counters and automations."""

__version__ = "0.1.0"
