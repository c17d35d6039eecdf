"""Rhythm: practitioner calendar and session scheduling engine."""

__version__ = "0.1.0"
