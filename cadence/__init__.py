"""Cadence - real-time pitch tracking for an instrument tuner."""

__version__ = "0.1.0"
