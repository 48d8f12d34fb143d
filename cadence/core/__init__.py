"""Core components for the Cadence application."""

from .config import ConfigManager, TunerProfile, PROFILES
from .events import TrackingEvents, TrackingEventType
from .interfaces import IAudioInput, IPitchEstimator, PitchEstimationError

__all__ = [
    "ConfigManager",
    "TunerProfile",
    "PROFILES",
    "TrackingEvents",
    "TrackingEventType",
    "IAudioInput",
    "IPitchEstimator",
    "PitchEstimationError",
]
