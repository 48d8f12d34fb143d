"""Defines the core interfaces for the Cadence application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

from ..note_types import PitchEstimate


class PitchEstimationError(Exception):
    """Raised by a pitch estimator that cannot produce a reading."""


class IAudioInput(ABC):
    """Interface for audio input handlers."""

    @abstractmethod
    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        """Start capturing audio, calling ``callback(block, timestamp)`` per buffer."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass


class IPitchEstimator(ABC):
    """Interface for monophonic pitch estimators feeding the tracking engine."""

    @abstractmethod
    def estimate(self, audio_data: np.ndarray) -> PitchEstimate:
        """Estimate the pitch and level of one block of mono audio.

        Raises:
            PitchEstimationError: If the backend fails on this block
        """
        pass
