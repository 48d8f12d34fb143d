from collections import deque
from typing import Deque, Iterator

from ..logger import get_logger

logger = get_logger(__name__)

# Guards the relative-variance division when the mean amplitude is ~0
AMPLITUDE_EPSILON = 1e-6


class RollingWindow:
    """Fixed-capacity FIFO of recent readings."""

    def __init__(self, capacity: int):
        self._capacity = max(1, int(capacity))
        self._values: Deque[float] = deque(maxlen=self._capacity)

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def clear(self) -> None:
        self._values.clear()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return len(self._values) == self._capacity

    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)


class StabilityTracker:
    """
    Decides whether the recent frequency and amplitude readings agree closely
    enough to be trusted.

    Frequency stability uses an absolute tolerance in Hz, since pitch
    measurement noise is roughly constant in Hz. Amplitude stability uses the
    largest deviation relative to the mean, since raw level depends on the
    instrument and its distance from the microphone.
    """

    def __init__(
        self,
        frequency_window_size: int,
        frequency_tolerance_hz: float,
        amplitude_window_size: int,
        max_amplitude_variance: float,
    ):
        self._frequency_tolerance_hz = float(frequency_tolerance_hz)
        self._max_amplitude_variance = float(max_amplitude_variance)
        self._frequencies = RollingWindow(frequency_window_size)
        self._amplitudes = RollingWindow(amplitude_window_size)

    @property
    def frequencies(self) -> RollingWindow:
        return self._frequencies

    @property
    def amplitudes(self) -> RollingWindow:
        return self._amplitudes

    def push_frequency(self, frequency_hz: float) -> None:
        self._frequencies.push(frequency_hz)

    def push_amplitude(self, amplitude: float) -> None:
        self._amplitudes.push(amplitude)

    def is_frequency_stable(self) -> bool:
        """True once the window is full and every reading is within tolerance of its mean.

        A one-sample window is trivially stable.
        """
        if not self._frequencies.is_full:
            return False
        avg = self._frequencies.mean()
        return all(abs(f - avg) < self._frequency_tolerance_hz for f in self._frequencies)

    def amplitude_variance(self) -> float:
        """Largest deviation from the mean amplitude, relative to that mean."""
        avg = self._amplitudes.mean()
        denominator = max(avg, AMPLITUDE_EPSILON)
        return max((abs(a - avg) / denominator for a in self._amplitudes), default=0.0)

    def is_amplitude_stable(self) -> bool:
        if not self._amplitudes.is_full:
            return False
        return self.amplitude_variance() < self._max_amplitude_variance

    def average_frequency(self) -> float:
        return self._frequencies.mean()

    def clear_frequencies(self) -> None:
        self._frequencies.clear()

    def clear_amplitudes(self) -> None:
        self._amplitudes.clear()

    def reset(self) -> None:
        self._frequencies.clear()
        self._amplitudes.clear()
        logger.debug("Stability windows cleared")
