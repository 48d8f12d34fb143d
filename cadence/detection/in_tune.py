"""Tracks how long the reading has stayed inside the in-tune band."""

from typing import Optional


class InTuneAccumulator:
    """Accumulates wall-clock seconds spent within +/- ``threshold_cents``.

    Purely feedback for the display; nothing in detection reads it back.
    """

    def __init__(self, threshold_cents: float):
        self._threshold_cents = float(threshold_cents)
        self._seconds = 0.0
        self._last_check: Optional[float] = None

    @property
    def seconds(self) -> float:
        return self._seconds

    @property
    def threshold_cents(self) -> float:
        return self._threshold_cents

    def update(self, cents_offset: float, now: float) -> float:
        """Add the time since the previous check if ``cents_offset`` is in tune.

        Any out-of-tune reading resets the total to 0. The check time is
        always advanced to ``now``.

        Returns:
            The accumulated in-tune seconds
        """
        delta = 0.0 if self._last_check is None else max(0.0, now - self._last_check)
        if abs(cents_offset) < self._threshold_cents:
            self._seconds += delta
        else:
            self._seconds = 0.0
        self._last_check = now
        return self._seconds

    def reset(self, now: Optional[float] = None) -> None:
        """Zero the total; ``now`` becomes the reference for the next delta."""
        self._seconds = 0.0
        self._last_check = now
