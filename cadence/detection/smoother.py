"""Exponential smoothing for displayed frequency and cents."""

from typing import Optional


def smooth(previous: Optional[float], incoming: float, alpha: float) -> float:
    """One step of exponential smoothing.

    ``previous`` is None when nothing has been smoothed yet, in which case the
    incoming value passes through unchanged.
    """
    if previous is None:
        return incoming
    return previous * (1.0 - alpha) + incoming * alpha


class ExponentialSmoother:
    """Stateful exponential smoother.

    Lower alpha is smoother and slower, higher alpha is snappier.
    """

    def __init__(self, alpha: float):
        self._alpha = float(alpha)
        self._value: Optional[float] = None

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def value(self) -> Optional[float]:
        """Last emitted value, or None before the first update."""
        return self._value

    @property
    def has_value(self) -> bool:
        return self._value is not None

    def update(self, incoming: float) -> float:
        self._value = smooth(self._value, incoming, self._alpha)
        return self._value

    def reset(self) -> None:
        self._value = None
