"""Level and frequency-range gate applied to every incoming reading."""

from enum import Enum, auto


class GateResult(Enum):
    """Outcome of a gate check."""

    PASSED = auto()
    TOO_QUIET = auto()
    OUT_OF_RANGE = auto()


def accept(
    level_db: float,
    frequency_hz: float,
    threshold_db: float,
    min_frequency_hz: float,
    max_frequency_hz: float,
) -> bool:
    """Return True if a reading is loud enough and inside the open frequency range."""
    return (
        classify(level_db, frequency_hz, threshold_db, min_frequency_hz, max_frequency_hz)
        is GateResult.PASSED
    )


def classify(
    level_db: float,
    frequency_hz: float,
    threshold_db: float,
    min_frequency_hz: float,
    max_frequency_hz: float,
) -> GateResult:
    """Classify a reading against a level threshold and a frequency range.

    Both comparisons are written so that NaN fails them.
    """
    if not level_db > threshold_db:
        return GateResult.TOO_QUIET
    if not (min_frequency_hz < frequency_hz < max_frequency_hz):
        return GateResult.OUT_OF_RANGE
    return GateResult.PASSED


class SignalGate:
    """Gate bound to an instrument's playable frequency range."""

    def __init__(self, min_frequency_hz: float, max_frequency_hz: float):
        self._min_frequency_hz = float(min_frequency_hz)
        self._max_frequency_hz = float(max_frequency_hz)

    @property
    def min_frequency_hz(self) -> float:
        return self._min_frequency_hz

    @property
    def max_frequency_hz(self) -> float:
        return self._max_frequency_hz

    def check(self, level_db: float, frequency_hz: float, threshold_db: float) -> GateResult:
        return classify(
            level_db,
            frequency_hz,
            threshold_db,
            self._min_frequency_hz,
            self._max_frequency_hz,
        )

    def accept(self, level_db: float, frequency_hz: float, threshold_db: float) -> bool:
        return self.check(level_db, frequency_hz, threshold_db) is GateResult.PASSED
