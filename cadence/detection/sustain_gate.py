"""Sustain-duration gate with an adaptive (strict/relaxed) level threshold."""

from enum import Enum, auto
from typing import Optional

from ..logger import get_logger

logger = get_logger(__name__)

# Slack for float timestamps, so a run of exactly the minimum duration counts
SUSTAIN_EPSILON = 1e-9


class DetectionPhase(Enum):
    """Where the tracker is in acquiring a note."""

    IDLE = auto()  # No trusted signal; strict threshold
    SUSTAINING = auto()  # Stable, waiting out the minimum sustain duration
    LOCKED = auto()  # Note established; relaxed threshold


class SustainResult(Enum):
    """Outcome of advancing the gate with a stable reading."""

    BUFFERING = auto()
    LOCK_ACQUIRED = auto()
    LOCK_HELD = auto()

    @property
    def is_active(self) -> bool:
        return self is not SustainResult.BUFFERING


class SustainGate:
    """
    Promotes a stable signal to an active detection once it has lasted for the
    minimum sustain duration, and relaxes the level threshold while locked.

    The threshold is derived from the phase, so the lock flag and the threshold
    can never disagree. Only ``release`` goes back to the strict threshold.
    """

    def __init__(
        self,
        minimum_sustain_duration: float,
        strict_threshold_db: float,
        relaxed_threshold_db: float,
    ):
        """Initialize the gate.

        Args:
            minimum_sustain_duration: Seconds of continuous stability before a
                detection becomes active
            strict_threshold_db: Level threshold while no note is locked
            relaxed_threshold_db: Level threshold once a note is locked
        """
        self._minimum_sustain_duration = float(minimum_sustain_duration)
        self._strict_threshold_db = float(strict_threshold_db)
        self._relaxed_threshold_db = float(relaxed_threshold_db)

        self._phase = DetectionPhase.IDLE
        self._signal_start: Optional[float] = None

    @property
    def phase(self) -> DetectionPhase:
        return self._phase

    @property
    def is_locked(self) -> bool:
        return self._phase is DetectionPhase.LOCKED

    @property
    def signal_start(self) -> Optional[float]:
        """Timestamp at which the current stable run began, if any."""
        return self._signal_start

    @property
    def threshold_db(self) -> float:
        if self._phase is DetectionPhase.LOCKED:
            return self._relaxed_threshold_db
        return self._strict_threshold_db

    def advance(self, now: float) -> SustainResult:
        """Record another stable reading at ``now``.

        Returns:
            BUFFERING while the minimum duration has not elapsed,
            LOCK_ACQUIRED on the reading that completes it (once per Idle to
            Locked cycle), and LOCK_HELD for every stable reading after that.
        """
        if self._phase is DetectionPhase.LOCKED:
            return SustainResult.LOCK_HELD

        if self._phase is DetectionPhase.IDLE or self._signal_start is None:
            self._phase = DetectionPhase.SUSTAINING
            self._signal_start = now

        elapsed = now - self._signal_start
        if elapsed + SUSTAIN_EPSILON < self._minimum_sustain_duration:
            return SustainResult.BUFFERING

        self._phase = DetectionPhase.LOCKED
        logger.debug(
            f"Lock acquired after {elapsed * 1000:.1f} ms, "
            f"threshold relaxed to {self._relaxed_threshold_db:.1f} dB"
        )
        return SustainResult.LOCK_ACQUIRED

    def release(self) -> bool:
        """Drop back to Idle and the strict threshold.

        Returns:
            True if a lock was held before the release
        """
        was_locked = self._phase is DetectionPhase.LOCKED
        self._phase = DetectionPhase.IDLE
        self._signal_start = None
        return was_locked
