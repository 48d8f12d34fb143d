"""Real-time pitch tracking: turns raw backend readings into a steady tuner display."""

from __future__ import annotations
import math
import time
from dataclasses import replace
from typing import Callable, Optional, Tuple

from .logger import get_logger
from .note_types import DisplayState, PitchEstimate
from .note_utils import (
    amplitude_to_db,
    db_to_amplitude,
    format_note_name,
    frequency_to_note,
)
from .core.config import TunerProfile
from .core.events import TrackingEvents
from .detection.signal_gate import GateResult, SignalGate
from .detection.stability_analyzer import StabilityTracker
from .detection.sustain_gate import DetectionPhase, SustainGate, SustainResult
from .detection.smoother import ExponentialSmoother
from .detection.in_tune import InTuneAccumulator

logger = get_logger(__name__)


class PitchTrackingEngine:
    """Per-sample pitch-tracking pipeline.

    Each reading goes through the level/range gate, amplitude and frequency
    stability windows and the sustain gate before it may update the display.
    The first failing stage ends processing for that reading; gate and
    stability failures drop back to Idle (strict threshold, no lock).

    The engine is not thread-safe: feed it from a single thread (the audio
    callback) and hand ``DisplayState`` snapshots to other threads.
    """

    def __init__(
        self,
        profile: Optional[TunerProfile] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the engine.

        Args:
            profile: Tuning profile, or None for the default profile
            clock: Monotonic clock in seconds, used when callers pass no timestamp
        """
        self._profile = profile or TunerProfile()
        self._clock = clock

        p = self._profile
        self._gate = SignalGate(p.min_frequency_hz, p.max_frequency_hz)
        self._stability = StabilityTracker(
            frequency_window_size=p.stability_window_size,
            frequency_tolerance_hz=p.frequency_stability_tolerance_hz,
            amplitude_window_size=p.amplitude_window_size,
            max_amplitude_variance=p.max_amplitude_relative_variance,
        )
        self._sustain = SustainGate(
            minimum_sustain_duration=p.minimum_sustain_duration,
            strict_threshold_db=p.strict_threshold_db,
            relaxed_threshold_db=p.relaxed_threshold_db,
        )
        self._frequency_smoother = ExponentialSmoother(p.frequency_smoothing_alpha)
        self._cents_smoother = ExponentialSmoother(p.cents_smoothing_alpha)
        self._in_tune = InTuneAccumulator(p.in_tune_threshold_cents)

        self._display = DisplayState()
        self._running = False
        self.events = TrackingEvents()

        logger.info(
            f"Pitch tracking engine initialized: threshold={p.strict_threshold_db}/"
            f"{p.relaxed_threshold_db} dB, window={p.stability_window_size}, "
            f"sustain={p.minimum_sustain_duration * 1000:.0f} ms, "
            f"range={p.min_frequency_hz:.0f}-{p.max_frequency_hz:.0f} Hz"
        )

    @property
    def profile(self) -> TunerProfile:
        return self._profile

    @property
    def display_state(self) -> DisplayState:
        """Latest published snapshot."""
        return self._display

    @property
    def phase(self) -> DetectionPhase:
        return self._sustain.phase

    @property
    def is_locked(self) -> bool:
        return self._sustain.is_locked

    @property
    def current_threshold_db(self) -> float:
        return self._sustain.threshold_db

    @property
    def signal_start(self) -> Optional[float]:
        return self._sustain.signal_start

    @property
    def stability(self) -> StabilityTracker:
        return self._stability

    def is_running(self) -> bool:
        return self._running

    def start(self, now: Optional[float] = None) -> bool:
        """Start accepting readings.

        Returns:
            True if started, False if already running
        """
        if self._running:
            logger.warning("Pitch tracking engine is already running")
            return False

        self._reset_state(self._now(now))
        self._running = True
        logger.info("Pitch tracking started")
        return True

    def stop(self) -> None:
        """Stop accepting readings and reset all detection state.

        The reset is complete when this returns, so a later ``start`` never
        sees a stale lock or relaxed threshold.
        """
        if not self._running:
            logger.debug("Pitch tracking engine is not running, nothing to stop")
            return

        self._running = False
        self._reset_state(None)
        self._publish(DisplayState())
        logger.info("Pitch tracking stopped")

    def toggle(self) -> bool:
        """Start if stopped, stop if running.

        Returns:
            Whether the engine is running afterwards
        """
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    def process_sample(
        self,
        frequency_hz: float,
        amplitude: Optional[float] = None,
        level_db: Optional[float] = None,
        now: Optional[float] = None,
    ) -> DisplayState:
        """Convenience wrapper around ``process`` for plain frequency/level readings."""
        return self.process(
            PitchEstimate(frequency_hz=frequency_hz, amplitude=amplitude, level_db=level_db),
            now=now,
        )

    def process(self, estimate: PitchEstimate, now: Optional[float] = None) -> DisplayState:
        """Run one backend reading through the pipeline.

        Args:
            estimate: Reading from the pitch-estimation backend
            now: Timestamp in seconds, or None to read the engine clock

        Returns:
            The display snapshot after this reading
        """
        if not self._running:
            return self._display

        now = self._now(now)
        frequency = float(estimate.frequency_hz)
        amplitude, level_db = self._levels(estimate)

        if not (math.isfinite(frequency) and math.isfinite(level_db) and math.isfinite(amplitude)):
            self._stability.reset()
            return self._lose_signal("non-finite reading", now, 0.0)

        gate_result = self._gate.check(level_db, frequency, self._sustain.threshold_db)
        if gate_result is not GateResult.PASSED:
            logger.debug(
                f"Rejected {frequency:.1f} Hz at {level_db:.1f} dB "
                f"(threshold {self._sustain.threshold_db:.1f} dB): {gate_result.name}"
            )
            self._stability.reset()
            return self._lose_signal(gate_result.name.lower(), now, amplitude)

        self._stability.push_amplitude(amplitude)
        if not self._stability.amplitudes.is_full:
            return self._publish_inactive(now, amplitude)

        if not self._stability.is_amplitude_stable():
            logger.debug(
                f"Amplitude unstable: variance {self._stability.amplitude_variance():.2f}"
            )
            if self._profile.reset_frequency_window_on_amplitude_instability:
                self._stability.clear_frequencies()
            return self._lose_signal("amplitude unstable", now, amplitude)

        self._stability.push_frequency(frequency)
        if not self._stability.frequencies.is_full:
            return self._display

        if not self._stability.is_frequency_stable():
            logger.debug(
                f"Frequency unstable: {[round(f, 1) for f in self._stability.frequencies]}"
            )
            return self._lose_signal("frequency unstable", now, amplitude)

        sustain_result = self._sustain.advance(now)
        if not sustain_result.is_active:
            return self._display

        return self._publish_detection(estimate, sustain_result, now, amplitude)

    def report_backend_error(self, error: BaseException, now: Optional[float] = None) -> DisplayState:
        """Treat a backend failure as loss of signal."""
        logger.warning(f"Pitch backend failed, treating as no signal: {error}")
        if not self._running:
            return self._display
        self._stability.reset()
        return self._lose_signal("backend error", self._now(now), 0.0)

    def _publish_detection(
        self,
        estimate: PitchEstimate,
        sustain_result: SustainResult,
        now: float,
        amplitude: float,
    ) -> DisplayState:
        average = self._stability.average_frequency()
        smoothed_frequency = self._frequency_smoother.update(average)

        # Backend-supplied cents are trusted as-is; the mapper fills in what is missing
        cents = float(estimate.cents) if estimate.cents is not None else None
        if estimate.note_name is not None and estimate.octave is not None:
            note_name = format_note_name(
                estimate.note_name, estimate.octave, self._profile.use_flats
            )
        else:
            note_name = None

        if cents is None or note_name is None:
            reading = frequency_to_note(average)
            if cents is None:
                cents = reading.cents
            if note_name is None:
                note_name = format_note_name(
                    reading.name, reading.octave, self._profile.use_flats
                )

        smoothed_cents = self._cents_smoother.update(cents)

        if sustain_result is SustainResult.LOCK_ACQUIRED:
            self._in_tune.reset(now)
        in_tune_seconds = self._in_tune.update(smoothed_cents, now)

        state = DisplayState(
            frequency_hz=smoothed_frequency,
            note_name=note_name,
            cents_offset=smoothed_cents,
            amplitude=amplitude,
            is_signal_active=True,
            sustained_in_tune_seconds=in_tune_seconds,
        )

        self._publish(state)
        if sustain_result is SustainResult.LOCK_ACQUIRED:
            logger.info(
                f"Locked on {note_name} ({smoothed_frequency:.1f} Hz, {smoothed_cents:+.1f} cents)"
            )
            self.events.emit_note_locked(state)
        return state

    def _publish_inactive(self, now: float, amplitude: float) -> DisplayState:
        self._in_tune.reset(now)
        state = replace(
            self._display,
            amplitude=amplitude,
            is_signal_active=False,
            sustained_in_tune_seconds=0.0,
        )
        self._publish(state)
        return state

    def _lose_signal(self, reason: str, now: float, amplitude: float) -> DisplayState:
        """Drop back to Idle: strict threshold, no lock, fresh smoothers."""
        was_idle = self._sustain.phase is DetectionPhase.IDLE
        if self._sustain.release():
            logger.info(f"Lost lock on {self._display.note_name}: {reason}")

        self._frequency_smoother.reset()
        self._cents_smoother.reset()
        self._in_tune.reset(now)

        if self._profile.clear_display_on_reject:
            state = DisplayState(amplitude=amplitude)
        else:
            state = replace(
                self._display,
                amplitude=amplitude,
                is_signal_active=False,
                sustained_in_tune_seconds=0.0,
            )
        self._publish(state)
        if not was_idle:
            self.events.emit_signal_lost(reason)
        return state

    def _reset_state(self, now: Optional[float]) -> None:
        self._sustain.release()
        self._stability.reset()
        self._frequency_smoother.reset()
        self._cents_smoother.reset()
        self._in_tune.reset(now)
        self._display = DisplayState()

    def _publish(self, state: DisplayState) -> None:
        self._display = state
        self.events.emit_display_updated(state)

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else float(now)

    @staticmethod
    def _levels(estimate: PitchEstimate) -> Tuple[float, float]:
        """Linear amplitude and dB level of a reading, deriving whichever is missing."""
        if estimate.level_db is not None:
            level_db = float(estimate.level_db)
            if estimate.amplitude is not None:
                return float(estimate.amplitude), level_db
            return db_to_amplitude(level_db), level_db
        if estimate.amplitude is not None:
            amplitude = float(estimate.amplitude)
            return amplitude, amplitude_to_db(amplitude)
        return 0.0, amplitude_to_db(0.0)
