"""Tuner service: audio input -> pitch estimator -> tracking engine -> snapshots."""

from __future__ import annotations
import queue
from typing import Optional

import numpy as np

from ..logger import get_logger
from ..note_types import DisplayState
from ..engine import PitchTrackingEngine
from ..core.interfaces import IAudioInput, IPitchEstimator, PitchEstimationError

logger = get_logger(__name__)


class TunerService:
    """Runs the tracking engine on the audio thread and hands snapshots to consumers.

    All engine mutation happens inside the audio callback. Consumers on other
    threads only ever see immutable ``DisplayState`` copies, taken from a
    bounded queue (oldest snapshot dropped when full) or via ``latest``.
    """

    def __init__(
        self,
        audio_input: IAudioInput,
        estimator: IPitchEstimator,
        engine: Optional[PitchTrackingEngine] = None,
        max_queued_snapshots: int = 64,
    ) -> None:
        """Initialize the tuner service.

        Args:
            audio_input: Source of mono audio blocks
            estimator: Backend turning blocks into pitch estimates
            engine: Tracking engine, or None for one with the default profile
            max_queued_snapshots: Capacity of the snapshot queue
        """
        self._audio_input = audio_input
        self._estimator = estimator
        self._engine = engine or PitchTrackingEngine()
        self._snapshots: "queue.Queue[DisplayState]" = queue.Queue(maxsize=max_queued_snapshots)
        self._latest = self._engine.display_state
        self._running = False

        self._engine.events.on_display_updated(self._on_display_updated)

    @property
    def engine(self) -> PitchTrackingEngine:
        return self._engine

    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """Start the engine, then the audio input.

        Returns:
            True if started successfully, False otherwise
        """
        if self._running:
            logger.warning("Tuner service already running")
            return False

        self._engine.start()
        if not self._audio_input.start(self._process_audio):
            logger.error("Audio input failed to start; tuner not running")
            self._engine.stop()
            return False

        self._running = True
        logger.info("Tuner service started")
        return True

    def stop(self) -> None:
        """Stop the audio input, then reset the engine."""
        if not self._running:
            return

        self._audio_input.stop()
        self._engine.stop()
        self._running = False
        logger.info("Tuner service stopped")

    def toggle(self) -> bool:
        """Start if stopped, stop if running; returns whether it is running afterwards."""
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    def latest(self) -> DisplayState:
        """Most recent snapshot, without consuming the queue."""
        return self._latest

    def get_snapshot(self, timeout: Optional[float] = None) -> Optional[DisplayState]:
        """Next queued snapshot, or None if none arrives within ``timeout``."""
        try:
            return self._snapshots.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        """Every queued snapshot, oldest first."""
        states = []
        while True:
            try:
                states.append(self._snapshots.get_nowait())
            except queue.Empty:
                return states

    def _process_audio(self, audio_data: np.ndarray, timestamp: float) -> None:
        """Audio-thread callback: estimate pitch and advance the engine."""
        try:
            estimate = self._estimator.estimate(audio_data)
        except PitchEstimationError as e:
            self._engine.report_backend_error(e, now=timestamp)
            return
        except Exception as e:
            # Anything else from the backend still must not take down the audio thread
            logger.error(f"Unexpected pitch estimator failure: {e}", exc_info=True)
            self._engine.report_backend_error(e, now=timestamp)
            return

        self._engine.process(estimate, now=timestamp)

    def _on_display_updated(self, state: DisplayState) -> None:
        # A single reference swap; readers only ever see a complete snapshot
        self._latest = state
        # queue.Queue holds its mutex only for the deque append, never across a wait
        while True:
            try:
                self._snapshots.put_nowait(state)
                return
            except queue.Full:
                try:
                    self._snapshots.get_nowait()
                except queue.Empty:
                    pass
