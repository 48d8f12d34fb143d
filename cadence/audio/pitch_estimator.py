"""aubio-based pitch estimation backend."""

from __future__ import annotations
from typing import ClassVar

import aubio
import numpy as np

from ..logger import get_logger
from ..note_types import PitchEstimate
from ..core.interfaces import IPitchEstimator, PitchEstimationError

logger = get_logger(__name__)


class AubioPitchEstimator(IPitchEstimator):
    """Monophonic pitch estimate (aubio) plus RMS amplitude for each audio block."""

    DEFAULT_METHOD: ClassVar[str] = "yin"
    DEFAULT_TOLERANCE: ClassVar[float] = 0.8
    DEFAULT_MIN_CONFIDENCE: ClassVar[float] = 0.5

    def __init__(
        self,
        sample_rate: int = 44100,
        hop_size: int = 1024,
        win_size: int | None = None,
        method: str = DEFAULT_METHOD,
        tolerance: float = DEFAULT_TOLERANCE,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> None:
        """Initialize the estimator.

        Args:
            sample_rate: Audio sample rate in Hz
            hop_size: Frames per block handed to ``estimate``
            win_size: Analysis window, or None for twice the hop size
            method: aubio pitch method ("yin", "yinfft", "mcomb", ...)
            tolerance: aubio pitch tolerance (0.0 to 1.0)
            min_confidence: Below this confidence the frequency is reported as 0 Hz
        """
        self._sample_rate = int(sample_rate)
        self._hop_size = int(hop_size)
        self._win_size = int(win_size) if win_size else self._hop_size * 2
        self._min_confidence = float(min_confidence)

        # The window must be long enough to hold a couple of periods of the
        # lowest note; the hop sets how often a new estimate is produced.
        self._pitch_detector = aubio.pitch(
            method, self._win_size, self._hop_size, self._sample_rate
        )
        self._pitch_detector.set_unit("Hz")
        self._pitch_detector.set_tolerance(float(tolerance))

        logger.info(
            f"Pitch estimator initialized: method={method}, sample_rate={self._sample_rate}, "
            f"win_size={self._win_size}, hop_size={self._hop_size}"
        )

    @property
    def hop_size(self) -> int:
        return self._hop_size

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def estimate(self, audio_data: np.ndarray) -> PitchEstimate:
        """Estimate pitch and amplitude for one block of mono audio.

        Blocks are truncated or zero-padded to the hop size aubio expects.

        Raises:
            PitchEstimationError: If aubio rejects the block
        """
        block = np.asarray(audio_data, dtype=np.float32).reshape(-1)
        if len(block) > self._hop_size:
            block = block[: self._hop_size]
        elif len(block) < self._hop_size:
            padding = np.zeros(self._hop_size - len(block), dtype=np.float32)
            block = np.concatenate((block, padding))

        amplitude = float(np.sqrt(np.mean(block**2)))

        try:
            frequency = float(self._pitch_detector(block)[0])
            confidence = float(self._pitch_detector.get_confidence())
        except (ValueError, RuntimeError) as e:
            raise PitchEstimationError(f"aubio pitch detection failed: {e}") from e

        if confidence < self._min_confidence:
            frequency = 0.0

        return PitchEstimate(frequency_hz=frequency, amplitude=amplitude)
