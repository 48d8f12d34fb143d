import numpy as np
import pytest

from cadence.note_types import PitchEstimate

pytest.importorskip("aubio")

from cadence.audio.pitch_estimator import AubioPitchEstimator  # noqa: E402

SAMPLE_RATE = 44100
HOP_SIZE = 1024


def sine_blocks(freq, amplitude=0.5, blocks=20):
    t = np.arange(HOP_SIZE * blocks, dtype=np.float32) / SAMPLE_RATE
    wave = (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return [wave[i : i + HOP_SIZE] for i in range(0, len(wave), HOP_SIZE)]


@pytest.mark.parametrize("freq", [110.0, 220.0, 440.0, 659.25])
def test_estimates_sine_frequency(freq):
    estimator = AubioPitchEstimator(sample_rate=SAMPLE_RATE, hop_size=HOP_SIZE)
    estimates = [estimator.estimate(block) for block in sine_blocks(freq)]

    last = estimates[-1]
    assert isinstance(last, PitchEstimate)
    assert abs(last.frequency_hz - freq) < 2.0
    assert last.amplitude == pytest.approx(0.5 / np.sqrt(2), rel=0.05)


def test_silence_has_zero_amplitude():
    estimator = AubioPitchEstimator(sample_rate=SAMPLE_RATE, hop_size=HOP_SIZE)
    estimate = estimator.estimate(np.zeros(HOP_SIZE, dtype=np.float32))
    assert estimate.amplitude == 0.0


def test_short_block_is_padded():
    estimator = AubioPitchEstimator(sample_rate=SAMPLE_RATE, hop_size=HOP_SIZE)
    estimate = estimator.estimate(np.full(300, 0.1, dtype=np.float64))
    assert estimate.amplitude > 0.0
