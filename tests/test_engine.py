import unittest

from cadence.engine import PitchTrackingEngine
from cadence.core.config import PROFILES, TunerProfile
from cadence.core.events import TrackingEventType
from cadence.detection.sustain_gate import DetectionPhase
from cadence.note_types import DisplayState, PitchEstimate

STEP = 0.01  # 10 ms between readings


def feed(engine, frequency, level_db, start, count, step=STEP):
    """Feed ``count`` identical readings; returns the last state and the next timestamp."""
    state = engine.display_state
    now = start
    for i in range(count):
        now = start + i * step
        state = engine.process_sample(frequency, level_db=level_db, now=now)
    return state, now + step


def locked_engine(profile=None, frequency=440.0, level_db=-20.0):
    engine = PitchTrackingEngine(profile)
    engine.start(now=0.0)
    state, next_time = feed(engine, frequency, level_db, 0.0, 7)
    assert state.is_signal_active
    return engine, next_time


class TestEndToEnd(unittest.TestCase):
    def test_held_note_becomes_active(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)

        state, _ = feed(engine, 440.0, -20.0, 0.0, 7)

        self.assertTrue(state.is_signal_active)
        self.assertEqual(state.note_name, "A4")
        self.assertAlmostEqual(state.frequency_hz, 440.0)
        self.assertAlmostEqual(state.cents_offset, 0.0)
        self.assertAlmostEqual(state.amplitude, 0.1)
        self.assertTrue(engine.is_locked)
        self.assertEqual(engine.current_threshold_db, -44.0)

    def test_drop_in_level_releases_within_one_sample(self):
        engine, now = locked_engine()

        state = engine.process_sample(440.0, level_db=-50.0, now=now)

        self.assertFalse(state.is_signal_active)
        self.assertEqual(state.note_name, "--")
        self.assertEqual(state.sustained_in_tune_seconds, 0.0)
        self.assertFalse(engine.is_locked)
        self.assertEqual(engine.current_threshold_db, -38.0)
        self.assertIsNone(engine.signal_start)

    def test_short_note_stays_inactive(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)

        # Stable from the third reading on, but only 10 ms of sustain
        state, _ = feed(engine, 440.0, -20.0, 0.0, 4)

        self.assertFalse(state.is_signal_active)
        self.assertEqual(state.note_name, "--")
        self.assertIs(engine.phase, DetectionPhase.SUSTAINING)
        self.assertEqual(engine.current_threshold_db, -38.0)

    def test_locks_at_exact_sustain_boundary(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.24)

        times = [0.24, 0.25, 0.26, 0.27, 0.28, 0.29]
        states = [engine.process_sample(440.0, level_db=-20.0, now=t) for t in times]

        self.assertFalse(states[4].is_signal_active)
        self.assertTrue(states[5].is_signal_active)
        self.assertEqual(states[5].note_name, "A4")

    def test_amplitude_given_as_linear_value(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)
        for i in range(7):
            state = engine.process_sample(220.0, amplitude=0.2, now=i * STEP)
        self.assertTrue(state.is_signal_active)
        self.assertEqual(state.note_name, "A3")
        self.assertAlmostEqual(state.amplitude, 0.2)


class TestAdaptiveThreshold(unittest.TestCase):
    def test_quiet_note_cannot_acquire_lock(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)
        state, _ = feed(engine, 440.0, -40.0, 0.0, 10)
        self.assertFalse(state.is_signal_active)
        self.assertIs(engine.phase, DetectionPhase.IDLE)

    def test_locked_note_is_held_at_lower_level(self):
        engine, now = locked_engine(level_db=-36.0)

        # -40 dB fails the strict threshold but clears the relaxed one
        state, now = feed(engine, 440.0, -40.0, now, 5)

        self.assertTrue(state.is_signal_active)
        self.assertEqual(state.note_name, "A4")
        self.assertEqual(engine.current_threshold_db, -44.0)

    def test_threshold_and_lock_always_agree(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)
        readings = [(440.0, -20.0)] * 8 + [(440.0, -60.0)] + [(440.0, -20.0)] * 8 + [(0.0, -20.0)]
        for i, (frequency, level) in enumerate(readings):
            engine.process_sample(frequency, level_db=level, now=i * STEP)
            expected = -44.0 if engine.is_locked else -38.0
            self.assertEqual(engine.current_threshold_db, expected)
            self.assertIn(engine.current_threshold_db, (-38.0, -44.0))


class TestRejections(unittest.TestCase):
    def test_non_positive_frequency_is_rejected(self):
        for frequency in (0.0, -5.0, float("nan"), float("inf")):
            engine, now = locked_engine()
            state = engine.process_sample(frequency, level_db=-20.0, now=now)
            self.assertFalse(state.is_signal_active, msg=str(frequency))
            self.assertFalse(engine.is_locked)

    def test_out_of_range_frequency_is_rejected(self):
        engine, now = locked_engine()
        state = engine.process_sample(3000.0, level_db=-20.0, now=now)
        self.assertFalse(state.is_signal_active)
        self.assertEqual(len(engine.stability.frequencies), 0)

    def test_frequency_jump_drops_lock(self):
        engine, now = locked_engine()
        state = engine.process_sample(460.0, level_db=-20.0, now=now)
        self.assertFalse(state.is_signal_active)
        self.assertIs(engine.phase, DetectionPhase.IDLE)
        self.assertEqual(engine.current_threshold_db, -38.0)

    def test_amplitude_spike_keeps_frequency_window_by_default(self):
        engine, now = locked_engine()
        state = engine.process_sample(440.0, level_db=-5.0, now=now)
        self.assertFalse(state.is_signal_active)
        self.assertFalse(engine.is_locked)
        self.assertEqual(len(engine.stability.frequencies), 2)

    def test_amplitude_spike_can_clear_frequency_window(self):
        profile = TunerProfile(reset_frequency_window_on_amplitude_instability=True)
        engine, now = locked_engine(profile)
        engine.process_sample(440.0, level_db=-5.0, now=now)
        self.assertEqual(len(engine.stability.frequencies), 0)

    def test_display_kept_on_reject_when_configured(self):
        profile = TunerProfile(clear_display_on_reject=False)
        engine, now = locked_engine(profile)

        state = engine.process_sample(440.0, level_db=-60.0, now=now)

        self.assertFalse(state.is_signal_active)
        self.assertEqual(state.note_name, "A4")
        self.assertAlmostEqual(state.frequency_hz, 440.0)
        self.assertEqual(state.sustained_in_tune_seconds, 0.0)
        self.assertFalse(engine.is_locked)

    def test_backend_error_degrades_to_no_signal(self):
        engine, now = locked_engine()
        state = engine.report_backend_error(RuntimeError("estimator crashed"), now=now)
        self.assertFalse(state.is_signal_active)
        self.assertEqual(state.note_name, "--")
        self.assertFalse(engine.is_locked)

    def test_relock_after_rejection(self):
        engine, now = locked_engine()
        engine.process_sample(440.0, level_db=-60.0, now=now)
        state, _ = feed(engine, 440.0, -20.0, now + STEP, 7)
        self.assertTrue(state.is_signal_active)
        self.assertTrue(engine.is_locked)


class TestDisplayValues(unittest.TestCase):
    def test_frequency_is_smoothed_window_average(self):
        engine, now = locked_engine()
        state = engine.process_sample(444.0, level_db=-20.0, now=now)
        # Window [440, 444] averages 442; alpha 0.3 from 440
        self.assertAlmostEqual(state.frequency_hz, 440.0 * 0.7 + 442.0 * 0.3)
        self.assertEqual(state.note_name, "A4")

    def test_in_tune_time_accumulates_and_resets(self):
        engine, now = locked_engine()
        state, now = feed(engine, 440.0, -20.0, now, 10)
        self.assertGreater(state.sustained_in_tune_seconds, 0.05)

        # 446 Hz average is ~23 cents sharp: well outside the 3 cent band
        state = engine.process_sample(452.0, level_db=-20.0, now=now)
        self.assertTrue(state.is_signal_active)
        self.assertGreater(state.cents_offset, 3.0)
        self.assertEqual(state.sustained_in_tune_seconds, 0.0)

    def test_backend_cents_are_trusted_and_smoothed(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)
        for i in range(8):
            state = engine.process(
                PitchEstimate(
                    frequency_hz=440.0,
                    level_db=-20.0,
                    cents=12.0 if i < 7 else 2.0,
                    note_name="A",
                    octave=4,
                ),
                now=i * STEP,
            )
        self.assertEqual(state.note_name, "A4")
        # 12 on the first active reading, then blended towards 2 with alpha 0.35
        self.assertAlmostEqual(state.cents_offset, 12.0 * 0.65 + 2.0 * 0.35)

    def test_backend_cents_without_note_name(self):
        engine = PitchTrackingEngine()
        engine.start(now=0.0)
        for i in range(7):
            state = engine.process(
                PitchEstimate(frequency_hz=466.16, level_db=-20.0, cents=-4.0), now=i * STEP
            )
        self.assertEqual(state.note_name, "A#4")
        self.assertAlmostEqual(state.cents_offset, -4.0)

    def test_flat_note_names(self):
        engine, _ = locked_engine(TunerProfile(use_flats=True), frequency=466.16)
        self.assertEqual(engine.display_state.note_name, "Bb4")

    def test_responsive_profile_single_sample_window(self):
        engine = PitchTrackingEngine(PROFILES["responsive"])
        engine.start(now=0.0)
        # amplitude window 2, frequency window 1, 15 ms sustain
        states = [engine.process_sample(330.0, level_db=-20.0, now=i * STEP) for i in range(4)]
        self.assertFalse(states[1].is_signal_active)
        self.assertTrue(states[3].is_signal_active)
        self.assertEqual(states[3].note_name, "E4")


class TestLifecycle(unittest.TestCase):
    def test_ignores_samples_until_started(self):
        engine = PitchTrackingEngine()
        state, _ = feed(engine, 440.0, -20.0, 0.0, 10)
        self.assertEqual(state, DisplayState())
        self.assertFalse(engine.is_running())

    def test_stop_resets_detection_state(self):
        engine, now = locked_engine()
        engine.stop()

        self.assertEqual(engine.display_state, DisplayState())
        self.assertFalse(engine.is_locked)
        self.assertEqual(engine.current_threshold_db, -38.0)
        self.assertEqual(len(engine.stability.frequencies), 0)
        self.assertEqual(len(engine.stability.amplitudes), 0)

        engine.start(now=now)
        state = engine.process_sample(440.0, level_db=-20.0, now=now)
        self.assertFalse(state.is_signal_active)
        self.assertIs(engine.phase, DetectionPhase.IDLE)

    def test_start_twice(self):
        engine = PitchTrackingEngine()
        self.assertTrue(engine.start(now=0.0))
        self.assertFalse(engine.start(now=0.0))

    def test_toggle(self):
        engine = PitchTrackingEngine(clock=lambda: 0.0)
        self.assertTrue(engine.toggle())
        self.assertFalse(engine.toggle())

    def test_uses_clock_when_no_timestamp(self):
        ticks = iter([0.0] + [i * STEP for i in range(10)])
        engine = PitchTrackingEngine(clock=lambda: next(ticks))
        engine.start()
        for _ in range(7):
            state = engine.process_sample(440.0, level_db=-20.0)
        self.assertTrue(state.is_signal_active)


class TestEvents(unittest.TestCase):
    def test_note_locked_once_per_cycle(self):
        engine = PitchTrackingEngine()
        locked = []
        lost = []
        engine.events.on_note_locked(locked.append)
        engine.events.on_signal_lost(lost.append)
        engine.start(now=0.0)

        _, now = feed(engine, 440.0, -20.0, 0.0, 20)
        self.assertEqual(len(locked), 1)
        self.assertEqual(locked[0].note_name, "A4")

        engine.process_sample(440.0, level_db=-60.0, now=now)
        self.assertEqual(lost, ["too_quiet"])

        feed(engine, 440.0, -20.0, now + STEP, 20)
        self.assertEqual(len(locked), 2)

    def test_signal_lost_not_repeated_while_idle(self):
        engine = PitchTrackingEngine()
        lost = []
        engine.events.on_signal_lost(lost.append)
        engine.start(now=0.0)
        feed(engine, 440.0, -60.0, 0.0, 10)
        self.assertEqual(lost, [])

    def test_display_updates_are_published(self):
        engine = PitchTrackingEngine()
        states = []
        engine.events.on_display_updated(states.append)
        engine.start(now=0.0)
        feed(engine, 440.0, -20.0, 0.0, 7)
        self.assertTrue(states)
        self.assertEqual(states[-1], engine.display_state)

    def test_unsubscribed_listener_receives_nothing(self):
        engine = PitchTrackingEngine()
        states = []
        engine.events.on_display_updated(states.append)
        engine.events.off(TrackingEventType.DISPLAY_UPDATED, states.append)
        engine.start(now=0.0)
        feed(engine, 440.0, -20.0, 0.0, 7)
        self.assertEqual(states, [])

        # Removing a listener that was never added is harmless
        engine.events.off(TrackingEventType.NOTE_LOCKED, states.append)

    def test_failing_listener_does_not_break_tracking(self):
        engine = PitchTrackingEngine()

        def broken(_state):
            raise RuntimeError("listener bug")

        engine.events.on_display_updated(broken)
        engine.start(now=0.0)
        state, _ = feed(engine, 440.0, -20.0, 0.0, 7)
        self.assertTrue(state.is_signal_active)


if __name__ == "__main__":
    unittest.main()
