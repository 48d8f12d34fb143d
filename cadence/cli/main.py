"""Main entry point for the Cadence tuner CLI."""

import argparse
import sys
import time
from typing import List, Optional

from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import DisplayState
from ..core.config import ConfigManager, PROFILES

logger = get_logger(__name__)


def format_state(state: DisplayState) -> str:
    """One-line rendering of a display snapshot."""
    if not state.is_signal_active:
        if state.has_note:
            return f"{state.note_name:<4} (no signal)"
        return "--   listening..."
    line = (
        f"{state.note_name:<4} {state.cents_offset:+6.1f} cents  "
        f"{state.frequency_hz:7.1f} Hz"
    )
    if state.sustained_in_tune_seconds > 0:
        line += f"  in tune {state.sustained_in_tune_seconds:.1f}s"
    return line


def compute_deadline(duration: Optional[float], now: Optional[float] = None) -> Optional[float]:
    """Monotonic time at which to stop, or None to run until interrupted."""
    if duration is None:
        return None
    return (time.monotonic() if now is None else now) + duration


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cadence - chromatic tuner")

    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        choices=sorted(PROFILES),
        help="Tuning profile (default: the one stored in ~/.config/cadence/tuner.json)",
    )
    parser.add_argument(
        "--device", type=int, default=None, help="Audio input device ID (default: system default)"
    )
    parser.add_argument(
        "--file", type=str, default=None, help="Analyse a sound file instead of the microphone"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until Ctrl-C or end of file)",
    )
    parser.add_argument(
        "--sample-rate", type=int, default=None, help="Audio sample rate in Hz"
    )
    parser.add_argument(
        "--buffer-size", type=int, default=None, help="Frames per audio buffer"
    )
    parser.add_argument(
        "--config-dir", type=str, default=None, help="Configuration directory"
    )
    parser.add_argument(
        "--list-profiles", action="store_true", help="List tuning profiles and exit"
    )
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio input devices and exit"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parsed = parse_args(args)
    setup_logging(level="DEBUG" if parsed.debug else None)

    if parsed.list_profiles:
        for name, profile in sorted(PROFILES.items()):
            print(
                f"{name:<11} threshold {profile.strict_threshold_db:.0f}/"
                f"{profile.relaxed_threshold_db:.0f} dB, window {profile.stability_window_size}, "
                f"sustain {profile.minimum_sustain_duration * 1000:.0f} ms, "
                f"{profile.min_frequency_hz:.0f}-{profile.max_frequency_hz:.0f} Hz"
            )
        return 0

    if parsed.duration is not None and parsed.duration < 0:
        logger.error(f"Invalid duration: {parsed.duration}")
        return 2

    # Audio backends are only imported once they are actually needed
    from ..audio.audio_input import SoundDeviceInput, WavFileInput, list_input_devices
    from ..audio.pitch_estimator import AubioPitchEstimator
    from ..engine import PitchTrackingEngine
    from ..services.tuner_service import TunerService

    if parsed.list_devices:
        for device in list_input_devices():
            print(f"{device['id']:>3}  {device['name']} ({device['default_samplerate']:.0f} Hz)")
        return 0

    config_manager = ConfigManager(parsed.config_dir)
    audio_config = config_manager.get_config("audio_input")
    estimator_config = config_manager.get_config("pitch_estimator")
    profile = config_manager.get_profile(parsed.profile)

    buffer_size = parsed.buffer_size or audio_config["frames_per_buffer"]
    if buffer_size <= 0:
        logger.error(f"Invalid buffer size: {buffer_size}")
        return 2

    if parsed.file:
        try:
            audio_input = WavFileInput(parsed.file, frames_per_buffer=buffer_size)
        except (RuntimeError, OSError) as e:
            logger.error(f"Cannot open {parsed.file}: {e}")
            return 1
    else:
        audio_input = SoundDeviceInput(
            device_id=parsed.device,
            sample_rate=parsed.sample_rate or audio_config["sample_rate"],
            frames_per_buffer=buffer_size,
            channels=audio_config["channels"],
        )

    estimator = AubioPitchEstimator(
        sample_rate=audio_input.sample_rate,
        hop_size=buffer_size,
        method=estimator_config["method"],
        tolerance=estimator_config["tolerance"],
        min_confidence=estimator_config["min_confidence"],
    )
    service = TunerService(audio_input, estimator, PitchTrackingEngine(profile))

    if not service.start():
        return 1

    deadline = compute_deadline(parsed.duration)
    last_line = None
    try:
        while audio_input.is_running():
            if deadline is not None and time.monotonic() >= deadline:
                break
            state = service.get_snapshot(timeout=0.1)
            if state is None:
                continue
            line = format_state(state)
            if line != last_line:
                print(line, flush=True)
                last_line = line
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
