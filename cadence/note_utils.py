"""Utility functions for working with musical notes and frequencies."""

import math

import numpy as np

from .note_types import NoteReading, NO_NOTE

# Standard reference: A4 = 440Hz, MIDI note 69
A4_FREQUENCY = 440.0
A4_MIDI_NUMBER = 69

# Floor used when converting a linear amplitude to dB
MIN_AMPLITUDE = 1e-5

NOTE_NAMES_SHARPS = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
NOTE_NAMES_FLATS = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

SHARP_TO_FLAT = {
    sharp: flat
    for sharp, flat in zip(NOTE_NAMES_SHARPS, NOTE_NAMES_FLATS)
    if sharp != flat
}


def frequency_to_note(freq: float) -> NoteReading:
    """Map a frequency to the nearest equal-tempered note and its cents offset.

    Args:
        freq: Frequency in Hz. Must be positive; callers gate non-positive
            readings out before asking for a note.

    Returns:
        NoteReading with the sharp note letter, SPN octave and signed cents
        deviation from that note (within +/-50 by construction).

    Note:
        - A4 is 440 Hz (MIDI 69), middle C is C4
        - Halfway between two notes rounds up to the higher note
    """
    half_steps = 12.0 * float(np.log2(freq / A4_FREQUENCY))
    midi_number = A4_MIDI_NUMBER + half_steps
    nearest_midi = int(math.floor(midi_number + 0.5))

    nearest_freq = A4_FREQUENCY * 2.0 ** ((nearest_midi - A4_MIDI_NUMBER) / 12.0)
    cents = 1200.0 * float(np.log2(freq / nearest_freq))

    # SPN octave calculation (C4 is middle C)
    octave = (nearest_midi // 12) - 1
    name = NOTE_NAMES_SHARPS[nearest_midi % 12]
    return NoteReading(name=name, octave=octave, cents=cents)


def format_note_name(name: str, octave: int, use_flats: bool = False) -> str:
    """Format a note letter and octave in SPN (e.g., 'A4', 'C#3', 'Bb2')."""
    if use_flats and name in SHARP_TO_FLAT:
        name = SHARP_TO_FLAT[name]
    return f"{name}{octave}"


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave (e.g., 'A4'), or '--' for a non-positive frequency
    """
    if not freq > 0:
        return NO_NOTE
    reading = frequency_to_note(freq)
    return format_note_name(reading.name, reading.octave, use_flats)


def amplitude_to_db(amplitude: float) -> float:
    """Convert a linear amplitude (0-1) to dBFS, flooring at 1e-5 (-100 dB)."""
    return 20.0 * math.log10(max(amplitude, MIN_AMPLITUDE))


def db_to_amplitude(level_db: float) -> float:
    """Convert a dBFS level back to a linear amplitude."""
    return 10.0 ** (level_db / 20.0)
