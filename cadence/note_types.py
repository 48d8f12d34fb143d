"""Type definitions for the Cadence project."""

from typing import Optional
from dataclasses import dataclass

# Note name shown while there is no reliable reading
NO_NOTE = "--"


@dataclass(frozen=True)
class PitchEstimate:
    """One reading from a pitch-estimation backend.

    A backend supplies either a linear ``amplitude`` (0-1) or a ``level_db``.
    Richer backends may also supply ``cents`` (and the note they are relative
    to); when absent the engine derives them from the frequency.
    """

    frequency_hz: float  # May be 0 or negative during silence
    amplitude: Optional[float] = None  # Linear amplitude (0-1)
    level_db: Optional[float] = None  # Level in dBFS
    cents: Optional[float] = None  # Backend-computed cents offset, if any
    note_name: Optional[str] = None  # Backend-computed note letter (e.g. 'A#')
    octave: Optional[int] = None


@dataclass(frozen=True)
class NoteReading:
    """Nearest equal-tempered note for a frequency."""

    name: str  # Note letter (e.g., 'A', 'C#')
    octave: int  # SPN octave, C4 is middle C
    cents: float  # Signed deviation from the nearest note, about [-50, 50]

    def __str__(self):
        return f"{self.name}{self.octave}"


@dataclass(frozen=True)
class DisplayState:
    """Immutable snapshot of what the tuner should show."""

    frequency_hz: float = 0.0
    note_name: str = NO_NOTE  # Note with octave (e.g., 'A4'), or '--'
    cents_offset: float = 0.0
    amplitude: float = 0.0  # Linear amplitude (0-1)
    is_signal_active: bool = False
    sustained_in_tune_seconds: float = 0.0

    @property
    def has_note(self) -> bool:
        return self.note_name != NO_NOTE
