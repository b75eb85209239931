"""
Per-cycle output types and frequency-to-space mapping.

A :class:`StateSnapshot` is the complete bundle the analyzer hands to the
render side once per analysis window. Snapshots are frozen so they can be
passed between threads without copying.
"""

from dataclasses import dataclass, field

import numpy as np

from attractorscope.curves import ATTRACTOR_DEPTH, curve_to_cube, curve_to_square

# Exponents that make frequency fractions look more evenly spread in space
BASS_POW = 0.84
MIDS_POW = 0.75
HIGH_POW = 0.445

# Depth used for 2D attractor placement
SQUARE_ATTRACTOR_DEPTH = 5

Vector3 = tuple[float, float, float]
Vector4 = tuple[float, float, float, float]


@dataclass(frozen=True)
class Note:
    """A spectral peak: frequency fraction within its band and magnitude."""

    freq: float
    mag: float


SILENT_NOTE = Note(0.0, 0.0)


@dataclass(frozen=True)
class TransientEvent:
    """A detected kick: curve position of the bass note and its strength."""

    x: float
    y: float
    z: float
    strength: float

    def as_tuple(self) -> Vector4:
        return (self.x, self.y, self.z, self.strength)


@dataclass(frozen=True)
class SpectrumDisplay:
    """Coarse spectrum summary for console output."""

    bins: np.ndarray
    volume: float
    peak_hz: float


@dataclass(frozen=True)
class StateSnapshot:
    """Everything the consumer needs from one analysis window."""

    volume: float
    bass_note: Note
    mids_notes: tuple[Note, Note]
    high_notes: tuple[Note, Note]
    transient: TransientEvent | None = None
    reactive_bass: Vector3 = (0.0, 0.0, 0.0)
    reactive_mids: Vector3 = (0.0, 0.0, 0.0)
    reactive_high: Vector3 = (0.0, 0.0, 0.0)

    # Window bookkeeping
    index: int = 0
    time_sec: float = 0.0
    display: SpectrumDisplay | None = field(default=None, compare=False)

    @classmethod
    def silent(cls) -> "StateSnapshot":
        """Baseline state used before any audio arrives."""
        return cls(
            volume=0.0,
            bass_note=SILENT_NOTE,
            mids_notes=(SILENT_NOTE, SILENT_NOTE),
            high_notes=(SILENT_NOTE, SILENT_NOTE),
        )

    def attractors(self) -> list[Vector4]:
        """2D attractor positions (x, y, 0, strength) for bass, mids and highs."""
        return (
            [note_to_square(self.bass_note, BASS_POW)]
            + [note_to_square(n, MIDS_POW) for n in self.mids_notes]
            + [note_to_square(n, HIGH_POW) for n in self.high_notes]
        )


def map_freq_to_cube(freq: float, exponent: float) -> Vector3:
    """Map a frequency fraction onto the cube curve at attractor depth."""
    return curve_to_cube(max(freq, 0.0) ** exponent, ATTRACTOR_DEPTH)


def note_to_square(note: Note, exponent: float) -> Vector4:
    """Place a note on the square curve, carrying its magnitude in ``w``."""
    x, y = curve_to_square(max(note.freq, 0.0) ** exponent, SQUARE_ATTRACTOR_DEPTH)
    return (0.95 * x, 0.95 * y, 0.0, note.mag)


def note_to_cube(note: Note, exponent: float) -> Vector4:
    """Place a note on the cube curve, carrying its magnitude in ``w``."""
    x, y, z = map_freq_to_cube(note.freq, exponent)
    return (0.9 * x, 0.9 * y, 0.9 * z, note.mag)
