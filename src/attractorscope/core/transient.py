"""
Kick detection from bass history.

A kick fires when the loudest bass note is loud in absolute terms, clearly
louder than the same bin across the recent history, and enough time has
passed since the previous kick.
"""

import math
import time
from typing import Callable

import numpy as np

from attractorscope.core.analyzer import FrequencyAnalysis
from attractorscope.core.snapshot import BASS_POW, TransientEvent, map_freq_to_cube

HISTORY_SIZE = 16

# Firing thresholds
KICK_COOLDOWN_SEC = 0.8
KICK_MIN_MAG = 1.25
KICK_LOUD_MAG = 4.0
KICK_BUILDUP = 8.0          # mag * seconds since the last kick
KICK_HISTORY_RATIO = 3.0
KICK_STRENGTH = 0.05


def normalized_frequency_to_index(freq: float, size: int) -> int:
    """Index of a band fraction within an array of ``size`` bins."""
    top = size - 1
    return min(top, math.floor(top * freq + 0.5))


class BassHistory:
    """Fixed-capacity ring of recent weighted bass spectra."""

    def __init__(self, capacity: int = HISTORY_SIZE):
        self.capacity = capacity
        self._slots: list[np.ndarray | None] = [None] * capacity
        self.index = 0

    def push(self, spectrum: np.ndarray) -> None:
        """Overwrite the oldest slot and advance the write index."""
        self._slots[self.index] = spectrum
        self.index = (self.index + 1) % self.capacity

    def average_at(self, freq: float) -> float:
        """
        Mean magnitude at ``freq`` across all slots.

        Each slot is re-indexed by its own length; empty slots count as 0.
        """
        total = 0.0
        for spectrum in self._slots:
            if spectrum is not None and len(spectrum) > 0:
                total += float(spectrum[normalized_frequency_to_index(freq, len(spectrum))])
        return total / self.capacity

    def __len__(self) -> int:
        return sum(1 for s in self._slots if s is not None)


class TransientDetector:
    """
    Rate-limited kick detector.

    Args:
        clock: Returns the current time in seconds. Live streams use the
            wall clock; offline analysis passes an audio-sample clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.last_kick_time = clock()
        self.history = BassHistory()

    def seconds_since_kick(self) -> float:
        return max(self.clock() - self.last_kick_time, 0.0)

    def should_fire(self, mag: float, elapsed: float, avg_prev_bass: float) -> bool:
        return (
            (mag > KICK_LOUD_MAG or mag * elapsed > KICK_BUILDUP)
            and elapsed > KICK_COOLDOWN_SEC
            and mag > KICK_MIN_MAG
            and mag > KICK_HISTORY_RATIO * avg_prev_bass
        )

    def update(
        self,
        bass: FrequencyAnalysis,
        current_bass: np.ndarray,
    ) -> TransientEvent | None:
        """
        Check for a kick, then record this window's bass spectrum.

        Args:
            bass: Bass band analysis for the current window.
            current_bass: Weighted bass bins for the current window.

        Returns:
            The kick event for this window, or None.
        """
        loudest = bass.loudest[0]
        elapsed = self.seconds_since_kick()
        avg_prev_bass = self.history.average_at(loudest.freq)

        event = None
        if self.should_fire(loudest.mag, elapsed, avg_prev_bass):
            x, y, z = map_freq_to_cube(loudest.freq, BASS_POW)
            event = TransientEvent(
                x=x,
                y=y,
                z=z,
                strength=KICK_STRENGTH * math.sqrt(bass.total_volume),
            )
            self.last_kick_time = self.clock()

        self.history.push(current_bass)
        return event
