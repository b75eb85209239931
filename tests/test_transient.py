"""Tests for kick detection."""

import numpy as np
import pytest

from attractorscope.core.analyzer import FrequencyAnalysis
from attractorscope.core.snapshot import BASS_POW, Note, map_freq_to_cube
from attractorscope.core.transient import (
    HISTORY_SIZE,
    BassHistory,
    TransientDetector,
    normalized_frequency_to_index,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def bass_analysis(freq: float, mag: float, total_volume: float = 25.0) -> FrequencyAnalysis:
    return FrequencyAnalysis(loudest=(Note(freq, mag),), total_volume=total_volume)


QUIET_BASS = np.zeros(11, dtype=np.float32)


class TestBassHistory:
    """Tests for the ring of past bass spectra."""

    def test_normalized_index(self):
        assert normalized_frequency_to_index(0.0, 11) == 0
        assert normalized_frequency_to_index(0.5, 11) == 5
        assert normalized_frequency_to_index(1.0, 11) == 10

    def test_average_counts_empty_slots(self):
        """The mean is taken over all slots, filled or not."""
        history = BassHistory()
        spectrum = np.zeros(11)
        spectrum[5] = 16.0
        history.push(spectrum)
        assert history.average_at(0.5) == pytest.approx(16.0 / HISTORY_SIZE)

    def test_wraps_around(self):
        history = BassHistory()
        for i in range(HISTORY_SIZE + 1):
            history.push(np.full(4, float(i)))
        assert len(history) == HISTORY_SIZE
        assert history.index == 1
        # Oldest slot (value 0) was overwritten by value 16
        assert history.average_at(0.0) == pytest.approx(sum(range(1, 17)) / 16)


class TestTransientDetector:
    """Tests for kick firing rules."""

    def test_loud_bass_fires(self):
        clock = FakeClock()
        detector = TransientDetector(clock=clock)
        clock.t = 1.0

        event = detector.update(bass_analysis(0.3, 5.0), QUIET_BASS)

        assert event is not None
        assert (event.x, event.y, event.z) == map_freq_to_cube(0.3, BASS_POW)
        assert event.strength == pytest.approx(0.05 * 5.0)
        assert detector.last_kick_time == 1.0

    def test_cooldown(self):
        """No kick within 0.8 s of the previous one."""
        clock = FakeClock()
        detector = TransientDetector(clock=clock)

        clock.t = 0.5
        assert detector.update(bass_analysis(0.3, 10.0), QUIET_BASS) is None

    def test_never_fires_twice_within_cooldown(self):
        clock = FakeClock()
        detector = TransientDetector(clock=clock)

        fired = []
        for step in range(400):
            clock.t = step * 0.025
            if detector.update(bass_analysis(0.3, 6.0), QUIET_BASS) is not None:
                fired.append(clock.t)

        assert len(fired) > 1
        assert np.all(np.diff(fired) > 0.8)

    def test_quiet_bass_never_fires(self):
        clock = FakeClock()
        detector = TransientDetector(clock=clock)
        clock.t = 100.0
        assert detector.update(bass_analysis(0.3, 1.0), QUIET_BASS) is None

    def test_buildup_fires_moderate_kick(self):
        """A moderate note fires once enough time has passed."""
        clock = FakeClock()
        detector = TransientDetector(clock=clock)

        clock.t = 2.0
        assert detector.update(bass_analysis(0.3, 3.0), QUIET_BASS) is None
        clock.t = 3.0
        assert detector.update(bass_analysis(0.3, 3.0), QUIET_BASS) is not None

    def test_sustained_bass_suppressed_by_history(self):
        """A note no louder than its recent history is not a kick."""
        clock = FakeClock()
        detector = TransientDetector(clock=clock)
        loud_history = np.full(11, 5.0, dtype=np.float32)
        for _ in range(HISTORY_SIZE):
            detector.history.push(loud_history)

        clock.t = 5.0
        assert detector.update(bass_analysis(0.3, 10.0), loud_history) is None

    def test_current_spectrum_recorded_after_check(self):
        clock = FakeClock(1.0)
        detector = TransientDetector(clock=clock)
        detector.update(bass_analysis(0.3, 0.0), QUIET_BASS)
        assert len(detector.history) == 1
