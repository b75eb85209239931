"""Tests for snapshot types and note placement."""

import pytest

from attractorscope.core.snapshot import (
    MIDS_POW,
    Note,
    StateSnapshot,
    TransientEvent,
    note_to_cube,
    note_to_square,
)


class TestNotePlacement:
    """Tests for mapping notes into attractor space."""

    def test_square_start(self):
        assert note_to_square(Note(0.0, 2.0), MIDS_POW) == pytest.approx((0.95, 0.95, 0.0, 2.0))

    def test_cube_end(self):
        assert note_to_cube(Note(1.0, 1.5), MIDS_POW) == pytest.approx((0.9, 0.9, 0.9, 1.5))

    def test_magnitude_carried_in_w(self):
        assert note_to_square(Note(0.37, 0.25), MIDS_POW)[3] == 0.25


class TestStateSnapshot:
    """Tests for the snapshot container."""

    def test_silent_baseline(self):
        silent = StateSnapshot.silent()
        assert silent.volume == 0.0
        assert silent.transient is None
        assert silent.bass_note == Note(0.0, 0.0)

    def test_attractors_one_per_note(self):
        attractors = StateSnapshot.silent().attractors()
        assert len(attractors) == 5
        assert all(a[3] == 0.0 for a in attractors)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            StateSnapshot.silent().volume = 1.0

    def test_transient_tuple(self):
        event = TransientEvent(0.1, 0.2, 0.3, 0.4)
        assert event.as_tuple() == (0.1, 0.2, 0.3, 0.4)
