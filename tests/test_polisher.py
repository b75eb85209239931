"""Tests for the SnapshotPolisher module."""

import pytest

from attractorscope.core.polisher import (
    BASE_ANGULAR_VELOCITY,
    PolisherRates,
    SnapshotPolisher,
    blend_factor,
)
from attractorscope.core.snapshot import Note, StateSnapshot, TransientEvent


def loud_snapshot(**overrides) -> StateSnapshot:
    fields = dict(
        volume=10.0,
        bass_note=Note(0.4, 4.0),
        mids_notes=(Note(0.2, 1.0), Note(0.6, 0.5)),
        high_notes=(Note(0.1, 1.0), Note(0.9, 0.2)),
        reactive_bass=(0.5, -0.5, 0.5),
        reactive_mids=(-0.5, 0.5, 0.5),
        reactive_high=(0.5, 0.5, -0.5),
    )
    fields.update(overrides)
    return StateSnapshot(**fields)


class TestSnapshotPolisher:
    """Tests for consumer-side smoothing."""

    def test_blend_factor(self):
        assert blend_factor(0.0, 1.8) == 0.0
        assert 0.0 < blend_factor(0.016, 1.8) < 1.0
        assert blend_factor(100.0, 1.8) == pytest.approx(1.0)

    def test_moves_towards_target(self):
        polisher = SnapshotPolisher()
        state = polisher.update(loud_snapshot(), 0.1)
        assert 0.0 < state.volume < 10.0
        assert 0.0 < state.reactive_bass[0] < 0.5

    def test_converges_with_repeated_frames(self):
        polisher = SnapshotPolisher()
        snapshot = loud_snapshot()
        state = polisher.update(snapshot, 0.1)
        for _ in range(200):
            state = polisher.update(snapshot, 0.1)
        assert state.volume == pytest.approx(10.0, rel=1e-3)
        assert state.reactive_bass == pytest.approx((0.5, -0.5, 0.5), abs=1e-3)

    def test_decays_to_baseline_without_data(self):
        """Missing snapshots eventually read as silence."""
        polisher = SnapshotPolisher()
        for _ in range(50):
            polisher.update(loud_snapshot(), 0.1)

        for _ in range(100):
            state = polisher.update(None, 0.1)

        assert polisher.idle
        assert polisher.target.volume == 0.0
        assert state.volume < 1e-3

    def test_holds_target_within_idle_timeout(self):
        polisher = SnapshotPolisher(PolisherRates(idle_timeout=1.0))
        polisher.update(loud_snapshot(), 0.1)
        polisher.update(None, 0.5)
        assert not polisher.idle
        assert polisher.target.volume == 10.0

    def test_kick_sets_angular_velocity(self):
        polisher = SnapshotPolisher()
        event = TransientEvent(0.1, 0.2, 0.3, 0.5)
        state = polisher.update(loud_snapshot(transient=event), 0.0)
        assert state.angular_velocity == (0.1, 0.2, 0.3, 0.5)

    def test_angular_velocity_relaxes(self):
        polisher = SnapshotPolisher()
        event = TransientEvent(0.1, 0.2, 0.3, 0.5)
        polisher.update(loud_snapshot(transient=event), 0.0)
        for _ in range(300):
            state = polisher.update(None, 0.1)
        assert state.angular_velocity[3] == pytest.approx(BASE_ANGULAR_VELOCITY, abs=1e-3)
        assert state.angular_velocity[:3] == (0.1, 0.2, 0.3)

    def test_audio_time_runs_with_volume(self):
        polisher = SnapshotPolisher()
        for _ in range(20):
            state = polisher.update(loud_snapshot(), 0.1)
        assert state.audio_time > 0.0

    def test_attractors_follow_target(self):
        polisher = SnapshotPolisher()
        state = polisher.update(loud_snapshot(), 0.1)
        assert len(state.attractors) == 5
        assert state.attractors[0][3] == 4.0
