"""
Consumer-side smoothing of analysis snapshots.

Snapshots arrive at the analysis rate (roughly 20-45 per second) while the
render loop runs at its own rate. The polisher is updated once per render
frame and eases every value towards the latest snapshot, so visuals move
smoothly between windows and settle to a quiet baseline when audio stops.
"""

import math
from dataclasses import dataclass, field

from attractorscope.core.snapshot import StateSnapshot, Vector3, Vector4

BASE_ANGULAR_VELOCITY = 0.02


@dataclass
class PolisherRates:
    """Exponential approach rates, per second."""

    volume: float = 1.8
    angular_decay: float = 0.375
    reactive: float = 0.36
    smooth: float = 0.15
    # Seconds without a snapshot before targets fall back to silence
    idle_timeout: float = 1.0


@dataclass
class PolishedState:
    """Smoothed values for the render loop."""

    volume: float = 0.0
    # Time that runs faster with louder audio
    audio_time: float = 0.0
    angular_velocity: Vector4 = (0.0, 1.0, 0.0, 0.0)
    reactive_bass: Vector3 = (0.0, 0.0, 0.0)
    reactive_mids: Vector3 = (0.0, 0.0, 0.0)
    reactive_high: Vector3 = (0.0, 0.0, 0.0)
    smooth_bass: Vector3 = (0.0, 0.0, 0.0)
    smooth_mids: Vector3 = (0.0, 0.0, 0.0)
    smooth_high: Vector3 = (0.0, 0.0, 0.0)
    attractors: list[Vector4] = field(default_factory=list)


def blend_factor(dt: float, rate: float) -> float:
    """Fraction of the remaining distance covered in ``dt`` seconds."""
    return 1.0 - math.exp(-rate * max(dt, 0.0))


def _lerp(current: float, target: float, factor: float) -> float:
    return current + (target - current) * factor


def _lerp_vec(current: tuple, target: tuple, factor: float) -> tuple:
    return tuple(_lerp(c, t, factor) for c, t in zip(current, target))


class SnapshotPolisher:
    """
    Eases render state towards the most recent snapshot.

    Call :meth:`update` once per render frame with whatever the snapshot
    channel returned (possibly None).
    """

    def __init__(self, rates: PolisherRates | None = None):
        self.rates = rates or PolisherRates()
        self.state = PolishedState(attractors=StateSnapshot.silent().attractors())
        self._target = StateSnapshot.silent()
        self._since_snapshot = 0.0

    @property
    def target(self) -> StateSnapshot:
        return self._target

    @property
    def idle(self) -> bool:
        return self._since_snapshot > self.rates.idle_timeout

    def _reactive_factor(self, dt: float, mag: float) -> float:
        rate = self.rates.reactive * min(0.8 * math.sqrt(max(mag, 0.0)), 1.0)
        return blend_factor(dt, rate)

    def update(self, snapshot: StateSnapshot | None, dt: float) -> PolishedState:
        """
        Advance the smoothed state by one render frame.

        Args:
            snapshot: Newest snapshot, or None when nothing arrived.
            dt: Seconds since the previous render frame.

        Returns:
            The updated PolishedState.
        """
        rates = self.rates
        s = self.state

        if snapshot is not None:
            self._target = snapshot
            self._since_snapshot = 0.0
            if snapshot.transient is not None:
                s.angular_velocity = snapshot.transient.as_tuple()
        else:
            self._since_snapshot += dt
            if self.idle and self._target.volume > 0.0:
                self._target = StateSnapshot.silent()

        target = self._target

        s.volume = _lerp(s.volume, target.volume, blend_factor(dt, rates.volume))
        s.audio_time += dt * math.sqrt(max(s.volume, 0.0))

        x, y, z, w = s.angular_velocity
        w = _lerp(w, BASE_ANGULAR_VELOCITY, blend_factor(dt, rates.angular_decay))
        s.angular_velocity = (x, y, z, w)

        s.reactive_bass = _lerp_vec(
            s.reactive_bass, target.reactive_bass,
            self._reactive_factor(dt, target.bass_note.mag),
        )
        s.reactive_mids = _lerp_vec(
            s.reactive_mids, target.reactive_mids,
            self._reactive_factor(dt, target.mids_notes[0].mag),
        )
        s.reactive_high = _lerp_vec(
            s.reactive_high, target.reactive_high,
            self._reactive_factor(dt, target.high_notes[0].mag),
        )

        smooth = blend_factor(dt, rates.smooth)
        s.smooth_bass = _lerp_vec(s.smooth_bass, s.reactive_bass, smooth)
        s.smooth_mids = _lerp_vec(s.smooth_mids, s.reactive_mids, smooth)
        s.smooth_high = _lerp_vec(s.smooth_high, s.reactive_high, smooth)

        s.attractors = target.attractors()
        return s
