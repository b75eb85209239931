"""
Synchronous analysis engine.

Ties the accumulator, spectral analyzer and transient detector together so
each completed window becomes one :class:`StateSnapshot`. The threaded
stream and the offline pipeline both drive this class.
"""

import time

import numpy as np

from attractorscope.core.accumulator import SampleAccumulator
from attractorscope.core.analyzer import SpectralAnalyzer, SpectrumAnalysis
from attractorscope.core.snapshot import (
    BASS_POW,
    HIGH_POW,
    MIDS_POW,
    StateSnapshot,
    TransientEvent,
    map_freq_to_cube,
)
from attractorscope.core.transient import TransientDetector


class SnapshotEngine:
    """
    Converts a mono sample stream into state snapshots.

    Args:
        sample_rate: Sample rate of the mono stream in Hz.
        realtime: Use the wall clock for kick timing. When False, time is
            measured in consumed audio so results are reproducible.
        with_display: Attach a console spectrum summary to each snapshot.
    """

    def __init__(
        self,
        sample_rate: float,
        realtime: bool = True,
        with_display: bool = False,
    ):
        self.analyzer = SpectralAnalyzer(sample_rate)
        self.accumulator = SampleAccumulator(self.analyzer.window_size)
        self.realtime = realtime
        self.with_display = with_display
        self.samples_processed = 0
        self.windows_processed = 0
        self.detector = TransientDetector(
            clock=time.monotonic if realtime else self.audio_time
        )

    @property
    def sample_rate(self) -> float:
        return self.analyzer.sample_rate

    @property
    def window_size(self) -> int:
        return self.analyzer.window_size

    def audio_time(self) -> float:
        """Seconds of audio consumed by analysis so far."""
        return self.samples_processed / self.analyzer.sample_rate

    def build_snapshot(
        self,
        analysis: SpectrumAnalysis,
        transient: TransientEvent | None,
    ) -> StateSnapshot:
        bass, mids, high = analysis.bass, analysis.mids, analysis.high
        return StateSnapshot(
            volume=analysis.volume,
            bass_note=bass.loudest[0],
            mids_notes=(mids.loudest[0], mids.loudest[1]),
            high_notes=(high.loudest[0], high.loudest[1]),
            transient=transient,
            reactive_bass=map_freq_to_cube(bass.loudest[0].freq, BASS_POW),
            reactive_mids=map_freq_to_cube(mids.loudest[0].freq, MIDS_POW),
            reactive_high=map_freq_to_cube(high.loudest[0].freq, HIGH_POW),
            index=self.windows_processed,
            time_sec=self.audio_time(),
            display=analysis.display,
        )

    def process_window(self, window: np.ndarray) -> StateSnapshot:
        """Analyze one full window and build its snapshot."""
        self.samples_processed += len(window)
        analysis = self.analyzer.analyze(window, with_display=self.with_display)
        transient = self.detector.update(analysis.bass, analysis.current_bass)
        snapshot = self.build_snapshot(analysis, transient)
        self.windows_processed += 1
        return snapshot

    def feed(self, samples: np.ndarray) -> list[StateSnapshot]:
        """Buffer mono samples and process every window that becomes ready."""
        self.accumulator.extend(samples)
        snapshots = []
        while self.accumulator.ready:
            snapshots.append(self.process_window(self.accumulator.take_window()))
        return snapshots
