"""Core analysis modules."""

from attractorscope.core.accumulator import SampleAccumulator
from attractorscope.core.analyzer import SpectralAnalyzer
from attractorscope.core.downmix import downmix
from attractorscope.core.engine import SnapshotEngine
from attractorscope.core.polisher import SnapshotPolisher
from attractorscope.core.snapshot import Note, StateSnapshot, TransientEvent
from attractorscope.core.transient import TransientDetector

__all__ = [
    "SampleAccumulator",
    "SpectralAnalyzer",
    "downmix",
    "SnapshotEngine",
    "SnapshotPolisher",
    "Note",
    "StateSnapshot",
    "TransientEvent",
    "TransientDetector",
]
