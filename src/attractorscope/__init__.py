"""Real-time audio analysis driving space-filling particle visuals."""

from attractorscope.core.analyzer import SpectralAnalyzer
from attractorscope.core.engine import SnapshotEngine
from attractorscope.core.polisher import SnapshotPolisher
from attractorscope.core.snapshot import Note, StateSnapshot, TransientEvent
from attractorscope.curves import curve_to_cube, curve_to_square
from attractorscope.io.exporter import SnapshotExporter
from attractorscope.pipeline import AudioPipeline
from attractorscope.stream import AudioStream, StreamConfig

__version__ = "0.1.0"
__all__ = [
    "SpectralAnalyzer",
    "SnapshotEngine",
    "SnapshotPolisher",
    "Note",
    "StateSnapshot",
    "TransientEvent",
    "curve_to_cube",
    "curve_to_square",
    "SnapshotExporter",
    "AudioPipeline",
    "AudioStream",
    "StreamConfig",
]
