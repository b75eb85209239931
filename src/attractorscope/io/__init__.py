"""Input/output modules."""

from attractorscope.io.capture import ArrayCapture, DeviceCapture, FileCapture, load_audio
from attractorscope.io.exporter import SnapshotExporter

__all__ = [
    "ArrayCapture",
    "DeviceCapture",
    "FileCapture",
    "load_audio",
    "SnapshotExporter",
]
