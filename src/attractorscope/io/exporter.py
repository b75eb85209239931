"""
Snapshot serialization module.

Exports the snapshots of an offline analysis run as a JSON manifest, one
frame per analysis window, for renderers that replay a track instead of
listening live.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Union

import numpy as np

from attractorscope.core.snapshot import Note, StateSnapshot


@dataclass
class ManifestMetadata:
    """Metadata header for a snapshot manifest."""

    sample_rate: float
    window_size: int
    frequency_resolution: float
    n_frames: int
    duration: float
    n_transients: int
    version: str = "1.0"
    schema_version: str = "1.0"


class SnapshotExporter:
    """
    Exports state snapshots to JSON or NumPy.

    Each frame carries the window's notes, reactive positions and the
    transient, if one fired.
    """

    def __init__(self, precision: int = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def _note(self, note: Note) -> dict[str, float]:
        return {"freq": self._round(note.freq), "mag": self._round(note.mag)}

    def _vec(self, values) -> list[float]:
        return [self._round(v) for v in values]

    def _build_frame(self, snapshot: StateSnapshot) -> dict[str, Any]:
        """
        Build a single frame's data dictionary.

        Args:
            snapshot: Source snapshot.

        Returns:
            Dictionary with all frame data.
        """
        transient = snapshot.transient
        return {
            "frame_index": snapshot.index,
            "time": self._round(snapshot.time_sec),
            "volume": self._round(snapshot.volume),
            "bass_note": self._note(snapshot.bass_note),
            "mids_notes": [self._note(n) for n in snapshot.mids_notes],
            "high_notes": [self._note(n) for n in snapshot.high_notes],
            "reactive_bass": self._vec(snapshot.reactive_bass),
            "reactive_mids": self._vec(snapshot.reactive_mids),
            "reactive_high": self._vec(snapshot.reactive_high),
            "is_transient": transient is not None,
            "transient": self._vec(transient.as_tuple()) if transient else None,
        }

    def build_manifest(
        self,
        snapshots: Sequence[StateSnapshot],
        sample_rate: float,
        window_size: int,
        duration: float,
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            snapshots: Snapshots in window order.
            sample_rate: Sample rate the audio was analyzed at.
            window_size: FFT window length.
            duration: Audio duration in seconds.

        Returns:
            Complete manifest dictionary ready for serialization.
        """
        metadata = ManifestMetadata(
            sample_rate=float(sample_rate),
            window_size=int(window_size),
            frequency_resolution=self._round(sample_rate / window_size),
            n_frames=len(snapshots),
            duration=self._round(duration),
            n_transients=sum(1 for s in snapshots if s.transient is not None),
        )

        return {
            "metadata": {
                "sample_rate": metadata.sample_rate,
                "window_size": metadata.window_size,
                "frequency_resolution": metadata.frequency_resolution,
                "n_frames": metadata.n_frames,
                "duration": metadata.duration,
                "n_transients": metadata.n_transients,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "frames": [self._build_frame(s) for s in snapshots],
        }

    def to_dict(
        self,
        snapshots: Sequence[StateSnapshot],
        sample_rate: float,
        window_size: int,
        duration: float,
    ) -> dict[str, Any]:
        """Return manifest as dictionary (for in-memory use)."""
        return self.build_manifest(snapshots, sample_rate, window_size, duration)

    def export_json(
        self,
        snapshots: Sequence[StateSnapshot],
        sample_rate: float,
        window_size: int,
        duration: float,
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """
        Export manifest to JSON file.

        Returns:
            Path to written file.
        """
        manifest = self.build_manifest(snapshots, sample_rate, window_size, duration)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        snapshots: Sequence[StateSnapshot],
        sample_rate: float,
        window_size: int,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export snapshots as a NumPy .npz archive of per-frame arrays.

        Notes are stored as ``(n_frames, k, 2)`` arrays of (freq, mag);
        frames without a transient hold zeros in ``transients``.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)

        def notes(select, k: int) -> np.ndarray:
            return np.array(
                [[(n.freq, n.mag) for n in select(s)] for s in snapshots],
                dtype=np.float32,
            ).reshape(len(snapshots), k, 2)

        np.savez_compressed(
            output_path,
            time=np.array([s.time_sec for s in snapshots], dtype=np.float64),
            volume=np.array([s.volume for s in snapshots], dtype=np.float32),
            bass_notes=notes(lambda s: (s.bass_note,), 1),
            mids_notes=notes(lambda s: s.mids_notes, 2),
            high_notes=notes(lambda s: s.high_notes, 2),
            reactive_bass=np.array([s.reactive_bass for s in snapshots], dtype=np.float32).reshape(-1, 3),
            reactive_mids=np.array([s.reactive_mids for s in snapshots], dtype=np.float32).reshape(-1, 3),
            reactive_high=np.array([s.reactive_high for s in snapshots], dtype=np.float32).reshape(-1, 3),
            is_transient=np.array([s.transient is not None for s in snapshots], dtype=bool),
            transients=np.array(
                [s.transient.as_tuple() if s.transient else (0.0,) * 4 for s in snapshots],
                dtype=np.float32,
            ).reshape(-1, 4),
            sample_rate=sample_rate,
            window_size=window_size,
            n_frames=len(snapshots),
        )

        return output_path
