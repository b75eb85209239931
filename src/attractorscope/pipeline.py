"""
Offline analysis pipeline.

Runs an audio file through the same engine the live stream uses, window by
window, and exports the resulting snapshots as a manifest.
"""

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from attractorscope.core.downmix import downmix
from attractorscope.core.engine import SnapshotEngine
from attractorscope.core.snapshot import StateSnapshot
from attractorscope.io.capture import BLOCK_SIZE, load_audio
from attractorscope.io.exporter import SnapshotExporter

logger = logging.getLogger(__name__)


@dataclass
class LoadedAudio:
    """Audio as read from disk, at its native sample rate."""

    frames: np.ndarray      # (frames, channels)
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.frames.shape[1]

    @property
    def duration(self) -> float:
        return len(self.frames) / self.sample_rate


@dataclass
class AnalysisResult:
    """Snapshots produced by one offline run."""

    snapshots: list[StateSnapshot]
    sample_rate: float
    window_size: int
    duration: float

    @property
    def n_transients(self) -> int:
        return sum(1 for s in self.snapshots if s.transient is not None)


class AudioPipeline:
    """
    Audio file to snapshot manifest.

    Kick timing runs on the audio-sample clock, so the same file always
    produces the same manifest.
    """

    # Version of the analysis logic/schema.
    # Increment this whenever analysis output changes so cached manifests
    # are invalidated and re-generated.
    ANALYSIS_VERSION = "1.0"

    def __init__(self, block_size: int = BLOCK_SIZE, precision: int = 4):
        """
        Args:
            block_size: Frames fed to the engine per step, mimicking the
                chunk size of a capture driver.
            precision: Decimal places in the exported manifest.
        """
        if block_size < 1:
            raise ValueError(f"Block size must be >= 1, got {block_size}")
        self.block_size = block_size
        self.exporter = SnapshotExporter(precision=precision)

    def _get_cache_dir(self) -> Path:
        """Return the directory for caching manifests."""
        cache_dir = Path.home() / ".cache" / "attractorscope" / "manifests"
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def _calculate_file_hash(self, file_path: Path) -> str:
        """Calculate SHA256 hash of the file."""
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _get_config_hash(self) -> str:
        """Calculate hash of the pipeline configuration."""
        config = {
            "version": self.ANALYSIS_VERSION,
            "block_size": self.block_size,
            "precision": self.exporter.precision,
        }
        return hashlib.md5(json.dumps(config, sort_keys=True).encode("utf-8")).hexdigest()

    def _get_cache_path(self, audio_path: Path) -> Path:
        """Get the cache file path for a given audio file."""
        file_hash = self._calculate_file_hash(audio_path)
        config_hash = self._get_config_hash()
        return self._get_cache_dir() / f"manifest_{file_hash}_{config_hash}.json"

    def clear_cache(self):
        """Clear the manifest cache."""
        cache_dir = self._get_cache_dir()
        if cache_dir.exists():
            shutil.rmtree(cache_dir)
            cache_dir.mkdir(parents=True, exist_ok=True)

    def load(self, audio_path: Union[str, Path]) -> LoadedAudio:
        """
        Step 1: Load audio without resampling.

        Args:
            audio_path: Path to audio file.

        Returns:
            LoadedAudio with all channels.
        """
        frames, sr = load_audio(audio_path)
        return LoadedAudio(frames=frames, sample_rate=sr)

    def analyze(self, audio: LoadedAudio) -> AnalysisResult:
        """
        Step 2: Run every complete window through the engine.

        Trailing samples that do not fill a window are not analyzed.

        Args:
            audio: Loaded audio.

        Returns:
            AnalysisResult with one snapshot per window.
        """
        engine = SnapshotEngine(audio.sample_rate, realtime=False)
        snapshots: list[StateSnapshot] = []
        for start in range(0, len(audio.frames), self.block_size):
            block = audio.frames[start : start + self.block_size]
            snapshots.extend(engine.feed(downmix(block, audio.channels)))

        logger.info(
            "Analyzed %d windows (%d samples left over), %d transients",
            engine.windows_processed,
            engine.accumulator.pending,
            sum(1 for s in snapshots if s.transient is not None),
        )
        return AnalysisResult(
            snapshots=snapshots,
            sample_rate=engine.sample_rate,
            window_size=engine.window_size,
            duration=audio.duration,
        )

    def export(
        self,
        result: AnalysisResult,
        output_path: Union[str, Path],
        format: str = "json",
    ) -> Path:
        """
        Step 3: Export to manifest file.

        Args:
            result: Analysis output.
            output_path: Output file path.
            format: "json" or "numpy".

        Returns:
            Path to written file.
        """
        if format == "numpy":
            return self.exporter.export_numpy(
                result.snapshots, result.sample_rate, result.window_size, output_path
            )
        return self.exporter.export_json(
            result.snapshots,
            result.sample_rate,
            result.window_size,
            result.duration,
            output_path,
        )

    def process(
        self,
        audio_path: Union[str, Path],
        output_path: Union[str, Path] | None = None,
        format: str = "json",
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """
        Run the complete pipeline from audio file to manifest.

        Args:
            audio_path: Path to input audio file.
            output_path: Path for output manifest. If None, only returns dict.
            format: Output format ("json" or "numpy").
            use_cache: Whether to use cached manifest if available.

        Returns:
            Dictionary containing manifest data and processing info.
        """
        audio_path = Path(audio_path)

        # A cached manifest cannot produce the numpy export
        if use_cache and format == "json":
            try:
                cache_path = self._get_cache_path(audio_path)
                if cache_path.exists():
                    with open(cache_path, "r", encoding="utf-8") as f:
                        manifest = json.load(f)

                    metadata = manifest.get("metadata", {})
                    logger.info("Loaded analysis from cache: %s", cache_path)

                    result = {
                        "manifest": manifest,
                        "duration": metadata.get("duration", 0.0),
                        "n_frames": metadata.get("n_frames", 0),
                        "sample_rate": metadata.get("sample_rate", 0.0),
                        "n_transients": metadata.get("n_transients", 0),
                    }

                    if output_path:
                        with open(output_path, "w", encoding="utf-8") as f:
                            json.dump(manifest, f, indent=2)
                        result["output_path"] = str(output_path)

                    return result
            except (OSError, ValueError) as e:
                logger.warning("Failed to load cache: %s. Re-analyzing.", e)

        audio = self.load(audio_path)
        analysis = self.analyze(audio)

        manifest = self.exporter.to_dict(
            analysis.snapshots,
            analysis.sample_rate,
            analysis.window_size,
            analysis.duration,
        )

        if use_cache:
            try:
                cache_path = self._get_cache_path(audio_path)
                with open(cache_path, "w", encoding="utf-8") as f:
                    json.dump(manifest, f, indent=2)
            except OSError as e:
                logger.warning("Failed to save cache: %s", e)

        result = {
            "manifest": manifest,
            "duration": analysis.duration,
            "n_frames": len(analysis.snapshots),
            "sample_rate": analysis.sample_rate,
            "n_transients": analysis.n_transients,
        }

        if output_path:
            written_path = self.export(analysis, output_path, format)
            result["output_path"] = str(written_path)

        return result

    def process_to_manifest(self, audio_path: Union[str, Path]) -> dict[str, Any]:
        """Process audio and return the manifest dictionary directly."""
        return self.process(audio_path)["manifest"]
