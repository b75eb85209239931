"""
Spectral analysis of fixed-size audio windows.

Each window is transformed with an FFT and split into bass, mids and high
bands. Within a band the loudest bins are picked greedily with non-max
suppression, after weighting bins towards the top of the band so the
picks favour brighter content. Band volumes are plain sums of the scaled
bin magnitudes.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy import fft as scipy_fft

from attractorscope.core.snapshot import Note, SpectrumDisplay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BandConfig:
    """Peak-picking policy for one frequency band."""

    name: str
    low_hz: float
    high_hz: float
    count: int              # Number of notes returned (K)
    delta: float            # Total suppression width, as a band fraction
    min_volume: float       # Quieter picks keep their slot with zero magnitude
    vol_freq_scale: float   # Weight applied at the top of the band


BASS_BAND = BandConfig("bass", 30.0, 250.0, count=1, delta=1.0,
                       min_volume=0.2, vol_freq_scale=1.825)
MIDS_BAND = BandConfig("mids", 250.0, 1_800.0, count=2, delta=0.1,
                       min_volume=0.025, vol_freq_scale=3.0)
HIGH_BAND = BandConfig("high", 1_800.0, 16_000.0, count=2, delta=0.1,
                       min_volume=0.005, vol_freq_scale=8.0)

# Console spectrum display
DISPLAY_BINS = 64
DISPLAY_LOW_HZ = 30.0
DISPLAY_HIGH_HZ = 12_000.0


@dataclass(frozen=True)
class FrequencyAnalysis:
    """Loudest notes in a band, strongest first, plus the band's volume."""

    loudest: tuple[Note, ...]
    total_volume: float


@dataclass(frozen=True)
class SpectrumAnalysis:
    """Analysis of one window across all bands."""

    bass: FrequencyAnalysis
    mids: FrequencyAnalysis
    high: FrequencyAnalysis
    current_bass: np.ndarray   # Weighted bass bins, kept for kick history
    display: SpectrumDisplay | None = None

    @property
    def volume(self) -> float:
        return self.bass.total_volume + self.mids.total_volume + self.high.total_volume


def window_size_for(sample_rate: float) -> int:
    """FFT length for a sample rate: 4096 above 48 kHz, else 2048."""
    return 4096 if sample_rate > 48_000 else 2048


def extract_peaks(
    weighted: np.ndarray,
    count: int,
    delta: float,
    min_volume: float,
) -> list[Note]:
    """
    Greedily pick the ``count`` loudest bins with non-max suppression.

    After each pick, every candidate within ``delta / 2`` (in band
    fraction) of it is removed. If the pool runs dry early the remaining
    slots are padded with zero-magnitude notes.

    Args:
        weighted: Weighted magnitudes for the band's bins.
        count: Number of notes to return.
        delta: Total suppression width as a fraction of the band.
        min_volume: Picks below this keep their slot with magnitude 0.

    Returns:
        Exactly ``count`` notes, strongest pick first.
    """
    n = len(weighted)
    fracs = np.arange(n, dtype=np.float64) / max(n, 1)
    half_delta = delta / 2.0
    available = np.ones(n, dtype=bool)

    notes: list[Note] = []
    while available.any() and len(notes) < count:
        candidates = np.flatnonzero(available)
        best = candidates[np.argmax(weighted[candidates])]
        freq = float(fracs[best])
        mag = float(weighted[best])

        available &= np.abs(fracs - freq) > half_delta
        notes.append(Note(freq, mag if mag >= min_volume else 0.0))

    if len(notes) < count:
        logger.debug(
            "Peak pool exhausted after %d of %d notes; padding", len(notes), count
        )
        notes.extend(Note(0.0, 0.0) for _ in range(count - len(notes)))

    if len(notes) != count:
        raise RuntimeError(
            f"Peak extraction returned {len(notes)} notes, expected {count}"
        )
    return notes


class SpectralAnalyzer:
    """
    Turns analysis windows into per-band spectral peaks.

    The window length is fixed by the sample rate so bin indices for each
    band can be computed once up front.
    """

    def __init__(
        self,
        sample_rate: float,
        window_size: int | None = None,
        bands: tuple[BandConfig, BandConfig, BandConfig] = (
            BASS_BAND, MIDS_BAND, HIGH_BAND,
        ),
    ):
        """
        Args:
            sample_rate: Capture sample rate in Hz.
            window_size: FFT length. Defaults to :func:`window_size_for`.
            bands: Bass, mids and high band policies, in that order.
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        self.sample_rate = float(sample_rate)
        self.window_size = window_size or window_size_for(sample_rate)
        self.scale = 1.0 / math.sqrt(self.window_size)
        self.frequency_resolution = self.sample_rate / self.window_size
        self.bands = bands

        self._ranges = {}
        for band in bands:
            start, end = self.band_indices(band)
            if end <= start:
                raise ValueError(
                    f"Band '{band.name}' ({band.low_hz}-{band.high_hz} Hz) "
                    f"covers no bins at {self.sample_rate:.0f} Hz / "
                    f"{self.window_size} samples"
                )
            self._ranges[band.name] = (start, end)

    def hertz_to_index(self, hz: float) -> int:
        """Nearest FFT bin for a frequency, clamped to the window."""
        index = math.floor(hz / self.frequency_resolution + 0.5)
        return min(max(index, 0), self.window_size - 1)

    def band_indices(self, band: BandConfig) -> tuple[int, int]:
        """Half-open bin range [start, end) covered by a band."""
        return self.hertz_to_index(band.low_hz), self.hertz_to_index(band.high_hz)

    def fraction_to_hertz(self, band: BandConfig, frac: float) -> float:
        """Convert a note's band fraction back to Hz."""
        start, end = self._ranges[band.name]
        return (start + frac * (end - start)) * self.frequency_resolution

    def spectrum(self, window: np.ndarray) -> np.ndarray:
        """Scaled bin magnitudes of a window."""
        window = np.asarray(window, dtype=np.float64)
        if window.size != self.window_size:
            raise ValueError(
                f"Expected a window of {self.window_size} samples, got {window.size}"
            )
        return self.scale * np.abs(scipy_fft.fft(window))

    def _band_magnitudes(self, magnitudes: np.ndarray, band: BandConfig):
        start, end = self._ranges[band.name]
        raw = magnitudes[start:end]
        fracs = np.arange(end - start, dtype=np.float64) / (end - start)
        weighted = raw * np.power(band.vol_freq_scale, fracs)
        return raw, weighted

    def analyze_band(self, magnitudes: np.ndarray, band: BandConfig) -> FrequencyAnalysis:
        """Pick the band's loudest notes from a scaled magnitude spectrum."""
        raw, weighted = self._band_magnitudes(magnitudes, band)
        loudest = extract_peaks(weighted, band.count, band.delta, band.min_volume)
        return FrequencyAnalysis(
            loudest=tuple(loudest),
            total_volume=float(raw.sum()),
        )

    def display_spectrum(self, magnitudes: np.ndarray) -> SpectrumDisplay:
        """Collapse 30 Hz - 12 kHz into a fixed number of display bins."""
        start = self.hertz_to_index(DISPLAY_LOW_HZ)
        end = self.hertz_to_index(DISPLAY_HIGH_HZ)
        width = max((end - start) // DISPLAY_BINS, 1)

        usable = magnitudes[start : start + width * DISPLAY_BINS]
        usable = np.pad(usable, (0, width * DISPLAY_BINS - usable.size))
        bins = usable.reshape(DISPLAY_BINS, width).sum(axis=1)

        peak = start + int(np.argmax(usable)) if usable.size else start
        return SpectrumDisplay(
            bins=bins.astype(np.float32),
            volume=float(bins.sum()),
            peak_hz=peak * self.frequency_resolution,
        )

    def analyze(self, window: np.ndarray, with_display: bool = False) -> SpectrumAnalysis:
        """
        Analyze one window.

        Args:
            window: ``window_size`` mono samples.
            with_display: Also compute the console spectrum summary.

        Returns:
            SpectrumAnalysis for bass, mids and high bands.
        """
        magnitudes = self.spectrum(window)
        bass_band, mids_band, high_band = self.bands

        _, current_bass = self._band_magnitudes(magnitudes, bass_band)

        return SpectrumAnalysis(
            bass=self.analyze_band(magnitudes, bass_band),
            mids=self.analyze_band(magnitudes, mids_band),
            high=self.analyze_band(magnitudes, high_band),
            current_bass=current_bass.astype(np.float32),
            display=self.display_spectrum(magnitudes) if with_display else None,
        )
