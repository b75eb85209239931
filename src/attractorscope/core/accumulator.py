"""
Sample accumulation into fixed-size analysis windows.

Mono chunks arrive in whatever sizes the capture driver delivers. The
accumulator buffers them until a full window is available, then hands out
non-overlapping rectangular windows while keeping leftover samples in order.
"""

from enum import Enum

import numpy as np


class AccumulatorState(Enum):
    FILLING = "filling"
    READY = "ready"


class SampleAccumulator:
    """Append-only sample buffer that yields windows of ``window_size``."""

    def __init__(self, window_size: int, headroom: int = 1024):
        """
        Args:
            window_size: Samples per analysis window.
            headroom: Extra capacity reserved up front so typical chunk
                sizes do not force a reallocation.
        """
        if window_size < 1:
            raise ValueError(f"Window size must be >= 1, got {window_size}")
        self.window_size = window_size
        self._buffer = np.zeros(window_size + headroom, dtype=np.float32)
        self._length = 0

    @property
    def pending(self) -> int:
        """Number of buffered samples."""
        return self._length

    @property
    def state(self) -> AccumulatorState:
        if self._length >= self.window_size:
            return AccumulatorState.READY
        return AccumulatorState.FILLING

    @property
    def ready(self) -> bool:
        return self.state is AccumulatorState.READY

    def extend(self, samples: np.ndarray) -> None:
        """Append mono samples to the end of the buffer."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        needed = self._length + samples.size
        if needed > self._buffer.size:
            grown = np.zeros(max(needed, 2 * self._buffer.size), dtype=np.float32)
            grown[: self._length] = self._buffer[: self._length]
            self._buffer = grown
        self._buffer[self._length : needed] = samples
        self._length = needed

    def take_window(self) -> np.ndarray:
        """
        Remove and return the oldest ``window_size`` samples.

        Raises:
            RuntimeError: If fewer than ``window_size`` samples are buffered.
        """
        if not self.ready:
            raise RuntimeError(
                f"Accumulator holds {self._length} samples, "
                f"need {self.window_size} for a window"
            )
        n = self.window_size
        window = self._buffer[:n].copy()

        # Shift leftovers to the front, preserving order
        remaining = self._length - n
        self._buffer[:remaining] = self._buffer[n : self._length]
        self._length = remaining
        return window

    def clear(self) -> None:
        self._length = 0
