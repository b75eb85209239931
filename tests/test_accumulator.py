"""Tests for the sample accumulator."""

import numpy as np
import pytest

from attractorscope.core.accumulator import AccumulatorState, SampleAccumulator


class TestSampleAccumulator:
    """Tests for window buffering."""

    def test_starts_filling(self):
        acc = SampleAccumulator(2048)
        assert acc.state is AccumulatorState.FILLING
        assert acc.pending == 0

    def test_ready_at_window_size(self):
        acc = SampleAccumulator(8)
        acc.extend(np.ones(7))
        assert not acc.ready
        acc.extend(np.ones(1))
        assert acc.state is AccumulatorState.READY

    def test_take_window_when_filling_raises(self):
        acc = SampleAccumulator(8)
        acc.extend(np.ones(3))
        with pytest.raises(RuntimeError):
            acc.take_window()

    def test_samples_conserved_in_order(self):
        """Windows concatenated with the leftovers reproduce the input."""
        rng = np.random.default_rng(7)
        signal = rng.standard_normal(20_000).astype(np.float32)
        acc = SampleAccumulator(2048)

        windows = []
        pos = 0
        while pos < len(signal):
            size = int(rng.integers(1, 3000))
            acc.extend(signal[pos : pos + size])
            pos += size
            while acc.ready:
                windows.append(acc.take_window())

        taken = np.concatenate(windows)
        assert len(taken) == len(windows) * 2048
        assert np.array_equal(taken, signal[: len(taken)])
        assert acc.pending == len(signal) - len(taken)
        assert acc.pending < 2048

    def test_chunk_larger_than_buffer(self):
        """A chunk bigger than the reserved capacity grows the buffer."""
        acc = SampleAccumulator(16, headroom=4)
        data = np.arange(100, dtype=np.float32)
        acc.extend(data)
        assert acc.pending == 100
        assert np.array_equal(acc.take_window(), data[:16])
        assert np.array_equal(acc.take_window(), data[16:32])

    def test_returned_window_is_a_copy(self):
        acc = SampleAccumulator(4)
        acc.extend(np.arange(8, dtype=np.float32))
        first = acc.take_window()
        acc.take_window()
        assert np.array_equal(first, [0, 1, 2, 3])

    def test_clear(self):
        acc = SampleAccumulator(4)
        acc.extend(np.ones(10))
        acc.clear()
        assert acc.pending == 0
        assert not acc.ready

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            SampleAccumulator(0)
