"""Tests for terminal formatting."""

import numpy as np

from attractorscope.core.snapshot import SpectrumDisplay, TransientEvent
from attractorscope.io.console import bin_char, format_kick, format_spectrum_line


class TestConsole:
    """Tests for spectrum and kick lines."""

    def test_bin_thresholds(self):
        assert bin_char(5.0) == "#"
        assert bin_char(2.0) == "*"
        assert bin_char(0.5) == "_"
        assert bin_char(0.1) == " "

    def test_spectrum_line(self):
        display = SpectrumDisplay(
            bins=np.array([5.0, 2.0, 0.5, 0.0], dtype=np.float32),
            volume=7.5,
            peak_hz=107.7,
        )
        line = format_spectrum_line(display)
        assert line.startswith("|#*_ |")
        assert "Volume:" in line
        assert "107.7Hz" in line

    def test_kick_line(self):
        line = format_kick(TransientEvent(0.5, -0.25, 1.0, 0.123))
        assert "strength=0.123" in line
        assert "(+0.50, -0.25, +1.00)" in line
