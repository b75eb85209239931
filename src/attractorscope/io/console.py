"""Text rendering of snapshots for the terminal."""

from attractorscope.core.snapshot import SpectrumDisplay, TransientEvent


def bin_char(value: float) -> str:
    """Character for one display bin."""
    if value > 3.0:
        return "#"
    if value > 1.0:
        return "*"
    if value > 0.2:
        return "_"
    return " "


def format_spectrum_line(display: SpectrumDisplay) -> str:
    """One-line spectrum bar followed by the volume and peak frequency."""
    bars = "".join(bin_char(v) for v in display.bins)
    return f"|{bars}| Volume: {display.volume:7.2f} Freq: {display.peak_hz:8.1f}Hz"


def format_kick(event: TransientEvent) -> str:
    return (
        f"KICK strength={event.strength:.3f} "
        f"at ({event.x:+.2f}, {event.y:+.2f}, {event.z:+.2f})"
    )
