"""
Capture sources feeding :class:`attractorscope.stream.AudioStream`.

A source exposes ``sample_rate``, ``channels`` and ``start(callback)`` /
``stop()``. The callback receives interleaved float32 chunks (or
``(frames, channels)`` blocks) from the source's own thread.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Union

import librosa
import numpy as np

logger = logging.getLogger(__name__)

BLOCK_SIZE = 1024


def list_input_devices() -> list[dict]:
    """Describe every device that can record."""
    import sounddevice as sd

    return [
        {"index": i, **dev}
        for i, dev in enumerate(sd.query_devices())
        if dev["max_input_channels"] > 0
    ]


def find_input_device(name: str) -> int | None:
    """Return the index of the first input device whose name contains ``name``."""
    for dev in list_input_devices():
        if name.lower() in dev["name"].lower():
            return dev["index"]
    return None


class DeviceCapture:
    """
    Captures from a sound device through a sounddevice InputStream.

    Loopback capture of system output needs a loopback-capable device
    (e.g. BlackHole on macOS, a PulseAudio monitor source on Linux).
    """

    def __init__(
        self,
        device: int | str | None = None,
        sample_rate: float | None = None,
        channels: int | None = None,
        block_size: int = BLOCK_SIZE,
    ):
        """
        Args:
            device: sounddevice device index or name. None = default input.
            sample_rate: Sample rate in Hz. None = the device's default.
            channels: Channels to record. None = up to 2, as the device allows.
            block_size: Frames per callback.
        """
        import sounddevice as sd

        if isinstance(device, str) and not device.isdigit():
            index = find_input_device(device)
            if index is None:
                raise RuntimeError(f"No input device matching '{device}'")
            device = index
        elif isinstance(device, str):
            device = int(device)

        info = sd.query_devices(device, "input")
        self.device = device
        self.sample_rate = float(sample_rate or info["default_samplerate"])
        self.channels = int(channels or min(2, info["max_input_channels"]))
        self.block_size = block_size
        self.name = info["name"]
        self._stream = None
        self._callback: Callable[[np.ndarray], None] | None = None

    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        """Open and start the input stream."""
        import sounddevice as sd

        self._callback = callback
        self._stream = sd.InputStream(
            device=self.device,
            channels=self.channels,
            samplerate=self.sample_rate,
            blocksize=self.block_size,
            dtype="float32",
            callback=self._audio_callback,
        )
        self._stream.start()
        logger.info(
            "Capturing from '%s' at %.0f Hz, %d channel(s)",
            self.name, self.sample_rate, self.channels,
        )

    def stop(self) -> None:
        """Stop and close the input stream."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def _audio_callback(self, indata, frames, time_info, status):
        if status:
            logger.warning("Input stream status: %s", status)
        self._callback(indata)


class ArrayCapture:
    """
    Replays an in-memory signal as if it were being captured.

    Args:
        samples: ``(frames, channels)`` or 1-D mono array.
        sample_rate: Sample rate of ``samples`` in Hz.
        block_size: Frames per delivered chunk.
        realtime: Pace delivery to the signal's duration. Otherwise chunks
            are pushed as fast as the consumer accepts them.
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: float,
        block_size: int = BLOCK_SIZE,
        realtime: bool = False,
    ):
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[:, None]
        self.frames = samples
        self.sample_rate = float(sample_rate)
        self.channels = samples.shape[1]
        self.block_size = block_size
        self.realtime = realtime
        self.finished = threading.Event()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def duration(self) -> float:
        return len(self.frames) / self.sample_rate

    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        self._stop.clear()
        self.finished.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name="attractorscope-capture", daemon=True
        )
        self._thread.start()

    def _run(self, callback: Callable[[np.ndarray], None]) -> None:
        block_sec = self.block_size / self.sample_rate
        t0 = time.monotonic()
        for i, start in enumerate(range(0, len(self.frames), self.block_size)):
            if self._stop.is_set():
                break
            block = self.frames[start : start + self.block_size]
            # Interleave as a capture driver would
            callback(block.reshape(-1).copy())

            if self.realtime:
                delay = t0 + (i + 1) * block_sec - time.monotonic()
                if delay > 0:
                    time.sleep(delay)
        self.finished.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every chunk was delivered."""
        return self.finished.wait(timeout)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
            self._thread = None


class FileCapture(ArrayCapture):
    """Replays an audio file at its native sample rate."""

    def __init__(
        self,
        audio_path: Union[str, Path],
        block_size: int = BLOCK_SIZE,
        realtime: bool = True,
    ):
        samples, sample_rate = load_audio(audio_path)
        super().__init__(samples, sample_rate, block_size=block_size, realtime=realtime)
        self.path = Path(audio_path)


def load_audio(audio_path: Union[str, Path]) -> tuple[np.ndarray, int]:
    """
    Load an audio file without resampling.

    Returns:
        Tuple of (``(frames, channels)`` float32 array, sample_rate).
    """
    y, sr = librosa.load(audio_path, sr=None, mono=False)
    if y.ndim == 1:
        y = y[:, None]
    else:
        # librosa returns (channels, frames)
        y = y.T
    return np.ascontiguousarray(y, dtype=np.float32), int(sr)
