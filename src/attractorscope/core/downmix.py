"""Channel downmixing for interleaved capture buffers."""

import numpy as np


def downmix(chunk, channels: int) -> np.ndarray:
    """
    Average interleaved multi-channel samples into a mono signal.

    Args:
        chunk: Interleaved samples (1-D, length divisible by ``channels``)
            or a ``(frames, channels)`` block as delivered by sounddevice.
        channels: Channel count of the capture stream.

    Returns:
        float32 array with one sample per frame.
    """
    if channels < 1:
        raise ValueError(f"Channel count must be >= 1, got {channels}")

    samples = np.asarray(chunk, dtype=np.float32)
    if samples.ndim == 2:
        if samples.shape[1] != channels:
            raise ValueError(
                f"Block has {samples.shape[1]} channels, expected {channels}"
            )
        frames = samples
    else:
        samples = samples.ravel()
        if samples.size % channels != 0:
            raise ValueError(
                f"Chunk of {samples.size} samples is not divisible by "
                f"{channels} channels"
            )
        frames = samples.reshape(-1, channels)

    if channels == 1:
        return frames[:, 0].copy()
    return frames.mean(axis=1, dtype=np.float32)
