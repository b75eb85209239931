"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

# Default sample rate for test audio
TEST_SR = 44100

# Exactly five cycles per 2048-sample window at 44.1 kHz, so the tone sits
# on FFT bin 5 without leakage
BASS_FREQ = 5 * TEST_SR / 2048


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def bass_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a 2 second bass tone centred on a single FFT bin.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    t = np.arange(int(sample_rate * 2.0)) / sample_rate
    y = 0.5 * np.sin(2 * np.pi * BASS_FREQ * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def silence(sample_rate: int) -> tuple[np.ndarray, int]:
    """Two seconds of digital silence."""
    return np.zeros(int(sample_rate * 2.0), dtype=np.float32), sample_rate


@pytest.fixture
def white_noise(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate white noise.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    np.random.seed(42)  # Reproducible
    samples = int(sample_rate * 2.0)
    y = np.random.randn(samples).astype(np.float32) * 0.3
    return y, sample_rate


@pytest.fixture
def silence_then_bass(sample_rate: int) -> tuple[np.ndarray, int]:
    """One second of silence followed by one second of bass tone."""
    n = sample_rate
    t = np.arange(n) / sample_rate
    tone = 0.5 * np.sin(2 * np.pi * BASS_FREQ * t)
    y = np.concatenate([np.zeros(n), tone]).astype(np.float32)
    return y, sample_rate


@pytest.fixture
def stereo_signal(bass_sine) -> tuple[np.ndarray, int]:
    """
    Stereo signal with the tone in the left channel only.

    Returns:
        Tuple of ((frames, 2) array, sample_rate).
    """
    y, sr = bass_sine
    stereo = np.stack([y, np.zeros_like(y)], axis=1)
    return stereo, sr


@pytest.fixture
def temp_audio_file(tmp_path, silence_then_bass):
    """Create a temporary stereo audio file for testing file I/O."""
    import soundfile as sf

    y, sr = silence_then_bass
    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, np.stack([y, y], axis=1), sr)
    return audio_path
