"""
Signal Generation Module

This module produces synthetic source signals for the spatialization
pipeline: sine tones, linear and logarithmic swept sines built in the
frequency domain, a time-domain log sweep, and uniform or "normal" noise.

Every generator returns a mono buffer of shape (1, n_samples). The noise
generators draw from an injectable RandomSource so tests can supply
deterministic sequences.
"""

import math
import os
import numpy as np
from enum import Enum, auto
from scipy import fft
from typing import Optional, Protocol

from .config import DEFAULT_SAMPLE_RATE
from .exceptions import InvalidArgumentError
from .utils import AudioBuffer


class RandomSource(Protocol):
    """Source of uniformly distributed values in [-1, 1]."""

    def uniform(self, size: int) -> np.ndarray:
        ...


class SystemRandomSource:
    """
    Uniform values from the operating system's entropy pool.

    Each value is a signed 64-bit integer divided by the largest int64.
    """

    _INT64_MAX = float(np.iinfo(np.int64).max)

    def uniform(self, size: int) -> np.ndarray:
        raw = np.frombuffer(os.urandom(8 * size), dtype='<i8')
        return raw.astype(np.float64) / self._INT64_MAX


class NumpyRandomSource:
    """Seedable uniform values from a numpy Generator."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def uniform(self, size: int) -> np.ndarray:
        return self._rng.uniform(-1.0, 1.0, size)


class NoiseDistribution(Enum):
    """
    Amplitude distribution of generated noise.

    Attributes:
        UNIFORM: Raw uniform draws in [-1, 1]
        NORMAL: Box-Muller style transform of the absolute values of two draws
    """
    UNIFORM = auto()
    NORMAL = auto()


def _sample_count(length: int, is_time: bool, sample_rate: int) -> int:
    """Samples for a length given in milliseconds (is_time) or as a power of two."""
    if length < 0:
        raise InvalidArgumentError(f"Length must be non-negative, got {length}")
    if is_time:
        return sample_rate * length // 1000
    return 2 ** length


def generate_sine(frequency: float, length: int, is_time: bool,
                  sample_rate: int = DEFAULT_SAMPLE_RATE) -> AudioBuffer:
    """
    Generate a sine wave.

    Args:
        frequency: Frequency in Hz
        length: Play time in milliseconds (is_time=True) or the power of two
            of the sample count (is_time=False)
        is_time: Whether 'length' is a time or a power
        sample_rate: Sample rate in Hz

    Returns:
        Mono buffer, shape (1, n_samples)
    """
    n_samples = _sample_count(length, is_time, sample_rate)
    n = np.arange(n_samples)
    return np.sin(2.0 * np.pi * (n / sample_rate) * frequency)[np.newaxis, :]


def _finish_swept_sine(spectrum: np.ndarray) -> AudioBuffer:
    """
    Turn a swept-sine spectrum into a normalized, twice-repeated waveform.

    The un-scaled inverse transform is rotated by a quarter of the spectrum
    length, scaled so the real part of its largest-magnitude sample is 1,
    and tiled twice.
    """
    signal_length = spectrum.shape[0]
    effective_length = signal_length // 2

    waveform = fft.ifft(spectrum, norm='forward')
    waveform = np.roll(waveform, effective_length // 2)

    peak = waveform[np.argmax(np.abs(waveform))]
    amp = 1.0 / abs(peak.real)

    return np.tile(amp * waveform.real, 2)[np.newaxis, :]


def generate_linear_swept_sine(power: int) -> AudioBuffer:
    """
    Generate a linear swept sine (TSP) signal.

    Args:
        power: The sweep spans 2**power samples; the output holds two sweeps

    Returns:
        Mono buffer, shape (1, 2 * 2**power)
    """
    if power < 1:
        raise InvalidArgumentError(f"Swept-sine power must be at least 1, got {power}")

    signal_length = 2 ** power
    effective_length = signal_length // 2
    half = signal_length // 2

    k = np.arange(signal_length)
    spectrum = np.zeros(signal_length, dtype=np.complex128)

    # Lower half: quadratic phase; upper half: its conjugate mirror
    lower = 2.0 * np.pi * effective_length * (k[:half] / signal_length) ** 2
    spectrum[:half] = np.cos(lower) - 1j * np.sin(lower)
    upper = 2.0 * np.pi * effective_length * (1.0 - k[half:] / signal_length) ** 2
    spectrum[half:] = np.cos(upper) + 1j * np.sin(upper)

    return _finish_swept_sine(spectrum)


def generate_log_swept_sine(power: int) -> AudioBuffer:
    """
    Generate a logarithmic swept sine signal with a pink (1/sqrt(k)) spectrum.

    Args:
        power: The sweep spans 2**power samples (power >= 2); the output holds two sweeps

    Returns:
        Mono buffer, shape (1, 2 * 2**power)
    """
    if power < 2:
        raise InvalidArgumentError(f"Log swept-sine power must be at least 2, got {power}")

    signal_length = 2 ** power
    effective_length = signal_length // 2
    half = signal_length // 2

    const = effective_length * np.pi / (half * np.log(half))
    spectrum = np.zeros(signal_length, dtype=np.complex128)
    spectrum[0] = 1.0

    k = np.arange(1, half)
    phase = const * k * np.log(k)
    spectrum[1:half] = (np.cos(phase) - 1j * np.sin(phase)) / np.sqrt(k)

    m = signal_length - np.arange(half, signal_length)
    phase = const * m * np.log(m)
    spectrum[half:] = (np.cos(phase) + 1j * np.sin(phase)) / np.sqrt(m)

    return _finish_swept_sine(spectrum)


def generate_log_swept_sine_time_domain(duration: int, sample_rate: int = DEFAULT_SAMPLE_RATE,
                                        start_frequency: float = 20.0,
                                        end_frequency: float = 200000.0,
                                        amplitude: float = 1.0) -> AudioBuffer:
    """
    Generate a logarithmic swept sine directly in the time domain.

    The sweep fills the first half of the buffer and is repeated in the
    second half.

    Args:
        duration: Play time in seconds
        sample_rate: Sample rate in Hz
        start_frequency: Frequency at the start of each sweep in Hz
        end_frequency: Frequency parameter controlling the sweep rate in Hz
        amplitude: Peak amplitude

    Returns:
        Mono buffer, shape (1, sample_rate * duration)
    """
    if duration <= 0:
        raise InvalidArgumentError(f"Duration must be positive, got {duration}")

    n_samples = sample_rate * duration
    rate = math.log(end_frequency / start_frequency / math.log(2.0)) / (duration / 2.0)

    n = np.arange(math.ceil(n_samples / 2.0))
    sweep_phase = start_frequency * (-1.0 + 2.0 ** (rate * n / sample_rate)) / (rate * math.log(2.0))
    sweep = np.sin(2.0 * np.pi * sweep_phase) * amplitude

    data = np.zeros(n_samples)
    data[:len(sweep)] = sweep
    offset = int(duration * sample_rate / 2.0)
    data[offset:] = sweep[:n_samples - offset]
    return data[np.newaxis, :]


def normal_from_uniform(draws: np.ndarray) -> np.ndarray:
    """
    Fold pairs of uniform draws into one noise sample each.

    Consecutive draws (u1, u2) give sqrt(-2 ln|u1|) * cos(2 pi |u2|).
    """
    u1 = np.abs(draws[0::2])
    u2 = np.abs(draws[1::2])
    with np.errstate(divide='ignore'):
        return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def generate_white_noise(length: int, is_time: bool = False,
                         sample_rate: int = DEFAULT_SAMPLE_RATE,
                         random_source: Optional[RandomSource] = None,
                         distribution: Optional[NoiseDistribution] = None) -> AudioBuffer:
    """
    Generate white noise.

    Args:
        length: Play time in seconds (is_time=True) or the power of two of
            the sample count (is_time=False)
        is_time: Whether 'length' is a time or a power
        sample_rate: Sample rate in Hz, used when is_time is set
        random_source: Source of uniform draws (system entropy by default)
        distribution: UNIFORM or NORMAL; defaults to NORMAL for a time
            length and UNIFORM for a power length

    Returns:
        Mono buffer, shape (1, n_samples)
    """
    if length < 0:
        raise InvalidArgumentError(f"Length must be non-negative, got {length}")
    if random_source is None:
        random_source = SystemRandomSource()
    if distribution is None:
        distribution = NoiseDistribution.NORMAL if is_time else NoiseDistribution.UNIFORM

    n_samples = sample_rate * length if is_time else 2 ** length

    if distribution == NoiseDistribution.NORMAL:
        samples = normal_from_uniform(np.asarray(random_source.uniform(2 * n_samples), dtype=np.float64))
    else:
        samples = np.asarray(random_source.uniform(n_samples), dtype=np.float64)

    return samples.reshape(1, n_samples)
