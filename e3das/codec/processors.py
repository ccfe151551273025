"""
Buffer Processing Module

This module contains the whole-buffer operations used between decoding,
convolution and mixing: downmixing, per-channel gain and length changes.
Length changes only pad with silence or truncate; nothing is resampled.

Every function returns a new buffer and leaves its input untouched.
"""

import numpy as np
from typing import Optional

from .exceptions import InvalidArgumentError, InvalidStateError
from .utils import AudioBuffer, next_power_of_two


def _require_buffer(buffer: AudioBuffer) -> np.ndarray:
    if buffer is None:
        raise InvalidStateError("Buffer has not been populated")
    buffer = np.asarray(buffer, dtype=np.float64)
    if buffer.ndim != 2 or buffer.shape[0] == 0:
        raise InvalidStateError(f"Buffer must have shape (n_channels, n_samples), got {buffer.shape}")
    return buffer


def convert_stereo_to_mono(buffer: AudioBuffer) -> AudioBuffer:
    """
    Downmix a stereo buffer by averaging its two channels.

    Args:
        buffer: Stereo audio, shape (2, n_samples)

    Returns:
        Mono audio, shape (1, n_samples)
    """
    buffer = _require_buffer(buffer)
    if buffer.shape[0] != 2:
        raise InvalidArgumentError(f"Expected a stereo buffer, got {buffer.shape[0]} channels")
    return ((buffer[0] + buffer[1]) / 2.0)[np.newaxis, :]


def apply_gain(buffer: AudioBuffer, channel: Optional[int], gain: float) -> AudioBuffer:
    """
    Scale one channel (or azimuth row) of a buffer, or all of them.

    Args:
        buffer: Audio data, shape (n_channels, n_samples)
        channel: Row to scale; None scales every row
        gain: Linear gain, at most 1.0

    Returns:
        Copy of the buffer with the row(s) scaled
    """
    buffer = _require_buffer(buffer)
    if gain > 1.0:
        raise InvalidArgumentError(f"Gain must not exceed 1.0, got {gain}")
    if channel is None:
        return buffer * gain
    if not 0 <= channel < buffer.shape[0]:
        raise InvalidArgumentError(f"Channel {channel} out of range for {buffer.shape[0]} channels")

    result = buffer.copy()
    result[channel] *= gain
    return result


def change_length_to(buffer: AudioBuffer, n_samples: int) -> AudioBuffer:
    """
    Zero-pad or truncate every channel to a sample count.

    Args:
        buffer: Audio data, shape (n_channels, n_samples)
        n_samples: New sample count

    Returns:
        Buffer of shape (n_channels, n_samples)
    """
    buffer = _require_buffer(buffer)
    if n_samples < 0:
        raise InvalidArgumentError(f"Sample count must be non-negative, got {n_samples}")

    result = np.zeros((buffer.shape[0], n_samples))
    keep = min(n_samples, buffer.shape[1])
    result[:, :keep] = buffer[:, :keep]
    return result


def change_length(buffer: AudioBuffer, time_length_ms: float, sample_rate: int) -> AudioBuffer:
    """
    Zero-pad or truncate a buffer to a play time.

    Args:
        buffer: Audio data, shape (n_channels, n_samples)
        time_length_ms: New play time in milliseconds
        sample_rate: Sample rate of the buffer in Hz

    Returns:
        Buffer holding int(sample_rate * time_length_ms / 1000) samples per channel
    """
    if sample_rate <= 0:
        raise InvalidArgumentError(f"Sample rate must be positive, got {sample_rate}")
    return change_length_to(buffer, int(sample_rate * time_length_ms / 1000.0))


def pad_to_power_of_two(buffer: AudioBuffer) -> AudioBuffer:
    """Zero-pad a buffer to the next power-of-two length (unchanged if already one)."""
    buffer = _require_buffer(buffer)
    return change_length_to(buffer, next_power_of_two(buffer.shape[1]))
