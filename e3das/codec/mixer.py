"""
Channel Mixing Module

This module combines the per-position convolution outputs of one azimuth
into a single multichannel buffer. Two modes exist:

- gain-weighted: output channel c carries position c, scaled by its
  convolution gain relative to the loudest position;
- fixed order: a hardcoded position-to-channel permutation, gains ignored.
"""

import numpy as np
import logging
from typing import List, Optional, Sequence

from .config import DEFAULT_SAMPLE_RATE, FIXED_CHANNEL_ORDER, FIXED_ORDER_CHANNEL_COUNT, SUPPORTED_CHANNEL_COUNTS
from .exceptions import InvalidArgumentError, InvalidStateError
from .processors import change_length_to
from .utils import AudioBuffer, AzimuthBuffers

# Set up logging
logger = logging.getLogger(__name__)


def equalize_lengths(position_buffers: Sequence[AzimuthBuffers],
                     sample_rates: Optional[Sequence[int]] = None) -> List[AzimuthBuffers]:
    """
    Bring every position buffer to the length of the longest one.

    Shorter buffers are zero-padded to the play time of the longest buffer,
    measured at each buffer's own sample rate and rounded to the sample.
    For buffers at other rates the target is rounded, not truncated to whole
    milliseconds and then whole samples.

    Args:
        position_buffers: Per-position arrays, shape (n_azimuths, n_samples) each
        sample_rates: Sample rate of each buffer (48 kHz for all by default)

    Returns:
        List of buffers, all with the same sample count when the rates agree
    """
    if sample_rates is None:
        sample_rates = [DEFAULT_SAMPLE_RATE] * len(position_buffers)
    if len(sample_rates) != len(position_buffers):
        raise InvalidArgumentError("One sample rate per position buffer is required")

    lengths = [buf.shape[1] for buf in position_buffers]
    max_length = max(lengths)
    max_index = lengths.index(max_length)
    duration_ms = 1000.0 * max_length / sample_rates[max_index]

    result = []
    for buf, length, rate in zip(position_buffers, lengths, sample_rates):
        if length < max_length:
            new_length = int(round(rate * duration_ms / 1000.0))
            logger.debug(f"Extending position buffer from {length} to {new_length} samples")
            buf = change_length_to(buf, new_length)
        result.append(buf)
    return result


def _prepare(position_buffers: Sequence[AzimuthBuffers], azimuth_index: int,
             sample_rates: Optional[Sequence[int]]) -> List[np.ndarray]:
    """Validate the inputs and return each position's row for one azimuth, equal length."""
    if not position_buffers:
        raise InvalidArgumentError("At least one position buffer is required")

    buffers = []
    for buf in position_buffers:
        if buf is None:
            raise InvalidStateError("Position buffer has not been populated")
        buf = np.asarray(buf, dtype=np.float64)
        if buf.ndim != 2:
            raise InvalidArgumentError(f"Position buffer must be 2-D, got shape {buf.shape}")
        if not 0 <= azimuth_index < buf.shape[0]:
            raise InvalidArgumentError(
                f"Azimuth index {azimuth_index} out of range for {buf.shape[0]} azimuths")
        buffers.append(buf)

    if len({buf.shape[1] for buf in buffers}) > 1:
        buffers = equalize_lengths(buffers, sample_rates)

    return [buf[azimuth_index] for buf in buffers]


def combine_to_multichannel(position_buffers: Sequence[AzimuthBuffers], azimuth_index: int,
                            gains: Sequence[float], channel_count: int = 6,
                            sample_rates: Optional[Sequence[int]] = None) -> AudioBuffer:
    """
    Mix one azimuth of several positions into a multichannel buffer.

    Gains (usually the convolution peaks) are divided by their maximum, so
    the loudest position keeps its level and the others keep their level
    relative to it. Channels beyond the number of positions stay silent.

    Args:
        position_buffers: Per-position convolution outputs, shape (n_azimuths, n_samples) each
        azimuth_index: Azimuth row to take from every position
        gains: One gain per position
        channel_count: 2, 4 or 6 output channels
        sample_rates: Sample rate of each position buffer, used to equalize lengths

    Returns:
        Buffer of shape (channel_count, n_samples)
    """
    if not position_buffers:
        raise InvalidArgumentError("At least one position buffer is required")
    if len(gains) != len(position_buffers):
        raise InvalidArgumentError(
            f"Got {len(gains)} gains for {len(position_buffers)} position buffers")
    if channel_count not in SUPPORTED_CHANNEL_COUNTS:
        raise InvalidArgumentError(
            f"Channel count must be one of {SUPPORTED_CHANNEL_COUNTS}, got {channel_count}")

    gains = np.asarray(gains, dtype=np.float64)
    max_gain = float(np.max(gains))
    if max_gain <= 0.0:
        raise InvalidArgumentError("At least one gain must be positive")
    gains = gains / max_gain

    rows = _prepare(position_buffers, azimuth_index, sample_rates)
    if len(rows) > channel_count:
        logger.debug(f"Dropping {len(rows) - channel_count} position(s) beyond {channel_count} channels")

    output = np.zeros((channel_count, max(len(row) for row in rows)))
    for ch, (row, gain) in enumerate(zip(rows[:channel_count], gains)):
        output[ch, :len(row)] = row * gain

    return output


def combine_fixed_order(position_buffers: Sequence[AzimuthBuffers], azimuth_index: int,
                        sample_rates: Optional[Sequence[int]] = None) -> AudioBuffer:
    """
    Mix one azimuth of the positions into six channels using a fixed order.

    position_buffers is indexed by Position value (left, right, front, back).
    Output channel c carries FIXED_CHANNEL_ORDER[c]: back, right, left,
    front. Channels whose position was not supplied, and channels 4 and 5,
    are silent. No gain weighting is applied.

    Args:
        position_buffers: Per-position convolution outputs in Position order
        azimuth_index: Azimuth row to take from every position
        sample_rates: Sample rate of each position buffer, used to equalize lengths

    Returns:
        Buffer of shape (6, n_samples)
    """
    rows = _prepare(position_buffers, azimuth_index, sample_rates)

    output = np.zeros((FIXED_ORDER_CHANNEL_COUNT, max(len(row) for row in rows)))
    for ch, position in enumerate(FIXED_CHANNEL_ORDER):
        if position.value < len(rows):
            row = rows[position.value]
            output[ch, :len(row)] = row

    return output
