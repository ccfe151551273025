"""
General Utility Functions and Definitions

This module contains type definitions, enumerations and small helpers
shared across the E3DAS codebase.

See Also:
    - config: For constants and pipeline configuration
    - io: For WAV decoding and encoding
"""

import numpy as np
from enum import Enum
from dataclasses import dataclass
from typing import Union

from .exceptions import InvalidArgumentError

# Type aliases for improved readability
AudioBuffer = np.ndarray  # Shape: (n_channels, n_samples)
AzimuthBuffers = np.ndarray  # Shape: (n_azimuths, n_samples)


class Position(Enum):
    """
    The four fixed source directions for which an IR set exists.

    The integer value is the position's index in the impulse-response grid
    and the order in which positions are mixed into output channels.

    Attributes:
        LEFT: Source to the left of the listener
        RIGHT: Source to the right of the listener
        FRONT: Source in front of the listener
        BACK: Source behind the listener
    """
    LEFT = 0
    RIGHT = 1
    FRONT = 2
    BACK = 3

    @property
    def file_stem(self) -> str:
        """Name of the IR csv file holding this position (without extension)."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: Union['Position', int, str]) -> 'Position':
        """
        Convert an index, a name or a Position into a Position.

        Args:
            value: Position, grid index (0-3) or name ('left', 'right', ...)

        Returns:
            The matching Position

        Raises:
            InvalidArgumentError: If the value does not name a position
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidArgumentError(f"Unknown position: {value!r}") from None
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"Unknown position: {value!r}") from None


@dataclass
class ConvolutionResult:
    """
    Output of convolving one source against one IR position.

    Attributes:
        data: Normalized per-azimuth buffers, shape (n_azimuths, n_samples)
        peak: Global peak absolute amplitude measured before normalization
        amplitudes: Signed maximum-magnitude sample of each azimuth, before normalization
        position: IR position the source was convolved with
        azimuth_step: Azimuth resolution of the result in degrees
    """
    data: AzimuthBuffers
    peak: float
    amplitudes: np.ndarray
    position: Position
    azimuth_step: int

    @property
    def n_azimuths(self) -> int:
        return self.data.shape[0]

    @property
    def n_samples(self) -> int:
        return self.data.shape[1]


def is_power_of_two(n: int) -> bool:
    """Return True for 1, 2, 4, 8, ...; False for zero and negative values."""
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two greater than or equal to n (1 for n <= 1)."""
    p = 1
    while p < n:
        p <<= 1
    return p


def as_audio_buffer(data) -> AudioBuffer:
    """
    Coerce mono or multichannel sample data into a (n_channels, n_samples) float array.

    A 1-D input is treated as a single channel. The input is always copied
    so the returned buffer never aliases caller-owned memory.
    """
    buffer = np.array(data, dtype=np.float64)
    if buffer.ndim == 1:
        buffer = buffer[np.newaxis, :]
    return buffer
