"""
Configuration Management Module

This module provides centralized configuration management for the E3DAS
pipeline, including constants, default settings, and configuration utilities.
"""

from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
import json
import numbers
import os

from .exceptions import InvalidArgumentError, MissingResourceError
from .utils import Position


# =====================================================================================
# Constants
# =====================================================================================

# Default output format
DEFAULT_SAMPLE_RATE = 48000  # Hz
DEFAULT_BIT_DEPTH = 24
SUPPORTED_ENCODE_BIT_DEPTHS = (16, 24)
SUPPORTED_DECODE_BIT_DEPTHS = (16, 24, 32)  # 32 is experimental

# Canonical PCM header
WAV_HEADER_SIZE = 44
PCM_FMT_SIZE = 16
PCM_FORMAT_CODE = 1

# Impulse-response grid geometry
IR_POSITION_COUNT = 4
IR_AZIMUTH_STEP = 5  # degrees between two grid bins
IR_AZIMUTH_COUNT = 360 // IR_AZIMUTH_STEP
IR_SAMPLES = 512  # samples per IR row, also the convolution block length
IR_FILE_EXTENSION = '.csv'

# Convolution settings
DEFAULT_AZIMUTH_STEP = 15  # degrees
MIN_AZIMUTH_STEP = 5
MAX_AZIMUTH_STEP = 180

# Mixing
SUPPORTED_CHANNEL_COUNTS = (2, 4, 6)
FIXED_ORDER_CHANNEL_COUNT = 6
# Output channel -> position for the fixed-order mix
FIXED_CHANNEL_ORDER = (Position.BACK, Position.RIGHT, Position.LEFT, Position.FRONT)

# Batch pipeline
DEFAULT_TIME_LENGTH_MS = 4000
# Level applied to the left/right positions relative to front/back
DEFAULT_SIDE_ATTENUATION = 10 ** (-1.0 - ((5.0 - 1.0) / 15.0) * 5)
SIDE_POSITIONS = (Position.LEFT, Position.RIGHT)

# Output layout
DATA_DIR_NAME = 'data'
CSV_DIR_NAME = 'csv'


def validate_azimuth_step(azimuth_step: int) -> int:
    """
    Check that an azimuth step subdivides the 5 degree IR grid.

    Whole-valued floats (as read from JSON) are accepted and returned as int.

    Args:
        azimuth_step: Step between output azimuths in degrees

    Returns:
        The step as an int

    Raises:
        InvalidArgumentError: If the step is not a multiple of 5 in [5, 180]
    """
    if (isinstance(azimuth_step, bool) or not isinstance(azimuth_step, numbers.Real)
            or not float(azimuth_step).is_integer()):
        raise InvalidArgumentError(f"Azimuth step must be an integer, got {azimuth_step!r}")
    azimuth_step = int(azimuth_step)

    if azimuth_step % IR_AZIMUTH_STEP != 0 or not MIN_AZIMUTH_STEP <= azimuth_step <= MAX_AZIMUTH_STEP:
        raise InvalidArgumentError(
            f"Azimuth step must be a multiple of {IR_AZIMUTH_STEP} between "
            f"{MIN_AZIMUTH_STEP} and {MAX_AZIMUTH_STEP}, got {azimuth_step}")
    return azimuth_step


# =====================================================================================
# Configuration Classes
# =====================================================================================

@dataclass
class SpatializerConfig:
    """Configuration for the batch spatialization pipeline"""

    # Output format
    sample_rate: int = DEFAULT_SAMPLE_RATE
    bit_depth: int = DEFAULT_BIT_DEPTH

    # Convolution settings
    azimuth_step: int = DEFAULT_AZIMUTH_STEP
    positions: Tuple[Position, ...] = field(default_factory=lambda: tuple(Position))

    # Mixing
    output_channels: int = 6

    # Length of every convolved position in milliseconds (None keeps the convolution length)
    time_length_ms: Optional[int] = DEFAULT_TIME_LENGTH_MS
    side_attenuation: float = DEFAULT_SIDE_ATTENUATION

    # Export
    write_csv: bool = True

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.positions = tuple(Position.parse(p) for p in self.positions)

        if self.sample_rate <= 0:
            raise InvalidArgumentError(f"Sample rate must be positive, got {self.sample_rate}")

        if self.bit_depth not in SUPPORTED_ENCODE_BIT_DEPTHS:
            raise InvalidArgumentError(
                f"Bit depth {self.bit_depth} not supported. Use one of: {SUPPORTED_ENCODE_BIT_DEPTHS}")

        self.azimuth_step = validate_azimuth_step(self.azimuth_step)

        if not self.positions:
            raise InvalidArgumentError("At least one position is required")

        if len(set(self.positions)) != len(self.positions):
            raise InvalidArgumentError("Positions must not repeat")

        if self.output_channels not in SUPPORTED_CHANNEL_COUNTS:
            raise InvalidArgumentError(
                f"Output channel count must be one of {SUPPORTED_CHANNEL_COUNTS}, got {self.output_channels}")

        if self.time_length_ms is not None and self.time_length_ms <= 0:
            raise InvalidArgumentError("Time length must be positive (or None to keep the convolution length)")

        if not 0.0 < self.side_attenuation <= 1.0:
            raise InvalidArgumentError("Side attenuation must be in (0, 1]")

    @property
    def n_azimuths(self) -> int:
        """Number of output azimuths (one output file each)."""
        return 360 // self.azimuth_step

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization"""
        return {
            'sample_rate': self.sample_rate,
            'bit_depth': self.bit_depth,
            'azimuth_step': self.azimuth_step,
            'positions': [p.file_stem for p in self.positions],
            'output_channels': self.output_channels,
            'time_length_ms': self.time_length_ms,
            'side_attenuation': self.side_attenuation,
            'write_csv': self.write_csv,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SpatializerConfig':
        """Create configuration from dictionary"""
        unknown = set(config_dict) - set(cls.__dataclass_fields__)
        if unknown:
            raise InvalidArgumentError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**config_dict)

    def save(self, file_path: str) -> None:
        """Save configuration to file"""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, file_path: str) -> 'SpatializerConfig':
        """Load configuration from file"""
        if not os.path.isfile(file_path):
            raise MissingResourceError(f"Configuration file not found: {file_path}")
        with open(file_path, 'r') as f:
            return cls.from_dict(json.load(f))


# Create a default configuration
default_config = SpatializerConfig()
