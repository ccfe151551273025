"""
Impulse-Response Grid Module

This module loads and holds the direction-dependent impulse responses used
by the convolution engine: a fixed table of 4 positions x 72 azimuth bins
(5 degree resolution) x 512 samples, read from one csv file per position.

It can also generate a synthetic grid when no measured data is available.
"""

import numpy as np
import os
import logging
from typing import Union

from .config import IR_AZIMUTH_COUNT, IR_AZIMUTH_STEP, IR_FILE_EXTENSION, IR_POSITION_COUNT, IR_SAMPLES
from .exceptions import InvalidArgumentError, MalformedInputError, MissingResourceError
from .utils import Position

# Set up logging
logger = logging.getLogger(__name__)

# Flag for whether we've warned about synthetic IR use
_synthetic_ir_warning_shown = False

GRID_SHAPE = (IR_POSITION_COUNT, IR_AZIMUTH_COUNT, IR_SAMPLES)


class ImpulseResponseGrid:
    """
    Read-only position x azimuth x sample table of impulse responses.

    Index 0 of the first axis is the left position, then right, front and
    back (see Position). Azimuth bin k covers k * 5 degrees.
    """

    def __init__(self, data: np.ndarray):
        """
        Wrap an already validated array. Use load() or from_array() instead.

        Args:
            data: Array of shape (4, 72, 512)
        """
        self._data = data
        self._data.setflags(write=False)

    @classmethod
    def from_array(cls, data) -> 'ImpulseResponseGrid':
        """
        Build a grid from in-memory data.

        Args:
            data: Array-like of shape (4, 72, 512)

        Returns:
            A new grid holding a private copy of the data
        """
        array = np.array(data, dtype=np.float64)
        if array.shape != GRID_SHAPE:
            raise InvalidArgumentError(f"IR grid must have shape {GRID_SHAPE}, got {array.shape}")
        return cls(array)

    @classmethod
    def load(cls, directory: str) -> 'ImpulseResponseGrid':
        """
        Load the four position files from a directory.

        Each of left.csv, right.csv, front.csv and back.csv must hold 72
        lines of 512 comma-separated values.

        Args:
            directory: Folder containing the csv files

        Returns:
            The loaded grid

        Raises:
            MissingResourceError: If the directory or a position file is absent
            MalformedInputError: If a file has the wrong dimensions or an unparsable value
        """
        if not os.path.isdir(directory):
            raise MissingResourceError(f"IR directory not found: {directory}")

        data = np.zeros(GRID_SHAPE, dtype=np.float64)
        for position in Position:
            file_path = os.path.join(directory, position.file_stem + IR_FILE_EXTENSION)
            if not os.path.isfile(file_path):
                raise MissingResourceError(f"IR file not found: {file_path}")
            data[position.value] = _read_position_file(file_path)
            logger.debug(f"Loaded {position.file_stem} impulse responses from {file_path}")

        logger.info(f"Loaded impulse-response grid from {directory}")
        return cls(data)

    @property
    def data(self) -> np.ndarray:
        """The (4, 72, 512) array; read-only."""
        return self._data

    @property
    def n_samples(self) -> int:
        return self._data.shape[2]

    def position(self, position: Union[Position, int, str]) -> np.ndarray:
        """All azimuth rows of one position, shape (72, 512)."""
        return self._data[Position.parse(position).value]

    def row(self, position: Union[Position, int, str], azimuth_bin: int) -> np.ndarray:
        """
        The impulse response of one position at one azimuth bin.

        Args:
            position: Position, index or name
            azimuth_bin: Bin index in [0, 72)

        Returns:
            Read-only array of 512 samples
        """
        if not 0 <= azimuth_bin < IR_AZIMUTH_COUNT:
            raise InvalidArgumentError(f"Azimuth bin must be in [0, {IR_AZIMUTH_COUNT}), got {azimuth_bin}")
        return self._data[Position.parse(position).value, azimuth_bin]

    def save(self, directory: str) -> None:
        """
        Write the grid as four csv files loadable with load().

        Args:
            directory: Target folder, created if needed
        """
        os.makedirs(directory, exist_ok=True)
        for position in Position:
            file_path = os.path.join(directory, position.file_stem + IR_FILE_EXTENSION)
            np.savetxt(file_path, self._data[position.value], delimiter=',', fmt='%.17g')


def _read_position_file(file_path: str) -> np.ndarray:
    """Parse one position csv into a (72, 512) array."""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"{file_path}: not a text file ({e.reason})") from e

    # Ignore trailing blank lines
    while lines and not lines[-1].strip():
        lines.pop()

    if len(lines) != IR_AZIMUTH_COUNT:
        raise MalformedInputError(
            f"{file_path}: expected {IR_AZIMUTH_COUNT} lines, got {len(lines)}")

    rows = np.zeros((IR_AZIMUTH_COUNT, IR_SAMPLES), dtype=np.float64)
    for line_no, line in enumerate(lines):
        values = line.split(',')
        if len(values) != IR_SAMPLES:
            raise MalformedInputError(
                f"{file_path}:{line_no + 1}: expected {IR_SAMPLES} values, got {len(values)}")
        try:
            rows[line_no] = [float(v) for v in values]
        except ValueError as e:
            raise MalformedInputError(f"{file_path}:{line_no + 1}: {e}") from e

    return rows


def generate_synthetic_ir_grid(n_taps: int = 32, max_delay: int = 24) -> ImpulseResponseGrid:
    """
    Generate a simple synthetic IR grid when no measured data is available.

    Every bin holds a Hann-windowed sinc (a band-limited impulse). Its level
    and arrival time follow the angle between the position's direction and
    the azimuth: a source facing the azimuth is loudest and earliest.

    Args:
        n_taps: Length of the windowed sinc in samples
        max_delay: Extra delay in samples for a source opposite the azimuth

    Returns:
        A synthetic ImpulseResponseGrid
    """
    global _synthetic_ir_warning_shown

    if not _synthetic_ir_warning_shown:
        logger.warning("Using synthetic impulse responses. For realistic spatialization "
                       "load measured IR csv files instead.")
        _synthetic_ir_warning_shown = True

    if n_taps + max_delay > IR_SAMPLES:
        raise InvalidArgumentError("Synthetic impulse does not fit in an IR row")

    # Direction each position faces, in degrees
    position_angles = {
        Position.FRONT: 0.0,
        Position.RIGHT: 90.0,
        Position.BACK: 180.0,
        Position.LEFT: 270.0,
    }

    # Band-limited impulse: half-band sinc with a Hann window
    t = np.arange(n_taps) - (n_taps - 1) / 2.0
    impulse = np.sinc(t / 2.0) * np.hanning(n_taps)
    impulse /= np.max(np.abs(impulse))

    data = np.zeros(GRID_SHAPE, dtype=np.float64)
    azimuths = np.arange(IR_AZIMUTH_COUNT) * IR_AZIMUTH_STEP
    for position, angle in position_angles.items():
        # 1.0 when facing the azimuth, 0.0 when opposite
        facing = 0.5 + 0.5 * np.cos(np.radians(azimuths - angle))
        for azi in range(IR_AZIMUTH_COUNT):
            delay = int(round((1.0 - facing[azi]) * max_delay))
            gain = 0.1 + 0.9 * facing[azi]
            data[position.value, azi, delay:delay + n_taps] = gain * impulse

    return ImpulseResponseGrid(data)
