"""
Convolution Engine Module

This module convolves a source signal with every azimuth of one position
of an impulse-response grid using block-wise FFT overlap-add, and
normalizes the resulting per-azimuth buffers by their common peak.
"""

import numpy as np
import logging
from scipy import fft
from typing import Union

from .config import IR_AZIMUTH_STEP, DEFAULT_AZIMUTH_STEP, validate_azimuth_step
from .exceptions import InvalidArgumentError, InvalidStateError
from .ir_grid import ImpulseResponseGrid
from .utils import AudioBuffer, ConvolutionResult, Position, is_power_of_two

# Set up logging
logger = logging.getLogger(__name__)


def overlap_add(block_spectra: np.ndarray, ir_spectrum: np.ndarray, block_size: int,
                out: np.ndarray) -> None:
    """
    Accumulate the linear convolution of all blocks with one impulse response.

    Each block is 2 * block_size long (block_size samples of signal followed
    by zeros), so the circular convolution of a block equals its linear
    convolution. Block b contributes at offset b * block_size.

    Args:
        block_spectra: rfft of the zero-padded source blocks, shape (n_blocks, block_size + 1)
        ir_spectrum: rfft of the zero-padded impulse response, shape (block_size + 1,)
        block_size: Block length N
        out: Accumulator of length >= (n_blocks + 1) * block_size, updated in place
    """
    n_blocks = block_spectra.shape[0]
    segments = fft.irfft(block_spectra * ir_spectrum, n=2 * block_size, axis=1)

    # First halves land on their own block, second halves on the next one
    out[:n_blocks * block_size] += segments[:, :block_size].reshape(-1)
    out[block_size:(n_blocks + 1) * block_size] += segments[:, block_size:].reshape(-1)


def trailing_silence_index(samples: np.ndarray) -> int:
    """
    Length of a signal once exactly-zero trailing samples are removed.

    A signal that is entirely zero keeps its full length.
    """
    nonzero = np.flatnonzero(samples)
    if nonzero.size == 0:
        return len(samples)
    return int(nonzero[-1]) + 1


def signed_peaks(data: np.ndarray) -> np.ndarray:
    """
    The signed sample of maximum magnitude of each row.

    Ties keep the first occurrence.
    """
    if data.shape[1] == 0:
        return np.zeros(data.shape[0])
    indices = np.argmax(np.abs(data), axis=1)
    return data[np.arange(data.shape[0]), indices]


def convolve_ir(source: AudioBuffer, grid: ImpulseResponseGrid,
                position: Union[Position, int, str],
                azimuth_step: int = DEFAULT_AZIMUTH_STEP) -> ConvolutionResult:
    """
    Convolve a source with every azimuth of one IR position.

    Only the first channel of the source is used. Azimuth a of the result
    uses grid bin a * (azimuth_step / 5). The output buffers are the source
    length plus one IR length, trimmed of trailing silence (the trim point
    is taken from azimuth 0 and applied to all azimuths), and divided by the
    single global peak so relative levels between azimuths are preserved.

    Args:
        source: Audio data, shape (n_channels, n_samples); n_samples must be a power of two
        grid: Impulse-response grid
        position: Position to convolve with
        azimuth_step: Degrees between output azimuths (multiple of 5 in [5, 180])

    Returns:
        ConvolutionResult with the normalized buffers and the peak before normalization

    Raises:
        InvalidStateError: If the source holds no samples
        InvalidArgumentError: If the length is not a power of two or the step is invalid
    """
    if source is None or np.size(source) == 0:
        raise InvalidStateError("Source buffer has not been populated")
    if grid is None:
        raise InvalidStateError("Impulse-response grid has not been loaded")

    source = np.asarray(source, dtype=np.float64)
    signal = source[0] if source.ndim == 2 else source
    n_samples = signal.shape[0]

    if not is_power_of_two(n_samples):
        raise InvalidArgumentError(f"Source length must be a power of two, got {n_samples}")
    azimuth_step = validate_azimuth_step(azimuth_step)
    position = Position.parse(position)

    block_size = grid.n_samples
    n_blocks = -(-n_samples // block_size)
    n_azimuths = 360 // azimuth_step
    step_rate = azimuth_step // IR_AZIMUTH_STEP
    out_length = n_samples + block_size

    logger.info(f"Convolving {n_samples} samples with {position.file_stem} IRs "
                f"({n_azimuths} azimuths, {n_blocks} blocks)")

    # Zero-padded source blocks, transformed once and shared by every azimuth
    padded = np.zeros(n_blocks * block_size)
    padded[:n_samples] = signal
    blocks = np.zeros((n_blocks, 2 * block_size))
    blocks[:, :block_size] = padded.reshape(n_blocks, block_size)
    block_spectra = fft.rfft(blocks, axis=1)

    # Zero-padded impulse responses for the requested azimuths
    impulses = np.zeros((n_azimuths, 2 * block_size))
    impulses[:, :block_size] = grid.position(position)[::step_rate][:n_azimuths]
    ir_spectra = fft.rfft(impulses, axis=1)

    # One accumulator for all azimuths
    data = np.zeros((n_azimuths, (n_blocks + 1) * block_size))
    for azi in range(n_azimuths):
        overlap_add(block_spectra, ir_spectra[azi], block_size, data[azi])
        logger.debug(f"Azimuth {azi * azimuth_step} deg done")
    data = data[:, :out_length]

    # Trim trailing silence using azimuth 0 only
    trimmed_length = trailing_silence_index(data[0])
    data = data[:, :trimmed_length]

    amplitudes = signed_peaks(data)
    peak = float(np.max(np.abs(amplitudes)))

    if peak > 0.0:
        data = data / peak
    else:
        logger.warning(f"Convolution with {position.file_stem} IRs is silent; skipping normalization")

    return ConvolutionResult(
        data=data,
        peak=peak,
        amplitudes=amplitudes,
        position=position,
        azimuth_step=azimuth_step,
    )
