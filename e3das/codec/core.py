"""
Core Spatializer Module

This module contains the Spatializer class that ties together the codec,
the impulse-response grid, the convolution engine and the mixer into the
batch pipeline: one source in, one multichannel WAV file per azimuth out.
"""

import os
import logging
from dataclasses import replace
from typing import Iterator, List, Optional

from .config import CSV_DIR_NAME, DATA_DIR_NAME, SIDE_POSITIONS, SpatializerConfig
from .convolution import convolve_ir
from .exceptions import InvalidArgumentError, InvalidStateError
from .io import write_csv, write_wav
from .ir_grid import ImpulseResponseGrid
from .mixer import combine_fixed_order, combine_to_multichannel
from .processors import apply_gain, change_length, convert_stereo_to_mono, pad_to_power_of_two
from .utils import AudioBuffer, ConvolutionResult, as_audio_buffer

# Set up logging
logger = logging.getLogger(__name__)


class Spatializer:
    """
    Batch spatialization pipeline.

    The source is convolved with the impulse responses of every configured
    position, the positions are mixed per azimuth, and each mix is written
    as '<out_root>/data/<azimuth>.wav' (plus a csv copy when enabled).
    """

    def __init__(self, config: Optional[SpatializerConfig] = None,
                 grid: Optional[ImpulseResponseGrid] = None):
        """
        Initialize the spatializer.

        Args:
            config: Pipeline configuration (defaults apply when None)
            grid: Impulse-response grid; can also be set later with
                load_ir_grid() or use_ir_grid()
        """
        self.config = config if config is not None else SpatializerConfig()
        self.grid = grid

    def load_ir_grid(self, directory: str) -> ImpulseResponseGrid:
        """Load the impulse-response csv files from a directory and use them."""
        self.grid = ImpulseResponseGrid.load(directory)
        return self.grid

    def use_ir_grid(self, grid: ImpulseResponseGrid) -> None:
        self.grid = grid

    def prepare_source(self, source: AudioBuffer) -> AudioBuffer:
        """
        Make an arbitrary source usable for convolution.

        Stereo sources are downmixed to mono, and the length is zero-padded
        to the next power of two.
        """
        source = as_audio_buffer(source)
        if source.shape[0] == 2:
            logger.info("Converting stereo source to mono")
            source = convert_stereo_to_mono(source)
        return pad_to_power_of_two(source)

    def convolve_positions(self, source: AudioBuffer) -> List[ConvolutionResult]:
        """
        Convolve the source with every configured position.

        Each result is afterwards brought to the configured play time, and
        the left/right positions are attenuated by the side attenuation.

        Args:
            source: Audio data, shape (n_channels, n_samples), power-of-two length

        Returns:
            One ConvolutionResult per configured position, in configuration order
        """
        if self.grid is None:
            raise InvalidStateError("No impulse-response grid loaded")

        source = as_audio_buffer(source)
        results = []
        for position in self.config.positions:
            result = convolve_ir(source, self.grid, position, self.config.azimuth_step)
            data = result.data

            if self.config.time_length_ms is not None:
                data = change_length(data, self.config.time_length_ms, self.config.sample_rate)

            if position in SIDE_POSITIONS:
                data = apply_gain(data, None, self.config.side_attenuation)

            results.append(replace(result, data=data))
            logger.info(f"Position: {position.file_stem} finished (peak {result.peak:.6g})")

        return results

    def iter_render(self, source: AudioBuffer) -> Iterator[AudioBuffer]:
        """
        Spatialize a source, yielding one multichannel buffer per azimuth.

        All positions are convolved up front; the mixes are produced lazily.
        The convolution peaks are used as the mixing gains.

        Yields:
            Buffers of shape (output_channels, n_samples), in azimuth order
        """
        results = self.convolve_positions(source)
        buffers = [r.data for r in results]
        gains = [r.peak for r in results]
        sample_rates = [self.config.sample_rate] * len(results)

        for azi in range(self.config.n_azimuths):
            yield combine_to_multichannel(buffers, azi, gains, self.config.output_channels, sample_rates)

    def render(self, source: AudioBuffer) -> List[AudioBuffer]:
        """Spatialize a source into a list of multichannel buffers indexed by azimuth."""
        return list(self.iter_render(source))

    def render_fixed_order(self, source: AudioBuffer) -> List[AudioBuffer]:
        """
        Spatialize a source using the fixed channel order instead of gain weighting.

        The configured positions must start at left and be contiguous in
        Position order (left; left, right; ...), since the fixed order
        addresses positions by index.

        Returns:
            List of 6-channel buffers, indexed by azimuth
        """
        results = sorted(self.convolve_positions(source), key=lambda r: r.position.value)
        if [r.position.value for r in results] != list(range(len(results))):
            raise InvalidArgumentError("Fixed-order mixing needs contiguous positions starting at left")

        buffers = [r.data for r in results]
        sample_rates = [self.config.sample_rate] * len(results)
        return [combine_fixed_order(buffers, azi, sample_rates) for azi in range(self.config.n_azimuths)]

    def write_outputs(self, buffers: List[AudioBuffer], out_root: str) -> List[str]:
        """
        Write rendered buffers as '<out_root>/data/<index>.wav' and '<out_root>/data/csv/<index>.csv'.

        Args:
            buffers: Rendered buffers indexed by azimuth
            out_root: Output root directory

        Returns:
            Paths of the written WAV files
        """
        data_dir = os.path.join(out_root, DATA_DIR_NAME)
        csv_dir = os.path.join(data_dir, CSV_DIR_NAME)
        os.makedirs(data_dir, exist_ok=True)
        if self.config.write_csv:
            os.makedirs(csv_dir, exist_ok=True)

        logger.info(f"Writing {len(buffers)} output file(s) to {data_dir}")
        paths = []
        for index, buffer in enumerate(buffers):
            wav_path = os.path.join(data_dir, f"{index}.wav")
            write_wav(wav_path, buffer, self.config.bit_depth, self.config.sample_rate)
            if self.config.write_csv:
                write_csv(os.path.join(csv_dir, f"{index}.csv"), buffer)
            logger.debug(f"Wrote {wav_path}")
            paths.append(wav_path)

        return paths

    def create_spatialized_files(self, source: AudioBuffer, out_root: str,
                                 fixed_order: bool = False) -> List[str]:
        """
        Render a source and write one file per azimuth.

        Args:
            source: Audio data with a power-of-two length
            out_root: Output root directory
            fixed_order: Use the fixed channel order instead of gain weighting

        Returns:
            Paths of the written WAV files
        """
        logger.info(f"Creating {len(self.config.positions)}-position spatialized sound data "
                    f"in {self.config.output_channels if not fixed_order else 6}-channel wave files")
        buffers = self.render_fixed_order(source) if fixed_order else self.render(source)
        paths = self.write_outputs(buffers, out_root)
        logger.info("Finished")
        return paths

    def __repr__(self) -> str:
        grid = 'loaded' if self.grid is not None else 'none'
        return f"Spatializer(config={self.config.to_dict()!r}, grid={grid})"
