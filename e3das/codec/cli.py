"""
Command-Line Interface Module

This module provides the 'e3das-spatialize' command: it builds a source
(from a WAV file or one of the signal generators), loads or synthesizes the
impulse-response grid, and writes one spatialized file per azimuth.
"""

import sys
import logging
import argparse
from typing import List, Optional

from .config import SpatializerConfig
from .core import Spatializer
from .exceptions import E3DASError, InvalidArgumentError
from .generators import (
    NumpyRandomSource, generate_linear_swept_sine, generate_log_swept_sine,
    generate_sine, generate_white_noise
)
from .io import read_wav
from .ir_grid import generate_synthetic_ir_grid
from .utils import AudioBuffer

# Set up logging
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='e3das-spatialize',
        description='Spatialize a source with direction-dependent impulse responses')

    # Main arguments
    parser.add_argument('out_root', help='Output root; files go to <out_root>/data')

    # Source selection
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--wav', help='Source WAV file')
    source.add_argument('--sine', type=float, metavar='FREQ', help='Sine source at FREQ Hz')
    source.add_argument('--noise', action='store_true', help='Uniform white-noise source')
    source.add_argument('--linear-sweep', action='store_true', help='Linear swept-sine source')
    source.add_argument('--log-sweep', action='store_true', help='Logarithmic swept-sine source')
    parser.add_argument('--power', type=int, default=18,
                        help='Generated sources hold 2**POWER samples (sweeps hold two periods)')
    parser.add_argument('--seed', type=int, help='Seed for the noise source')

    # Impulse responses
    ir = parser.add_mutually_exclusive_group(required=True)
    ir.add_argument('--ir-dir', help='Directory holding left/right/front/back.csv')
    ir.add_argument('--synthetic-ir', action='store_true', help='Use a synthetic IR grid')

    # Pipeline settings
    parser.add_argument('--config', help='JSON configuration file')
    parser.add_argument('--positions', help='Comma-separated positions, e.g. left,right')
    parser.add_argument('--channels', type=int, choices=[2, 4, 6], help='Output channel count')
    parser.add_argument('--azimuth-step', type=int, help='Degrees between output azimuths')
    parser.add_argument('--bit-depth', type=int, choices=[16, 24], help='Output bit depth')
    parser.add_argument('--sample-rate', type=int, help='Output sample rate')
    parser.add_argument('--time-length', type=int, help='Length of every position in milliseconds')
    parser.add_argument('--fixed-order', action='store_true',
                        help='Mix with the fixed channel order instead of gain weighting')
    parser.add_argument('--no-csv', action='store_true', help='Do not write csv copies')

    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    return parser


def build_config(args: argparse.Namespace) -> SpatializerConfig:
    """Merge the configuration file (if any) with the command-line overrides."""
    settings = SpatializerConfig.load(args.config).to_dict() if args.config else {}

    overrides = {
        'positions': args.positions.split(',') if args.positions else None,
        'output_channels': args.channels,
        'azimuth_step': args.azimuth_step,
        'bit_depth': args.bit_depth,
        'sample_rate': args.sample_rate,
        'time_length_ms': args.time_length,
    }
    settings.update({key: value for key, value in overrides.items() if value is not None})
    if args.no_csv:
        settings['write_csv'] = False

    return SpatializerConfig.from_dict(settings)


def build_source(args: argparse.Namespace, spatializer: Spatializer) -> AudioBuffer:
    """Create the source buffer selected on the command line."""
    sample_rate = spatializer.config.sample_rate

    if args.wav:
        logger.info(f"Loading audio file: {args.wav}")
        wave = read_wav(args.wav)
        return spatializer.prepare_source(wave.data)
    if args.sine is not None:
        return generate_sine(args.sine, args.power, False, sample_rate)
    if args.noise:
        return generate_white_noise(args.power, random_source=NumpyRandomSource(args.seed)
                                    if args.seed is not None else None)
    if args.linear_sweep:
        return generate_linear_swept_sine(args.power - 1)
    if args.log_sweep:
        return generate_log_swept_sine(args.power - 1)
    raise InvalidArgumentError("No source selected")


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        spatializer = Spatializer(build_config(args))

        if args.synthetic_ir:
            spatializer.use_ir_grid(generate_synthetic_ir_grid())
        else:
            spatializer.load_ir_grid(args.ir_dir)

        source = build_source(args, spatializer)
        paths = spatializer.create_spatialized_files(source, args.out_root, fixed_order=args.fixed_order)
        logger.info(f"Wrote {len(paths)} file(s) under {args.out_root}")

    except E3DASError as e:
        logger.error(f"Spatialization failed: {str(e)}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
