"""
E3DAS Codec Package

Converts a source recording into spatialized multichannel WAV files by
convolving it with a grid of direction-dependent impulse responses and
mixing the convolved positions per azimuth.
"""

from .core import Spatializer
from .config import SpatializerConfig
from .io import decode_wav, encode_wav, derive_header, read_wav, write_wav, write_csv
from .ir_grid import ImpulseResponseGrid, generate_synthetic_ir_grid
from .convolution import convolve_ir
from .mixer import combine_to_multichannel, combine_fixed_order
from .generators import (generate_sine, generate_linear_swept_sine, generate_log_swept_sine,
                         generate_white_noise)
from .utils import Position, ConvolutionResult

__version__ = '0.1.0'
