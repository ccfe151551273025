"""
WAV File Format and I/O Operations Module

This module contains the PCM WAV codec used by the pipeline: decoding raw
RIFF/WAVE bytes into a normalized (n_channels, n_samples) buffer, deriving
header metadata from a buffer, and serializing buffers back to 16 or 24-bit
little-endian PCM. It also provides the text exporters used to inspect
rendered buffers.
"""

import numpy as np
import struct
import os
import logging
from dataclasses import dataclass
from typing import List

from .config import (
    DEFAULT_BIT_DEPTH, DEFAULT_SAMPLE_RATE, PCM_FMT_SIZE, PCM_FORMAT_CODE,
    SUPPORTED_DECODE_BIT_DEPTHS, SUPPORTED_ENCODE_BIT_DEPTHS, WAV_HEADER_SIZE
)
from .exceptions import InvalidArgumentError, InvalidStateError, MalformedInputError, MissingResourceError
from .utils import AudioBuffer

# Set up logging
logger = logging.getLogger(__name__)

RIFF_PREAMBLE_SIZE = 12
CHUNK_HEADER_SIZE = 8

# Full-scale values used when mapping between floats and integer PCM
FULL_SCALE_16 = 0x8000
FULL_SCALE_24 = 0x800000
SIGN_OFFSET_24 = 0x1000000


@dataclass
class WavHeader:
    """
    Metadata of a canonical PCM WAV file.

    Attributes:
        fmt_code: 1 for linear PCM
        channels: Number of interleaved channels
        sample_rate: Samples per second per channel
        byte_rate: Bytes per second across all channels
        block_align: Bytes per sample frame across all channels
        bit_depth: Bits per sample
        data_size: Size of the sample data in bytes
        file_size: Size of the whole file in bytes
        fmt_size: Size of the fmt chunk body (16 for PCM)
    """
    fmt_code: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bit_depth: int
    data_size: int
    file_size: int
    fmt_size: int = PCM_FMT_SIZE

    @property
    def bytes_per_sample(self) -> int:
        return (self.bit_depth + 7) // 8

    def to_bytes(self) -> bytes:
        """Pack the header into the 44-byte canonical RIFF/WAVE/fmt/data layout."""
        return (struct.pack('<4sI4s', b'RIFF', self.file_size - 8, b'WAVE')
                + struct.pack('<4sIHHIIHH', b'fmt ', self.fmt_size, self.fmt_code, self.channels,
                              self.sample_rate, self.byte_rate, self.block_align, self.bit_depth)
                + struct.pack('<4sI', b'data', self.data_size))


@dataclass
class WaveData:
    """
    A decoded WAV file.

    Attributes:
        data: Samples, shape (n_channels, n_samples)
        header: Header fields as read from the file
        time_length_ms: Play time in milliseconds derived from the header
    """
    data: AudioBuffer
    header: WavHeader
    time_length_ms: int

    @property
    def n_channels(self) -> int:
        return self.data.shape[0]

    @property
    def n_samples(self) -> int:
        return self.data.shape[1]


def derive_header(buffer: AudioBuffer, bit_depth: int = DEFAULT_BIT_DEPTH,
                  sample_rate: int = DEFAULT_SAMPLE_RATE) -> WavHeader:
    """
    Compute the header describing a buffer serialized at a given format.

    Every field is a function of the buffer's shape and the requested
    format only, so the header can never drift from the data it describes.

    Args:
        buffer: Audio data, shape (n_channels, n_samples)
        bit_depth: Bits per sample
        sample_rate: Sample rate in Hz

    Returns:
        The matching WavHeader
    """
    if buffer is None:
        raise InvalidStateError("Cannot derive a header from an empty buffer")

    n_channels, n_samples = buffer.shape
    bytes_per_sample = (bit_depth + 7) // 8
    block_align = bytes_per_sample * n_channels
    data_size = block_align * n_samples

    return WavHeader(
        fmt_code=PCM_FORMAT_CODE,
        channels=n_channels,
        sample_rate=sample_rate,
        byte_rate=sample_rate * n_channels * bytes_per_sample,
        block_align=block_align,
        bit_depth=bit_depth,
        data_size=data_size,
        file_size=data_size + WAV_HEADER_SIZE,
    )


def calculate_time_length(header: WavHeader) -> int:
    """
    Play time in milliseconds, whole seconds only.

    Computed as floor(data_size / (sample_rate * channels * block_align)) * 1000.
    """
    bytes_per_second = header.sample_rate * header.channels * header.block_align
    if bytes_per_second <= 0:
        raise MalformedInputError("Header describes zero channels, sample rate or block alignment")
    return (header.data_size // bytes_per_second) * 1000


def _split_channels(raw: bytes, header: WavHeader) -> AudioBuffer:
    """
    De-interleave and normalize raw PCM bytes.

    Sample i of channel c starts at byte c * bytes_per_sample + i * block_align.
    """
    bytes_per_sample = header.bit_depth // 8
    n_channels = header.channels
    block_align = header.block_align

    if block_align < n_channels * bytes_per_sample:
        raise MalformedInputError(
            f"Block alignment {block_align} too small for {n_channels} channels of {header.bit_depth} bits")

    n_frames = len(raw) // block_align
    frames = np.frombuffer(raw, dtype=np.uint8, count=n_frames * block_align).reshape(n_frames, block_align)

    data = np.zeros((n_channels, n_frames), dtype=np.float64)
    for ch in range(n_channels):
        start = ch * bytes_per_sample
        sample_bytes = np.ascontiguousarray(frames[:, start:start + bytes_per_sample])

        if header.bit_depth == 16:
            values = sample_bytes.view('<i2').reshape(-1).astype(np.float64)
            data[ch] = values / FULL_SCALE_16

        elif header.bit_depth == 24:
            b = sample_bytes.astype(np.int64)
            values = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
            # Sign check: only values strictly above full scale are negative
            values = np.where(values > FULL_SCALE_24, values - SIGN_OFFSET_24, values)
            data[ch] = values.astype(np.float64) / FULL_SCALE_24

        else:
            # 32-bit: raw integer values, not normalized
            data[ch] = sample_bytes.view('<i4').reshape(-1).astype(np.float64)

    return data


def decode_wav(raw_bytes: bytes) -> WaveData:
    """
    Decode a PCM WAV byte stream.

    Chunks other than 'fmt ' and 'data' are skipped, in any order, until
    both of those have been seen.

    Args:
        raw_bytes: Complete contents of a WAV file

    Returns:
        WaveData with samples, header and play time

    Raises:
        MalformedInputError: If the stream is truncated, lacks a fmt or data
            chunk, or uses an unsupported bit depth
    """
    raw_bytes = bytes(raw_bytes)
    if len(raw_bytes) < RIFF_PREAMBLE_SIZE:
        raise MalformedInputError("Input too short for a RIFF/WAVE preamble")

    # RIFF id, file size, WAVE id
    _, riff_size, _ = struct.unpack_from('<4sI4s', raw_bytes, 0)
    pos = RIFF_PREAMBLE_SIZE

    fmt = None
    data = None
    data_size = 0

    while fmt is None or data is None:
        if pos + CHUNK_HEADER_SIZE > len(raw_bytes):
            missing = [name for name, chunk in (('fmt ', fmt), ('data', data)) if chunk is None]
            raise MalformedInputError(f"Input exhausted before chunk(s) {missing} were found")

        chunk_id, chunk_size = struct.unpack_from('<4sI', raw_bytes, pos)
        pos += CHUNK_HEADER_SIZE

        if chunk_id == b'fmt ':
            if chunk_size < PCM_FMT_SIZE or pos + PCM_FMT_SIZE > len(raw_bytes):
                raise MalformedInputError(f"fmt chunk too short ({chunk_size} bytes)")
            fmt = struct.unpack_from('<HHIIHH', raw_bytes, pos) + (chunk_size,)
            pos += chunk_size

        elif chunk_id == b'data':
            data = raw_bytes[pos:pos + chunk_size]
            data_size = chunk_size
            if len(data) < chunk_size:
                logger.warning(f"data chunk declares {chunk_size} bytes but only {len(data)} are present")
            pos += chunk_size

        else:
            logger.debug(f"Skipping chunk {chunk_id!r} ({chunk_size} bytes)")
            pos += chunk_size

    fmt_code, channels, sample_rate, byte_rate, block_align, bit_depth, fmt_size = fmt
    header = WavHeader(
        fmt_code=fmt_code,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bit_depth=bit_depth,
        data_size=data_size,
        file_size=riff_size + 8,
        fmt_size=fmt_size,
    )

    if bit_depth not in SUPPORTED_DECODE_BIT_DEPTHS:
        raise MalformedInputError(f"Unsupported bit depth: {bit_depth}")
    if bit_depth == 32:
        logger.warning("32-bit PCM decoding is experimental: samples are raw integers, not normalized")

    time_length_ms = calculate_time_length(header)
    samples = _split_channels(data, header)

    return WaveData(data=samples, header=header, time_length_ms=time_length_ms)


def encode_wav(buffer: AudioBuffer, bit_depth: int = DEFAULT_BIT_DEPTH,
               sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
    """
    Serialize a buffer as a canonical 44-byte-header PCM WAV file.

    Args:
        buffer: Audio data, shape (n_channels, n_samples), nominally in [-1, 1]
        bit_depth: 16 or 24
        sample_rate: Sample rate in Hz written to the header

    Returns:
        The complete file contents
    """
    if buffer is None or np.size(buffer) == 0:
        raise InvalidStateError("Cannot encode an empty buffer")
    if bit_depth not in SUPPORTED_ENCODE_BIT_DEPTHS:
        raise InvalidArgumentError(
            f"Bit depth {bit_depth} cannot be encoded. Use one of: {SUPPORTED_ENCODE_BIT_DEPTHS}")

    buffer = np.asarray(buffer, dtype=np.float64)
    if buffer.ndim != 2:
        raise InvalidArgumentError(f"Buffer must have shape (n_channels, n_samples), got {buffer.shape}")

    header = derive_header(buffer, bit_depth, sample_rate)

    # Interleave: frame-major, channel-minor
    interleaved = buffer.T.reshape(-1)

    if bit_depth == 16:
        values = np.trunc(interleaved * FULL_SCALE_16)
        values = np.clip(values, -FULL_SCALE_16, FULL_SCALE_16 - 1).astype('<i2')
        payload = values.tobytes()
    else:
        values = np.trunc(interleaved * FULL_SCALE_24)
        # Symmetric clip so -1.0 survives the decoder's sign rule
        values = np.clip(values, -(FULL_SCALE_24 - 1), FULL_SCALE_24 - 1).astype('<i4')
        payload = values.view(np.uint8).reshape(-1, 4)[:, :3].tobytes()

    return header.to_bytes() + payload


def read_wav(file_path: str) -> WaveData:
    """
    Read and decode a WAV file.

    Args:
        file_path: Path to the WAV file

    Returns:
        Decoded WaveData
    """
    if not os.path.isfile(file_path):
        raise MissingResourceError(f"WAV file not found: {file_path}")

    with open(file_path, 'rb') as f:
        return decode_wav(f.read())


def write_wav(file_path: str, buffer: AudioBuffer, bit_depth: int = DEFAULT_BIT_DEPTH,
              sample_rate: int = DEFAULT_SAMPLE_RATE) -> WavHeader:
    """
    Encode a buffer and write it to disk.

    Returns:
        The header that was written
    """
    payload = encode_wav(buffer, bit_depth, sample_rate)
    with open(file_path, 'wb') as f:
        f.write(payload)
    return derive_header(np.asarray(buffer), bit_depth, sample_rate)


def write_csv(file_path: str, buffer: AudioBuffer, fmt: str = '%.10g') -> None:
    """
    Export a buffer as text: one row per sample, one column per channel.

    Args:
        file_path: Output csv path
        buffer: Audio data, shape (n_channels, n_samples)
        fmt: printf-style format of each value
    """
    if buffer is None:
        raise InvalidStateError("Cannot export an empty buffer")
    np.savetxt(file_path, np.asarray(buffer).T, delimiter=',', fmt=fmt)


def write_channel_text(folder_path: str, file_name: str, buffer: AudioBuffer,
                       fmt: str = '%.10g') -> List[str]:
    """
    Export every channel to its own '<file_name>-Ch<n>.txt' file, one value per line.

    Returns:
        List of written file paths
    """
    if buffer is None:
        raise InvalidStateError("Cannot export an empty buffer")

    paths = []
    for ch, channel in enumerate(np.asarray(buffer)):
        out_path = os.path.join(folder_path, f"{file_name}-Ch{ch}.txt")
        np.savetxt(out_path, channel, fmt=fmt)
        paths.append(out_path)
    return paths
