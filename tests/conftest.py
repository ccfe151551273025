"""
Pytest configuration file for E3DAS tests.
"""

import pytest
import numpy as np
from e3das.codec.config import SpatializerConfig
from e3das.codec.ir_grid import ImpulseResponseGrid, generate_synthetic_ir_grid


class SequenceRandomSource:
    """Random source that replays a fixed list of values."""

    def __init__(self, values):
        self._values = list(values)
        self._pos = 0

    def uniform(self, size):
        values = self._values[self._pos:self._pos + size]
        if len(values) < size:
            raise AssertionError("SequenceRandomSource ran out of values")
        self._pos += size
        return np.array(values, dtype=np.float64)


@pytest.fixture
def test_config():
    """Return a small, fast configuration: four azimuths, no resizing, no csv."""
    return SpatializerConfig(azimuth_step=90, time_length_ms=None, write_csv=False)


@pytest.fixture(scope='session')
def synthetic_grid():
    """Return the synthetic impulse-response grid."""
    return generate_synthetic_ir_grid()


@pytest.fixture(scope='session')
def random_grid():
    """Return a grid of dense random impulse responses (no trailing zeros)."""
    rng = np.random.default_rng(7)
    return ImpulseResponseGrid.from_array(rng.uniform(-1.0, 1.0, (4, 72, 512)))


@pytest.fixture
def ir_dir(tmp_path, synthetic_grid):
    """Write the synthetic grid as csv files and return the directory."""
    directory = tmp_path / 'ir'
    synthetic_grid.save(str(directory))
    return directory


@pytest.fixture
def impulse_source():
    """A unit impulse of 1024 samples."""
    source = np.zeros((1, 1024))
    source[0, 0] = 1.0
    return source


@pytest.fixture
def noise_source():
    """Seeded uniform noise of 4096 samples."""
    rng = np.random.default_rng(1234)
    return rng.uniform(-1.0, 1.0, (1, 4096))


@pytest.fixture
def sequence_source():
    """Factory for random sources replaying fixed values."""
    return SequenceRandomSource
