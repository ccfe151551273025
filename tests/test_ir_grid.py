"""
Unit tests for the ir_grid module.

These tests verify loading, validation and generation of the
impulse-response grid.
"""

import os
import pytest
import numpy as np
from e3das.codec.ir_grid import ImpulseResponseGrid, generate_synthetic_ir_grid
from e3das.codec.utils import Position
from e3das.codec.exceptions import InvalidArgumentError, MalformedInputError, MissingResourceError


def write_rows(path, rows):
    with open(path, 'w') as f:
        f.write('\n'.join(','.join(str(float(v)) for v in row) for row in rows))
        f.write('\n')


class TestLoad:
    """Tests for loading grids from csv files."""

    def test_load_saved_grid(self, ir_dir, synthetic_grid):
        """Test that a saved grid loads back unchanged."""
        grid = ImpulseResponseGrid.load(str(ir_dir))
        assert grid.data.shape == (4, 72, 512)
        assert np.array_equal(grid.data, synthetic_grid.data)

    def test_file_names(self, ir_dir):
        """Test that one file is written per position."""
        assert sorted(os.listdir(ir_dir)) == ['back.csv', 'front.csv', 'left.csv', 'right.csv']

    def test_trailing_blank_lines(self, ir_dir):
        """Test that blank lines at the end of a file are ignored."""
        with open(ir_dir / 'front.csv', 'a') as f:
            f.write('\n\n')
        grid = ImpulseResponseGrid.load(str(ir_dir))
        assert grid.position(Position.FRONT).shape == (72, 512)

    def test_missing_directory(self, tmp_path):
        """Test that a missing directory is reported."""
        with pytest.raises(MissingResourceError):
            ImpulseResponseGrid.load(str(tmp_path / 'absent'))

    def test_missing_file(self, ir_dir):
        """Test that a missing position file is reported."""
        os.remove(ir_dir / 'back.csv')
        with pytest.raises(MissingResourceError):
            ImpulseResponseGrid.load(str(ir_dir))

    def test_wrong_line_count(self, ir_dir):
        """Test that a file with 71 lines is malformed."""
        write_rows(ir_dir / 'left.csv', np.zeros((71, 512)))
        with pytest.raises(MalformedInputError):
            ImpulseResponseGrid.load(str(ir_dir))

    def test_wrong_value_count(self, ir_dir):
        """Test that a line with 511 values is malformed."""
        rows = [list(np.zeros(512))] * 72
        rows[10] = list(np.zeros(511))
        write_rows(ir_dir / 'right.csv', rows)
        with pytest.raises(MalformedInputError) as excinfo:
            ImpulseResponseGrid.load(str(ir_dir))
        assert ':11:' in str(excinfo.value)

    def test_unparsable_value(self, ir_dir):
        """Test that a non-numeric value is malformed."""
        lines = ['0.0,' * 511 + '0.0'] * 72
        lines[3] = 'abc,' + '0.0,' * 510 + '0.0'
        with open(ir_dir / 'front.csv', 'w') as f:
            f.write('\n'.join(lines))
        with pytest.raises(MalformedInputError):
            ImpulseResponseGrid.load(str(ir_dir))

    def test_binary_file(self, ir_dir):
        """Test that a file that is not text is malformed."""
        with open(ir_dir / 'left.csv', 'wb') as f:
            f.write(b'\xff\xfe\x00garbage\n')
        with pytest.raises(MalformedInputError) as excinfo:
            ImpulseResponseGrid.load(str(ir_dir))
        assert 'left.csv' in str(excinfo.value)


class TestGridAccess:
    """Tests for grid accessors."""

    def test_from_array_shape(self):
        """Test that only (4, 72, 512) arrays are accepted."""
        with pytest.raises(InvalidArgumentError):
            ImpulseResponseGrid.from_array(np.zeros((4, 72, 256)))

    def test_from_array_copies(self):
        """Test that the grid does not alias its input."""
        data = np.zeros((4, 72, 512))
        grid = ImpulseResponseGrid.from_array(data)
        data[0, 0, 0] = 1.0
        assert grid.data[0, 0, 0] == 0.0

    def test_read_only(self, synthetic_grid):
        """Test that grid data cannot be modified."""
        with pytest.raises(ValueError):
            synthetic_grid.data[0, 0, 0] = 1.0

    def test_row(self, random_grid):
        """Test row lookup by name, index and Position."""
        expected = random_grid.data[2, 5]
        assert np.array_equal(random_grid.row('front', 5), expected)
        assert np.array_equal(random_grid.row(2, 5), expected)
        assert np.array_equal(random_grid.row(Position.FRONT, 5), expected)

    def test_row_out_of_range(self, random_grid):
        """Test that azimuth bins outside [0, 72) are rejected."""
        with pytest.raises(InvalidArgumentError):
            random_grid.row(Position.LEFT, 72)
        with pytest.raises(InvalidArgumentError):
            random_grid.row(Position.LEFT, -1)

    def test_unknown_position(self, random_grid):
        """Test that unknown positions are argument errors."""
        with pytest.raises(InvalidArgumentError):
            random_grid.row('up', 0)
        with pytest.raises(InvalidArgumentError):
            random_grid.position(4)


class TestSyntheticGrid:
    """Tests for the synthetic grid generator."""

    def test_levels(self, synthetic_grid):
        """Test that a position is loudest when facing the azimuth."""
        assert abs(np.max(np.abs(synthetic_grid.row(Position.FRONT, 0))) - 1.0) < 1e-12
        assert abs(np.max(np.abs(synthetic_grid.row(Position.BACK, 0))) - 0.1) < 1e-12
        # 90 degrees is bin 18
        assert abs(np.max(np.abs(synthetic_grid.row(Position.RIGHT, 18))) - 1.0) < 1e-12

    def test_delays(self, synthetic_grid):
        """Test that the opposite position arrives max_delay samples later."""
        front = int(np.argmax(np.abs(synthetic_grid.row(Position.FRONT, 0))))
        back = int(np.argmax(np.abs(synthetic_grid.row(Position.BACK, 0))))
        assert back - front == 24

    def test_impulse_too_long(self):
        """Test that the impulse must fit in a row."""
        with pytest.raises(InvalidArgumentError):
            generate_synthetic_ir_grid(n_taps=500, max_delay=24)
