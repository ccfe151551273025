"""
Unit tests for the processors module.
"""

import pytest
import numpy as np
from e3das.codec.processors import (
    convert_stereo_to_mono, apply_gain, change_length, change_length_to, pad_to_power_of_two
)
from e3das.codec.exceptions import InvalidArgumentError, InvalidStateError


class TestStereoToMono:
    """Tests for downmixing."""

    def test_average(self):
        """Test that the channels are averaged."""
        buffer = np.array([[1.0, 0.5, -1.0], [0.0, 0.5, 1.0]])
        mono = convert_stereo_to_mono(buffer)
        assert mono.shape == (1, 3)
        assert np.allclose(mono[0], [0.5, 0.5, 0.0])

    def test_requires_stereo(self):
        """Test that only two-channel buffers are accepted."""
        with pytest.raises(InvalidArgumentError):
            convert_stereo_to_mono(np.zeros((1, 10)))
        with pytest.raises(InvalidArgumentError):
            convert_stereo_to_mono(np.zeros((6, 10)))

    def test_unpopulated(self):
        """Test that a missing buffer is an invalid state."""
        with pytest.raises(InvalidStateError):
            convert_stereo_to_mono(None)


class TestApplyGain:
    """Tests for per-channel gain."""

    def test_scales_one_channel(self):
        """Test that only the selected channel changes."""
        buffer = np.ones((3, 4))
        result = apply_gain(buffer, 1, 0.25)
        assert np.allclose(result[1], 0.25)
        assert np.allclose(result[0], 1.0)
        assert np.allclose(result[2], 1.0)
        # Input untouched
        assert np.allclose(buffer, 1.0)

    def test_rejects_gain_above_one(self):
        """Test that amplification is refused."""
        with pytest.raises(InvalidArgumentError):
            apply_gain(np.ones((2, 4)), 0, 1.5)

    def test_rejects_bad_channel(self):
        """Test that the channel must exist."""
        with pytest.raises(InvalidArgumentError):
            apply_gain(np.ones((2, 4)), 2, 0.5)

    def test_all_channels(self):
        """Test that channel None scales every row."""
        buffer = np.ones((3, 4))
        result = apply_gain(buffer, None, 0.5)
        assert np.allclose(result, 0.5)
        assert np.allclose(buffer, 1.0)
        with pytest.raises(InvalidArgumentError):
            apply_gain(buffer, None, 2.0)


class TestChangeLength:
    """Tests for length changes."""

    def test_pad(self):
        """Test zero padding."""
        result = change_length_to(np.ones((2, 3)), 5)
        assert result.shape == (2, 5)
        assert np.array_equal(result[:, 3:], np.zeros((2, 2)))

    def test_truncate(self):
        """Test truncation."""
        buffer = np.arange(10.0).reshape(2, 5)
        result = change_length_to(buffer, 2)
        assert np.array_equal(result, [[0.0, 1.0], [5.0, 6.0]])

    def test_time_length(self):
        """Test conversion from milliseconds."""
        result = change_length(np.ones((1, 100)), 10, 48000)
        assert result.shape == (1, 480)
        result = change_length(np.ones((1, 100)), 1, 44100)
        assert result.shape == (1, 44)

    def test_invalid_sample_rate(self):
        """Test that the sample rate must be positive."""
        with pytest.raises(InvalidArgumentError):
            change_length(np.ones((1, 100)), 10, 0)

    def test_pad_to_power_of_two(self):
        """Test padding to the next power of two."""
        assert pad_to_power_of_two(np.ones((1, 1000))).shape == (1, 1024)
        assert pad_to_power_of_two(np.ones((2, 1024))).shape == (2, 1024)
        assert pad_to_power_of_two(np.ones((1, 1025))).shape == (1, 2048)
