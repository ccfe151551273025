"""
Tests for the e3das-spatialize command.
"""

import os
import pytest
import numpy as np
from e3das.codec.cli import main, build_parser, build_config
from e3das.codec.config import SpatializerConfig
from e3das.codec.io import read_wav, write_wav
from e3das.codec.utils import Position


class TestArguments:
    """Tests for argument handling."""

    def test_overrides(self):
        """Test that command-line options override the defaults."""
        args = build_parser().parse_args(['out', '--noise', '--synthetic-ir', '--positions', 'front,back',
                                          '--channels', '2', '--azimuth-step', '45', '--no-csv'])
        config = build_config(args)
        assert config.positions == (Position.FRONT, Position.BACK)
        assert config.output_channels == 2
        assert config.azimuth_step == 45
        assert config.write_csv is False
        assert config.time_length_ms == 4000

    def test_source_required(self):
        """Test that a source must be selected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['out', '--synthetic-ir'])

    def test_single_source(self):
        """Test that only one source can be selected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['out', '--noise', '--log-sweep', '--synthetic-ir'])


class TestMain:
    """Tests for running the command."""

    def test_noise(self, tmp_path):
        """Test rendering seeded noise with the synthetic grid."""
        status = main([str(tmp_path), '--noise', '--power', '12', '--seed', '1', '--synthetic-ir',
                       '--azimuth-step', '90', '--time-length', '50', '--no-csv'])
        assert status == 0

        files = sorted(os.listdir(tmp_path / 'data'))
        assert files == ['0.wav', '1.wav', '2.wav', '3.wav']
        wave = read_wav(str(tmp_path / 'data' / '0.wav'))
        assert wave.data.shape == (6, 2400)

    def test_wav_source(self, tmp_path, ir_dir):
        """Test a stereo WAV source with measured-style IR files."""
        source_path = str(tmp_path / 'source.wav')
        t = np.arange(1000) / 48000.0
        write_wav(source_path, np.vstack([np.sin(2 * np.pi * 440 * t), np.sin(2 * np.pi * 660 * t)]) * 0.5, 16)

        out = tmp_path / 'out'
        status = main([str(out), '--wav', source_path, '--ir-dir', str(ir_dir), '--azimuth-step', '180',
                       '--positions', 'left,right', '--channels', '2', '--no-csv'])
        assert status == 0

        wave = read_wav(str(out / 'data' / '1.wav'))
        assert wave.header.channels == 2
        assert wave.data.shape[1] == 192000

    def test_config_file(self, tmp_path):
        """Test that settings can come from a JSON file."""
        config_path = str(tmp_path / 'config.json')
        SpatializerConfig(azimuth_step=180, time_length_ms=None, write_csv=False).save(config_path)

        out = tmp_path / 'out'
        status = main([str(out), '--config', config_path, '--log-sweep', '--power', '11', '--synthetic-ir'])
        assert status == 0
        assert sorted(os.listdir(out / 'data')) == ['0.wav', '1.wav']

    def test_fixed_order(self, tmp_path):
        """Test the fixed channel order option."""
        status = main([str(tmp_path), '--sine', '1000', '--power', '10', '--synthetic-ir',
                       '--azimuth-step', '180', '--channels', '2', '--fixed-order', '--no-csv',
                       '--bit-depth', '16'])
        assert status == 0
        wave = read_wav(str(tmp_path / 'data' / '0.wav'))
        assert wave.header.channels == 6
        assert wave.header.bit_depth == 16

    def test_missing_ir_dir(self, tmp_path):
        """Test that errors are reported through the exit status."""
        status = main([str(tmp_path), '--noise', '--power', '10', '--ir-dir', str(tmp_path / 'absent')])
        assert status == 1

    def test_invalid_setting(self, tmp_path):
        """Test that invalid settings are reported through the exit status."""
        status = main([str(tmp_path), '--noise', '--power', '10', '--synthetic-ir', '--azimuth-step', '7'])
        assert status == 1
