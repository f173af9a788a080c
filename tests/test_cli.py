"""Tests for cli.py - command line interface."""

import json
import os
import tempfile

import numpy as np
import pytest

from builders import build_map, build_style, pack_block, pack_car, pack_zone
from cmpstyle.cli import main


@pytest.fixture
def map_file():
    base = np.zeros((256, 256), dtype=np.uint32)
    base[64, 120] = 4
    data = build_map(
        base=base,
        columns=(5, 0, 4, 1, 0, 0),
        blocks=[pack_block(type_map=0x0020), pack_block(type_map=0x00D0 | (1 << 14), lid=12)],
        zones=pack_zone(0, 0, 8, 8, 1, "Downtown"),
    )
    with tempfile.NamedTemporaryFile(suffix=".cmp", delete=False) as f:
        f.write(data)
        path = f.name
    yield path
    os.unlink(path)


@pytest.fixture
def style_file():
    with tempfile.NamedTemporaryFile(suffix=".g24", delete=False) as f:
        f.write(build_style(side=bytes(4096), car_info=pack_car()))
        path = f.name
    yield path
    os.unlink(path)


class TestInfoMap:
    """Test the info-map command."""

    def test_text(self, map_file, capsys):
        """Test the human readable summary."""
        assert main(["info-map", map_file]) == 0
        out = capsys.readouterr().out
        assert "Map version: 331" in out
        assert "Downtown" in out
        assert "police_station: 6" in out

    def test_json(self, map_file, capsys):
        """Test JSON output."""
        assert main(["info-map", map_file, "--json"]) == 0
        info = json.loads(capsys.readouterr().out)
        assert info["zones"] == ["Downtown"]
        assert info["max_column_height"] == 2

    def test_missing_file(self, capsys):
        """Test a missing file returns 1."""
        assert main(["info-map", "/nonexistent/nyc.cmp"]) == 1
        assert "Error:" in capsys.readouterr().err


class TestInfoStyle:
    """Test the info-style command."""

    def test_text(self, style_file, capsys):
        """Test the human readable summary."""
        assert main(["info-style", style_file]) == 0
        out = capsys.readouterr().out
        assert "Style version: 336" in out
        assert "Tiles: 1 (atlas 256x64)" in out
        assert "Cars: 1" in out
        assert "sprite_numbers" in out

    def test_json(self, style_file, capsys):
        """Test JSON output."""
        assert main(["info-style", style_file, "--json"]) == 0
        info = json.loads(capsys.readouterr().out)
        assert info["cars"] == 1
        assert info["sections"]["faces"]["offset"] == 64

    def test_corrupt_file(self, capsys):
        """Test a truncated style returns 1."""
        with tempfile.NamedTemporaryFile(suffix=".g24", delete=False) as f:
            f.write(b"\x00" * 10)
            path = f.name
        try:
            assert main(["info-style", path]) == 1
            assert "Unexpected EOF" in capsys.readouterr().err
        finally:
            os.unlink(path)


class TestColumn:
    """Test the column command."""

    def test_column(self, map_file, capsys):
        """Test printing a two-block column."""
        assert main(["column", map_file, "120", "64"]) == 0
        out = capsys.readouterr().out
        assert "Column (120, 64): 2 blocks" in out
        assert "z=0: road" in out
        assert "z=1: building" in out
        assert "lid=12@90 flat" in out

    def test_out_of_range(self, map_file, capsys):
        """Test coordinates outside the grid."""
        assert main(["column", map_file, "256", "0"]) == 1
        assert "0..255" in capsys.readouterr().err


class TestMain:
    """Test argument handling."""

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        assert main([]) == 0
        assert "info-map" in capsys.readouterr().out

    def test_verbose(self, map_file, capsys):
        """Test --verbose is accepted before the command."""
        assert main(["--verbose", "info-map", map_file]) == 0
