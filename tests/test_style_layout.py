"""Tests for style_layout.py - style header and section offsets."""

import struct

import pytest

from cmpstyle.style_layout import (
    SECTION_NAMES,
    STYLE_HEADER_SIZE,
    StyleHeader,
    StyleSectionLayout,
    face_padding,
    paged_clut_size,
)


def make_header(**sizes):
    values = {name: 0 for name in StyleHeader.__dataclass_fields__}
    values["version"] = 336
    values.update(sizes)
    return StyleHeader(**values)


class TestStyleHeader:
    """Test the 16-field header."""

    def test_unpack(self):
        """Test fields are read in file order."""
        raw = struct.pack("<16I", *range(100, 116))
        header = StyleHeader.unpack(raw)
        assert header.version == 100
        assert header.side_size == 101
        assert header.clut_size == 105
        assert header.fontclut_size == 109
        assert header.sprite_numbers_size == 115

    def test_header_size(self):
        """Test the header is 64 bytes."""
        assert STYLE_HEADER_SIZE == 64

    def test_to_dict(self):
        """Test conversion to a plain dict."""
        header = make_header(side_size=4096)
        d = header.to_dict()
        assert len(d) == 16
        assert d["version"] == 336
        assert d["side_size"] == 4096


class TestFacePadding:
    """Test the face padding rule."""

    def test_empty_faces(self):
        """Test no faces pad to four pages."""
        assert face_padding(0, 0, 0) == 16384

    def test_partial_pages(self):
        """Test pages are counted per face kind with floor division."""
        assert face_padding(4096, 4095, 8191) == (4 - 2) * 4096
        assert face_padding(8192, 4096, 4096) == 0

    def test_large_faces(self):
        """Test padding goes negative past four pages."""
        assert face_padding(100000, 50000, 10000) == -139264

    def test_large_face_size(self):
        """Test the padded face size of a large face set."""
        layout = StyleSectionLayout.from_header(
            make_header(side_size=100000, lid_size=50000, aux_size=10000)
        )
        assert layout.face_size == 20736
        assert layout.raw_face_size == 160000

    def test_face_size_lower_bound(self):
        """Test the padded face size never drops below four pages."""
        for side in (0, 1, 4095, 4096, 12288, 65536, 100000):
            for lid in (0, 4096, 50000):
                layout = StyleSectionLayout.from_header(
                    make_header(side_size=side, lid_size=lid, aux_size=10000)
                )
                assert layout.face_size >= 16384


class TestClutPaging:
    """Test CLUT rounding to 64 KiB pages."""

    @pytest.mark.parametrize("size,paged", [
        (0, 0),
        (1, 65536),
        (65535, 65536),
        (65536, 65536),
        (65537, 131072),
        (196608, 196608),
    ])
    def test_paged_clut_size(self, size, paged):
        """Test rounding up to whole pages."""
        assert paged_clut_size(size) == paged


class TestSectionLayout:
    """Test computed section offsets."""

    def test_section_order(self):
        """Test sections are laid out in file order."""
        layout = StyleSectionLayout.from_header(make_header())
        assert tuple(s.name for s in layout.sections) == SECTION_NAMES
        for prev, nxt in zip(layout.sections, layout.sections[1:]):
            assert nxt.offset == prev.end

    def test_offsets(self):
        """Test offsets use padded face and CLUT sizes."""
        header = make_header(
            side_size=4096,
            lid_size=8192,
            aux_size=0,
            anim_size=10,
            clut_size=70000,
            palette_index_size=8,
            object_info_size=40,
            car_info_size=200,
            sprite_info_size=24,
            sprite_graphics_size=1000,
            sprite_numbers_size=40,
        )
        layout = StyleSectionLayout.from_header(header)
        assert layout.face_size == 16384
        assert layout.paged_clut_size == 131072

        assert layout.section("faces").offset == 64
        assert layout.section("animations").offset == 64 + 16384
        assert layout.section("clut").offset == 64 + 16384 + 10
        assert layout.section("clut").size == 131072
        assert layout.section("palette_index").offset == 64 + 16384 + 10 + 131072
        assert layout.section("sprite_numbers").offset == (
            64 + 16384 + 10 + 131072 + 8 + 40 + 200 + 24 + 1000
        )
        assert layout.total_size == layout.section("sprite_numbers").offset + 40

    def test_unknown_section(self):
        """Test looking up a section that does not exist."""
        layout = StyleSectionLayout.from_header(make_header())
        with pytest.raises(KeyError):
            layout.section("fonts")

    def test_sub_cluts_take_no_space(self):
        """Test sub-CLUT sizes do not move any section."""
        plain = StyleSectionLayout.from_header(make_header(clut_size=65536))
        with_subs = StyleSectionLayout.from_header(
            make_header(clut_size=65536, tileclut_size=1024, fontclut_size=2048)
        )
        assert plain.sections == with_subs.sections
