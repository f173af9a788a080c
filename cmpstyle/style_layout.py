"""
Style file header and section layout.

The style header is 16 little-endian u32 values: a version followed by the
byte size of each section. Section offsets are not stored in the file. They
are computed from the header, with two sections taking more space than
their declared size:

- Tile faces (side + lid + aux) are padded with
  (4 - (side/4096 + lid/4096 + aux/4096)) * 4096 bytes.
- The CLUT section is rounded up to whole 64 KiB pages.

The four sub-CLUT sizes (tile, sprite, new car, font) describe ranges
inside the CLUT section and take no space of their own.
"""

import struct
from dataclasses import dataclass, fields
from typing import Dict, Tuple

STYLE_HEADER = struct.Struct("<16I")
STYLE_HEADER_SIZE = STYLE_HEADER.size  # 64

FACE_PAGE = 4096
FACE_PAGES = 4
CLUT_PAGE = 65536

# Sections in file order.
SECTION_NAMES = (
    "faces",
    "animations",
    "clut",
    "palette_index",
    "object_info",
    "car_info",
    "sprite_info",
    "sprite_graphics",
    "sprite_numbers",
)


@dataclass(frozen=True)
class StyleHeader:
    version: int
    side_size: int
    lid_size: int
    aux_size: int
    anim_size: int
    clut_size: int
    tileclut_size: int
    spriteclut_size: int
    newcarclut_size: int
    fontclut_size: int
    palette_index_size: int
    object_info_size: int
    car_info_size: int
    sprite_info_size: int
    sprite_graphics_size: int
    sprite_numbers_size: int

    @classmethod
    def unpack(cls, raw: bytes) -> "StyleHeader":
        return cls(*STYLE_HEADER.unpack(raw))

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Section:
    name: str
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


def face_padding(side_size: int, lid_size: int, aux_size: int) -> int:
    """
    Padding after the tile faces.

    The result can be zero or negative when the faces span four or more
    4 KiB pages; it is returned as is.
    """
    pages = side_size // FACE_PAGE + lid_size // FACE_PAGE + aux_size // FACE_PAGE
    return (FACE_PAGES - pages) * FACE_PAGE


def paged_clut_size(clut_size: int) -> int:
    """CLUT size rounded up to whole 64 KiB pages."""
    remainder = clut_size % CLUT_PAGE
    if remainder:
        return clut_size + CLUT_PAGE - remainder
    return clut_size


@dataclass(frozen=True)
class StyleSectionLayout:
    """
    Absolute offsets of every style section.

    Build with StyleSectionLayout.from_header; sections are laid out back to
    back after the header using face_size and paged_clut_size in place of
    the declared face and CLUT sizes.
    """
    header: StyleHeader
    face_size: int
    paged_clut_size: int
    sections: Tuple[Section, ...]

    @classmethod
    def from_header(cls, header: StyleHeader) -> "StyleSectionLayout":
        h = header
        raw_faces = h.side_size + h.lid_size + h.aux_size
        face_size = raw_faces + face_padding(h.side_size, h.lid_size, h.aux_size)
        clut_size = paged_clut_size(h.clut_size)

        sizes = (
            face_size,
            h.anim_size,
            clut_size,
            h.palette_index_size,
            h.object_info_size,
            h.car_info_size,
            h.sprite_info_size,
            h.sprite_graphics_size,
            h.sprite_numbers_size,
        )
        sections = []
        offset = STYLE_HEADER_SIZE
        for name, size in zip(SECTION_NAMES, sizes):
            sections.append(Section(name=name, offset=offset, size=size))
            offset += size

        return cls(
            header=header,
            face_size=face_size,
            paged_clut_size=clut_size,
            sections=tuple(sections),
        )

    @property
    def raw_face_size(self) -> int:
        """Face bytes actually stored, without padding."""
        return self.header.side_size + self.header.lid_size + self.header.aux_size

    @property
    def total_size(self) -> int:
        return self.sections[-1].end

    def section(self, name: str) -> Section:
        for s in self.sections:
            if s.name == name:
                return s
        raise KeyError(f"Unknown style section: {name}")
