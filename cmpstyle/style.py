"""
Style (.g24) decoding.

A style file holds the graphics and resource tables a map is drawn with:
tile faces, face animations, colour tables, the palette index, object and
car descriptions, sprite descriptors and sprite counts.

Sections are located with StyleSectionLayout. The decoder seeks to each
computed offset, checks the cursor is where the layout says, reads the
section, and checks the cursor again at the section end. Any mismatch
aborts the decode with SectionAlignmentError.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from cmpstyle.cursor import ByteCursor
from cmpstyle.errors import AssetIOError, SectionAlignmentError
from cmpstyle.style_layout import (
    STYLE_HEADER_SIZE,
    Section,
    StyleHeader,
    StyleSectionLayout,
)
from cmpstyle.style_records import (
    OBJECT_INFO_SIZE,
    SPRITE_NUMBERS_RECORD,
    Animation,
    AreaType,
    CarInfo,
    Clut,
    ObjectInfo,
    PaletteIndex,
    SpriteInfo,
    SpriteNumbers,
    read_animations,
    read_car_info,
    read_object_info,
    read_palette_index,
    read_sprite_info,
    read_sprite_numbers,
)

logger = logging.getLogger(__name__)

ATLAS_WIDTH = 256
TILE_SIZE = 64
TILES_PER_ROW = ATLAS_WIDTH // TILE_SIZE
TILE_BYTES = TILE_SIZE * TILE_SIZE


@dataclass(frozen=True)
class TileAtlas:
    """
    Single-channel (luminance) image of all tile faces.

    `pixels[y, x]` is the face byte at offset `x * width + y`.
    """
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)


def build_tile_atlas(faces: np.ndarray, face_size: int) -> TileAtlas:
    """
    Lay the face bytes out as a 256-wide atlas.

    Args:
        faces: Raw face bytes (side, lid and aux faces)
        face_size: Padded face section size; sets the atlas height

    Returns:
        TileAtlas whose pixels past the stored face bytes are 0
    """
    width = ATLAS_WIDTH
    height = face_size // width
    if height <= 0:
        pixels = np.zeros((0, width), dtype=np.uint8)
    else:
        offsets = np.arange(width)[np.newaxis, :] * width + np.arange(height)[:, np.newaxis]
        source = np.zeros(max(int(offsets.max()) + 1, len(faces)), dtype=np.uint8)
        source[:len(faces)] = faces
        pixels = source[offsets]
    pixels.flags.writeable = False
    return TileAtlas(width=width, height=height, pixels=pixels)


@dataclass(frozen=True)
class Style:
    """A decoded style file."""
    header: StyleHeader
    layout: StyleSectionLayout = field(repr=False)
    faces: np.ndarray = field(repr=False)
    atlas: TileAtlas = field(repr=False)
    animations: Tuple[Animation, ...] = field(repr=False)
    clut: Clut = field(repr=False)
    palette_index: PaletteIndex = field(repr=False)
    object_info: Tuple[ObjectInfo, ...] = field(repr=False)
    car_info: Tuple[CarInfo, ...] = field(repr=False)
    sprite_info: Tuple[SpriteInfo, ...] = field(repr=False)
    sprite_numbers: SpriteNumbers = field(repr=False)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Style":
        return load_style(path)

    @property
    def tile_count(self) -> int:
        return len(self.faces) // TILE_BYTES

    def tile_image(self, tile: int) -> np.ndarray:
        """
        The 64x64 face `tile` as palette indices.

        Faces are stored four to a 256-pixel row.

        Raises:
            IndexError: If the tile does not exist
        """
        if not 0 <= tile < self.tile_count:
            raise IndexError(f"Tile {tile} out of range (0..{self.tile_count - 1})")
        row, col = divmod(tile, TILES_PER_ROW)
        strip_bytes = TILE_BYTES * TILES_PER_ROW
        strip = self.faces[row * strip_bytes:(row + 1) * strip_bytes]
        if len(strip) < strip_bytes:
            # Last strip of a face set whose tile count is not a multiple of 4
            strip = np.pad(strip, (0, strip_bytes - len(strip)))
        rows = strip.reshape(TILE_SIZE, ATLAS_WIDTH)
        return rows[:, col * TILE_SIZE:(col + 1) * TILE_SIZE]

    def tile_rgba(self, tile: int) -> np.ndarray:
        """The 64x64 face `tile` coloured through its palette, as (64, 64, 4) RGBA."""
        palette = self.clut.palette(self.palette_index.lookup(tile))
        return palette[self.tile_image(tile)]

    def animation_for(self, block: int, area: AreaType) -> Optional[Animation]:
        for anim in self.animations:
            if anim.block == block and anim.area == area:
                return anim
        return None

    def summary(self) -> Dict[str, Any]:
        """Counts and layout for display."""
        return {
            "version": self.header.version,
            "tiles": self.tile_count,
            "atlas": [self.atlas.width, self.atlas.height],
            "animations": len(self.animations),
            "palettes": self.clut.palette_count,
            "palette_index_entries": len(self.palette_index),
            "objects": len(self.object_info),
            "cars": len(self.car_info),
            "sprites": len(self.sprite_info),
            "sections": {s.name: {"offset": s.offset, "size": s.size} for s in self.layout.sections},
        }


class StyleDecoder:
    """
    Single-pass decoder for a style file held in memory.

    Args:
        data: Whole file contents
    """

    def __init__(self, data: bytes):
        self.cur = ByteCursor(data)

    @contextmanager
    def _section(self, section: Section, length: Optional[int] = None) -> Iterator[Section]:
        """
        Seek to a section and check alignment before and after reading it.

        Args:
            section: Section from the layout
            length: Bytes the reader is expected to consume (defaults to
                the section size)
        """
        self.cur.seek(section.offset)
        if self.cur.tell() != section.offset:
            raise SectionAlignmentError(section.name, section.offset, self.cur.tell())
        logger.debug("Section %s at %d (%d bytes)", section.name, section.offset, section.size)

        yield section

        expected = section.offset + (section.size if length is None else length)
        if self.cur.tell() != expected:
            raise SectionAlignmentError(section.name, expected, self.cur.tell())

    def decode(self) -> Style:
        cur = self.cur
        header = StyleHeader.unpack(cur.read_exact(STYLE_HEADER_SIZE))
        layout = StyleSectionLayout.from_header(header)
        logger.debug("Style header: %s", header)
        logger.debug(
            "Face size %d (raw %d), paged clut size %d",
            layout.face_size, layout.raw_face_size, layout.paged_clut_size,
        )

        with self._section(layout.section("faces"), layout.raw_face_size):
            faces = cur.read_array("<u1", layout.raw_face_size)

        section = layout.section("animations")
        with self._section(section):
            animations = read_animations(cur, section.end)

        with self._section(layout.section("clut")):
            clut = Clut(
                cur.read_array("<u1", layout.paged_clut_size),
                (
                    header.tileclut_size,
                    header.spriteclut_size,
                    header.newcarclut_size,
                    header.fontclut_size,
                ),
            )

        section = layout.section("palette_index")
        with self._section(section, section.size // 2 * 2):
            palette_index = read_palette_index(cur, section.size)

        section = layout.section("object_info")
        with self._section(section, section.size // OBJECT_INFO_SIZE * OBJECT_INFO_SIZE):
            object_info = read_object_info(cur, section.size)

        section = layout.section("car_info")
        with self._section(section):
            car_info = read_car_info(cur, section.size)

        section = layout.section("sprite_info")
        with self._section(section):
            sprite_info = read_sprite_info(cur, section.size)

        # Sprite graphics are not parsed, only stepped over.
        section = layout.section("sprite_graphics")
        with self._section(section):
            cur.skip(section.size)

        with self._section(layout.section("sprite_numbers"), SPRITE_NUMBERS_RECORD.size):
            sprite_numbers = read_sprite_numbers(cur)

        atlas = build_tile_atlas(faces, layout.face_size)
        logger.info(
            "Decoded style: %d tiles, %d animations, %d objects, %d cars, %d sprites",
            len(faces) // TILE_BYTES, len(animations), len(object_info),
            len(car_info), len(sprite_info),
        )
        logger.debug("Tile atlas %dx%d", atlas.width, atlas.height)

        return Style(
            header=header,
            layout=layout,
            faces=faces,
            atlas=atlas,
            animations=tuple(animations),
            clut=clut,
            palette_index=palette_index,
            object_info=tuple(object_info),
            car_info=tuple(car_info),
            sprite_info=tuple(sprite_info),
            sprite_numbers=sprite_numbers,
        )


def decode_style(data: bytes) -> Style:
    """
    Decode a whole style file held in memory.

    Raises:
        DecodeError: On any malformed or misaligned section
    """
    return StyleDecoder(data).decode()


def load_style(path: Union[str, Path]) -> Style:
    """
    Read and decode a style file.

    Args:
        path: Path to a .g24 file

    Returns:
        Decoded Style

    Raises:
        AssetIOError: If the file cannot be read
        DecodeError: If the contents are malformed
    """
    path = Path(path)
    logger.info("Loading style %s", path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AssetIOError(str(path), e.strerror or str(e)) from e
    return decode_style(data)
