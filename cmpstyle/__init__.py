"""
cmpstyle - decoders for top-down city game assets.

Two formats are supported, decode only:
- .cmp city maps: a compressed 256x256 grid of block columns plus objects,
  routes, locations and zones
- .g24 styles: tile faces, animations, colour tables, palette index,
  object, car and sprite descriptions

Decoded Map and Style values are immutable and safe to share between
threads.
"""

__version__ = "0.1.0"

from cmpstyle.block import Block, BlockType
from cmpstyle.cursor import ByteCursor
from cmpstyle.errors import (
    AssetIOError,
    CorruptColumnDataError,
    DecodeError,
    InvalidUtf8Error,
    SectionAlignmentError,
    TruncatedSectionError,
    UnexpectedEofError,
)
from cmpstyle.map import Map, decode_map, load_map
from cmpstyle.style import Style, decode_style, load_style
from cmpstyle.style_layout import StyleSectionLayout

__all__ = [
    "Block",
    "BlockType",
    "ByteCursor",
    "Map",
    "decode_map",
    "load_map",
    "Style",
    "decode_style",
    "load_style",
    "StyleSectionLayout",
    "DecodeError",
    "AssetIOError",
    "UnexpectedEofError",
    "TruncatedSectionError",
    "SectionAlignmentError",
    "CorruptColumnDataError",
    "InvalidUtf8Error",
]
