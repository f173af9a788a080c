"""
City map (.cmp) decoding.

File layout (all little-endian):
- Header (28 bytes): version u32, style u8, sample u8, reserved u16,
  route_size, object_size, column_size, block_size, zone_size (u32 each)
- Base grid: 256 x 256 u32 column pointers, row-major (y outer, x inner)
- Column table: column_size / 2 u16 words
- Block pool: block_size / 8 records of 8 bytes
- Objects: object_size / 14 records of 14 bytes
- Routes: route_size bytes of (count u8, type u8, count x 3-byte waypoint)
- Locations: 36 fixed 3-byte positions
- Zones: zone_size bytes of 35-byte records (rect, sample, 30-byte name)

The decoded Map holds fully expanded block columns; the compressed tables
are not kept.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from cmpstyle.block import BLOCK_RECORD, BLOCK_SIZE, Block
from cmpstyle.columns import GRID_SIZE, Column, ColumnDecompressor
from cmpstyle.cursor import ByteCursor, read_bounded, read_records, record_count, require
from cmpstyle.errors import AssetIOError, InvalidUtf8Error

logger = logging.getLogger(__name__)

MAP_HEADER = struct.Struct("<IBBHIIIII")
MAP_HEADER_SIZE = MAP_HEADER.size  # 28

OBJECT_RECORD = struct.Struct("<HHHBBHHH")
OBJECT_SIZE = OBJECT_RECORD.size  # 14

POSITION_SIZE = 3
LOCATION_SLOTS = 36
ZONE_NAME_SIZE = 30
ZONE_RECORD_SIZE = 4 + 1 + ZONE_NAME_SIZE


@dataclass(frozen=True)
class MapHeader:
    version: int
    style: int
    sample: int
    reserved: int
    route_size: int
    object_size: int
    column_size: int
    block_size: int
    zone_size: int


@dataclass(frozen=True)
class Position:
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class MapObject:
    """An object placed in the world, independent of the block grid."""
    x: int
    y: int
    z: int
    object_type: int
    remap: int
    yaw: int
    pitch: int
    roll: int


@dataclass(frozen=True)
class Route:
    route_type: int
    points: Tuple[Position, ...]


class LocationType(Enum):
    POLICE_STATION = "police_station"
    HOSPITAL = "hospital"
    FIRE_STATION = "fire_station"
    UNKNOWN = "unknown"

    @classmethod
    def from_slot(cls, slot: int) -> "LocationType":
        """Classify a slot of the 36-entry location table."""
        if 0 <= slot <= 5:
            return cls.POLICE_STATION
        if 6 <= slot <= 11:
            return cls.HOSPITAL
        if 24 <= slot <= 29:
            return cls.FIRE_STATION
        return cls.UNKNOWN


@dataclass(frozen=True)
class Location:
    location_type: LocationType
    position: Position


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0


@dataclass(frozen=True)
class Zone:
    area: Rect
    sample: int
    name: str


_KNOWN_LOCATIONS = (
    LocationType.POLICE_STATION,
    LocationType.HOSPITAL,
    LocationType.FIRE_STATION,
)


@dataclass(frozen=True)
class Map:
    """
    A decoded city map.

    `columns[y][x]` is the bottom-to-top block stack of cell (x, y).
    """
    header: MapHeader
    columns: Tuple[Tuple[Column, ...], ...] = field(repr=False)
    objects: Tuple[MapObject, ...] = field(repr=False)
    routes: Tuple[Route, ...] = field(repr=False)
    locations: Mapping[LocationType, Tuple[Location, ...]] = field(repr=False)
    zones: Tuple[Zone, ...] = field(repr=False)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Map":
        return load_map(path)

    def column(self, x: int, y: int) -> Column:
        return self.columns[y][x]

    def block(self, x: int, y: int, z: int) -> Optional[Block]:
        """Block at height z of cell (x, y), or None above the column."""
        column = self.columns[y][x]
        if 0 <= z < len(column):
            return column[z]
        return None

    def locations_of(self, location_type: LocationType) -> Tuple[Location, ...]:
        return self.locations.get(location_type, ())

    def height_map(self) -> np.ndarray:
        """(256, 256) uint8 array of column heights, indexed [y, x]."""
        heights = np.array(
            [[len(col) for col in row] for row in self.columns], dtype=np.uint8
        )
        heights.flags.writeable = False
        return heights

    def summary(self) -> Dict[str, Any]:
        """Counts and header fields for display."""
        heights = self.height_map()
        return {
            "version": self.header.version,
            "style": self.header.style,
            "sample": self.header.sample,
            "objects": len(self.objects),
            "routes": len(self.routes),
            "locations": {
                kind.value: len(self.locations_of(kind)) for kind in _KNOWN_LOCATIONS
            },
            "zones": [zone.name for zone in self.zones],
            "max_column_height": int(heights.max()),
            "blocks": int(heights.sum(dtype=np.int64)),
        }


def load_map(path: Union[str, Path]) -> Map:
    """
    Read and decode a map file.

    Args:
        path: Path to a .cmp file

    Returns:
        Decoded Map

    Raises:
        AssetIOError: If the file cannot be read
        DecodeError: If the contents are malformed
    """
    path = Path(path)
    logger.info("Loading map %s", path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AssetIOError(str(path), e.strerror or str(e)) from e
    return decode_map(data)


def decode_map(data: bytes) -> Map:
    """
    Decode a whole map file held in memory.

    Raises:
        DecodeError: On any malformed section; nothing partial is returned
    """
    cur = ByteCursor(data)
    header = MapHeader(*cur.read_struct(MAP_HEADER))
    logger.debug("Map header: %s", header)

    base = read_base(cur)
    columns = read_column_table(cur, header.column_size)
    blocks = read_block_pool(cur, header.block_size)
    objects = read_objects(cur, header.object_size)
    routes = read_routes(cur, header.route_size)
    locations = read_locations(cur)
    zones = read_zones(cur, header.zone_size)

    grid = ColumnDecompressor(base, columns, blocks).decompress()

    logger.info(
        "Decoded map: %d blocks in pool, %d objects, %d routes, %d zones",
        len(blocks), len(objects), len(routes), len(zones),
    )
    return Map(
        header=header,
        columns=grid,
        objects=tuple(objects),
        routes=tuple(routes),
        locations=locations,
        zones=tuple(zones),
    )


def read_base(cur: ByteCursor) -> np.ndarray:
    """Read the 256x256 base grid as an array indexed [y, x]."""
    return cur.read_array("<u4", GRID_SIZE * GRID_SIZE).reshape(GRID_SIZE, GRID_SIZE)


def _skip_tail(cur: ByteCursor, size: int, record_size: int) -> None:
    # bytes after the last whole record still belong to the section
    cur.skip(size % record_size)


def read_column_table(cur: ByteCursor, size: int) -> np.ndarray:
    columns = cur.read_array("<u2", record_count(size, 2))
    _skip_tail(cur, size, 2)
    return columns


def read_block_pool(cur: ByteCursor, size: int) -> list:
    blocks = read_records(cur, BLOCK_RECORD, record_count(size, BLOCK_SIZE), Block)
    _skip_tail(cur, size, BLOCK_SIZE)
    return blocks


def read_objects(cur: ByteCursor, size: int) -> list:
    objects = read_records(cur, OBJECT_RECORD, record_count(size, OBJECT_SIZE), MapObject)
    _skip_tail(cur, size, OBJECT_SIZE)
    return objects


def _read_position(cur: ByteCursor) -> Position:
    return Position(*cur.read_exact(POSITION_SIZE))


def _read_route(cur: ByteCursor, end: int) -> Route:
    require(cur, 2, end, "routes")
    count = cur.read_u8()
    route_type = cur.read_u8()
    require(cur, count * POSITION_SIZE, end, "routes")
    points = tuple(_read_position(cur) for _ in range(count))
    return Route(route_type=route_type, points=points)


def read_routes(cur: ByteCursor, size: int) -> list:
    return read_bounded(cur, size, _read_route, "routes")


def read_locations(cur: ByteCursor) -> Mapping[LocationType, Tuple[Location, ...]]:
    """
    Read the fixed location table.

    Only police stations, hospitals and fire stations are kept; the other
    slots are read and dropped.
    """
    found: Dict[LocationType, list] = {kind: [] for kind in _KNOWN_LOCATIONS}
    for slot in range(LOCATION_SLOTS):
        position = _read_position(cur)
        kind = LocationType.from_slot(slot)
        if kind is LocationType.UNKNOWN:
            continue
        found[kind].append(Location(location_type=kind, position=position))
    return MappingProxyType({kind: tuple(items) for kind, items in found.items()})


def decode_zone_name(raw: bytes, offset: int) -> str:
    """Decode a NUL-padded zone name. The whole field must be valid UTF-8."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8Error(offset, raw) from e
    return text.split("\x00", 1)[0]


def _read_zone(cur: ByteCursor, end: int) -> Optional[Zone]:
    require(cur, ZONE_RECORD_SIZE, end, "zones")
    area = Rect(*cur.read_exact(4))
    sample = cur.read_u8()
    name_offset = cur.tell()
    name = decode_zone_name(cur.read_exact(ZONE_NAME_SIZE), name_offset)
    if area.is_empty:
        return None
    return Zone(area=area, sample=sample, name=name)


def read_zones(cur: ByteCursor, size: int) -> list:
    return read_bounded(cur, size, _read_zone, "zones")
