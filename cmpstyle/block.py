"""
Map block record.

A block is stored as two bitfields (type_map, type_map_ext) and five face
texture ids. Everything else about a block (its type, slope, lid rotation,
traffic and railway flags) is read out of the bitfields on demand, so the
derived values can never disagree with the raw encoding.

type_map (u16):
- bits 0-3: traffic may drive north / south / west / east
- bits 4-6: block type
- bit 7: flat
- bits 8-13: slope type
- bits 14-15: lid rotation (0, 90, 180, 270 degrees)

type_map_ext (u8):
- bit 0: traffic light
- bit 1: railway station (with bit 2)
- bit 2: railway turn
- bits 3-4: remap index
- bit 5: flip north/south faces
- bit 6: flip east/west faces
- bit 7: railway
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

# type_map, type_map_ext, west, east, north, south, lid
BLOCK_RECORD = struct.Struct("<HBBBBBB")
BLOCK_SIZE = BLOCK_RECORD.size


class BlockType(IntEnum):
    AIR = 0
    WATER = 1
    ROAD = 2
    PAVEMENT = 3
    FIELD = 4
    BUILDING = 5
    UNUSED = 6

    @classmethod
    def from_code(cls, code: int) -> "BlockType":
        if 0 <= code <= 5:
            return cls(code)
        return cls.UNUSED


_LID_ROTATIONS = (0, 90, 180, 270)


@dataclass(frozen=True)
class Block:
    type_map: int
    type_map_ext: int
    west: int
    east: int
    north: int
    south: int
    lid: int

    # type_map

    @property
    def north_allowed(self) -> bool:
        return self.type_map & 0x0001 != 0

    @property
    def south_allowed(self) -> bool:
        return self.type_map & 0x0002 != 0

    @property
    def west_allowed(self) -> bool:
        return self.type_map & 0x0004 != 0

    @property
    def east_allowed(self) -> bool:
        return self.type_map & 0x0008 != 0

    @property
    def block_type(self) -> BlockType:
        return BlockType.from_code((self.type_map >> 4) & 0x7)

    @property
    def is_flat(self) -> bool:
        return self.type_map & 0x0080 != 0

    @property
    def slope_type(self) -> int:
        """Slope type, 0 for none. Values above 44 are unused by the game."""
        return (self.type_map >> 8) & 0x3F

    @property
    def lid_rotation(self) -> int:
        """Lid rotation in degrees."""
        return _LID_ROTATIONS[(self.type_map >> 14) & 0x3]

    # type_map_ext

    @property
    def is_traffic_light(self) -> bool:
        return self.type_map_ext & 0x01 != 0

    @property
    def is_railway_end_turn(self) -> bool:
        return self.type_map_ext & 0x04 != 0

    @property
    def is_railway_start_turn(self) -> bool:
        return self.type_map_ext & 0x05 == 0x05

    @property
    def is_railway_station(self) -> bool:
        return self.type_map_ext & 0x06 == 0x06

    @property
    def is_railway_train(self) -> bool:
        return self.type_map_ext & 0x07 == 0x07

    @property
    def remap_index(self) -> int:
        return (self.type_map_ext >> 3) & 0x3

    @property
    def has_remap(self) -> bool:
        return self.remap_index != 0

    @property
    def flip_north_south(self) -> bool:
        return self.type_map_ext & 0x20 != 0

    @property
    def flip_east_west(self) -> bool:
        return self.type_map_ext & 0x40 != 0

    @property
    def is_railway(self) -> bool:
        return self.type_map_ext & 0x80 != 0

    def faces(self) -> dict:
        """Texture ids keyed by face name."""
        return {
            "west": self.west,
            "east": self.east,
            "north": self.north,
            "south": self.south,
            "lid": self.lid,
        }
