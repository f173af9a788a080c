"""
Record types stored in a style file and the readers for each section.

Fixed-size tables (object info, sprite numbers, palette index) are read by
record count. Car info and sprite info are variable-length and are read
until their section's byte size is consumed.
"""

import logging
import struct
from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

import numpy as np

from cmpstyle.cursor import FIXED_ONE, ByteCursor, read_bounded, read_records, record_count, require

logger = logging.getLogger(__name__)


# Animations

class AreaType(IntEnum):
    SIDE = 0
    LID = 1

    @classmethod
    def from_code(cls, code: int) -> "AreaType":
        return cls.SIDE if code == 0 else cls.LID


@dataclass(frozen=True)
class Animation:
    """A block face animation. Frames refer to aux faces."""
    block: int
    area: AreaType
    speed: int  # game ticks per frame
    frames: Tuple[int, ...]


def read_animations(cur: ByteCursor, end: int) -> List[Animation]:
    if cur.tell() == end:
        return []
    require(cur, 1, end, "animations")
    count = cur.read_u8()
    anims = []
    for _ in range(count):
        require(cur, 4, end, "animations")
        block = cur.read_u8()
        area = AreaType.from_code(cur.read_u8())
        speed = cur.read_u8()
        frame_count = cur.read_u8()
        require(cur, frame_count, end, "animations")
        frames = tuple(cur.read_exact(frame_count))
        anims.append(Animation(block=block, area=area, speed=speed, frames=frames))
    return anims


# Colour tables

PALETTE_COLORS = 256
PALETTES_PER_PAGE = 64
CLUT_PAGE_SIZE = PALETTE_COLORS * PALETTES_PER_PAGE * 4


@dataclass(frozen=True)
class Clut:
    """
    The paged colour look-up table section.

    Each 64 KiB page holds 64 palettes of 256 BGRA colours, interleaved so
    that entry p of the page is colour p // 64 of palette p % 64.
    `sub_sizes` are the tile, sprite, new car and font CLUT byte sizes.
    """
    data: np.ndarray = field(repr=False)
    sub_sizes: Tuple[int, int, int, int] = (0, 0, 0, 0)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def page_count(self) -> int:
        return len(self.data) // CLUT_PAGE_SIZE

    @property
    def palette_count(self) -> int:
        return self.page_count * PALETTES_PER_PAGE

    def palette(self, n: int) -> np.ndarray:
        """
        Palette `n` as a read-only (256, 4) uint8 RGBA array.

        Raises:
            IndexError: If the palette is not in the table
        """
        if not 0 <= n < self.palette_count:
            raise IndexError(f"Palette {n} out of range (0..{self.palette_count - 1})")
        page, slot = divmod(n, PALETTES_PER_PAGE)
        raw = self.data[page * CLUT_PAGE_SIZE:(page + 1) * CLUT_PAGE_SIZE]
        bgra = raw.reshape(PALETTE_COLORS, PALETTES_PER_PAGE, 4)[:, slot, :]
        rgba = bgra[:, [2, 1, 0, 3]]
        rgba.flags.writeable = False
        return rgba

    def _sub_range(self, index: int) -> np.ndarray:
        start = sum(self.sub_sizes[:index])
        return self.data[start:start + self.sub_sizes[index]]

    @property
    def tile_cluts(self) -> np.ndarray:
        return self._sub_range(0)

    @property
    def sprite_cluts(self) -> np.ndarray:
        return self._sub_range(1)

    @property
    def newcar_cluts(self) -> np.ndarray:
        return self._sub_range(2)

    @property
    def font_cluts(self) -> np.ndarray:
        return self._sub_range(3)


@dataclass(frozen=True)
class PaletteIndex:
    """Maps tiles (and sprites) to CLUT palette numbers."""
    index: np.ndarray = field(repr=False)

    def __len__(self) -> int:
        return len(self.index)

    def lookup(self, tile: int) -> int:
        return int(self.index[4 * tile])


def read_palette_index(cur: ByteCursor, size: int) -> PaletteIndex:
    return PaletteIndex(cur.read_array("<u2", record_count(size, 2)))


# Object info

class ObjectStatus(Enum):
    NORMAL = 0
    IGNORABLE = 1  # can be driven over
    SMASHABLE = 2  # breaks on landing
    INVISIBLE = 3
    ANIMATION = 5
    CAR_UPGRADE = 6
    HELIPAD = 8
    POWERUP = 9

    @classmethod
    def from_code(cls, code: int) -> "ObjectStatus":
        try:
            return cls(code)
        except ValueError:
            return cls.NORMAL


OBJECT_INFO_RECORD = struct.Struct("<IIIHHHbB")
OBJECT_INFO_SIZE = OBJECT_INFO_RECORD.size  # 20


@dataclass(frozen=True)
class ObjectInfo:
    width: int
    height: int
    depth: int
    sprite_number: int
    weight: int
    aux: int
    status: ObjectStatus
    breaks_into: int


def _object_info(width, height, depth, sprite_number, weight, aux, status, breaks_into):
    return ObjectInfo(
        width=width,
        height=height,
        depth=depth,
        sprite_number=sprite_number,
        weight=weight,
        aux=aux,
        status=ObjectStatus.from_code(status),
        breaks_into=breaks_into,
    )


def read_object_info(cur: ByteCursor, size: int) -> List[ObjectInfo]:
    return read_records(cur, OBJECT_INFO_RECORD, record_count(size, OBJECT_INFO_SIZE), _object_info)


# Car info

class VehicleType(Enum):
    BUS = 0
    JUGGERNAUT_FRONT = 1
    JUGGERNAUT_BACK = 2
    MOTORCYCLE = 3
    CAR = 4
    TRAIN = 8
    UNKNOWN = -1

    @classmethod
    def from_code(cls, code: int) -> "VehicleType":
        if code < 0:
            return cls.UNKNOWN
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class HlsInfo:
    """Hue/lightness/saturation shift for one car remap."""
    hue: int
    lightness: int
    saturation: int


@dataclass(frozen=True)
class Door:
    x: int
    y: int
    object: int  # object number
    delta: int


REMAP_SLOTS = 12
MAX_DOORS = 2

# Everything in a car record before the door list.
CAR_CORE = struct.Struct(
    "<11h"   # width .. handling
    "36h"    # remap24: 12 x (h, l, s)
    "12B"    # remap8
    "4B"     # vehicle_type, model, turning, damageable
    "4H"     # value
    "2b"     # cx, cy
    "i"      # moment
    "7I"     # mass .. front_brake_bias (16.16)
    "3h"     # turn_ratio, drive_wheel_offset, steering_wheel_offset
    "2I"     # back_end_slide_value, handbrake_slide_value (16.16)
    "6B"     # convertible, engine, radio, horn, sound_function, fast_change_flag
)
DOOR_RECORD = struct.Struct("<4h")


@dataclass(frozen=True)
class CarInfo:
    width: int
    height: int
    depth: int
    sprite_number: int  # relative to the first car sprite
    weight: int
    max_speed: int
    min_speed: int
    acceleration: int
    braking: int
    grip: int
    handling: int
    remap24: Tuple[HlsInfo, ...]
    remap8: Tuple[int, ...]
    vehicle_type: VehicleType
    model: int
    turning: int
    damageable: int
    value: Tuple[int, ...]  # in $1000s, one per crane
    cx: int
    cy: int
    moment: int
    mass: float
    gear_thrust_ratio: float
    tyre_adhesion_x: float
    tyre_adhesion_y: float
    handbrake_friction: float
    footbrake_friction: float
    front_brake_bias: float
    turn_ratio: int
    drive_wheel_offset: int
    steering_wheel_offset: int
    back_end_slide_value: float
    handbrake_slide_value: float
    convertible: bool
    engine: int
    radio: int
    horn: int
    sound_function: int
    fast_change_flag: int
    doors: Tuple[Door, ...]


def _fixed(raw: int) -> float:
    return raw / FIXED_ONE


def normalize_door_count(count: int) -> int:
    """Door counts above two (or negative) mean no doors."""
    if count > MAX_DOORS or count < 0:
        return 0
    return count


def _read_car(cur: ByteCursor, end: int) -> CarInfo:
    require(cur, CAR_CORE.size + 2, end, "car_info")
    f = cur.read_struct(CAR_CORE)

    raw_doors = cur.read_i16()
    door_count = normalize_door_count(raw_doors)
    if door_count != raw_doors:
        logger.warning(
            "Car at offset %d declares %d doors, treating as none",
            cur.tell() - CAR_CORE.size - 2, raw_doors,
        )
    require(cur, door_count * DOOR_RECORD.size, end, "car_info")
    doors = tuple(Door(*cur.read_struct(DOOR_RECORD)) for _ in range(door_count))

    remap24 = tuple(HlsInfo(*f[11 + 3 * i:14 + 3 * i]) for i in range(REMAP_SLOTS))
    (vehicle_type, model, turning, damageable) = f[59:63]
    fixed = [_fixed(v) for v in f[70:77]]
    back_end, handbrake = (_fixed(v) for v in f[80:82])
    (convertible, engine, radio, horn, sound_function, fast_change_flag) = f[82:88]

    return CarInfo(
        width=f[0],
        height=f[1],
        depth=f[2],
        sprite_number=f[3],
        weight=f[4],
        max_speed=f[5],
        min_speed=f[6],
        acceleration=f[7],
        braking=f[8],
        grip=f[9],
        handling=f[10],
        remap24=remap24,
        remap8=tuple(f[47:59]),
        vehicle_type=VehicleType.from_code(vehicle_type),
        model=model,
        turning=turning,
        damageable=damageable,
        value=tuple(f[63:67]),
        cx=f[67],
        cy=f[68],
        moment=f[69],
        mass=fixed[0],
        gear_thrust_ratio=fixed[1],
        tyre_adhesion_x=fixed[2],
        tyre_adhesion_y=fixed[3],
        handbrake_friction=fixed[4],
        footbrake_friction=fixed[5],
        front_brake_bias=fixed[6],
        turn_ratio=f[77],
        drive_wheel_offset=f[78],
        steering_wheel_offset=f[79],
        back_end_slide_value=back_end,
        handbrake_slide_value=handbrake,
        convertible=convertible == 1,
        engine=engine,
        radio=radio,
        horn=horn,
        sound_function=sound_function,
        fast_change_flag=fast_change_flag,
        doors=doors,
    )


def read_car_info(cur: ByteCursor, size: int) -> List[CarInfo]:
    return read_bounded(cur, size, _read_car, "car_info")


# Sprite info

SPRITE_PREFIX = struct.Struct("<BBBBHHBBH")
DELTA_RECORD = struct.Struct("<HI")


@dataclass(frozen=True)
class Delta:
    size: int
    offset: int


@dataclass(frozen=True)
class SpriteInfo:
    width: int
    height: int
    scaling_flag: int
    size: int
    clut: int
    x: int
    y: int
    page: int
    deltas: Tuple[Delta, ...]


def _read_sprite(cur: ByteCursor, end: int) -> SpriteInfo:
    require(cur, SPRITE_PREFIX.size, end, "sprite_info")
    (width, height, delta_count, scaling_flag,
     size, clut, x, y, page) = cur.read_struct(SPRITE_PREFIX)
    require(cur, delta_count * DELTA_RECORD.size, end, "sprite_info")
    deltas = tuple(Delta(*cur.read_struct(DELTA_RECORD)) for _ in range(delta_count))
    return SpriteInfo(
        width=width,
        height=height,
        scaling_flag=scaling_flag,
        size=size,
        clut=clut,
        x=x,
        y=y,
        page=page,
        deltas=deltas,
    )


def read_sprite_info(cur: ByteCursor, size: int) -> List[SpriteInfo]:
    return read_bounded(cur, size, _read_sprite, "sprite_info")


# Sprite numbers

SPRITE_NUMBERS_RECORD = struct.Struct("<20H")


@dataclass(frozen=True)
class SpriteNumbers:
    """
    How many sprites of each kind the style holds.

    Sprites are stored grouped by kind in this order, so the running sum of
    the counts gives the first sprite of each group.
    """
    arrow: int
    digits: int
    boat: int
    box: int
    bus: int
    car: int
    object: int
    ped: int
    speedo: int
    tank: int
    traffic_lights: int
    train: int
    trdoors: int
    bike: int
    tram: int
    wbus: int
    wcar: int
    ex: int
    tumcar: int
    tumtruck: int

    def first_sprite(self, kind: str) -> Optional[int]:
        """Index of the first sprite of `kind`, or None if it has none."""
        start = 0
        for f in fields(self):
            count = getattr(self, f.name)
            if f.name == kind:
                return start if count else None
            start += count
        raise KeyError(f"Unknown sprite kind: {kind}")


def read_sprite_numbers(cur: ByteCursor) -> SpriteNumbers:
    return SpriteNumbers(*cur.read_struct(SPRITE_NUMBERS_RECORD))
