from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple, Union

from .material import Material

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]
Mat4 = Tuple[Tuple[float, float, float, float], ...]

MAX_BONES = 8
MAX_TEXCOORDS = 8

_ZERO2: Vec2 = (0.0, 0.0)
_ZERO3: Vec3 = (0.0, 0.0, 0.0)
_ZERO4: Quat = (0.0, 0.0, 0.0, 0.0)
IDENTITY: Mat4 = (
    (1.0, 0.0, 0.0, 0.0),
    (0.0, 1.0, 0.0, 0.0),
    (0.0, 0.0, 1.0, 0.0),
    (0.0, 0.0, 0.0, 1.0),
)


# -----------------------------
# Geometry (.pmg)
# -----------------------------

@dataclass
class Bone:
    index: int
    name: str
    parent: int = -1
    # Column-major, as stored: transformation[column][row].
    transformation: Mat4 = IDENTITY
    transformation_reversed: Mat4 = IDENTITY
    stretch: Quat = _ZERO4
    rotation: Quat = _ZERO4
    translation: Vec3 = _ZERO3
    scale: Vec3 = _ZERO3
    sign_of_determinant: float = 1.0


@dataclass
class Locator:
    index: int
    name: str
    hookup: str = ""
    position: Vec3 = _ZERO3
    rotation: Quat = _ZERO4
    scale: Vec3 = _ZERO3


@dataclass
class Part:
    name: str
    piece_index: int = 0
    piece_count: int = 0
    locator_index: int = 0
    locator_count: int = 0

    @property
    def pieces(self) -> range:
        return range(self.piece_index, self.piece_index + self.piece_count)

    @property
    def locators(self) -> range:
        return range(self.locator_index, self.locator_index + self.locator_count)


@dataclass
class Vertex:
    position: Vec3 = _ZERO3
    normal: Vec3 = _ZERO3
    tangent: Quat = _ZERO4  # w, x, y, z
    color: Quat = _ZERO4
    color2: Quat = _ZERO4
    texcoords: List[Vec2] = field(default_factory=lambda: [_ZERO2] * MAX_TEXCOORDS)
    bone_indices: List[int] = field(default_factory=lambda: [-1] * MAX_BONES)
    bone_weights: List[int] = field(default_factory=lambda: [0] * MAX_BONES)  # raw bytes, 0..255


@dataclass
class Triangle:
    a: Tuple[int, int, int]


@dataclass
class Piece:
    index: int
    material: int = 0
    bones: int = 0
    texcoord_mask: int = 0
    texcoord_count: int = 0
    stream_count: int = 0

    position: bool = False
    normal: bool = False
    tangent: bool = False
    texcoord: bool = False
    color: bool = False
    color2: bool = False

    vertices: List[Vertex] = field(default_factory=list)
    triangles: List[Triangle] = field(default_factory=list)

    @property
    def skinned(self) -> bool:
        return self.bones > 0

    def texcoords_for(self, channel: int) -> List[int]:
        """Texcoord slots whose nibble in texcoord_mask selects ``channel``."""
        return [i for i in range(MAX_TEXCOORDS) if ((self.texcoord_mask >> (i * 4)) & 0xF) == channel]


@dataclass
class GeometryData:
    """Everything a geometry decoder produces, in file order."""

    version: int
    bones: List[Bone] = field(default_factory=list)
    parts: List[Part] = field(default_factory=list)
    locators: List[Locator] = field(default_factory=list)
    pieces: List[Piece] = field(default_factory=list)


# -----------------------------
# Descriptor (.pmd)
# -----------------------------

class AttributeType(IntEnum):
    INT = 0


@dataclass
class Attribute:
    name: str
    type: AttributeType = AttributeType.INT
    value: int = 0

    @property
    def format_name(self) -> str:
        return self.type.name if isinstance(self.type, AttributeType) else "UNKNOWN"


@dataclass
class VariantPart:
    # Back-reference into Model.parts; the descriptor is decoded before the
    # geometry, so the Part itself is resolved lazily by index.
    part_index: int
    attributes: List[Attribute] = field(default_factory=list)

    def __getitem__(self, key: Union[int, str]) -> Attribute:
        if isinstance(key, int):
            return self.attributes[key]
        for attr in self.attributes:
            if attr.name == key:
                return attr
        raise KeyError(key)


@dataclass
class Variant:
    name: str
    parts: List[VariantPart] = field(default_factory=list)

    def __getitem__(self, index: int) -> VariantPart:
        return self.parts[index]


class AliasTable:
    """Material aliases keyed by slot. Built from look 0, shared by every look."""

    def __init__(self) -> None:
        self._aliases: Dict[int, str] = {}

    def __contains__(self, slot: int) -> bool:
        return slot in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)

    def get(self, slot: int) -> Optional[str]:
        return self._aliases.get(slot)

    def set(self, slot: int, alias: str) -> None:
        self._aliases[slot] = alias


@dataclass
class Look:
    name: str
    materials: List[Material] = field(default_factory=list)
