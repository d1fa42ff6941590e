"""libpix.geometry

Shared half of the ``.pmg`` geometry decoders.

The 0x13 and 0x14 layouts describe the same things (bones, parts, locators,
pieces) with different record layouts, so each version is a GeometryDecoder
subclass that only knows its own header/piece records and how it stores
bone influences. Everything that builds the output objects lives here.

All offsets in a .pmg file are absolute byte offsets into the file; -1 marks
an absent table or stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, List, Tuple

from .binary import BufferView, record_size
from .errors import CorruptGeometry, UnsupportedVersion
from .model import (
    MAX_BONES,
    MAX_TEXCOORDS,
    Bone,
    GeometryData,
    Locator,
    Part,
    Piece,
    Triangle,
    Vertex,
)
from .token import token_to_string

_log = logging.getLogger("libpix.geometry")

PMG_SIGNATURE = b"gmP"
ABSENT = -1

# u8 version, char[3] signature, piece/part/bone count, weight_width,
# locator count, u64 skeleton hash, center, diameter, bb_min, bb_max,
# followed by ten version-specific i32 offsets/sizes.
PMG_HEADER = "<B3s5iQ3ff3f3f10i"

# name, transformation, transformation_reversed, stretch, rotation,
# translation, scale, sign_of_determinant, parent
PMG_BONE = "<8s16f16f4f4f3f3ffb3x"
PMG_BONE_SIZE = record_size(PMG_BONE)

# name, piece_count, pieces_idx, locator_count, locators_idx
PMG_PART = "<8s4i"
PMG_PART_SIZE = record_size(PMG_PART)

# name, position, rotation, scale, hookup offset
PMG_LOCATOR = "<8s3f4f3fi"
PMG_LOCATOR_SIZE = record_size(PMG_LOCATOR)

# Per-vertex byte sizes of each stream item.
FLOAT3_SIZE = 12
TANGENT_SIZE = 16
FLOAT2_SIZE = 8
COLOR_SIZE = 4
TRIANGLE_SIZE = 6

# (what, first offset, stride, item size)
Span = Tuple[str, int, int, int]


def _columns(values: Tuple[float, ...]) -> Tuple[Tuple[float, float, float, float], ...]:
    return tuple(tuple(values[c * 4 : c * 4 + 4]) for c in range(4))


def _color(rgba: Tuple[int, int, int, int]) -> Tuple[float, float, float, float]:
    # [0, 2] range is what the engine stores; consumers rely on it.
    return tuple(2.0 * c / 255.0 for c in rgba)


@dataclass
class StreamOffsets:
    position: int = ABSENT
    normal: int = ABSENT
    tangent: int = ABSENT
    texcoord: int = ABSENT
    color: int = ABSENT
    color2: int = ABSENT


class GeometryDecoder:
    """Decode one .pmg buffer. Subclasses describe a single file version."""

    VERSION: ClassVar[int] = 0

    def __init__(self, data: bytes, path: str = ""):
        self.b = BufferView(data, path=path, error=CorruptGeometry)
        self.path = path

    # -----------------------------
    # Version hooks
    # -----------------------------

    def header_offsets(self, raw: Tuple) -> None:
        """Store the ten version-specific header fields on self."""
        raise NotImplementedError

    def bone_table(self) -> int:
        raise NotImplementedError

    def part_table(self) -> int:
        raise NotImplementedError

    def locator_table(self) -> int:
        raise NotImplementedError

    def hookup_pool(self) -> Tuple[int, int]:
        """(origin, size) of the pool that locator hookup offsets index."""
        raise NotImplementedError

    def read_pieces(self) -> List[Piece]:
        raise NotImplementedError

    # -----------------------------
    # Driver
    # -----------------------------

    def decode(self) -> GeometryData:
        raw = self.b.unpack(PMG_HEADER, 0, "header")
        version, signature = raw[0], raw[1]
        if version != self.VERSION or signature != PMG_SIGNATURE:
            raise UnsupportedVersion(self.path, (self.VERSION,), version, what="geometry file")

        (self.piece_count, self.part_count, self.bone_count,
         self.weight_width, self.locator_count) = raw[2:7]
        self.skeleton_hash = raw[7]
        self.header_offsets(raw[-10:])

        for what, n in (("piece", self.piece_count), ("part", self.part_count),
                        ("bone", self.bone_count), ("locator", self.locator_count)):
            if n < 0:
                raise CorruptGeometry(f"Negative {what} count {n}", path=self.path)

        geo = GeometryData(version=version)
        geo.bones = self.read_bones()
        geo.parts = self.read_parts()
        geo.locators = self.read_locators()
        geo.pieces = self.read_pieces()
        self.validate(geo)
        _log.debug(
            "%s: v0x%02X %d bones, %d parts, %d locators, %d pieces",
            self.path, version, len(geo.bones), len(geo.parts), len(geo.locators), len(geo.pieces),
        )
        return geo

    def validate(self, geo: GeometryData) -> None:
        for bone in geo.bones:
            if bone.parent != -1 and not 0 <= bone.parent < len(geo.bones):
                raise CorruptGeometry(f"Bone '{bone.name}' has invalid parent {bone.parent}", path=self.path)
        for part in geo.parts:
            if part.piece_index < 0 or part.piece_count < 0 or part.piece_index + part.piece_count > len(geo.pieces):
                raise CorruptGeometry(f"Part '{part.name}' piece range is out of bounds", path=self.path)
            if (part.locator_index < 0 or part.locator_count < 0
                    or part.locator_index + part.locator_count > len(geo.locators)):
                raise CorruptGeometry(f"Part '{part.name}' locator range is out of bounds", path=self.path)

    # -----------------------------
    # Fixed-size tables
    # -----------------------------

    def read_bones(self) -> List[Bone]:
        bones: List[Bone] = []
        base = self.bone_table()
        for i in range(self.bone_count):
            r = self.b.unpack(PMG_BONE, base + i * PMG_BONE_SIZE, "bone")
            bones.append(Bone(
                index=i,
                name=token_to_string(r[0]),
                transformation=_columns(r[1:17]),
                transformation_reversed=_columns(r[17:33]),
                stretch=tuple(r[33:37]),
                rotation=tuple(r[37:41]),
                translation=tuple(r[41:44]),
                scale=tuple(r[44:47]),
                sign_of_determinant=r[47],
                parent=r[48],
            ))
        return bones

    def read_parts(self) -> List[Part]:
        parts: List[Part] = []
        base = self.part_table()
        for i in range(self.part_count):
            name, piece_count, piece_idx, locator_count, locator_idx = self.b.unpack(
                PMG_PART, base + i * PMG_PART_SIZE, "part"
            )
            parts.append(Part(
                name=token_to_string(name),
                piece_index=piece_idx,
                piece_count=piece_count,
                locator_index=locator_idx,
                locator_count=locator_count,
            ))
        return parts

    def read_locators(self) -> List[Locator]:
        locators: List[Locator] = []
        base = self.locator_table()
        pool_origin, pool_size = self.hookup_pool()
        for i in range(self.locator_count):
            r = self.b.unpack(PMG_LOCATOR, base + i * PMG_LOCATOR_SIZE, "locator")
            locators.append(Locator(
                index=i,
                name=token_to_string(r[0]),
                position=tuple(r[1:4]),
                rotation=tuple(r[4:8]),
                scale=tuple(r[8:11]),
                hookup=self.read_hookup(r[11], pool_origin, pool_size),
            ))
        return locators

    def read_hookup(self, offset: int, pool_origin: int, pool_size: int) -> str:
        if offset == ABSENT:
            return ""
        if not 0 <= offset <= pool_size:
            raise CorruptGeometry(
                f"Hookup offset {offset} is outside the string pool (size {pool_size})",
                path=self.path, offset=pool_origin + offset,
            )
        # The stored string runs to the end of the pool, not to a terminator.
        raw = self.b.slice(pool_origin + offset, pool_size - offset, "hookup")
        return raw.decode("ascii", errors="replace")

    # -----------------------------
    # Pieces
    # -----------------------------

    def new_piece(self, index: int, material: int, bones: int, verts: int, edges: int,
                  texcoord_mask: int, texcoord_count: int) -> Piece:
        if verts < 0 or edges < 0:
            raise CorruptGeometry(f"Piece {index} has negative vertex/edge count ({verts}/{edges})", path=self.path)
        if bones < 0:
            raise CorruptGeometry(f"Piece {index} has negative bone count {bones}", path=self.path)
        if not 0 <= texcoord_count <= MAX_TEXCOORDS:
            raise CorruptGeometry(
                f"Piece {index} has {texcoord_count} texcoord channels (maximum {MAX_TEXCOORDS})", path=self.path
            )
        return Piece(
            index=index,
            material=material,
            bones=bones,
            texcoord_mask=texcoord_mask,
            texcoord_count=texcoord_count,
            triangles=[],
        )

    def warn_influences(self, where: str, bones: int) -> None:
        if bones > MAX_BONES:
            _log.warning(
                "Bone count in '%s' %s: %d exceeds maximum bone count (%d); extra influences are dropped",
                self.path, where, bones, MAX_BONES,
            )

    @staticmethod
    def layout_streams(piece: Piece, o: StreamOffsets) -> Tuple[int, int]:
        """Set the piece's stream flags; return (static, dynamic) stride bytes.

        Static covers position/normal/tangent, dynamic covers texcoords and
        colors. How the two combine is up to the file version.
        """
        static = dynamic = 0
        if o.position != ABSENT:
            piece.position = True
            piece.stream_count += 1
            static += FLOAT3_SIZE
        if o.normal != ABSENT:
            piece.normal = True
            piece.stream_count += 1
            static += FLOAT3_SIZE
        if o.tangent != ABSENT:
            piece.tangent = True
            piece.stream_count += 1
            static += TANGENT_SIZE
        if o.texcoord != ABSENT:
            piece.texcoord = True
            piece.stream_count += piece.texcoord_count
            dynamic += FLOAT2_SIZE * piece.texcoord_count
        if o.color != ABSENT:
            piece.color = True
            piece.stream_count += 1
            dynamic += COLOR_SIZE
        if o.color2 != ABSENT:
            piece.color2 = True
            piece.stream_count += 1
            dynamic += COLOR_SIZE
        return static, dynamic

    @staticmethod
    def stream_spans(piece: Piece, o: StreamOffsets, static: int, dynamic: int) -> List[Span]:
        spans: List[Span] = []
        if piece.position:
            spans.append(("position", o.position, static, FLOAT3_SIZE))
        if piece.normal:
            spans.append(("normal", o.normal, static, FLOAT3_SIZE))
        if piece.tangent:
            spans.append(("tangent", o.tangent, static, TANGENT_SIZE))
        if piece.texcoord:
            spans.append(("texcoord", o.texcoord, dynamic, FLOAT2_SIZE * piece.texcoord_count))
        if piece.color:
            spans.append(("color", o.color, dynamic, COLOR_SIZE))
        if piece.color2:
            spans.append(("color2", o.color2, dynamic, COLOR_SIZE))
        return spans

    def allocate_vertices(self, piece: Piece, verts: int, spans: List[Span]) -> None:
        # The last record of every stream has to fit before the vertex count
        # from the file is trusted.
        if verts:
            if not spans:
                raise CorruptGeometry(f"Piece {piece.index} has {verts} vertices but no vertex streams", path=self.path)
            for what, ofs, stride, size in spans:
                self.b.check(ofs, stride * (verts - 1) + size, f"piece {piece.index} {what}")
        piece.vertices = [Vertex() for _ in range(verts)]

    def read_vertex(self, piece: Piece, o: StreamOffsets, j: int, static: int, dynamic: int) -> None:
        b = self.b
        vert = piece.vertices[j]
        if piece.position:
            vert.position = b.unpack("<3f", o.position + static * j, "position")
        if piece.normal:
            vert.normal = b.unpack("<3f", o.normal + static * j, "normal")
        if piece.tangent:
            x, y, z, w = b.unpack("<4f", o.tangent + static * j, "tangent")
            vert.tangent = (w, x, y, z)
        if piece.texcoord:
            texcoords = list(vert.texcoords)
            for k in range(piece.texcoord_count):
                texcoords[k] = b.unpack("<2f", o.texcoord + dynamic * j + FLOAT2_SIZE * k, "texcoord")
            vert.texcoords = texcoords
        if piece.color:
            vert.color = _color(b.unpack("<4B", o.color + dynamic * j, "color"))
        if piece.color2:
            vert.color2 = _color(b.unpack("<4B", o.color2 + dynamic * j, "color2"))

    def read_triangles(self, piece: Piece, offset: int, edges: int) -> None:
        count = edges // 3
        if count and offset == ABSENT:
            raise CorruptGeometry(f"Piece {piece.index} has {count} triangles but no index table", path=self.path)
        if count:
            self.b.check(offset, TRIANGLE_SIZE * count, f"piece {piece.index} triangles")
        piece.triangles = [
            Triangle(self.b.unpack("<3H", offset + TRIANGLE_SIZE * t, "triangle")) for t in range(count)
        ]
