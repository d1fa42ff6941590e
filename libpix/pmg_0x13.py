"""Geometry file version 0x13.

Skinned pieces keep two parallel vertex buffers, one for
position/normal/tangent and one for texcoords/colors, each with its own
stride. Unskinned pieces interleave everything into a single buffer.

Bone influences go through an indirection table: each vertex stores a
16-bit bind index selecting a row of ``bone_count`` entries in separate
bone-index and bone-weight tables.
"""

from __future__ import annotations

from typing import List, Tuple

from .binary import record_size
from .geometry import ABSENT, GeometryDecoder, StreamOffsets
from .model import MAX_BONES, Piece

# edges, verts, uv_mask, uv_channels, bone_count, material,
# center, diameter, bb_min, bb_max,
# position, normal, uv, rgba, rgba2, tangent, triangle,
# anim_bind, anim_bind_bones, anim_bind_bones_weight
PMG_PIECE = "<iiIiii3ff3f3f10i"
PMG_PIECE_SIZE = record_size(PMG_PIECE)

BIND_INDEX_SIZE = 2


class Pmg13Decoder(GeometryDecoder):
    VERSION = 0x13

    def header_offsets(self, raw: Tuple) -> None:
        (self.bone_offset, self.part_offset, self.locator_offset, self.piece_offset,
         self.locator_name_offset, self.locators_name_size,
         self.anim_bind_offset, self.anim_bind_size,
         self.geometry_offset, self.geometry_size) = raw

    def bone_table(self) -> int:
        return self.bone_offset

    def part_table(self) -> int:
        return self.part_offset

    def locator_table(self) -> int:
        return self.locator_offset

    def hookup_pool(self) -> Tuple[int, int]:
        return self.locator_name_offset, self.locators_name_size

    def read_pieces(self) -> List[Piece]:
        pieces: List[Piece] = []
        for i in range(self.piece_count):
            r = self.b.unpack(PMG_PIECE, self.piece_offset + i * PMG_PIECE_SIZE, "piece")
            edges, verts, uv_mask, uv_channels, bone_count, material = r[:6]
            (pos_ofs, nrm_ofs, uv_ofs, rgba_ofs, rgba2_ofs, tan_ofs, tri_ofs,
             bind_ofs, bind_bones_ofs, bind_weights_ofs) = r[-10:]

            piece = self.new_piece(i, material, bone_count, verts, edges, uv_mask, uv_channels)
            self.warn_influences(f"piece {i}", bone_count)

            offsets = StreamOffsets(
                position=pos_ofs, normal=nrm_ofs, tangent=tan_ofs,
                texcoord=uv_ofs, color=rgba_ofs, color2=rgba2_ofs,
            )
            static, dynamic = self.layout_streams(piece, offsets)
            if bone_count == 0:
                dynamic += static
                static = dynamic
            spans = self.stream_spans(piece, offsets, static, dynamic)
            if bind_ofs != ABSENT:
                spans.append(("bind index", bind_ofs, BIND_INDEX_SIZE, BIND_INDEX_SIZE))
            self.allocate_vertices(piece, verts, spans)

            for j in range(verts):
                self.read_vertex(piece, offsets, j, static, dynamic)
                if bind_ofs != ABSENT:
                    self.read_bind(piece, j, bind_ofs, bind_bones_ofs, bind_weights_ofs)

            self.read_triangles(piece, tri_ofs, edges)
            pieces.append(piece)
        return pieces

    def read_bind(self, piece: Piece, j: int, bind_ofs: int, bones_ofs: int, weights_ofs: int) -> None:
        b = self.b
        vert = piece.vertices[j]
        bind = b.scalar("<H", bind_ofs + j * BIND_INDEX_SIZE, "bind index")
        row = bind * piece.bones
        used = min(piece.bones, MAX_BONES)
        indices = [-1] * MAX_BONES
        weights = [0] * MAX_BONES
        for k in range(used):
            indices[k] = b.scalar("<b", bones_ofs + row + k, "bind bone")
            weights[k] = b.scalar("<B", weights_ofs + row + k, "bind weight")
        vert.bone_indices = indices
        vert.bone_weights = weights
