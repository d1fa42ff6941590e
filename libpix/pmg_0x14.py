"""Geometry file version 0x14.

Every piece uses one interleaved vertex buffer. Up to four influences per
vertex are packed as bytes into two 32-bit words (indices, weights) that
sit inside the same vertex record. The influence count is global to the
file (``weight_width``). Locator hookups live in the model-wide string pool.
"""

from __future__ import annotations

from typing import List, Tuple

from .binary import record_size
from .geometry import ABSENT, GeometryDecoder, StreamOffsets
from .model import MAX_BONES, Piece

# edges, verts, texcoord_mask, texcoord_width, material,
# center, diameter, bb_min, bb_max,
# position, normal, texcoord, color, color2, tangent,
# bone_index, bone_weight, index
PMG_PIECE = "<iiIii3ff3f3f9i"
PMG_PIECE_SIZE = record_size(PMG_PIECE)

PACKED_INFLUENCES = 4
INFLUENCE_WORD_SIZE = 4
INFLUENCE_WORDS_SIZE = 2 * INFLUENCE_WORD_SIZE


def _signed_byte(v: int) -> int:
    return v - 0x100 if v & 0x80 else v


class Pmg14Decoder(GeometryDecoder):
    VERSION = 0x14

    def header_offsets(self, raw: Tuple) -> None:
        (self.skeleton_offset, self.parts_offset, self.locators_offset, self.pieces_offset,
         self.string_pool_offset, self.string_pool_size,
         self.vertex_pool_offset, self.vertex_pool_size,
         self.index_pool_offset, self.index_pool_size) = raw

    def bone_table(self) -> int:
        return self.skeleton_offset

    def part_table(self) -> int:
        return self.parts_offset

    def locator_table(self) -> int:
        return self.locators_offset

    def hookup_pool(self) -> Tuple[int, int]:
        return self.string_pool_offset, self.string_pool_size

    def read_pieces(self) -> List[Piece]:
        pieces: List[Piece] = []
        self.warn_influences("weight width", self.weight_width)
        for i in range(self.piece_count):
            r = self.b.unpack(PMG_PIECE, self.pieces_offset + i * PMG_PIECE_SIZE, "piece")
            edges, verts, texcoord_mask, texcoord_width, material = r[:5]
            (pos_ofs, nrm_ofs, tex_ofs, col_ofs, col2_ofs, tan_ofs,
             bone_index_ofs, bone_weight_ofs, index_ofs) = r[-9:]

            piece = self.new_piece(i, material, self.weight_width, verts, edges, texcoord_mask, texcoord_width)

            offsets = StreamOffsets(
                position=pos_ofs, normal=nrm_ofs, tangent=tan_ofs,
                texcoord=tex_ofs, color=col_ofs, color2=col2_ofs,
            )
            static, dynamic = self.layout_streams(piece, offsets)
            stride = static + dynamic
            if bone_index_ofs != ABSENT:
                stride += INFLUENCE_WORDS_SIZE
            skinned = bone_index_ofs != ABSENT and bone_weight_ofs != ABSENT
            spans = self.stream_spans(piece, offsets, stride, stride)
            if skinned:
                spans.append(("bone indices", bone_index_ofs, stride, INFLUENCE_WORD_SIZE))
                spans.append(("bone weights", bone_weight_ofs, stride, INFLUENCE_WORD_SIZE))
            self.allocate_vertices(piece, verts, spans)

            for j in range(verts):
                self.read_vertex(piece, offsets, j, stride, stride)
                if skinned:
                    self.read_packed_influences(piece, j, stride, bone_index_ofs, bone_weight_ofs)

            self.read_triangles(piece, index_ofs, edges)
            pieces.append(piece)
        return pieces

    def read_packed_influences(self, piece: Piece, j: int, stride: int, index_ofs: int, weight_ofs: int) -> None:
        vert = piece.vertices[j]
        indices_word = self.b.scalar("<I", index_ofs + stride * j, "bone indices")
        weights_word = self.b.scalar("<I", weight_ofs + stride * j, "bone weights")
        indices = [-1] * MAX_BONES
        weights = [0] * MAX_BONES
        for k in range(PACKED_INFLUENCES):
            indices[k] = _signed_byte((indices_word >> (8 * k)) & 0xFF)
            weights[k] = (weights_word >> (8 * k)) & 0xFF
        vert.bone_indices = indices
        vert.bone_weights = weights
