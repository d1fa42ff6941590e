"""libpix.writer

Text containers produced from a loaded Model:

  - ``.pim``: geometry (materials, pieces and their streams, parts,
    locators, bone names, skin weights)
  - ``.pit``: traits (looks and variants)
  - ``.pis``: skeleton (bone transforms)

``encode_*`` are pure functions of the model. ``save_to_*`` write one
container each and report success independently, so a failure in one
never stops the others.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from . import __version__
from .errors import PixError
from .fs import FileSystem
from .model import MAX_BONES, Piece
from .textfmt import EOL, TAB, fmt_float, fmt_vec

if TYPE_CHECKING:
    from .asset import Model

_log = logging.getLogger("libpix.writer")

SOURCE_STRING = f"libpix {__version__}"

PIM_FORMAT_VERSION = 5
PIT_FORMAT_VERSION = 1
PIS_FORMAT_VERSION = 1


def _header(format_version: int, kind: str, name: str) -> str:
    return (
        "Header {" + EOL
        + TAB + f"FormatVersion: {format_version}" + EOL
        + TAB + f"Source: \"{SOURCE_STRING}\"" + EOL
        + TAB + f"Type: \"{kind}\"" + EOL
        + TAB + f"Name: \"{name}\"" + EOL
        + "}" + EOL
    )


def _block(name: str, fields: List[str]) -> str:
    return name + " {" + EOL + "".join(TAB + f + EOL for f in fields) + "}" + EOL


# -----------------------------
# .pim
# -----------------------------

def _stream(out: List[str], fmt: str, tag: str, rows: List[str], extra: Optional[List[str]] = None) -> None:
    out.append(TAB + "Stream {" + EOL)
    out.append(TAB + TAB + f"Format: {fmt}" + EOL)
    out.append(TAB + TAB + f"Tag: \"{tag}\"" + EOL)
    for line in extra or ():
        out.append(TAB + TAB + line + EOL)
    for j, row in enumerate(rows):
        out.append(TAB + TAB + "%-5i( %s )" % (j, row) + EOL)
    out.append(TAB + "}" + EOL)


def _piece(out: List[str], piece: Piece) -> None:
    out.append("Piece {" + EOL)
    out.append(TAB + f"Index: {piece.index}" + EOL)
    out.append(TAB + f"Material: {piece.material}" + EOL)
    out.append(TAB + f"VertexCount: {len(piece.vertices)}" + EOL)
    out.append(TAB + f"TriangleCount: {len(piece.triangles)}" + EOL)
    out.append(TAB + f"StreamCount: {piece.stream_count}" + EOL)

    verts = piece.vertices
    if piece.position:
        _stream(out, "FLOAT3", "_POSITION", [fmt_vec(v.position) for v in verts])
    if piece.normal:
        _stream(out, "FLOAT3", "_NORMAL", [fmt_vec(v.normal) for v in verts])
    if piece.tangent:
        _stream(out, "FLOAT4", "_TANGENT", [fmt_vec(v.tangent) for v in verts])
    if piece.texcoord:
        for ch in range(piece.texcoord_count):
            aliases = piece.texcoords_for(ch)
            _stream(out, "FLOAT2", f"_UV{ch}", [fmt_vec(v.texcoords[ch]) for v in verts], extra=[
                f"AliasCount: {len(aliases)}",
                "Aliases: " + "".join(f"\"_TEXCOORD{t}\" " for t in aliases),
            ])
    if piece.color:
        _stream(out, "FLOAT4", "_RGBA", [fmt_vec(v.color) for v in verts])
    if piece.color2:
        _stream(out, "FLOAT4", "_RGBA2", [fmt_vec(v.color2) for v in verts])

    out.append(TAB + "Triangles {" + EOL)
    for j, tri in enumerate(piece.triangles):
        out.append(TAB + TAB + "%-5i( %-5i %-5i %-5i )" % (j, tri.a[0], tri.a[1], tri.a[2]) + EOL)
    out.append(TAB + "}" + EOL)
    out.append("}" + EOL)


def _skin(out: List[str], model: "Model") -> None:
    items: List[str] = []
    total_weights = 0
    for piece in model.pieces:
        if piece.bones == 0:
            continue
        slots = min(piece.bones, MAX_BONES)
        for j, vert in enumerate(piece.vertices):
            pairs = [(vert.bone_indices[k], vert.bone_weights[k]) for k in range(slots) if vert.bone_weights[k] != 0]
            total_weights += len(pairs)
            line = (
                TAB + TAB + "%-6i( ( %s )" % (len(items), fmt_vec(vert.position)) + EOL
                + TAB + TAB + TAB + TAB + "Weights: %-6i " % len(pairs)
                + "".join("%-4i %s " % (idx, fmt_float(w / 255.0)) for idx, w in pairs) + EOL
                # One clone per vertex: the vertex itself.
                + TAB + TAB + TAB + TAB + "Clones: %-6i %-4i %-6i" % (1, piece.index, j) + EOL
                + TAB + TAB + "      )" + EOL
            )
            items.append(line)

    out.append("Skin {" + EOL)
    out.append(TAB + "StreamCount: 1" + EOL)
    out.append(TAB + "SkinStream {" + EOL)
    out.append(TAB + TAB + "Format: FLOAT3" + EOL)
    out.append(TAB + TAB + "Tag: \"_POSITION\"" + EOL)
    out.append(TAB + TAB + f"ItemCount: {len(items)}" + EOL)
    out.append(TAB + TAB + f"TotalWeightCount: {total_weights}" + EOL)
    out.append(TAB + TAB + f"TotalCloneCount: {len(items)}" + EOL)
    out.extend(items)
    out.append(TAB + "}" + EOL)
    out.append("}" + EOL)


def encode_pim(model: "Model") -> str:
    out: List[str] = [_header(PIM_FORMAT_VERSION, "Model", model.file_name)]
    out.append(_block("Global", [
        f"VertexCount: {model.vertex_count}",
        f"TriangleCount: {model.triangle_count}",
        f"MaterialCount: {model.material_count}",
        f"PieceCount: {len(model.pieces)}",
        f"PartCount: {len(model.parts)}",
        f"BoneCount: {len(model.bones)}",
        f"LocatorCount: {len(model.locators)}",
        f"Skeleton: \"{model.file_name}.pis\"",
    ]))

    if model.looks:
        for material in model.looks[0].materials[: model.material_count]:
            out.append(material.to_declaration())

    for piece in model.pieces:
        _piece(out, piece)

    for part in model.parts:
        out.append(_block("Part", [
            f"Name: \"{part.name}\"",
            f"PieceCount: {part.piece_count}",
            f"LocatorCount: {part.locator_count}",
            "Pieces: " + "".join(f"{i} " for i in part.pieces),
            "Locators: " + "".join(f"{i} " for i in part.locators),
        ]))

    for loc in model.locators:
        fields = [f"Name: \"{loc.name}\""]
        if loc.hookup:
            fields.append(f"Hookup: \"{loc.hookup}\"")
        fields += [
            f"Index: {loc.index}",
            f"Position: ( {fmt_vec(loc.position)} )",
            f"Rotation: ( {fmt_vec(loc.rotation)} )",
            f"Scale: ( {fmt_vec(loc.scale)} )",
        ]
        out.append(_block("Locator", fields))

    if model.bones:
        out.append(_block("Bones", ["%-5i( \"%s\" )" % (i, b.name) for i, b in enumerate(model.bones)]))

    if model.skin_vertex_count > 0:
        _skin(out, model)

    return "".join(out)


# -----------------------------
# .pit
# -----------------------------

def encode_pit(model: "Model") -> str:
    out: List[str] = [_header(PIT_FORMAT_VERSION, "Trait", model.file_name)]
    out.append(_block("Global", [
        f"LookCount: {len(model.looks)}",
        f"VariantCount: {len(model.variants)}",
        f"PartCount: {len(model.parts)}",
        f"MaterialCount: {model.material_count}",
    ]))

    for look in model.looks:
        out.append("Look {" + EOL)
        out.append(TAB + f"Name: \"{look.name}\"" + EOL)
        for material in look.materials:
            out.append(material.to_definition(TAB))
        out.append("}" + EOL)

    for variant in model.variants:
        out.append("Variant {" + EOL)
        out.append(TAB + f"Name: \"{variant.name}\"" + EOL)
        for vpart in variant.parts:
            part = model.part_of(vpart.part_index)
            out.append(TAB + "Part {" + EOL)
            out.append(TAB + TAB + f"Name: \"{part.name if part else ''}\"" + EOL)
            out.append(TAB + TAB + f"AttributeCount: {len(vpart.attributes)}" + EOL)
            for attr in vpart.attributes:
                p = TAB + TAB
                out.append(p + "Attribute {" + EOL)
                out.append(p + TAB + f"Format: {attr.format_name}" + EOL)
                out.append(p + TAB + f"Tag: \"{attr.name}\"" + EOL)
                out.append(p + TAB + f"Value: ( {attr.value} )" + EOL)
                out.append(p + "}" + EOL)
            out.append(TAB + "}" + EOL)
        out.append("}" + EOL)

    return "".join(out)


# -----------------------------
# .pis
# -----------------------------

def encode_pis(model: "Model") -> str:
    out: List[str] = [_header(PIS_FORMAT_VERSION, "Skeleton", model.file_name)]
    out.append(_block("Global", [f"BoneCount: {len(model.bones)}"]))

    out.append("Bones {" + EOL)
    for i, bone in enumerate(model.bones):
        parent = model.bones[bone.parent].name if bone.parent != -1 else ""
        m = bone.transformation
        rows = ["  ".join(fmt_float(m[c][r]) for c in range(4)) for r in range(4)]
        out.append(TAB + "%-5i ( Name:  \"%s\"" % (i, bone.name) + EOL)
        out.append(TAB + TAB + f"   Parent: \"{parent}\"" + EOL)
        out.append(TAB + TAB + f"   Matrix: ( {rows[0]}" + EOL)
        out.append(TAB + TAB + f"             {rows[1]}" + EOL)
        out.append(TAB + TAB + f"             {rows[2]}" + EOL)
        out.append(TAB + TAB + f"             {rows[3]} )" + EOL)
        out.append(TAB + "  )" + EOL)
    out.append("}" + EOL)
    return "".join(out)


# -----------------------------
# Saving
# -----------------------------

def _save(model: "Model", export_fs: FileSystem, ext: str, encode: Callable[["Model"], str]) -> bool:
    path = model.file_path + ext
    try:
        text = encode(model)
    except (ValueError, OverflowError, PixError) as e:
        _log.error("Cannot encode \"%s\": %s", path, e)
        return False
    try:
        with export_fs.open_write(path) as f:
            f.write(text)
    except OSError as e:
        _log.error("Cannot open file: \"%s\"! %s", path, e.strerror or e)
        return False
    return True


def save_to_pim(model: "Model", export_fs: FileSystem) -> bool:
    return _save(model, export_fs, ".pim", encode_pim)


def save_to_pit(model: "Model", export_fs: FileSystem) -> bool:
    return _save(model, export_fs, ".pit", encode_pit)


def save_to_pis(model: "Model", export_fs: FileSystem) -> bool:
    if not model.bones:
        return False
    return _save(model, export_fs, ".pis", encode_pis)


def _save_collaborator(model: "Model", export_fs: FileSystem, what: str) -> bool:
    obj = getattr(model, what)
    if obj is None:
        return False
    try:
        return bool(obj.save(export_fs, model.file_path))
    except (PixError, OSError) as e:
        _log.error("%s: %s export failed: %s", model.file_path, what, e)
        return False


def save_to_mid_format(model: "Model", export_fs: FileSystem) -> Dict[str, bool]:
    result = {
        "pim": save_to_pim(model, export_fs),
        "pit": save_to_pit(model, export_fs),
        "pis": save_to_pis(model, export_fs),
        "pic": _save_collaborator(model, export_fs, "collision"),
        "pip": _save_collaborator(model, export_fs, "prefab"),
    }

    def state(x: bool) -> str:
        return "yes" if x else "no"

    _log.info(
        "%s: %s. vertices: %d materials: %d",
        model.file_name,
        " ".join(f"{k}:{state(v)}" for k, v in result.items()),
        model.vertex_count,
        model.material_count,
    )
    return result
