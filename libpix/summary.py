from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .asset import Model


# -----------------------------
# High-level, stable DTOs used by the CLI summary
# -----------------------------

@dataclass
class PixMaterial:
    alias: str
    effect: str
    texture: Optional[str] = None


@dataclass
class PixPieceInfo:
    index: int
    material: int
    vertices: int
    triangles: int
    streams: List[str]
    bones: int


@dataclass
class PixSummary:
    path: str
    geometry_version_hex: str
    vertex_count: int
    triangle_count: int
    skin_vertex_count: int
    bone_count: int
    locator_count: int
    part_count: int
    looks: List[str]
    variants: List[str]
    materials: List[PixMaterial]
    pieces: List[PixPieceInfo]
    has_collision: bool
    has_prefab: bool


def _stream_tags(p) -> List[str]:
    tags = []
    if p.position:
        tags.append("_POSITION")
    if p.normal:
        tags.append("_NORMAL")
    if p.tangent:
        tags.append("_TANGENT")
    if p.texcoord:
        tags.extend(f"_UV{i}" for i in range(p.texcoord_count))
    if p.color:
        tags.append("_RGBA")
    if p.color2:
        tags.append("_RGBA2")
    return tags


def summarize_model(model: Model) -> PixSummary:
    materials: List[PixMaterial] = []
    if model.looks:
        for m in model.looks[0].materials:
            tex = m.textures[0].path if m.textures else None
            materials.append(PixMaterial(alias=m.alias, effect=m.effect, texture=tex))

    pieces = [
        PixPieceInfo(
            index=p.index,
            material=p.material,
            vertices=len(p.vertices),
            triangles=len(p.triangles),
            streams=_stream_tags(p),
            bones=p.bones,
        )
        for p in model.pieces
    ]

    return PixSummary(
        path=model.file_path,
        geometry_version_hex=f"0x{model.geometry_version:02X}",
        vertex_count=model.vertex_count,
        triangle_count=model.triangle_count,
        skin_vertex_count=model.skin_vertex_count,
        bone_count=len(model.bones),
        locator_count=len(model.locators),
        part_count=len(model.parts),
        looks=[look.name for look in model.looks],
        variants=[v.name for v in model.variants],
        materials=materials,
        pieces=pieces,
        has_collision=model.collision is not None,
        has_prefab=model.prefab is not None,
    )
