"""libpix.asset

The Model aggregate: one descriptor + one geometry file, loaded by base
path (``/vehicle/truck/cab`` for ``cab.pmd`` + ``cab.pmg``).
"""

from __future__ import annotations

import logging
import posixpath
from typing import List, Optional

from .collaborators import COLLISION_EXT, PREFAB_EXT, Collaborator, CollaboratorFactory
from .descriptor import read_descriptor
from .errors import CorruptGeometry, PixError
from .fs import FileSystem
from .model import Bone, Locator, Look, Part, Piece, Variant
from .pmg import read_geometry

_log = logging.getLogger("libpix.asset")


class Model:
    def __init__(
        self,
        fs: FileSystem,
        collision_factory: Optional[CollaboratorFactory] = None,
        prefab_factory: Optional[CollaboratorFactory] = None,
    ):
        self.fs = fs
        self.collision_factory = collision_factory
        self.prefab_factory = prefab_factory
        self.destroy()

    def __repr__(self) -> str:
        state = "loaded" if self.loaded else "empty"
        return f"<Model {self.file_path or '?'} {state}>"

    # -----------------------------
    # Lifecycle
    # -----------------------------

    def destroy(self) -> None:
        self.bones: List[Bone] = []
        self.locators: List[Locator] = []
        self.parts: List[Part] = []
        self.pieces: List[Piece] = []
        self.looks: List[Look] = []
        self.variants: List[Variant] = []
        self.material_count = 0
        self.geometry_version = 0

        self.collision: Optional[Collaborator] = None
        self.prefab: Optional[Collaborator] = None

        self.loaded = False
        self.file_path = ""
        self.file_name = ""
        self.directory = ""

    def load(self, file_path: str) -> bool:
        try:
            self.load_or_raise(file_path)
        except PixError as e:
            _log.error("Failed to load model \"%s\": %s", file_path, e)
            return False
        return True

    def load_or_raise(self, file_path: str) -> None:
        if self.loaded:
            self.destroy()

        self.file_path = file_path
        self.directory = posixpath.dirname(file_path)
        self.file_name = posixpath.basename(file_path)

        desc = read_descriptor(self.fs, file_path, self.directory)
        self.material_count = desc.material_count
        self.looks = desc.looks
        self.variants = desc.variants

        geo = read_geometry(self.fs, file_path)
        self.geometry_version = geo.version
        self.bones = geo.bones
        self.parts = geo.parts
        self.locators = geo.locators
        self.pieces = geo.pieces

        if desc.part_count != len(self.parts):
            raise CorruptGeometry(
                f"Descriptor declares {desc.part_count} parts but geometry has {len(self.parts)}",
                path=file_path + ".pmg",
            )

        self.prefab = self._load_collaborator(PREFAB_EXT, self.prefab_factory, "prefab")
        self.collision = self._load_collaborator(COLLISION_EXT, self.collision_factory, "collision")

        self.loaded = True
        _log.debug("%s: loaded (%d vertices, %d triangles)", file_path, self.vertex_count, self.triangle_count)

    def _load_collaborator(
        self, ext: str, factory: Optional[CollaboratorFactory], what: str
    ) -> Optional[Collaborator]:
        if not self.fs.exists(self.file_path + ext):
            return None
        if factory is None:
            _log.debug("%s: %s file present but no %s loader configured", self.file_path, ext, what)
            return None
        obj = factory()
        try:
            ok = obj.load(self.file_path)
        except (PixError, OSError) as e:
            _log.warning("%s: %s load failed: %s", self.file_path, what, e)
            ok = False
        if not ok:
            _log.warning("%s: %s could not be loaded; continuing without it", self.file_path, what)
            return None
        return obj

    # -----------------------------
    # Derived counters
    # -----------------------------

    @property
    def vertex_count(self) -> int:
        return sum(len(p.vertices) for p in self.pieces)

    @property
    def triangle_count(self) -> int:
        return sum(len(p.triangles) for p in self.pieces)

    @property
    def skin_vertex_count(self) -> int:
        return sum(len(p.vertices) for p in self.pieces if p.bones > 0)

    # -----------------------------
    # Lookups
    # -----------------------------

    def bone(self, index: int) -> Bone:
        if not 0 <= index < len(self.bones):
            raise IndexError(f"Bone index {index} out of range ({len(self.bones)} bones)")
        return self.bones[index]

    def bone_by_name(self, name: str) -> Optional[Bone]:
        return next((b for b in self.bones if b.name == name), None)

    def part_of(self, index: int) -> Optional[Part]:
        return self.parts[index] if 0 <= index < len(self.parts) else None
