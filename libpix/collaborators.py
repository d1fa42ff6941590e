"""Interfaces for the optional sibling containers of a model.

Collision (``.pmc``) and prefab (``.ppd``) data are decoded elsewhere. A
Model only needs to know how to create, load and save them, so callers
pass factories that return objects with this shape.
"""

from __future__ import annotations

from typing import Callable, Protocol

from .fs import FileSystem

COLLISION_EXT = ".pmc"
PREFAB_EXT = ".ppd"


class Collaborator(Protocol):
    def load(self, base_path: str) -> bool: ...

    def save(self, export_fs: FileSystem, file_path: str) -> bool: ...


CollaboratorFactory = Callable[[], Collaborator]
