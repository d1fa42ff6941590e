"""libpix.fs

Virtual-root file system. Asset paths inside the containers are
``/``-rooted (``/vehicle/truck/cab``); a SysFileSystem maps them onto a
directory on disk.
"""

from __future__ import annotations

import os
from typing import IO, Protocol


class FileSystem(Protocol):
    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> bytes: ...

    def read_text(self, path: str) -> str: ...

    def open_write(self, path: str) -> IO[str]: ...


class SysFileSystem:
    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def __repr__(self) -> str:
        return f"SysFileSystem({self.root!r})"

    def resolve(self, path: str) -> str:
        rel = path.lstrip("/\\")
        return os.path.join(self.root, *rel.split("/"))

    def exists(self, path: str) -> bool:
        return os.path.isfile(self.resolve(path))

    def read(self, path: str) -> bytes:
        with open(self.resolve(path), "rb") as f:
            return f.read()

    def read_text(self, path: str) -> str:
        with open(self.resolve(path), "r", encoding="utf-8", errors="replace") as f:
            return f.read()

    def open_write(self, path: str) -> IO[str]:
        full = self.resolve(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        return open(full, "w", encoding="utf-8", newline="\n")
