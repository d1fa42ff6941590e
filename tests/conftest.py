from __future__ import annotations

from pathlib import Path
from typing import Union

import pytest

from libpix import SysFileSystem


class VirtualRoot:
    def __init__(self, base: Path):
        self.base = base
        self.fs = SysFileSystem(str(base))

    def write(self, virtual_path: str, data: Union[bytes, str]) -> Path:
        full = Path(self.fs.resolve(virtual_path))
        full.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            full.write_text(data, encoding="utf-8")
        else:
            full.write_bytes(data)
        return full


@pytest.fixture
def root(tmp_path: Path) -> VirtualRoot:
    return VirtualRoot(tmp_path / "base")


@pytest.fixture
def export_root(tmp_path: Path) -> VirtualRoot:
    return VirtualRoot(tmp_path / "export")


@pytest.fixture
def make_root(tmp_path: Path):
    return lambda name: VirtualRoot(tmp_path / name)
