"""libpix.binary

Bounds-checked reads at computed offsets.

Both container formats address their sub-tables with absolute byte offsets
taken from the file itself. Every read goes through BufferView so a bad
offset turns into a CorruptData error (of the decoder's flavour) instead of
a short read or a silently wrapped negative index.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, Tuple, Type

from .errors import CorruptData

_STRUCTS: Dict[str, struct.Struct] = {}


def _struct(fmt: str) -> struct.Struct:
    s = _STRUCTS.get(fmt)
    if s is None:
        s = _STRUCTS[fmt] = struct.Struct(fmt)
    return s


@dataclass
class BufferView:
    data: bytes
    path: str = ""
    error: Type[CorruptData] = CorruptData
    size: int = field(init=False)

    def __post_init__(self) -> None:
        self.size = len(self.data)

    def check(self, ofs: int, n: int, what: str = "") -> None:
        if ofs < 0 or n < 0 or ofs + n > self.size:
            label = f" ({what})" if what else ""
            raise self.error(
                f"Read of {n} bytes at offset {ofs}{label} is outside the buffer (size {self.size})",
                path=self.path,
                offset=ofs,
            )

    def unpack(self, fmt: str, ofs: int, what: str = "") -> Tuple:
        s = _struct(fmt)
        self.check(ofs, s.size, what)
        return s.unpack_from(self.data, ofs)

    def scalar(self, fmt: str, ofs: int, what: str = ""):
        return self.unpack(fmt, ofs, what)[0]

    def slice(self, ofs: int, n: int, what: str = "") -> bytes:
        self.check(ofs, n, what)
        return self.data[ofs : ofs + n]

    def cstring(self, ofs: int, what: str = "") -> str:
        self.check(ofs, 1, what)
        end = self.data.find(b"\0", ofs)
        if end == -1:
            raise self.error(f"Unterminated string at offset {ofs}", path=self.path, offset=ofs)
        return self.data[ofs:end].decode("ascii", errors="replace")


def record_size(fmt: str) -> int:
    return _struct(fmt).size
