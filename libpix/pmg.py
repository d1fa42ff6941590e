from __future__ import annotations

import struct
from typing import Dict, Type

from .errors import PixIoError, UnsupportedVersion
from .fs import FileSystem
from .geometry import PMG_SIGNATURE, GeometryDecoder
from .model import GeometryData
from .pmg_0x13 import Pmg13Decoder
from .pmg_0x14 import Pmg14Decoder

DECODERS: Dict[int, Type[GeometryDecoder]] = {
    Pmg13Decoder.VERSION: Pmg13Decoder,
    Pmg14Decoder.VERSION: Pmg14Decoder,
}


def decode_geometry(data: bytes, path: str = "") -> GeometryData:
    if len(data) < 4:
        raise UnsupportedVersion(path, tuple(DECODERS), data[0] if data else 0, what="geometry file")
    version, signature = struct.unpack_from("<B3s", data, 0)
    decoder = DECODERS.get(version) if signature == PMG_SIGNATURE else None
    if decoder is None:
        raise UnsupportedVersion(path, tuple(DECODERS), version, what="geometry file")
    return decoder(data, path).decode()


def read_geometry(fs: FileSystem, base_path: str) -> GeometryData:
    path = base_path + ".pmg"
    try:
        data = fs.read(path)
    except OSError as e:
        raise PixIoError(path, f"Cannot open geometry file! {e.strerror or e}") from e
    return decode_geometry(data, path)
