"""Number formatting shared by every text container.

Floats are written as the hex image of their float32 bits (``&3f800000``
for 1.0) so the text form is lossless.
"""

from __future__ import annotations

import struct
from typing import Iterable

EOL = "\n"
TAB = "\t"


def float_bits(v: float) -> int:
    return struct.unpack("<I", struct.pack("<f", v))[0]


def fmt_float(v: float) -> str:
    return "&%08x" % float_bits(v)


def fmt_vec(values: Iterable[float]) -> str:
    return "  ".join(fmt_float(v) for v in values)
