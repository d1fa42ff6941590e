"""libpix: Prism3D model (.pmd/.pmg) decoder and text container writer."""

__version__ = "0.3.0"

from .asset import Model  # noqa: E402
from .errors import (  # noqa: E402
    CorruptData,
    CorruptDescriptor,
    CorruptGeometry,
    PixError,
    PixIoError,
    UnsupportedVersion,
)
from .fs import SysFileSystem  # noqa: E402

__all__ = [
    "Model",
    "SysFileSystem",
    "PixError",
    "PixIoError",
    "UnsupportedVersion",
    "CorruptData",
    "CorruptGeometry",
    "CorruptDescriptor",
]
