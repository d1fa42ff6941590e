"""libpix.errors

Fatal decode/IO conditions. Recoverable diagnostics (unknown attribute type,
unsupported influence count) are logged, not raised.
"""

from __future__ import annotations

from typing import Optional, Tuple


class PixError(RuntimeError):
    pass


class PixIoError(PixError):
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Cannot access \"{path}\""
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnsupportedVersion(PixError):
    def __init__(self, path: str, expected: Tuple[int, ...], actual: int, what: str = "file"):
        self.path = path
        self.expected = expected
        self.actual = actual
        want = " or ".join(f"0x{v:02X}" for v in expected)
        super().__init__(f"Invalid version of {what} \"{path}\" (have: 0x{actual:02X}, expected: {want})")


class CorruptData(PixError):
    """An offset or count points outside the buffer it was read from."""

    def __init__(self, message: str, path: str = "", offset: Optional[int] = None):
        self.path = path
        self.offset = offset
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class CorruptGeometry(CorruptData):
    pass


class CorruptDescriptor(CorruptData):
    pass
