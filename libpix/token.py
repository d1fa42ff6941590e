from __future__ import annotations

TOKEN_SIZE = 8


def token_to_string(raw: bytes) -> str:
    # Names are packed into 8 bytes and padded with NULs; a full 8-char name
    # has no terminator at all.
    raw = bytes(raw[:TOKEN_SIZE])
    end = raw.find(b"\0")
    if end != -1:
        raw = raw[:end]
    return raw.decode("ascii", errors="replace")
