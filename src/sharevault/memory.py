"""Best-effort scrubbing of secret material held in memory.

Python ``int`` and ``bytes`` objects are immutable, so the only buffers that
can be zeroed in place are ``bytearray`` instances. Everything else is wiped
by overwriting the container slot that referenced it.
"""
from __future__ import annotations

import ctypes


def secure_zero(buf: bytearray) -> None:
    """Overwrite *buf* with zero bytes in place."""
    if not isinstance(buf, bytearray):
        raise TypeError("secure_zero() requires a bytearray")
    if not buf:
        return
    view = (ctypes.c_char * len(buf)).from_buffer(buf)
    ctypes.memset(ctypes.addressof(view), 0, len(buf))


def wipe_list(values: list) -> None:
    """Replace every slot of *values* with zero, then empty it."""
    for i in range(len(values)):
        values[i] = 0
    values.clear()


class SecretBytes:
    """Owns a mutable copy of a secret and zeroes it when the block exits."""

    def __init__(self, data: bytes | bytearray) -> None:
        self._buf = bytearray(data)

    def __enter__(self) -> bytearray:
        return self._buf

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return f"SecretBytes(<{len(self._buf)} bytes>)"

    def wipe(self) -> None:
        secure_zero(self._buf)


__all__ = ["SecretBytes", "secure_zero", "wipe_list"]
