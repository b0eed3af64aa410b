"""Cryptographically secure randomness for polynomial coefficients."""
from __future__ import annotations

import logging
import os
from typing import Callable

from .errors import EntropyUnavailableError
from .field import DEFAULT_FIELD, PrimeField

_logger = logging.getLogger(__name__)

DEFAULT_MARGIN_BYTES = 16


class EntropySource:
    """Per-operation handle on the operating system CSPRNG.

    ``reader`` must behave like :func:`os.urandom`. Field elements are drawn
    by reading ``byte_length + margin_bytes`` bytes and reducing modulo P,
    which keeps the modulo bias below ``2 ** (-8 * margin_bytes)``.
    """

    def __init__(
        self,
        field: PrimeField = DEFAULT_FIELD,
        *,
        reader: Callable[[int], bytes] = os.urandom,
        margin_bytes: int = DEFAULT_MARGIN_BYTES,
    ) -> None:
        if margin_bytes < 8:
            raise ValueError("margin_bytes must be at least 8")
        self.field = field
        self.margin_bytes = margin_bytes
        self._reader = reader

    def random_bytes(self, length: int) -> bytes:
        if length < 0:
            raise ValueError("length must be non-negative")
        try:
            data = self._reader(length)
        except (OSError, NotImplementedError) as exc:
            _logger.error("Secure random source failed: %s", exc)
            raise EntropyUnavailableError("Secure random source is unavailable") from exc
        if not isinstance(data, (bytes, bytearray)) or len(data) != length:
            got = len(data) if isinstance(data, (bytes, bytearray)) else 0
            _logger.error("Secure random source returned a short read")
            raise EntropyUnavailableError(
                f"Secure random source returned {got} of {length} bytes"
            )
        return bytes(data)

    def next_field_element(self) -> int:
        raw = self.random_bytes(self.field.byte_length + self.margin_bytes)
        return int.from_bytes(raw, "big") % self.field.modulus


__all__ = ["DEFAULT_MARGIN_BYTES", "EntropySource"]
