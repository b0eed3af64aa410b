"""Threshold secret sharing over a prime field.

``generate`` splits a secret into ``n`` shares with threshold ``t`` and
``reconstruct`` recovers it from any ``t`` of them::

    from sharevault import generate, reconstruct

    shares = generate(1234, n=5, t=3)
    assert reconstruct(shares.subset([2, 4, 5]), 3) == 1234
"""

from __future__ import annotations

from .entropy import EntropySource
from .errors import (
    ContainerError,
    CorruptShareError,
    DivisionByZeroError,
    DuplicateXCoordinateError,
    EntropyUnavailableError,
    InsufficientSharesError,
    InvalidShareError,
    InvalidThresholdError,
    ShareFormatError,
    ShareVaultError,
)
from .field import DEFAULT_FIELD, MERSENNE_61, MERSENNE_127, MERSENNE_521, PrimeField
from .polynomial import Polynomial
from .reconstruct import interpolate_at, reconstruct
from .shares import Share, ShareSet, generate

__version__ = "0.1.0"

__all__ = [
    "ContainerError",
    "CorruptShareError",
    "DEFAULT_FIELD",
    "DivisionByZeroError",
    "DuplicateXCoordinateError",
    "EntropySource",
    "EntropyUnavailableError",
    "InsufficientSharesError",
    "InvalidShareError",
    "InvalidThresholdError",
    "MERSENNE_127",
    "MERSENNE_521",
    "MERSENNE_61",
    "Polynomial",
    "PrimeField",
    "Share",
    "ShareFormatError",
    "ShareSet",
    "ShareVaultError",
    "generate",
    "interpolate_at",
    "reconstruct",
]
