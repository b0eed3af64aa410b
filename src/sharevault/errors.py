"""Exception hierarchy shared by every sharevault component.

Messages identify shares by their x-coordinate and report counts only.
They never include y values, coefficients or the secret itself.
"""
from __future__ import annotations


class ShareVaultError(Exception):
    """Base class for all sharevault failures."""


class EntropyUnavailableError(ShareVaultError, RuntimeError):
    """Raised when the operating system CSPRNG cannot deliver bytes."""


class InvalidThresholdError(ShareVaultError, ValueError):
    """Raised for a threshold outside ``2 <= t <= n``."""

    def __init__(self, message: str, *, threshold: int, shares: int | None = None) -> None:
        super().__init__(message)
        self.threshold = threshold
        self.shares = shares


class InsufficientSharesError(ShareVaultError, ValueError):
    """Raised when fewer than ``t`` shares are supplied."""

    def __init__(self, required: int, supplied: int) -> None:
        super().__init__(f"Need at least {required} shares, got {supplied}")
        self.required = required
        self.supplied = supplied


class InvalidShareError(ShareVaultError, ValueError):
    """Raised for a share whose coordinates are not valid field elements."""

    def __init__(self, message: str, *, x: int) -> None:
        super().__init__(message)
        self.x = x


class DuplicateXCoordinateError(ShareVaultError, ValueError):
    """Raised when two supplied shares have the same x-coordinate."""

    def __init__(self, x: int, message: str | None = None) -> None:
        super().__init__(message or f"Duplicate share for x={x}")
        self.x = x


class CorruptShareError(DuplicateXCoordinateError):
    """Raised when shares disagree about the value of the polynomial at ``x``."""

    def __init__(self, x: int, message: str | None = None) -> None:
        super().__init__(x, message or f"Share x={x} is inconsistent with the other shares")


class DivisionByZeroError(ShareVaultError, ZeroDivisionError):
    """Raised when inverting zero in the field."""


class ShareFormatError(ShareVaultError, ValueError):
    """Raised when an encoded share cannot be parsed."""


class ContainerError(ShareVaultError, ValueError):
    """Raised when an encrypted container is truncated, tampered or unknown."""


__all__ = [
    "ContainerError",
    "CorruptShareError",
    "DivisionByZeroError",
    "DuplicateXCoordinateError",
    "EntropyUnavailableError",
    "InsufficientSharesError",
    "InvalidShareError",
    "InvalidThresholdError",
    "ShareFormatError",
    "ShareVaultError",
]
