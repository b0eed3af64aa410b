"""Recover the secret from a threshold of shares by Lagrange interpolation."""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from .errors import (
    CorruptShareError,
    DuplicateXCoordinateError,
    InsufficientSharesError,
    InvalidShareError,
    InvalidThresholdError,
)
from .field import DEFAULT_FIELD, PrimeField
from .memory import wipe_list
from .shares import Share, ShareSet, coerce_shares

_logger = logging.getLogger(__name__)


def lagrange_coefficients_at(xs: Sequence[int], at: int, field: PrimeField) -> List[int]:
    """Basis values ``l_i(at) = prod_{j != i} (at - x_j) / (x_i - x_j)``."""
    coefficients = []
    for i, xi in enumerate(xs):
        num = 1
        den = 1
        for j, xj in enumerate(xs):
            if i == j:
                continue
            num = field.mul(num, field.sub(at, xj))
            den = field.mul(den, field.sub(xi, xj))
        coefficients.append(field.div(num, den))
    return coefficients


def lagrange_coefficients_at_zero(xs: Sequence[int], field: PrimeField = DEFAULT_FIELD) -> List[int]:
    return lagrange_coefficients_at(xs, 0, field)


def interpolate_at(points: Sequence[Tuple[int, int]], x: int, field: PrimeField = DEFAULT_FIELD) -> int:
    """Evaluate the unique polynomial through *points* at *x*."""
    xs = [p[0] for p in points]
    basis = lagrange_coefficients_at(xs, x, field)
    total = 0
    for (_, yi), li in zip(points, basis):
        total = field.add(total, field.mul(yi, li))
    wipe_list(basis)
    return total


def _check_shares(shares: List[Share], t: int, field: PrimeField) -> None:
    if t < 2:
        raise InvalidThresholdError(f"Threshold must be at least 2, got {t}", threshold=t)
    if len(shares) < t:
        raise InsufficientSharesError(t, len(shares))
    seen = {}
    for share in shares:
        if not (1 <= share.x < field.modulus):
            raise InvalidShareError(f"Share x={share.x} is outside [1, P)", x=share.x)
        if not field.contains(share.y):
            raise InvalidShareError(f"Share x={share.x} has a value outside the field", x=share.x)
        if share.x in seen:
            if seen[share.x] != share.y:
                raise CorruptShareError(
                    share.x, f"Two shares for x={share.x} carry different values"
                )
            raise DuplicateXCoordinateError(share.x)
        seen[share.x] = share.y
    seen.clear()


def reconstruct(
    shares: ShareSet | Iterable[Share | Sequence[int]],
    t: int,
    *,
    field: PrimeField | None = None,
) -> int:
    """Return the constant term of the polynomial the shares lie on.

    The first ``t`` shares are interpolated at zero. Any further shares are
    redundant and must lie on the same polynomial, otherwise
    :class:`CorruptShareError` names the first share that does not.
    """
    if field is None:
        field = shares.field if isinstance(shares, ShareSet) else DEFAULT_FIELD
    points = coerce_shares(shares)
    basis_points: List[Tuple[int, int]] = []
    try:
        _check_shares(points, t, field)
        basis_points = [s.as_tuple() for s in points[:t]]
        secret = interpolate_at(basis_points, 0, field)
        for extra in points[t:]:
            if interpolate_at(basis_points, extra.x, field) != extra.y:
                _logger.warning("Redundant share x=%d does not match the threshold subset", extra.x)
                raise CorruptShareError(extra.x)
        if len(points) > t:
            _logger.debug("Verified %d redundant shares", len(points) - t)
        return secret
    finally:
        wipe_list(basis_points)
        wipe_list(points)


__all__ = [
    "interpolate_at",
    "lagrange_coefficients_at",
    "lagrange_coefficients_at_zero",
    "reconstruct",
]
