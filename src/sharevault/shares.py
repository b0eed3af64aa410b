"""Share generation: evaluate one random polynomial at x = 1..n."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence, Tuple

from .entropy import EntropySource
from .errors import InvalidThresholdError
from .field import DEFAULT_FIELD, PrimeField
from .polynomial import Polynomial

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Share:
    """A point ``(x, y)`` on the sharing polynomial."""

    x: int
    y: int = field(repr=False)

    def as_tuple(self) -> Tuple[int, int]:
        return self.x, self.y


@dataclass(frozen=True)
class ShareSet:
    """Shares produced by one sharing operation, in generation order."""

    shares: Tuple[Share, ...]
    threshold: int
    field: PrimeField = DEFAULT_FIELD

    def __len__(self) -> int:
        return len(self.shares)

    def __iter__(self) -> Iterator[Share]:
        return iter(self.shares)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ShareSet(self.shares[index], self.threshold, self.field)
        return self.shares[index]

    @property
    def xs(self) -> Tuple[int, ...]:
        return tuple(s.x for s in self.shares)

    def subset(self, xs: Iterable[int]) -> "ShareSet":
        """Return the shares whose x-coordinates are listed in *xs*, in that order."""
        by_x = {s.x: s for s in self.shares}
        try:
            picked = tuple(by_x[x] for x in xs)
        except KeyError as exc:
            raise KeyError(f"No share with x={exc.args[0]}") from None
        return ShareSet(picked, self.threshold, self.field)

    def select(self, count: int | None = None) -> "ShareSet":
        """Return the first *count* shares (``threshold`` by default)."""
        return self[: self.threshold if count is None else count]


def coerce_shares(shares: Iterable[Share | Sequence[int]]) -> list[Share]:
    """Accept ``Share`` objects or ``(x, y)`` pairs."""
    out: list[Share] = []
    for item in shares:
        if isinstance(item, Share):
            out.append(item)
        else:
            x, y = item
            out.append(Share(int(x), int(y)))
    return out


def validate_parameters(n: int, t: int, field: PrimeField = DEFAULT_FIELD) -> None:
    """Raise :class:`InvalidThresholdError` unless ``2 <= t <= n < P``."""
    if t < 2:
        raise InvalidThresholdError(f"Threshold must be at least 2, got {t}", threshold=t, shares=n)
    if t > n:
        raise InvalidThresholdError(
            f"Threshold {t} exceeds share count {n}", threshold=t, shares=n
        )
    if n >= field.modulus:
        raise InvalidThresholdError(
            "Share count must be smaller than the field modulus", threshold=t, shares=n
        )


def generate(
    secret: int,
    n: int,
    t: int,
    *,
    field: PrimeField = DEFAULT_FIELD,
    entropy: EntropySource | None = None,
) -> ShareSet:
    """Split ``secret`` into ``n`` shares, any ``t`` of which recover it.

    Parameters are validated before any randomness is drawn. The polynomial
    is wiped as soon as the shares have been computed, including when an
    error interrupts evaluation.
    """
    validate_parameters(n, t, field)
    field.element(secret)
    _logger.debug("Generating %d shares with threshold %d", n, t)
    with Polynomial.build(secret, t, field=field, entropy=entropy) as poly:
        shares = tuple(Share(x, poly.evaluate(x)) for x in range(1, n + 1))
    return ShareSet(shares, t, field)


__all__ = ["Share", "ShareSet", "coerce_shares", "generate", "validate_parameters"]
