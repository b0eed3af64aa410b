"""Random polynomials over GF(P) whose constant term is the secret."""
from __future__ import annotations

from typing import List

from .entropy import EntropySource
from .errors import InvalidThresholdError
from .field import DEFAULT_FIELD, PrimeField
from .memory import wipe_list


class Polynomial:
    """Degree ``t - 1`` polynomial ``c0 + c1*x + ... + c(t-1)*x^(t-1)``.

    Instances own their coefficients. Use them as context managers so the
    coefficients are wiped on every exit path::

        with Polynomial.build(secret, 3, field=field, entropy=source) as poly:
            y = poly.evaluate(1)
    """

    def __init__(self, coefficients: List[int], *, field: PrimeField = DEFAULT_FIELD) -> None:
        if not coefficients:
            raise ValueError("A polynomial needs at least one coefficient")
        for c in coefficients:
            field.element(c)
        self.field = field
        self._coefficients = list(coefficients)

    @classmethod
    def build(
        cls,
        secret: int,
        threshold: int,
        *,
        field: PrimeField = DEFAULT_FIELD,
        entropy: EntropySource | None = None,
    ) -> "Polynomial":
        """Return a polynomial with ``c0 = secret`` and ``threshold - 1`` random coefficients."""
        if threshold < 2:
            raise InvalidThresholdError(
                f"Threshold must be at least 2, got {threshold}", threshold=threshold
            )
        field.element(secret)
        entropy = entropy or EntropySource(field)
        if entropy.field != field:
            raise ValueError("Entropy source draws from a different field")
        coefficients = [secret]
        try:
            for _ in range(threshold - 1):
                coefficients.append(entropy.next_field_element())
            return cls(coefficients, field=field)
        finally:
            wipe_list(coefficients)

    @property
    def threshold(self) -> int:
        return len(self._coefficients)

    @property
    def degree(self) -> int:
        return len(self._coefficients) - 1

    @property
    def wiped(self) -> bool:
        return not self._coefficients

    def evaluate(self, x: int) -> int:
        """Horner's rule, reducing modulo P after every step."""
        if self.wiped:
            raise RuntimeError("Polynomial has been wiped")
        f = self.field
        x = f.reduce(x)
        acc = 0
        for c in reversed(self._coefficients):
            acc = f.add(f.mul(acc, x), c)
        return acc

    def wipe(self) -> None:
        wipe_list(self._coefficients)

    def __enter__(self) -> "Polynomial":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self.wiped else f"degree={self.degree}"
        return f"<Polynomial {state} over {self.field.bit_length}-bit field>"


def evaluate(poly: Polynomial, x: int) -> int:
    return poly.evaluate(x)


__all__ = ["Polynomial", "evaluate"]
