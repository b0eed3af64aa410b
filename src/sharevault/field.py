"""Arithmetic in the prime field GF(P).

Every value handled by the sharing engine is an element of a
:class:`PrimeField`. Python integers are arbitrary precision, so products of
two elements never overflow before they are reduced.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from .errors import DivisionByZeroError

MERSENNE_61 = 2**61 - 1
MERSENNE_127 = 2**127 - 1
MERSENNE_521 = 2**521 - 1

_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)


def is_probable_prime(n: int, rounds: int = 32) -> bool:
    """Miller-Rabin test with the first twelve primes plus random witnesses."""
    if n < 2:
        return False
    for p in _SMALL_PRIMES:
        if n % p == 0:
            return n == p
    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1
    witnesses = list(_SMALL_PRIMES) + [secrets.randbelow(n - 3) + 2 for _ in range(rounds)]
    for a in witnesses:
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


@dataclass(frozen=True)
class PrimeField:
    """GF(``modulus``) with fixed-width big-endian element encoding."""

    modulus: int
    byte_length: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.modulus, int) or self.modulus < 3:
            raise ValueError("Field modulus must be an integer prime >= 3")
        if not is_probable_prime(self.modulus):
            raise ValueError("Field modulus must be prime")
        object.__setattr__(self, "byte_length", (self.modulus.bit_length() + 7) // 8)

    @property
    def bit_length(self) -> int:
        return self.modulus.bit_length()

    def contains(self, value: int) -> bool:
        return isinstance(value, int) and 0 <= value < self.modulus

    def element(self, value: int) -> int:
        """Return ``value`` unchanged if it is a field element, else raise ``ValueError``."""
        if not self.contains(value):
            raise ValueError(f"Value is not an element of GF({self.bit_length}-bit prime)")
        return value

    def reduce(self, value: int) -> int:
        return value % self.modulus

    def add(self, a: int, b: int) -> int:
        return (a + b) % self.modulus

    def sub(self, a: int, b: int) -> int:
        return (a - b) % self.modulus

    def neg(self, a: int) -> int:
        return (-a) % self.modulus

    def mul(self, a: int, b: int) -> int:
        return (a * b) % self.modulus

    def pow(self, base: int, exponent: int) -> int:
        return pow(base % self.modulus, exponent, self.modulus)

    def inv(self, a: int) -> int:
        """Multiplicative inverse by Fermat's little theorem.

        The exponent ``P - 2`` is public, so the square-and-multiply sequence
        is the same for every input.
        """
        a %= self.modulus
        if a == 0:
            raise DivisionByZeroError("Zero has no multiplicative inverse")
        return pow(a, self.modulus - 2, self.modulus)

    def div(self, a: int, b: int) -> int:
        return self.mul(a, self.inv(b))

    def to_bytes(self, value: int) -> bytes:
        return self.element(value).to_bytes(self.byte_length, "big")

    def from_bytes(self, data: bytes) -> int:
        if len(data) != self.byte_length:
            raise ValueError(f"Field element must be exactly {self.byte_length} bytes")
        return self.element(int.from_bytes(data, "big"))


DEFAULT_FIELD = PrimeField(MERSENNE_521)

NAMED_FIELDS = {
    "61": MERSENNE_61,
    "127": MERSENNE_127,
    "521": MERSENNE_521,
}


def field_for(name: str) -> PrimeField:
    """Return the field for a named Mersenne modulus (``"61"``, ``"127"`` or ``"521"``)."""
    try:
        modulus = NAMED_FIELDS[str(name)]
    except KeyError:
        raise ValueError(f"Unknown field {name!r}; choose one of {', '.join(NAMED_FIELDS)}") from None
    if modulus == DEFAULT_FIELD.modulus:
        return DEFAULT_FIELD
    return PrimeField(modulus)


__all__ = [
    "DEFAULT_FIELD",
    "MERSENNE_127",
    "MERSENNE_521",
    "MERSENNE_61",
    "NAMED_FIELDS",
    "PrimeField",
    "field_for",
    "is_probable_prime",
]
