"""
credproof Prime Field

Arithmetic over the BN254 scalar field, the field used by Groth16/PLONK
backends on the alt_bn128 curve. Every wire of the relation holds a value of
this field; subtraction of unsigned quantities wraps modulo the prime instead
of going negative.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import ClassVar, Union


# BN254 scalar field order (also known as Fr)
FIELD_MODULUS: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Bits needed to hold any canonical field element
FIELD_BITS: int = FIELD_MODULUS.bit_length()

# Largest comparator width that cannot overflow the field (circomlib bound)
MAX_COMPARATOR_BITS: int = 252


def reduce(n: int) -> int:
    """Reduce an integer into [0, p)."""
    return n % FIELD_MODULUS


def inverse(n: int) -> int:
    """Modular inverse via Fermat's little theorem."""
    n = n % FIELD_MODULUS
    if n == 0:
        raise ZeroDivisionError("Cannot invert zero field element")
    return pow(n, FIELD_MODULUS - 2, FIELD_MODULUS)


def is_canonical(n: int) -> bool:
    return isinstance(n, int) and not isinstance(n, bool) and 0 <= n < FIELD_MODULUS


@dataclass(frozen=True)
class FieldElement:
    """
    Element of the BN254 scalar field.

    Unlike the internal wire representation (plain ints), this type is used at
    the public boundary: public signals, proof objects and serialized forms.
    The value is always canonical, i.e. in [0, p).
    """
    value: int

    FIELD_MODULUS: ClassVar[int] = FIELD_MODULUS

    def __post_init__(self):
        if not is_canonical(self.value):
            raise ValueError("Field element must be an integer in [0, p)")

    @classmethod
    def zero(cls) -> 'FieldElement':
        return cls(0)

    @classmethod
    def one(cls) -> 'FieldElement':
        return cls(1)

    @classmethod
    def random(cls) -> 'FieldElement':
        return cls(int.from_bytes(secrets.token_bytes(32), 'big') % FIELD_MODULUS)

    @classmethod
    def from_int(cls, n: int) -> 'FieldElement':
        """Create a field element from an integer, reducing modulo p."""
        return cls(n % FIELD_MODULUS)

    @classmethod
    def from_hex(cls, value: str) -> 'FieldElement':
        """Parse a 64-char (optionally 0x-prefixed) hex string."""
        if value.startswith("0x"):
            value = value[2:]
        return cls(int(value, 16))

    def to_int(self) -> int:
        return self.value

    def to_hex(self) -> str:
        return format(self.value, '064x')

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(32, 'big')

    def to_decimal(self) -> str:
        """Decimal string form, as used for public signals in proof JSON."""
        return str(self.value)

    def is_zero(self) -> bool:
        return self.value == 0

    def __add__(self, other: 'FieldElement') -> 'FieldElement':
        return FieldElement((self.value + other.value) % FIELD_MODULUS)

    def __sub__(self, other: 'FieldElement') -> 'FieldElement':
        return FieldElement((self.value - other.value) % FIELD_MODULUS)

    def __mul__(self, other: 'FieldElement') -> 'FieldElement':
        return FieldElement((self.value * other.value) % FIELD_MODULUS)

    def __neg__(self) -> 'FieldElement':
        return FieldElement((FIELD_MODULUS - self.value) % FIELD_MODULUS)

    def inverse(self) -> 'FieldElement':
        return FieldElement(inverse(self.value))

    def __truediv__(self, other: 'FieldElement') -> 'FieldElement':
        return self * other.inverse()

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


FieldLike = Union[int, FieldElement]


def to_int(value: FieldLike) -> int:
    """Unwrap a FieldElement or pass an int through, reduced modulo p."""
    if isinstance(value, FieldElement):
        return value.value
    return value % FIELD_MODULUS
