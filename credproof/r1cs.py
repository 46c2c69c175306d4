"""
credproof Constraint System

Rank-1 Constraint System (R1CS) builder with an eager witness calculator.

Every constraint has the form a * b = c where a, b and c are linear
combinations of wires. Wire 0 is the constant one. Gadgets build the relation
and assign wire values in the same pass (the way circom's witness calculator
runs alongside the constraint description); satisfiability is checked once
the whole relation has been synthesized.

Values that a prover chooses freely (division hints, inverses, bit
decompositions) are allocated with `alloc`. Nothing about an `alloc`ed wire
is trusted: only the constraints that mention it bind it.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from credproof.field import FIELD_MODULUS, FieldElement


ONE_WIRE = 0


class LinearCombination:
    """
    Sparse linear combination sum(coeff_i * wire_i) over the field.

    Coefficients are kept reduced and zero terms are dropped, so two
    combinations with the same terms compare equal.
    """

    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self.terms: Dict[int, int] = {}
        for wire, coeff in (terms or {}).items():
            coeff %= FIELD_MODULUS
            if coeff:
                self.terms[wire] = coeff

    @classmethod
    def constant(cls, value: int) -> 'LinearCombination':
        return cls({ONE_WIRE: value})

    @classmethod
    def wire(cls, index: int) -> 'LinearCombination':
        return cls({index: 1})

    @classmethod
    def zero(cls) -> 'LinearCombination':
        return cls()

    def is_constant(self) -> bool:
        return all(w == ONE_WIRE for w in self.terms)

    def constant_value(self) -> int:
        return self.terms.get(ONE_WIRE, 0)

    def evaluate(self, values: Sequence[int]) -> int:
        total = 0
        for wire, coeff in self.terms.items():
            total += coeff * values[wire]
        return total % FIELD_MODULUS

    def scale(self, k: int) -> 'LinearCombination':
        return LinearCombination({w: c * k for w, c in self.terms.items()})

    def __add__(self, other: 'Operand') -> 'LinearCombination':
        other = as_lc(other)
        merged = dict(self.terms)
        for wire, coeff in other.terms.items():
            merged[wire] = merged.get(wire, 0) + coeff
        return LinearCombination(merged)

    __radd__ = __add__

    def __neg__(self) -> 'LinearCombination':
        return self.scale(-1)

    def __sub__(self, other: 'Operand') -> 'LinearCombination':
        return self + (-as_lc(other))

    def __rsub__(self, other: 'Operand') -> 'LinearCombination':
        return as_lc(other) - self

    def __mul__(self, k: int) -> 'LinearCombination':
        if not isinstance(k, int):
            raise TypeError("LinearCombination can only be scaled by a constant; use ConstraintSystem.mul")
        return self.scale(k)

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LinearCombination):
            return self.terms == other.terms
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self.terms.items()))

    def __repr__(self) -> str:
        parts = [f"{c}*w{w}" for w, c in sorted(self.terms.items())]
        return f"LC({' + '.join(parts) or '0'})"


Operand = Union[LinearCombination, int, FieldElement]


def as_lc(x: Operand) -> LinearCombination:
    if isinstance(x, LinearCombination):
        return x
    if isinstance(x, FieldElement):
        return LinearCombination.constant(x.value)
    if isinstance(x, int) and not isinstance(x, bool):
        return LinearCombination.constant(x)
    raise TypeError(f"Cannot use {type(x).__name__} as a linear combination")


@dataclass
class Constraint:
    """A single R1CS constraint: a * b = c."""
    a: LinearCombination
    b: LinearCombination
    c: LinearCombination
    label: str = ""

    def is_satisfied(self, values: Sequence[int]) -> bool:
        lhs = self.a.evaluate(values) * self.b.evaluate(values) % FIELD_MODULUS
        return lhs == self.c.evaluate(values)


class WireKind(Enum):
    ONE = "one"
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


@dataclass(frozen=True)
class WireInfo:
    index: int
    label: str
    kind: WireKind


class ConstraintSystem:
    """
    Mutable builder for one relation instance.

    A ConstraintSystem is created fresh per request and never shared between
    threads; it owns no external resources.
    """

    def __init__(self, name: str):
        self.name = name
        self.constraints: List[Constraint] = []
        self._values: List[int] = [1]
        self._wires: List[WireInfo] = [WireInfo(ONE_WIRE, "one", WireKind.ONE)]
        self._public: Dict[str, int] = {}
        self._private: Dict[str, int] = {}
        self._scope: List[str] = []

    # ------------------------------------------------------------------
    # Wire allocation
    # ------------------------------------------------------------------

    def _qualify(self, label: str) -> str:
        return "/".join(self._scope + [label]) if self._scope else label

    def _new_wire(self, label: str, kind: WireKind, value: int) -> LinearCombination:
        index = len(self._values)
        self._values.append(value % FIELD_MODULUS)
        self._wires.append(WireInfo(index, self._qualify(label), kind))
        return LinearCombination.wire(index)

    def public_input(self, name: str, value: int) -> LinearCombination:
        """Declare a public input. Declaration order is the public-signal order."""
        if name in self._public or name in self._private:
            raise ValueError(f"Input '{name}' already declared")
        lc = self._new_wire(name, WireKind.PUBLIC, value)
        self._public[name] = lc_index(lc)
        return lc

    def private_input(self, name: str, value: int) -> LinearCombination:
        if name in self._public or name in self._private:
            raise ValueError(f"Input '{name}' already declared")
        lc = self._new_wire(name, WireKind.PRIVATE, value)
        self._private[name] = lc_index(lc)
        return lc

    def alloc(self, label: str, value: int) -> LinearCombination:
        """Allocate an internal wire holding a prover-chosen value."""
        return self._new_wire(label, WireKind.INTERNAL, value)

    @contextmanager
    def namespace(self, name: str) -> Iterator[None]:
        self._scope.append(name)
        try:
            yield
        finally:
            self._scope.pop()

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def enforce(self, a: Operand, b: Operand, c: Operand, label: str = "") -> None:
        self.constraints.append(Constraint(as_lc(a), as_lc(b), as_lc(c), self._qualify(label)))

    def enforce_equal(self, a: Operand, b: Operand, label: str = "") -> None:
        """(a - b) * 1 = 0"""
        self.enforce(as_lc(a) - as_lc(b), 1, 0, label)

    def mul(self, a: Operand, b: Operand, label: str = "product") -> LinearCombination:
        """Return a wire constrained to a * b (no constraint if either side is constant)."""
        a, b = as_lc(a), as_lc(b)
        if a.is_constant():
            return b.scale(a.constant_value())
        if b.is_constant():
            return a.scale(b.constant_value())
        out = self.alloc(label, self.value(a) * self.value(b))
        self.enforce(a, b, out, label)
        return out

    # ------------------------------------------------------------------
    # Witness access
    # ------------------------------------------------------------------

    def value(self, x: Operand) -> int:
        return as_lc(x).evaluate(self._values)

    def unsatisfied(self) -> List[Constraint]:
        return [c for c in self.constraints if not c.is_satisfied(self._values)]

    def is_satisfied(self) -> bool:
        return all(c.is_satisfied(self._values) for c in self.constraints)

    def assignment(self) -> Tuple[int, ...]:
        return tuple(self._values)

    def public_names(self) -> List[str]:
        return list(self._public)

    def public_values(self) -> List[int]:
        return [self._values[i] for i in self._public.values()]

    def private_values(self) -> Dict[str, int]:
        return {name: self._values[i] for name, i in self._private.items()}

    def wire_info(self, index: int) -> WireInfo:
        return self._wires[index]

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_wires(self) -> int:
        return len(self._values)

    def stats(self) -> Dict[str, int]:
        return {
            "constraints": self.num_constraints,
            "wires": self.num_wires,
            "public_inputs": len(self._public),
            "private_inputs": len(self._private),
        }


def lc_index(lc: LinearCombination) -> int:
    """Wire index of a single-wire combination."""
    if len(lc.terms) != 1:
        raise ValueError("Not a single-wire combination")
    (index, coeff), = lc.terms.items()
    if coeff != 1:
        raise ValueError("Not a single-wire combination")
    return index
