"""
credproof Poseidon Hash

Circuit-friendly sponge hash over the BN254 scalar field, in two forms that
must agree bit for bit:

    poseidon_hash(inputs)          native evaluation (issuers, tests)
    poseidon_gadget(cs, inputs)    in-circuit evaluation (relation)

Parameters are circomlib's. Width t = n + 1, capacity element at state[0]
initialised to zero, 8 full rounds split around the partial rounds, x^5
S-box, output taken from state[0]. Round constants and the Cauchy MDS matrix
come from the Grain LFSR instantiation of the Poseidon reference parameter
script (prime field, x^alpha S-box, 254-bit elements), which is how
circomlib's published tables were produced:

    poseidon_hash([1, 2]) ==
        0x115cc0f5e7d690413df64c6b9662e9cf2a3617f2743245519e19607a4417189a

Constraint cost per S-box: 3 multiplications (x^2, x^4, x^5).

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

from credproof.field import FIELD_MODULUS, inverse
from credproof.r1cs import ConstraintSystem, LinearCombination, Operand, as_lc


FULL_ROUNDS = 8

# circomlib N_ROUNDS_P indexed by t - 2
PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63)

MIN_WIDTH = 2
MAX_WIDTH = MIN_WIDTH + len(PARTIAL_ROUNDS) - 1

ALPHA = 5

ELEMENT_BITS = 254


@dataclass(frozen=True)
class PoseidonParams:
    """Permutation parameters for one state width."""
    t: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]

    @property
    def total_rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def is_full_round(self, r: int) -> bool:
        half = self.full_rounds // 2
        return r < half or r >= half + self.partial_rounds


class GrainLFSR:
    """
    80-bit Grain LFSR in self-shrinking mode.

    Seeded with the instance description: field type (2 bits, 1 = prime),
    S-box type (4 bits, 0 = x^alpha), element size (12), width (12), full
    rounds (10), partial rounds (10), then thirty 1-bits. The first 160
    outputs are discarded.
    """

    def __init__(self, t: int, full_rounds: int, partial_rounds: int,
                 element_bits: int = ELEMENT_BITS):
        seed = (
            f"{1:02b}{0:04b}{element_bits:012b}{t:012b}"
            f"{full_rounds:010b}{partial_rounds:010b}" + "1" * 30
        )
        self._bits = deque((int(b) for b in seed), maxlen=80)
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        b = self._bits
        bit = b[62] ^ b[51] ^ b[38] ^ b[23] ^ b[13] ^ b[0]
        b.append(bit)
        return bit

    def next_bit(self) -> int:
        while True:
            if self._clock():
                return self._clock()
            self._clock()

    def next_int(self, bits: int) -> int:
        value = 0
        for _ in range(bits):
            value = (value << 1) | self.next_bit()
        return value

    def next_field_element(self, bits: int = ELEMENT_BITS) -> int:
        """Rejection-sample an element below the modulus."""
        value = self.next_int(bits)
        while value >= FIELD_MODULUS:
            value = self.next_int(bits)
        return value


def _cauchy_mds(grain: GrainLFSR, t: int) -> Tuple[Tuple[int, ...], ...]:
    while True:
        samples = [grain.next_int(ELEMENT_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        while len(set(samples)) != len(samples):
            samples = [grain.next_int(ELEMENT_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        xs, ys = samples[:t], samples[t:]
        if any((x + y) % FIELD_MODULUS == 0 for x in xs for y in ys):
            continue
        return tuple(
            tuple(inverse(x + y) for y in ys)
            for x in xs
        )


@lru_cache(maxsize=None)
def poseidon_params(t: int) -> PoseidonParams:
    if not MIN_WIDTH <= t <= MAX_WIDTH:
        raise ValueError(f"Poseidon width must be in [{MIN_WIDTH}, {MAX_WIDTH}], got {t}")
    partial = PARTIAL_ROUNDS[t - MIN_WIDTH]
    grain = GrainLFSR(t, FULL_ROUNDS, partial)
    constants = tuple(
        grain.next_field_element() for _ in range((FULL_ROUNDS + partial) * t)
    )
    return PoseidonParams(
        t=t,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial,
        round_constants=constants,
        mds=_cauchy_mds(grain, t),
    )


# =============================================================================
# NATIVE
# =============================================================================

def permute(state: Sequence[int]) -> List[int]:
    """Apply the Poseidon permutation to a full state."""
    params = poseidon_params(len(state))
    t = params.t
    state = [s % FIELD_MODULUS for s in state]

    for r in range(params.total_rounds):
        state = [
            (s + params.round_constants[r * t + i]) % FIELD_MODULUS
            for i, s in enumerate(state)
        ]
        if params.is_full_round(r):
            state = [pow(s, ALPHA, FIELD_MODULUS) for s in state]
        else:
            state[0] = pow(state[0], ALPHA, FIELD_MODULUS)
        state = [
            sum(params.mds[i][j] * state[j] for j in range(t)) % FIELD_MODULUS
            for i in range(t)
        ]

    return state


def poseidon_hash(inputs: Sequence[int]) -> int:
    """Hash 1..MAX_WIDTH-1 field elements to one field element."""
    if not inputs:
        raise ValueError("Poseidon requires at least one input")
    return permute([0] + [int(x) for x in inputs])[0]


# =============================================================================
# IN-CIRCUIT
# =============================================================================

def _sbox(cs: ConstraintSystem, x: LinearCombination, label: str) -> LinearCombination:
    x2 = cs.mul(x, x, f"{label}_sq")
    x4 = cs.mul(x2, x2, f"{label}_quad")
    return cs.mul(x4, x, f"{label}_quint")


def poseidon_gadget(cs: ConstraintSystem, inputs: Sequence[Operand]) -> LinearCombination:
    """
    Constrain and return Poseidon(inputs).

    Linear layers (round constants, MDS) fold into linear combinations; only
    S-boxes cost constraints.
    """
    if not inputs:
        raise ValueError("Poseidon requires at least one input")
    params = poseidon_params(len(inputs) + 1)
    t = params.t
    state = [LinearCombination.zero()] + [as_lc(x) for x in inputs]

    with cs.namespace("poseidon"):
        for r in range(params.total_rounds):
            state = [s + params.round_constants[r * t + i] for i, s in enumerate(state)]
            if params.is_full_round(r):
                state = [_sbox(cs, s, f"r{r}_{i}") for i, s in enumerate(state)]
            else:
                state[0] = _sbox(cs, state[0], f"r{r}_0")
            state = [
                sum((state[j] * params.mds[i][j] for j in range(t)), LinearCombination.zero())
                for i in range(t)
            ]

    return state[0]
