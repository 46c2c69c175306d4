"""
credproof Gadgets

Reusable sub-relations for the age/citizenship relation. Each gadget both
emits constraints into a ConstraintSystem and assigns the wires it allocates,
returning the output as a linear combination.

Boolean outputs are 0/1 field elements. Comparator semantics follow
circomlib (Num2Bits, IsZero, IsEqual, LessThan, LessEqThan): a comparator of
width n is only meaningful for operands below 2^n.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from credproof.field import MAX_COMPARATOR_BITS, inverse
from credproof.poseidon import poseidon_gadget, poseidon_hash
from credproof.r1cs import ConstraintSystem, LinearCombination, Operand, as_lc


# 365.25 days
SECONDS_PER_YEAR = 31557600

DEFAULT_COMPARATOR_BITS = 64

# Widest comparator for the age check. A birth date after the current date
# wraps the age quotient to about 2^228.7, which must not fit the comparator.
MAX_AGE_COMPARATOR_BITS = 64


# =============================================================================
# BOOLEAN AND COMPARATOR PRIMITIVES
# =============================================================================

def assert_bool(cs: ConstraintSystem, x: Operand, label: str = "bool") -> None:
    """x * (x - 1) = 0"""
    x = as_lc(x)
    cs.enforce(x, x - 1, 0, label)


def num2bits(cs: ConstraintSystem, x: Operand, n: int, label: str = "bits") -> List[LinearCombination]:
    """
    Little-endian bit decomposition of x into n bits.

    Unsatisfiable when x >= 2^n: the honest bit assignment cannot recompose
    to the value.
    """
    x = as_lc(x)
    value = cs.value(x)
    bits: List[LinearCombination] = []
    with cs.namespace(label):
        for i in range(n):
            bit = cs.alloc(f"b{i}", (value >> i) & 1)
            assert_bool(cs, bit, f"b{i}_bool")
            bits.append(bit)
        recomposed = LinearCombination.zero()
        for i, bit in enumerate(bits):
            recomposed = recomposed + bit * (1 << i)
        cs.enforce_equal(recomposed, x, "recompose")
    return bits


def is_zero(cs: ConstraintSystem, x: Operand, label: str = "is_zero") -> LinearCombination:
    x = as_lc(x)
    value = cs.value(x)
    with cs.namespace(label):
        inv = cs.alloc("inv", inverse(value) if value else 0)
        out = cs.alloc("out", 0 if value else 1)
        cs.enforce(x, inv, 1 - out, "out")
        cs.enforce(x, out, 0, "zero_if_set")
    return out


def is_nonzero(cs: ConstraintSystem, x: Operand, label: str = "is_nonzero") -> LinearCombination:
    return 1 - is_zero(cs, x, label)


def is_equal(cs: ConstraintSystem, a: Operand, b: Operand, label: str = "is_equal") -> LinearCombination:
    return is_zero(cs, as_lc(a) - as_lc(b), label)


def less_than(
    cs: ConstraintSystem,
    a: Operand,
    b: Operand,
    n: int = DEFAULT_COMPARATOR_BITS,
    label: str = "less_than",
) -> LinearCombination:
    """1 iff a < b, for a, b < 2^n."""
    if n > MAX_COMPARATOR_BITS:
        raise ValueError(f"Comparator width {n} exceeds {MAX_COMPARATOR_BITS} bits")
    bits = num2bits(cs, as_lc(a) + (1 << n) - as_lc(b), n + 1, label)
    return 1 - bits[n]


def less_eq_than(
    cs: ConstraintSystem,
    a: Operand,
    b: Operand,
    n: int = DEFAULT_COMPARATOR_BITS,
    label: str = "less_eq_than",
) -> LinearCombination:
    return less_than(cs, a, as_lc(b) + 1, n, label)


def and_tree(cs: ConstraintSystem, flags: Sequence[Operand], label: str = "and") -> LinearCombination:
    """
    Conjunction of Boolean flags as a balanced pairwise multiplication tree.

    Each level multiplies adjacent pairs, so every constraint stays degree 2;
    four flags give (f0 * f1) * (f2 * f3).
    """
    if not flags:
        raise ValueError("and_tree requires at least one flag")
    level = [as_lc(f) for f in flags]
    depth = 0
    with cs.namespace(label):
        while len(level) > 1:
            nxt: List[LinearCombination] = []
            for i in range(0, len(level) - 1, 2):
                nxt.append(cs.mul(level[i], level[i + 1], f"d{depth}_{i // 2}"))
            if len(level) % 2:
                nxt.append(level[-1])
            level = nxt
            depth += 1
    return level[0]


# =============================================================================
# DIVISION WITH REMAINDER
# =============================================================================

def divide_with_remainder(
    cs: ConstraintSystem,
    dividend: Operand,
    divisor: Operand,
    hint: Optional[Tuple[int, int]] = None,
    bits: int = DEFAULT_COMPARATOR_BITS,
    range_check: bool = False,
    label: str = "divmod",
) -> Tuple[LinearCombination, LinearCombination]:
    """
    Prover-supplied quotient and remainder bound by
    dividend = quotient * divisor + remainder.

    `hint` overrides the honest (quotient, remainder) assignment. Without
    `range_check` nothing constrains the remainder, so (q - k, r + k * divisor)
    satisfies the relation as well as (q, r). With `range_check` the remainder
    must be below the divisor and both hints must fit in `bits` bits.
    """
    dividend, divisor = as_lc(dividend), as_lc(divisor)
    if hint is None:
        d_value, s_value = cs.value(dividend), cs.value(divisor)
        hint = divmod(d_value, s_value) if s_value else (0, d_value)
    q_value, r_value = hint

    with cs.namespace(label):
        quotient = cs.alloc("quotient", q_value)
        remainder = cs.alloc("remainder", r_value)
        cs.enforce(quotient, divisor, dividend - remainder, "division")

        if range_check:
            num2bits(cs, quotient, bits, "quotient_range")
            num2bits(cs, remainder, bits, "remainder_range")
            below = less_than(cs, remainder, divisor, bits, "remainder_below_divisor")
            cs.enforce_equal(below, 1, "remainder_bound")

    return quotient, remainder


# =============================================================================
# CREDENTIAL GADGETS
# =============================================================================

def credential_commitment(
    cs: ConstraintSystem,
    attribute: Operand,
    subject: Operand,
    nonce: Operand,
    label: str = "commitment",
) -> LinearCombination:
    """Poseidon(attribute, subject, nonce): the message an issuer signs."""
    with cs.namespace(label):
        return poseidon_gadget(cs, [attribute, subject, nonce])


def commit_credential(attribute: int, subject: int, nonce: int) -> int:
    """Native twin of credential_commitment, for issuers."""
    return poseidon_hash([attribute, subject, nonce])


def attestation_binding(
    cs: ConstraintSystem,
    message: Operand,
    pubkey_x: Operand,
    pubkey_y: Operand,
    sig_r: Operand,
    sig_s: Operand,
    label: str = "attestation",
) -> LinearCombination:
    """
    Placeholder attestation check: message, pubkey, signature -> valid bit.

    NOT a signature verification. It binds the five values under Poseidon and
    reports 1 iff r, s, pubkey.x, pubkey.y and the binding hash are all
    non-zero. A secp256k1 ECDSA gadget must replace the body before this
    relation is used for anything but testing; the signature of this function
    is the seam for that swap.
    """
    with cs.namespace(label):
        binding = poseidon_gadget(cs, [message, pubkey_x, pubkey_y, sig_r, sig_s])
        checks = [
            is_nonzero(cs, sig_r, "r_nonzero"),
            is_nonzero(cs, sig_s, "s_nonzero"),
            is_nonzero(cs, pubkey_x, "pkx_nonzero"),
            is_nonzero(cs, pubkey_y, "pky_nonzero"),
            is_nonzero(cs, binding, "binding_nonzero"),
        ]
        return and_tree(cs, checks, "valid")


# =============================================================================
# AGE
# =============================================================================

def age_in_years(
    cs: ConstraintSystem,
    birth_timestamp: Operand,
    current_date: Operand,
    bits: int = DEFAULT_COMPARATOR_BITS,
    hardened: bool = False,
    division_hint: Optional[Tuple[int, int]] = None,
) -> LinearCombination:
    """
    Whole years between two Unix timestamps.

    The subtraction is plain field arithmetic: a birth timestamp after the
    current date wraps to a value near p. The hardened form asserts
    birth <= current over `bits` bits first.
    """
    birth, current = as_lc(birth_timestamp), as_lc(current_date)
    with cs.namespace("age_years"):
        if hardened:
            ordered = less_eq_than(cs, birth, current, bits, "birth_not_after_current")
            cs.enforce_equal(ordered, 1, "ordering")
        age_seconds = current - birth
        years, _ = divide_with_remainder(
            cs,
            age_seconds,
            SECONDS_PER_YEAR,
            hint=division_hint,
            bits=bits,
            range_check=hardened,
        )
    return years


def age_at_least(
    cs: ConstraintSystem,
    birth_timestamp: Operand,
    current_date: Operand,
    min_age: Operand,
    bits: int = DEFAULT_COMPARATOR_BITS,
    hardened: bool = False,
    division_hint: Optional[Tuple[int, int]] = None,
) -> LinearCombination:
    """age_ok = LessThan(bits)(min_age, age_years + 1), i.e. min_age <= age_years."""
    years = age_in_years(cs, birth_timestamp, current_date, bits, hardened, division_hint)
    return less_than(cs, min_age, years + 1, bits, "age_ok")
