"""
Tests for comparator, aggregation, division and credential gadgets.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from credproof.field import FIELD_MODULUS
from credproof.gadgets import (
    SECONDS_PER_YEAR,
    age_at_least,
    age_in_years,
    and_tree,
    attestation_binding,
    commit_credential,
    credential_commitment,
    divide_with_remainder,
    is_equal,
    is_nonzero,
    is_zero,
    less_eq_than,
    less_than,
    num2bits,
)
from credproof.poseidon import poseidon_hash
from credproof.r1cs import ConstraintSystem


def _cs():
    return ConstraintSystem("gadgets")


class TestComparators:
    """Tests for Num2Bits, IsZero, IsEqual, LessThan and LessEqThan."""

    def test_num2bits(self):
        cs = _cs()
        x = cs.private_input("x", 0b1011)
        bits = num2bits(cs, x, 4)
        assert [cs.value(b) for b in bits] == [1, 1, 0, 1]
        assert cs.is_satisfied()

    def test_num2bits_overflow_unsatisfiable(self):
        cs = _cs()
        x = cs.private_input("x", 16)
        num2bits(cs, x, 4)
        assert not cs.is_satisfied()

    @pytest.mark.parametrize("value,expected", [(0, 1), (1, 0), (FIELD_MODULUS - 1, 0)])
    def test_is_zero(self, value, expected):
        cs = _cs()
        x = cs.private_input("x", value)
        out = is_zero(cs, x)
        assert cs.value(out) == expected
        assert cs.value(is_nonzero(cs, x)) == 1 - expected
        assert cs.is_satisfied()

    def test_is_zero_rejects_forged_output(self):
        cs = _cs()
        x = cs.private_input("x", 5)
        out = is_zero(cs, x)
        cs._values[next(iter(out.terms))] = 1
        assert not cs.is_satisfied()

    def test_is_equal(self):
        cs = _cs()
        a = cs.private_input("a", 21843)
        b = cs.public_input("b", 21843)
        c = cs.public_input("c", 17231)
        assert cs.value(is_equal(cs, a, b)) == 1
        assert cs.value(is_equal(cs, a, c, "neq")) == 0
        assert cs.is_satisfied()

    @pytest.mark.parametrize("a,b,expected", [(3, 5, 1), (5, 5, 0), (6, 5, 0), (0, 2 ** 64 - 1, 1)])
    def test_less_than(self, a, b, expected):
        cs = _cs()
        out = less_than(cs, cs.private_input("a", a), cs.private_input("b", b), 64)
        assert cs.value(out) == expected
        assert cs.is_satisfied()

    @pytest.mark.parametrize("a,b,expected", [(3, 5, 1), (5, 5, 1), (6, 5, 0)])
    def test_less_eq_than(self, a, b, expected):
        cs = _cs()
        out = less_eq_than(cs, cs.private_input("a", a), cs.private_input("b", b), 64)
        assert cs.value(out) == expected
        assert cs.is_satisfied()

    def test_less_than_operand_beyond_width_unsatisfiable(self):
        cs = _cs()
        less_than(cs, cs.private_input("a", 1), cs.private_input("b", 2 ** 70), 64)
        assert not cs.is_satisfied()

    def test_less_than_width_limit(self):
        cs = _cs()
        with pytest.raises(ValueError):
            less_than(cs, 1, 2, 253)


class TestAndTree:
    """Tests for the pairwise AND aggregation."""

    @pytest.mark.parametrize("flags,expected", [
        ([1, 1, 1, 1], 1),
        ([1, 1, 0, 1], 0),
        ([0, 0, 0, 0], 0),
        ([1, 1, 1], 1),
        ([1], 1),
    ])
    def test_conjunction(self, flags, expected):
        cs = _cs()
        wires = [cs.private_input(f"f{i}", f) for i, f in enumerate(flags)]
        assert cs.value(and_tree(cs, wires)) == expected
        assert cs.is_satisfied()

    def test_balanced_shape(self):
        """Four flags: (f0 * f1) and (f2 * f3), then their product."""
        cs = _cs()
        wires = [cs.private_input(f"f{i}", 1) for i in range(4)]
        and_tree(cs, wires, "all")
        assert [c.label for c in cs.constraints] == ["all/d0_0", "all/d0_1", "all/d1_0"]

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            and_tree(_cs(), [])


class TestDivideWithRemainder:
    """Division primitive: faithful vs range-checked."""

    DIVIDEND = SECONDS_PER_YEAR * 5 + 12345

    def _divide(self, hint, range_check):
        cs = _cs()
        dividend = cs.public_input("dividend", self.DIVIDEND)
        q, r = divide_with_remainder(cs, dividend, SECONDS_PER_YEAR, hint=hint, range_check=range_check)
        return cs, q, r

    def test_honest_default_hint(self):
        cs, q, r = self._divide(None, False)
        assert (cs.value(q), cs.value(r)) == (5, 12345)
        assert cs.is_satisfied()

    def test_explicit_honest_hint(self):
        cs, _, _ = self._divide((5, 12345), False)
        assert cs.is_satisfied()

    def test_forged_hint_satisfies_faithful_primitive(self):
        """The remainder is unconstrained, so (q - 1, r + divisor) is accepted."""
        cs, q, r = self._divide((4, 12345 + SECONDS_PER_YEAR), False)
        assert (cs.value(q), cs.value(r)) == (4, 12345 + SECONDS_PER_YEAR)
        assert cs.is_satisfied()

    def test_forged_hint_fails_range_checked_primitive(self):
        cs, _, _ = self._divide((4, 12345 + SECONDS_PER_YEAR), True)
        assert not cs.is_satisfied()

    def test_honest_hint_passes_range_checked_primitive(self):
        cs, _, _ = self._divide((5, 12345), True)
        assert cs.is_satisfied()

    def test_inconsistent_hint_unsatisfiable(self):
        cs, _, _ = self._divide((5, 12346), False)
        assert not cs.is_satisfied()

    def test_single_constraint_when_faithful(self):
        cs, _, _ = self._divide(None, False)
        assert cs.num_constraints == 1


class TestAge:
    """Tests for age derivation and the threshold check."""

    BIRTH = 946684800

    def _age_ok(self, current, min_age, hardened=False, hint=None):
        cs = _cs()
        birth = cs.private_input("birth", self.BIRTH)
        now = cs.public_input("current", current)
        floor = cs.public_input("min_age", min_age)
        ok = age_at_least(cs, birth, now, floor, hardened=hardened, division_hint=hint)
        return cs, ok

    def test_age_in_years(self):
        cs = _cs()
        birth = cs.private_input("birth", self.BIRTH)
        now = cs.public_input("current", self.BIRTH + 20 * SECONDS_PER_YEAR + 5)
        years = age_in_years(cs, birth, now)
        assert cs.value(years) == 20

    def test_boundary_is_inclusive(self):
        cs, ok = self._age_ok(self.BIRTH + 18 * SECONDS_PER_YEAR, 18)
        assert cs.value(ok) == 1
        assert cs.is_satisfied()

    def test_one_second_short(self):
        cs, ok = self._age_ok(self.BIRTH + 18 * SECONDS_PER_YEAR - 1, 18)
        assert cs.value(ok) == 0
        assert cs.is_satisfied()

    def test_birth_after_current_wraps_and_fails_faithful(self):
        cs, _ = self._age_ok(self.BIRTH - 1, 0)
        assert not cs.is_satisfied()

    def test_birth_after_current_fails_hardened(self):
        cs, _ = self._age_ok(self.BIRTH - 1, 0, hardened=True)
        assert not cs.is_satisfied()

    def test_forged_quotient_lifts_age_in_faithful_form(self):
        """A 17-year-old claims 18 by moving one divisor out of the remainder."""
        current = self.BIRTH + 18 * SECONDS_PER_YEAR - 1000
        age_seconds = current - self.BIRTH
        forged = (18, (age_seconds - 18 * SECONDS_PER_YEAR) % FIELD_MODULUS)

        cs, ok = self._age_ok(current, 18, hint=forged)
        assert cs.value(ok) == 1
        assert cs.is_satisfied()

        cs, _ = self._age_ok(current, 18, hardened=True, hint=forged)
        assert not cs.is_satisfied()


class TestCredentialGadgets:
    """Tests for the credential binder and the attestation placeholder."""

    def test_commitment_matches_native(self):
        cs = _cs()
        wires = [cs.private_input(n, v) for n, v in (("attr", 946684800), ("subj", 77), ("nonce", 5))]
        out = credential_commitment(cs, *wires)
        assert cs.value(out) == commit_credential(946684800, 77, 5)
        assert commit_credential(946684800, 77, 5) == poseidon_hash([946684800, 77, 5])

    def _binding(self, pkx, pky, r, s):
        cs = _cs()
        msg = cs.private_input("msg", 123)
        wires = [cs.private_input(n, v) for n, v in (("pkx", pkx), ("pky", pky), ("r", r), ("s", s))]
        valid = attestation_binding(cs, msg, *wires)
        return cs, valid

    def test_all_nonzero_is_valid(self):
        cs, valid = self._binding(1, 2, 3, 4)
        assert cs.value(valid) == 1
        assert cs.is_satisfied()

    @pytest.mark.parametrize("zeroed", range(4))
    def test_any_zero_component_is_invalid(self, zeroed):
        values = [1, 2, 3, 4]
        values[zeroed] = 0
        cs, valid = self._binding(*values)
        assert cs.value(valid) == 0
        assert cs.is_satisfied()

    def test_placeholder_accepts_arbitrary_signature(self):
        """Not a signature check: any non-zero (r, s) passes."""
        cs, valid = self._binding(1, 2, 999, 1000)
        assert cs.value(valid) == 1
