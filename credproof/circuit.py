"""
credproof Age/Citizenship Relation

Top-level relation: a prover holding a date-of-birth credential and a
citizenship credential, both issued to the same subject, shows that

    1. each credential commitment is bound to its issuer's key and signature
    2. the age derived from the private birth timestamp meets min_age
    3. the private citizenship code equals the required one
    4. the credential subject is the submitting wallet

without revealing the birth timestamp, citizenship, signatures or nonces.

Wiring:

    (birth, subject, nonce_a) ─► commitment_a ─► attestation_a ─┐
    (citizenship, subject, nonce_b) ─► commitment_b ─► attestation_b ─┤
    (current - birth) / 31557600 ─► years ─► min_age <= years ─┤ and_tree == 1
    citizenship_code == required_citizenship ──────────────────┘

    subject_pubkey == subject_wallet    (hard equality, outside the tree)

A relation instance either has a witness or it does not. `synthesize` returns
`Witness` or `NoWitness`; there is no partial result and nothing says which
check failed.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from credproof.field import FieldElement
from credproof.gadgets import (
    DEFAULT_COMPARATOR_BITS,
    MAX_AGE_COMPARATOR_BITS,
    age_at_least,
    and_tree,
    attestation_binding,
    credential_commitment,
    is_equal,
)
from credproof.hardening import MalformedInputError, ValidationError, Validators, collect
from credproof.observability import CredLayer, get_logger
from credproof.r1cs import ConstraintSystem, LinearCombination


CIRCUIT_ID = "zk.age_citizenship.v1"

# Declaration order is the public-signal order.
PUBLIC_INPUTS: Tuple[str, ...] = (
    "current_date",
    "min_age",
    "required_citizenship",
    "issuer_a_pubkey_x",
    "issuer_a_pubkey_y",
    "issuer_b_pubkey_x",
    "issuer_b_pubkey_y",
    "subject_pubkey",
    "subject_wallet",
)

PRIVATE_INPUTS: Tuple[str, ...] = (
    "birth_timestamp",
    "citizenship_code",
    "sig_a_r",
    "sig_a_s",
    "sig_b_r",
    "sig_b_s",
    "nonce_a",
    "nonce_b",
)

# Comparator operands; must fit the comparator width.
BOUNDED_INPUTS: Tuple[str, ...] = ("current_date", "birth_timestamp", "min_age")

logger = get_logger("circuit", CredLayer.RELATION)


# =============================================================================
# INPUTS
# =============================================================================

@dataclass(frozen=True)
class RelationInputs:
    """The seventeen named inputs of one relation instance."""

    # public
    current_date: int
    min_age: int
    required_citizenship: int
    issuer_a_pubkey_x: int
    issuer_a_pubkey_y: int
    issuer_b_pubkey_x: int
    issuer_b_pubkey_y: int
    subject_pubkey: int
    subject_wallet: int

    # private
    birth_timestamp: int = field(repr=False)
    citizenship_code: int = field(repr=False)
    sig_a_r: int = field(repr=False)
    sig_a_s: int = field(repr=False)
    sig_b_r: int = field(repr=False)
    sig_b_s: int = field(repr=False)
    nonce_a: int = field(repr=False)
    nonce_b: int = field(repr=False)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        bits: int = DEFAULT_COMPARATOR_BITS,
    ) -> 'RelationInputs':
        """
        Parse inputs from a mapping of ints or decimal/0x-hex strings.

        Raises MalformedInputError listing every missing or out-of-domain
        field. Unknown keys are rejected as well.
        """
        errors: List[ValidationError] = []
        values: Dict[str, int] = {}

        unknown = sorted(set(data) - set(PUBLIC_INPUTS) - set(PRIVATE_INPUTS))
        for name in unknown:
            errors.append(ValidationError(name, "Unknown input"))

        results = []
        for name in PUBLIC_INPUTS + PRIVATE_INPUTS:
            if name not in data:
                errors.append(ValidationError(name, "Missing input"))
                continue
            if name in BOUNDED_INPUTS:
                result = Validators.validate_uint(data[name], name, bits)
            else:
                result = Validators.validate_field_element(data[name], name)
            results.append(result)
            if result.is_valid:
                values[name] = result.sanitized_value

        merged = collect(results)
        if merged is not None:
            errors.extend(merged.errors)
        if errors:
            raise MalformedInputError(errors)
        return cls(**values)

    def validate(self, bits: int = DEFAULT_COMPARATOR_BITS) -> None:
        """Raise MalformedInputError unless every field is in its domain."""
        results = []
        for name in PUBLIC_INPUTS + PRIVATE_INPUTS:
            value = getattr(self, name)
            if name in BOUNDED_INPUTS:
                results.append(Validators.validate_uint(value, name, bits))
            else:
                results.append(Validators.validate_field_element(value, name))
        error = collect(results)
        if error is not None:
            raise error

    def public_values(self) -> List[int]:
        return [getattr(self, name) for name in PUBLIC_INPUTS]

    def to_dict(self) -> Dict[str, str]:
        """Decimal-string form (includes private inputs; handle as secret)."""
        return {f.name: str(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def zeros(cls) -> 'RelationInputs':
        return cls(**{name: 0 for name in PUBLIC_INPUTS + PRIVATE_INPUTS})


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class Witness:
    """
    Satisfying assignment for one relation instance.

    `assignment` holds every wire value, private ones included, and is kept
    out of repr.
    """
    circuit_id: str
    public_signals: Tuple[FieldElement, ...]
    constraint_count: int
    hardened: bool = False
    assignment: Tuple[int, ...] = field(default=(), repr=False)

    @property
    def satisfiable(self) -> bool:
        return True

    def public_inputs(self) -> Dict[str, FieldElement]:
        return dict(zip(PUBLIC_INPUTS, self.public_signals))


@dataclass(frozen=True)
class NoWitness:
    """The instance has no satisfying assignment. Carries no reason."""
    circuit_id: str
    constraint_count: int = 0
    hardened: bool = False

    @property
    def satisfiable(self) -> bool:
        return False


RelationResult = Union[Witness, NoWitness]


# =============================================================================
# RELATION
# =============================================================================

def build_relation(
    cs: ConstraintSystem,
    inputs: RelationInputs,
    hardened: bool = False,
    bits: int = DEFAULT_COMPARATOR_BITS,
    division_hint: Optional[Tuple[int, int]] = None,
) -> LinearCombination:
    """Declare inputs, wire every check into `cs` and return the aggregate bit."""
    if not 1 <= bits <= MAX_AGE_COMPARATOR_BITS:
        raise ValueError(f"Relation comparator width must be in [1, {MAX_AGE_COMPARATOR_BITS}], got {bits}")
    pub = {name: cs.public_input(name, getattr(inputs, name)) for name in PUBLIC_INPUTS}
    priv = {name: cs.private_input(name, getattr(inputs, name)) for name in PRIVATE_INPUTS}

    subject = pub["subject_pubkey"]

    commitment_a = credential_commitment(
        cs, priv["birth_timestamp"], subject, priv["nonce_a"], "credential_a"
    )
    commitment_b = credential_commitment(
        cs, priv["citizenship_code"], subject, priv["nonce_b"], "credential_b"
    )

    a_valid = attestation_binding(
        cs,
        commitment_a,
        pub["issuer_a_pubkey_x"],
        pub["issuer_a_pubkey_y"],
        priv["sig_a_r"],
        priv["sig_a_s"],
        "attestation_a",
    )
    b_valid = attestation_binding(
        cs,
        commitment_b,
        pub["issuer_b_pubkey_x"],
        pub["issuer_b_pubkey_y"],
        priv["sig_b_r"],
        priv["sig_b_s"],
        "attestation_b",
    )

    age_ok = age_at_least(
        cs,
        priv["birth_timestamp"],
        pub["current_date"],
        pub["min_age"],
        bits=bits,
        hardened=hardened,
        division_hint=division_hint,
    )
    citizenship_ok = is_equal(
        cs, priv["citizenship_code"], pub["required_citizenship"], "citizenship_ok"
    )

    cs.enforce_equal(subject, pub["subject_wallet"], "identity_binding")

    all_ok = and_tree(cs, [a_valid, b_valid, age_ok, citizenship_ok], "all_checks")
    cs.enforce_equal(all_ok, 1, "all_checks_hold")
    return all_ok


def synthesize(
    inputs: Union[RelationInputs, Mapping[str, Any]],
    hardened: bool = False,
    bits: int = DEFAULT_COMPARATOR_BITS,
    division_hint: Optional[Tuple[int, int]] = None,
) -> RelationResult:
    """
    Build the relation for `inputs` and return its witness, if one exists.

    Raises MalformedInputError before building anything when an input is
    outside its domain. `division_hint` replaces the honest (quotient,
    remainder) of the age division.
    """
    if not isinstance(inputs, RelationInputs):
        inputs = RelationInputs.from_dict(inputs, bits)
    inputs.validate(bits)

    start = time.monotonic()
    cs = ConstraintSystem(CIRCUIT_ID)
    build_relation(cs, inputs, hardened=hardened, bits=bits, division_hint=division_hint)
    satisfied = cs.is_satisfied()
    duration_ms = (time.monotonic() - start) * 1000

    logger.info(
        "Relation synthesized",
        operation="synthesize",
        duration_ms=duration_ms,
        circuit_id=CIRCUIT_ID,
        satisfiable=satisfied,
        hardened=hardened,
        constraints=cs.num_constraints,
    )

    if not satisfied:
        return NoWitness(CIRCUIT_ID, cs.num_constraints, hardened)

    return Witness(
        circuit_id=CIRCUIT_ID,
        public_signals=tuple(FieldElement(v) for v in cs.public_values()),
        constraint_count=cs.num_constraints,
        hardened=hardened,
        assignment=cs.assignment(),
    )


def relation_shape(hardened: bool = False, bits: int = DEFAULT_COMPARATOR_BITS) -> Dict[str, int]:
    """Constraint and wire counts; independent of the input values."""
    cs = ConstraintSystem(CIRCUIT_ID)
    build_relation(cs, RelationInputs.zeros(), hardened=hardened, bits=bits)
    return cs.stats()
