"""
credproof Verification Gate

Verifier-side admission of proof bundles. The relation proves statements
about whatever public inputs the prover chose; the gate decides whether
those public inputs are the ones it accepts:

    1. issuer A and issuer B keys are in the trusted registry
    2. min_age and required_citizenship equal the gate's policy
    3. current_date is recent (and not in the future)
    4. subject_wallet is the address submitting the proof
    5. the proof verifies

Bundles for another relation variant, or with a public-signal vector of the
wrong length, are rejected before any of these checks.

Only public signals are inspected, so rejection codes leak nothing private.
The trusted-issuer registry is owner-controlled.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set, Tuple, Union

from credproof.circuit import PUBLIC_INPUTS
from credproof.config import get_config
from credproof.hardening import Validators
from credproof.issuer import encode_citizenship
from credproof.observability import CredLayer, get_logger
from credproof.workflow import ProofBundle, ProofService


logger = get_logger("gate", CredLayer.GATE)

# Tolerated lead of a proof's current_date over the gate clock
CLOCK_SKEW_SECONDS = 60


class IssuerRole(Enum):
    """Issuer slot in the relation: A signs date of birth, B citizenship."""
    A = "a"
    B = "b"


class GateCode(Enum):
    ACCEPTED = "accepted"
    UNTRUSTED_ISSUER_A = "untrusted_issuer_a"
    UNTRUSTED_ISSUER_B = "untrusted_issuer_b"
    MIN_AGE_MISMATCH = "min_age_mismatch"
    CITIZENSHIP_MISMATCH = "citizenship_mismatch"
    STALE_PROOF = "stale_proof"
    FUTURE_PROOF = "future_proof"
    WALLET_MISMATCH = "wallet_mismatch"
    WRONG_CIRCUIT = "wrong_circuit"
    MALFORMED_SIGNALS = "malformed_signals"
    INVALID_PROOF = "invalid_proof"


class GateRejection(Exception):
    """Raised by `VerificationGate.enforce` for a rejected bundle."""

    def __init__(self, code: GateCode):
        self.code = code
        super().__init__(f"Proof rejected: {code.value}")


@dataclass(frozen=True)
class GateDecision:
    accepted: bool
    code: GateCode
    proof_digest: str = ""
    subject_wallet: int = 0
    decided_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "code": self.code.value,
            "proof_digest": self.proof_digest,
            "subject_wallet": hex(self.subject_wallet),
            "decided_at": self.decided_at,
        }


def _as_int(value: Any, name: str) -> int:
    result = Validators.validate_field_element(value, name)
    result.raise_if_invalid()
    return result.sanitized_value


class VerificationGate:
    """
    Trusted-issuer registry plus policy checks in front of a verifier.

    Policy values default to configuration. `clock` returns the current Unix
    time and is injectable for tests.
    """

    def __init__(
        self,
        owner: Any,
        service: Optional[ProofService] = None,
        min_age: Optional[int] = None,
        required_citizenship: Optional[Union[str, int]] = None,
        max_proof_age_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        config = get_config()
        self.owner = _as_int(owner, "owner")
        self.service = service or ProofService()
        self.min_age = config.policy.min_age.get() if min_age is None else min_age
        if required_citizenship is None:
            required_citizenship = config.policy.required_citizenship.get()
        if isinstance(required_citizenship, str):
            required_citizenship = encode_citizenship(required_citizenship)
        self.required_citizenship = required_citizenship
        self.max_proof_age_seconds = (
            config.policy.max_proof_age_seconds.get()
            if max_proof_age_seconds is None
            else max_proof_age_seconds
        )
        self.clock = clock

        self._trusted: Dict[IssuerRole, Set[Tuple[int, int]]] = {role: set() for role in IssuerRole}
        self._verified: Set[int] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Trusted issuers
    # ------------------------------------------------------------------

    def _require_owner(self, caller: Any) -> None:
        if _as_int(caller, "caller") != self.owner:
            raise PermissionError("Only the gate owner can change trusted issuers")

    def add_trusted_issuer(self, caller: Any, role: IssuerRole, x: Any, y: Any) -> None:
        self._require_owner(caller)
        point = (_as_int(x, "issuer_pubkey_x"), _as_int(y, "issuer_pubkey_y"))
        with self._lock:
            self._trusted[role].add(point)
        logger.info("Trusted issuer added", operation="add_trusted_issuer", role=role.value)

    def remove_trusted_issuer(self, caller: Any, role: IssuerRole, x: Any, y: Any) -> bool:
        """Returns whether the key was registered."""
        self._require_owner(caller)
        point = (_as_int(x, "issuer_pubkey_x"), _as_int(y, "issuer_pubkey_y"))
        with self._lock:
            present = point in self._trusted[role]
            self._trusted[role].discard(point)
        logger.info(
            "Trusted issuer removed",
            operation="remove_trusted_issuer",
            role=role.value,
            was_registered=present,
        )
        return present

    def is_trusted(self, role: IssuerRole, x: int, y: int) -> bool:
        with self._lock:
            return (x, y) in self._trusted[role]

    def is_verified(self, wallet: Any) -> bool:
        with self._lock:
            return _as_int(wallet, "wallet") in self._verified

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def check_policy(self, bundle: ProofBundle, submitter: int) -> GateCode:
        """First failing public-signal check, or ACCEPTED."""
        if bundle.circuit_digest != self.service.circuit_digest or bundle.hardened != self.service.hardened:
            return GateCode.WRONG_CIRCUIT
        if len(bundle.proof.public_inputs) != len(PUBLIC_INPUTS):
            return GateCode.MALFORMED_SIGNALS

        signals = {name: value.to_int() for name, value in bundle.public_signals.items()}

        if not self.is_trusted(IssuerRole.A, signals["issuer_a_pubkey_x"], signals["issuer_a_pubkey_y"]):
            return GateCode.UNTRUSTED_ISSUER_A
        if not self.is_trusted(IssuerRole.B, signals["issuer_b_pubkey_x"], signals["issuer_b_pubkey_y"]):
            return GateCode.UNTRUSTED_ISSUER_B
        if signals["min_age"] != self.min_age:
            return GateCode.MIN_AGE_MISMATCH
        if signals["required_citizenship"] != self.required_citizenship:
            return GateCode.CITIZENSHIP_MISMATCH

        now = int(self.clock())
        if signals["current_date"] > now + CLOCK_SKEW_SECONDS:
            return GateCode.FUTURE_PROOF
        if now - signals["current_date"] > self.max_proof_age_seconds:
            return GateCode.STALE_PROOF

        if signals["subject_wallet"] != submitter:
            return GateCode.WALLET_MISMATCH
        return GateCode.ACCEPTED

    def submit(self, bundle: ProofBundle, submitter: Any) -> GateDecision:
        """
        Run every check and the verifier; record the wallet on acceptance.

        ProvingSystemError from the verifier collaborator propagates.
        """
        submitter_int = _as_int(submitter, "submitter")
        code = self.check_policy(bundle, submitter_int)
        if code == GateCode.ACCEPTED and not self.service.verify_bundle(bundle):
            code = GateCode.INVALID_PROOF

        accepted = code == GateCode.ACCEPTED
        if accepted:
            with self._lock:
                self._verified.add(submitter_int)

        decision = GateDecision(
            accepted=accepted,
            code=code,
            proof_digest=bundle.proof.digest,
            subject_wallet=submitter_int,
        )
        logger.info(
            "Proof accepted" if accepted else "Proof rejected",
            operation="submit",
            code=code.value,
            proof_digest=decision.proof_digest,
        )
        return decision

    def enforce(self, bundle: ProofBundle, submitter: Any) -> GateDecision:
        decision = self.submit(bundle, submitter)
        if not decision.accepted:
            raise GateRejection(decision.code)
        return decision
