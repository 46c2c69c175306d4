"""
credproof Proof Workflow

Credentials in, proof bundle out:

    build_inputs(dob, citizenship, policy, wallet)  -> RelationInputs
    ProofService.generate_proof(inputs)             -> ProofBundle
    ProofService.verify_bundle(bundle)              -> bool
    ProofService.prove_many([inputs, ...])          -> [BatchResult, ...]

An unsatisfiable instance raises ProofNotConstructible. Its message is the
same whichever check failed.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import json
import pathlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from credproof.circuit import PUBLIC_INPUTS, RelationInputs, synthesize
from credproof.config import get_config
from credproof.field import FieldElement
from credproof.hardening import ValidationErrors
from credproof.issuer import Credential, CredentialError, CredentialType, encode_citizenship
from credproof.observability import CredLayer, get_logger, timed_operation
from credproof.schema import PROOF_BUNDLE_SCHEMA, validate_against_schema
from credproof.zkp import (
    CircuitRegistry,
    MockProver,
    MockVerifier,
    Proof,
    ProofSystem,
    Prover,
    ProvingSystemError,
    Verifier,
    create_default_registry,
)


logger = get_logger("workflow", CredLayer.PROVER)


class ProofNotConstructible(Exception):
    """The relation has no witness for these inputs."""

    def __init__(self, circuit_id: str):
        self.circuit_id = circuit_id
        super().__init__(f"No witness exists for circuit {circuit_id}")


# =============================================================================
# INPUT ASSEMBLY
# =============================================================================

def build_inputs(
    dob_credential: Credential,
    citizenship_credential: Credential,
    current_date: int,
    min_age: int,
    required_citizenship: Union[str, int],
    subject_wallet: Any,
) -> RelationInputs:
    """
    Assemble relation inputs from two credentials and the verifier's policy.

    Raises CredentialError when the credentials are of the wrong type or
    bound to different subjects. Whether the subject matches the wallet is
    left to the relation.
    """
    if dob_credential.credential_type != CredentialType.DATE_OF_BIRTH:
        raise CredentialError("First credential must be a date_of_birth credential")
    if citizenship_credential.credential_type != CredentialType.CITIZENSHIP:
        raise CredentialError("Second credential must be a citizenship credential")
    if dob_credential.subject != citizenship_credential.subject:
        raise CredentialError("Credentials are bound to different subjects")

    if isinstance(required_citizenship, str):
        required_citizenship = encode_citizenship(required_citizenship)

    return RelationInputs.from_dict({
        "current_date": current_date,
        "min_age": min_age,
        "required_citizenship": required_citizenship,
        "issuer_a_pubkey_x": dob_credential.issuer_pubkey_x,
        "issuer_a_pubkey_y": dob_credential.issuer_pubkey_y,
        "issuer_b_pubkey_x": citizenship_credential.issuer_pubkey_x,
        "issuer_b_pubkey_y": citizenship_credential.issuer_pubkey_y,
        "subject_pubkey": dob_credential.subject,
        "subject_wallet": subject_wallet,
        "birth_timestamp": dob_credential.attribute_value,
        "citizenship_code": citizenship_credential.attribute_value,
        "sig_a_r": dob_credential.sig_r,
        "sig_a_s": dob_credential.sig_s,
        "sig_b_r": citizenship_credential.sig_r,
        "sig_b_s": citizenship_credential.sig_s,
        "nonce_a": dob_credential.nonce,
        "nonce_b": citizenship_credential.nonce,
    })


# =============================================================================
# PROOF BUNDLE
# =============================================================================

@dataclass
class ProofBundle:
    """A proof plus what a verifier needs to route it."""
    proof: Proof
    circuit_digest: str
    hardened: bool = False

    @property
    def public_signals(self) -> Dict[str, FieldElement]:
        return dict(zip(PUBLIC_INPUTS, self.proof.public_inputs))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof": self.proof.to_dict(),
            "public_signals": {k: v.to_decimal() for k, v in self.public_signals.items()},
            "circuit_digest": self.circuit_digest,
            "hardened": self.hardened,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofBundle':
        errors = validate_against_schema(data, PROOF_BUNDLE_SCHEMA)
        if errors:
            raise ProvingSystemError("Invalid proof bundle: " + "; ".join(errors))
        proof = Proof.from_dict(data["proof"])
        if proof.circuit_digest != data["circuit_digest"]:
            raise ProvingSystemError("Bundle circuit digest does not match its proof")
        if len(proof.public_inputs) != len(PUBLIC_INPUTS):
            raise ProvingSystemError(
                f"Proof carries {len(proof.public_inputs)} public inputs, expected {len(PUBLIC_INPUTS)}"
            )
        signals = {name: int(value) for name, value in data["public_signals"].items()}
        if signals != {name: value.to_int() for name, value in zip(PUBLIC_INPUTS, proof.public_inputs)}:
            raise ProvingSystemError("Bundle public signals do not match its proof")
        return cls(
            proof=proof,
            circuit_digest=data["circuit_digest"],
            hardened=bool(data.get("hardened", False)),
        )

    def save(self, path: Union[str, pathlib.Path]) -> pathlib.Path:
        p = pathlib.Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        return p

    @classmethod
    def load(cls, path: Union[str, pathlib.Path]) -> 'ProofBundle':
        p = pathlib.Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ProvingSystemError(f"Proof bundle is not valid JSON: {p}") from e
        return cls.from_dict(data)


@dataclass
class BatchResult:
    """Outcome of one request in a batch: a bundle or the error it raised."""
    index: int
    bundle: Optional[ProofBundle] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.bundle is not None


# =============================================================================
# SERVICE
# =============================================================================

class ProofService:
    """
    Synthesize, prove and verify against one registered circuit.

    Defaults come from configuration. The prover and verifier are
    collaborators; the mock pair is used unless others are supplied.
    """

    def __init__(
        self,
        registry: Optional[CircuitRegistry] = None,
        circuit_digest: Optional[str] = None,
        prover: Optional[Prover] = None,
        verifier: Optional[Verifier] = None,
        hardened: Optional[bool] = None,
        bits: Optional[int] = None,
        proof_system: Optional[ProofSystem] = None,
        seed: Optional[bytes] = None,
        max_workers: Optional[int] = None,
    ):
        config = get_config()
        self.hardened = config.relation.hardened.get() if hardened is None else hardened
        self.bits = config.relation.comparator_bits.get() if bits is None else bits
        self.max_workers = config.prover.max_workers.get() if max_workers is None else max_workers

        if registry is None:
            if proof_system is None:
                proof_system = ProofSystem(config.prover.proof_system.get())
            if seed is None:
                seed = config.prover.setup_seed.get().encode()
            registry, circuit_digest = create_default_registry(
                proof_system, self.hardened, self.bits, seed
            )
        elif circuit_digest is None:
            raise ValueError("circuit_digest is required with an explicit registry")

        self.registry = registry
        self.circuit_digest = circuit_digest
        self.prover: Prover = prover or MockProver()
        self.verifier: Verifier = verifier or MockVerifier()

    @timed_operation(logger, "generate_proof")
    def generate_proof(self, inputs: Union[RelationInputs, Dict[str, Any]]) -> ProofBundle:
        """
        Raises MalformedInputError, ProofNotConstructible or
        ProvingSystemError; nothing else is caught or translated.
        """
        circuit, pk, _ = self.registry.require_keys(self.circuit_digest)
        result = synthesize(inputs, hardened=self.hardened, bits=self.bits)
        if not result.satisfiable:
            raise ProofNotConstructible(result.circuit_id)
        proof = self.prover.prove(circuit, pk, result)
        return ProofBundle(proof=proof, circuit_digest=circuit.digest, hardened=circuit.hardened)

    def verify_bundle(self, bundle: ProofBundle) -> bool:
        circuit, _, vk = self.registry.require_keys(bundle.circuit_digest)
        return self.verifier.verify(circuit, vk, bundle.proof)

    def prove_many(
        self,
        requests: Sequence[Union[RelationInputs, Dict[str, Any]]],
        max_workers: Optional[int] = None,
    ) -> List[BatchResult]:
        """
        Prove independent requests in parallel.

        Results come back in request order. Per-request failures of the three
        documented kinds are captured in the result; anything else propagates.
        """
        workers = max_workers or self.max_workers

        def run(index: int, request: Any) -> BatchResult:
            try:
                return BatchResult(index, bundle=self.generate_proof(request))
            except (ValidationErrors, ProofNotConstructible, ProvingSystemError) as e:
                return BatchResult(index, error=e)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(run, i, r) for i, r in enumerate(requests)]
            results = [f.result() for f in futures]

        logger.info(
            "Batch proved",
            operation="prove_many",
            requests=len(results),
            succeeded=sum(1 for r in results if r.ok),
        )
        return results


def generate_proof(
    inputs: Union[RelationInputs, Dict[str, Any]],
    service: Optional[ProofService] = None,
) -> ProofBundle:
    return (service or ProofService()).generate_proof(inputs)


def verify_bundle(bundle: ProofBundle, service: Optional[ProofService] = None) -> bool:
    return (service or ProofService()).verify_bundle(bundle)
