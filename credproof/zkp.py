"""
credproof Zero-Knowledge Proof Infrastructure

Proof objects, keys, a content-addressed circuit registry and the
prover/verifier interfaces that sit between the relation and a real proving
backend.

Supported Proof Systems:
    - Groth16: Succinct proofs, per-circuit trusted setup
    - PLONK: Universal trusted setup, larger proofs

The key ceremony and the proving backend are external collaborators. This
module describes them by interface (`Prover`, `Verifier`) and ships
deterministic mock stand-ins: `mock_setup` plays the ceremony, `MockProver`
binds the public signals of a satisfied witness under the setup secret, and
`MockVerifier` checks that binding. The mocks prove nothing in zero
knowledge. They exist so the workflow, gate and CLI can be exercised end to
end.

Proofs reference their circuit by digest, so a proof made for the hardened
relation never verifies against the faithful one.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple

from credproof.circuit import (
    CIRCUIT_ID,
    PRIVATE_INPUTS,
    PUBLIC_INPUTS,
    RelationResult,
    relation_shape,
)
from credproof.field import FieldElement
from credproof.gadgets import DEFAULT_COMPARATOR_BITS
from credproof.hardening import CryptoUtils
from credproof.observability import CredLayer, get_logger


prover_logger = get_logger("mock_prover", CredLayer.PROVER)
verifier_logger = get_logger("mock_verifier", CredLayer.VERIFIER)


class ProvingSystemError(Exception):
    """Failure of the proving/verification collaborator (keys, circuit mismatch, encoding)."""
    pass


# =============================================================================
# PROOF SYSTEMS
# =============================================================================

class ProofSystem(Enum):
    """
    Supported zero-knowledge proof systems.

    Selection criteria:
        - GROTH16: Smallest proofs (~200 bytes), fastest verification, trusted setup
        - PLONK: Universal setup, moderate proof size (~500 bytes)
    """
    GROTH16 = "groth16"
    PLONK = "plonk"

    def requires_circuit_specific_setup(self) -> bool:
        return self == ProofSystem.GROTH16


# =============================================================================
# CIRCUIT DESCRIPTOR
# =============================================================================

@dataclass
class CircuitDescriptor:
    """
    Content-addressed description of a relation.

    Carries the shape a backend needs (input names, constraint count) but
    none of the constraints themselves; those are rebuilt from the inputs by
    `credproof.circuit.synthesize`.
    """
    circuit_id: str
    proof_system: ProofSystem
    public_input_names: List[str]
    private_input_names: List[str]
    constraint_count: int
    hardened: bool = False
    comparator_bits: int = DEFAULT_COMPARATOR_BITS
    description: str = ""
    version: str = "1.0.0"

    @property
    def digest(self) -> str:
        """Content-addressed identifier for the circuit."""
        content = {
            "circuit_id": self.circuit_id,
            "proof_system": self.proof_system.value,
            "public_input_names": self.public_input_names,
            "private_input_names": self.private_input_names,
            "constraint_count": self.constraint_count,
            "hardened": self.hardened,
            "comparator_bits": self.comparator_bits,
            "version": self.version,
        }
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit_id": self.circuit_id,
            "proof_system": self.proof_system.value,
            "public_input_names": self.public_input_names,
            "private_input_names": self.private_input_names,
            "constraint_count": self.constraint_count,
            "hardened": self.hardened,
            "comparator_bits": self.comparator_bits,
            "description": self.description,
            "version": self.version,
            "digest": self.digest,
        }


def build_age_citizenship_descriptor(
    proof_system: ProofSystem = ProofSystem.GROTH16,
    hardened: bool = False,
    bits: int = DEFAULT_COMPARATOR_BITS,
) -> CircuitDescriptor:
    """
    Describe the age/citizenship relation.

    Public inputs: current_date, min_age, required_citizenship, both issuer
    keys, subject_pubkey, subject_wallet
    Private inputs: birth_timestamp, citizenship_code, both signatures, nonces
    """
    shape = relation_shape(hardened=hardened, bits=bits)
    variant = "hardened" if hardened else "faithful"
    return CircuitDescriptor(
        circuit_id=CIRCUIT_ID,
        proof_system=proof_system,
        public_input_names=list(PUBLIC_INPUTS),
        private_input_names=list(PRIVATE_INPUTS),
        constraint_count=shape["constraints"],
        hardened=hardened,
        comparator_bits=bits,
        description=f"Proves age >= min_age and citizenship match from two issued credentials ({variant})",
    )


# =============================================================================
# KEYS
# =============================================================================

@dataclass
class ProvingKey:
    """
    Proving key for a specific circuit.

    Contains the structured reference string (SRS) elements needed
    to generate proofs for the circuit.
    """
    circuit_id: str
    circuit_digest: str
    proof_system: ProofSystem
    constraint_count: int
    public_input_count: int
    key_data: bytes = field(repr=False)
    digest: str = ""

    def __post_init__(self):
        if not self.digest:
            self.digest = hashlib.sha256(self.key_data).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit_id": self.circuit_id,
            "circuit_digest": self.circuit_digest,
            "proof_system": self.proof_system.value,
            "constraint_count": self.constraint_count,
            "public_input_count": self.public_input_count,
            "key_digest": self.digest,
        }


@dataclass
class VerificationKey:
    """
    Verification key for a specific circuit.

    `setup_id` ties the key to the proving key from the same ceremony.
    """
    circuit_id: str
    circuit_digest: str
    proof_system: ProofSystem
    public_input_count: int
    key_data: bytes = field(repr=False)
    setup_id: str = ""
    digest: str = ""

    def __post_init__(self):
        if not self.digest:
            self.digest = hashlib.sha256(b"vk:" + self.key_data).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit_id": self.circuit_id,
            "circuit_digest": self.circuit_digest,
            "proof_system": self.proof_system.value,
            "public_input_count": self.public_input_count,
            "setup_id": self.setup_id,
            "key_digest": self.digest,
        }


# =============================================================================
# PROOF
# =============================================================================

@dataclass
class Proof:
    """
    A zero-knowledge proof.

    Public inputs are serialized as decimal strings in declared order, the
    form verifier contracts consume.
    """
    circuit_id: str
    circuit_digest: str
    proof_system: ProofSystem
    public_inputs: List[FieldElement]
    proof_data: bytes
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def digest(self) -> str:
        """Content-addressed identifier for the proof."""
        content = {
            "circuit_id": self.circuit_id,
            "circuit_digest": self.circuit_digest,
            "proof_system": self.proof_system.value,
            "public_inputs": [p.to_decimal() for p in self.public_inputs],
            "proof_data": self.proof_data.hex(),
        }
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit_id": self.circuit_id,
            "circuit_digest": self.circuit_digest,
            "proof_system": self.proof_system.value,
            "public_inputs": [p.to_decimal() for p in self.public_inputs],
            "proof_data": self.proof_data.hex(),
            "generated_at": self.generated_at,
            "digest": self.digest,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Proof':
        try:
            proof = cls(
                circuit_id=data["circuit_id"],
                circuit_digest=data["circuit_digest"],
                proof_system=ProofSystem(data["proof_system"]),
                public_inputs=[FieldElement(int(p)) for p in data["public_inputs"]],
                proof_data=bytes.fromhex(data["proof_data"]),
                generated_at=data.get("generated_at", ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProvingSystemError(f"Malformed proof: {e}") from e

        claimed = data.get("digest")
        if claimed and claimed != proof.digest:
            raise ProvingSystemError("Proof digest does not match its content")
        return proof


# =============================================================================
# CIRCUIT REGISTRY
# =============================================================================

class CircuitRegistry:
    """
    Content-addressed registry of circuits and their keys.

    Circuits are identified by their digest; the human-readable circuit_id
    maps to the most recently registered digest.
    """

    def __init__(self):
        self._circuits: Dict[str, CircuitDescriptor] = {}
        self._circuit_id_to_digest: Dict[str, str] = {}
        self._proving_keys: Dict[str, ProvingKey] = {}
        self._verification_keys: Dict[str, VerificationKey] = {}

    def register(
        self,
        circuit: CircuitDescriptor,
        proving_key: Optional[ProvingKey] = None,
        verification_key: Optional[VerificationKey] = None,
    ) -> str:
        """
        Register a circuit and optionally its keys.

        Returns the circuit digest.
        """
        digest = circuit.digest
        for key in (proving_key, verification_key):
            if key is not None and key.circuit_digest != digest:
                raise ProvingSystemError(
                    f"Key for {key.circuit_id} does not belong to circuit {digest[:16]}"
                )

        self._circuits[digest] = circuit
        self._circuit_id_to_digest[circuit.circuit_id] = digest

        if proving_key:
            self._proving_keys[digest] = proving_key
        if verification_key:
            self._verification_keys[digest] = verification_key

        return digest

    def get_circuit(self, digest: str) -> Optional[CircuitDescriptor]:
        return self._circuits.get(digest)

    def get_circuit_by_id(self, circuit_id: str) -> Optional[CircuitDescriptor]:
        """Retrieve a circuit by its circuit_id (human-readable name)."""
        digest = self._circuit_id_to_digest.get(circuit_id)
        if digest:
            return self._circuits.get(digest)
        return None

    def get_digest_by_circuit_id(self, circuit_id: str) -> Optional[str]:
        return self._circuit_id_to_digest.get(circuit_id)

    def require_keys(self, circuit_digest: str) -> Tuple[CircuitDescriptor, ProvingKey, VerificationKey]:
        """Circuit with both keys, or ProvingSystemError."""
        circuit = self._circuits.get(circuit_digest)
        pk = self._proving_keys.get(circuit_digest)
        vk = self._verification_keys.get(circuit_digest)
        if circuit is None or pk is None or vk is None:
            raise ProvingSystemError(f"No keys registered for circuit {circuit_digest[:16]}")
        return circuit, pk, vk

    def list_circuits(
        self,
        proof_system: Optional[ProofSystem] = None,
    ) -> List[CircuitDescriptor]:
        circuits = list(self._circuits.values())
        if proof_system:
            circuits = [c for c in circuits if c.proof_system == proof_system]
        return circuits

    def export_registry(self) -> Dict[str, Any]:
        """Export registry to serializable format."""
        return {
            "circuits": {
                digest: circuit.to_dict()
                for digest, circuit in self._circuits.items()
            },
            "verification_keys": {
                digest: key.to_dict()
                for digest, key in self._verification_keys.items()
            },
        }


# =============================================================================
# PROVER AND VERIFIER INTERFACES
# =============================================================================

class Prover(Protocol):
    """Protocol for ZK proof generation."""

    def prove(
        self,
        circuit: CircuitDescriptor,
        proving_key: ProvingKey,
        witness: RelationResult,
    ) -> Proof:
        """Generate a proof for the given witness."""
        ...


class Verifier(Protocol):
    """Protocol for ZK proof verification."""

    def verify(
        self,
        circuit: CircuitDescriptor,
        verification_key: VerificationKey,
        proof: Proof,
    ) -> bool:
        """Verify a proof against the circuit and public inputs."""
        ...


# =============================================================================
# MOCK IMPLEMENTATIONS (for testing without actual ZK backend)
# =============================================================================

MOCK_NONCE_BYTES = 32
MOCK_TAG_BYTES = 32


def mock_setup(
    circuit: CircuitDescriptor,
    seed: Optional[bytes] = None,
) -> Tuple[ProvingKey, VerificationKey]:
    """
    Stand-in for the key ceremony.

    Both keys carry the same secret, so the "proof" is a MAC only the holder
    of either key can produce. A given seed always yields the same pair.
    """
    if seed is None:
        secret = secrets.token_bytes(32)
    else:
        secret = hashlib.sha256(b"credproof.mock_setup:" + seed + circuit.digest.encode()).digest()
    setup_id = hashlib.sha256(b"setup:" + secret).hexdigest()

    pk = ProvingKey(
        circuit_id=circuit.circuit_id,
        circuit_digest=circuit.digest,
        proof_system=circuit.proof_system,
        constraint_count=circuit.constraint_count,
        public_input_count=len(circuit.public_input_names),
        key_data=secret,
    )
    vk = VerificationKey(
        circuit_id=circuit.circuit_id,
        circuit_digest=circuit.digest,
        proof_system=circuit.proof_system,
        public_input_count=len(circuit.public_input_names),
        key_data=secret,
        setup_id=setup_id,
    )
    return pk, vk


def _binding_tag(key: bytes, circuit_digest: str, public_inputs: List[FieldElement], nonce: bytes) -> bytes:
    message = json.dumps(
        {
            "circuit_digest": circuit_digest,
            "public_inputs": [p.to_decimal() for p in public_inputs],
            "nonce": nonce.hex(),
        },
        sort_keys=True,
        separators=(",", ":"),
    ).encode()
    return hmac.new(key, message, hashlib.sha256).digest()


class MockProver:
    """
    Mock prover for testing.

    Refuses anything but a satisfied witness of the circuit it is asked to
    prove. The proof is a random nonce followed by an HMAC of the public
    signals under the setup secret.
    NOT ZERO-KNOWLEDGE OR SOUND - for testing only.
    """

    def prove(
        self,
        circuit: CircuitDescriptor,
        proving_key: ProvingKey,
        witness: RelationResult,
    ) -> Proof:
        start = time.monotonic()

        if proving_key.circuit_digest != circuit.digest:
            raise ProvingSystemError("Proving key does not belong to this circuit")
        if proving_key.proof_system != circuit.proof_system:
            raise ProvingSystemError("Proving key is for a different proof system")
        if not witness.satisfiable:
            raise ProvingSystemError("Cannot prove an instance without a witness")
        if witness.circuit_id != circuit.circuit_id or witness.hardened != circuit.hardened:
            raise ProvingSystemError("Witness was synthesized for a different circuit")
        if len(witness.public_signals) != len(circuit.public_input_names):
            raise ProvingSystemError(
                f"Expected {len(circuit.public_input_names)} public signals, "
                f"got {len(witness.public_signals)}"
            )

        public_inputs = list(witness.public_signals)
        nonce = secrets.token_bytes(MOCK_NONCE_BYTES)
        tag = _binding_tag(proving_key.key_data, circuit.digest, public_inputs, nonce)

        proof = Proof(
            circuit_id=circuit.circuit_id,
            circuit_digest=circuit.digest,
            proof_system=circuit.proof_system,
            public_inputs=public_inputs,
            proof_data=nonce + tag,
        )

        prover_logger.info(
            "Proof generated",
            operation="prove",
            duration_ms=(time.monotonic() - start) * 1000,
            circuit_id=circuit.circuit_id,
            proof_digest=proof.digest,
        )
        return proof


class MockVerifier:
    """
    Mock verifier for testing.

    Accepts exactly the proofs MockProver produced under the matching key
    pair, with the public signals unchanged.
    NOT CRYPTOGRAPHICALLY SECURE - for testing only.
    """

    def verify(
        self,
        circuit: CircuitDescriptor,
        verification_key: VerificationKey,
        proof: Proof,
    ) -> bool:
        if verification_key.circuit_digest != circuit.digest:
            raise ProvingSystemError("Verification key does not belong to this circuit")
        if verification_key.proof_system != circuit.proof_system:
            raise ProvingSystemError("Verification key is for a different proof system")

        valid = self._check(circuit, verification_key, proof)
        verifier_logger.info(
            "Proof verified" if valid else "Proof rejected",
            operation="verify",
            circuit_id=circuit.circuit_id,
            proof_digest=proof.digest,
            valid=valid,
        )
        return valid

    @staticmethod
    def _check(circuit: CircuitDescriptor, verification_key: VerificationKey, proof: Proof) -> bool:
        if proof.circuit_id != circuit.circuit_id:
            return False
        if proof.circuit_digest != circuit.digest:
            return False
        if proof.proof_system != circuit.proof_system:
            return False
        if len(proof.public_inputs) != len(circuit.public_input_names):
            return False
        if len(proof.proof_data) != MOCK_NONCE_BYTES + MOCK_TAG_BYTES:
            return False
        for pi in proof.public_inputs:
            if not isinstance(pi, FieldElement):
                return False

        nonce, tag = proof.proof_data[:MOCK_NONCE_BYTES], proof.proof_data[MOCK_NONCE_BYTES:]
        expected = _binding_tag(verification_key.key_data, circuit.digest, proof.public_inputs, nonce)
        return CryptoUtils.constant_time_compare(tag, expected)


# =============================================================================
# DEFAULT REGISTRY
# =============================================================================

def create_default_registry(
    proof_system: ProofSystem = ProofSystem.GROTH16,
    hardened: bool = False,
    bits: int = DEFAULT_COMPARATOR_BITS,
    seed: Optional[bytes] = None,
) -> Tuple[CircuitRegistry, str]:
    """
    Registry holding the age/citizenship circuit with mock keys.

    Returns the registry and the circuit digest.
    """
    registry = CircuitRegistry()
    circuit = build_age_citizenship_descriptor(proof_system, hardened, bits)
    pk, vk = mock_setup(circuit, seed)
    digest = registry.register(circuit, pk, vk)
    return registry, digest
