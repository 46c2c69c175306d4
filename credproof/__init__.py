"""
credproof Zero-Knowledge Age and Citizenship Proofs

A prover holding two issued credentials (date of birth from issuer A,
citizenship from issuer B) shows that both are bound to the same subject,
that the subject is the submitting wallet, that the subject is at least
min_age years old and holds the required citizenship, while revealing
neither the birth date nor the citizenship nor the signatures.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                        CREDENTIAL PROOF STACK                            │
    │                                                                          │
    │  LAYER 3: OUTER SURFACES                                                 │
    │    cli.py          credproof command line                                │
    │    gate.py         Trusted issuers, policy and wallet checks             │
    │    workflow.py     Credentials -> inputs -> proof bundle                 │
    │    issuer.py       secp256k1 issuance of committed attributes            │
    │                                                                          │
    │  LAYER 2: PROOF INFRASTRUCTURE                                           │
    │    zkp.py          Descriptors, keys, proofs, mock prover/verifier       │
    │    circuit.py      The age/citizenship relation, Witness | NoWitness     │
    │                                                                          │
    │  LAYER 1: CONSTRAINT PRIMITIVES                                          │
    │    gadgets.py      Comparators, division, AND tree, credential gadgets   │
    │    poseidon.py     Poseidon hash, native and in-circuit                  │
    │    r1cs.py         Rank-1 constraint system with witness calculator      │
    │    field.py        BN254 scalar field                                    │
    │                                                                          │
    │  AMBIENT                                                                 │
    │    config.py  hardening.py  observability.py  schema.py                  │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Core Concepts
─────────────

    Relation: The constraint system built per request. It is satisfiable iff
    every check holds. Failure has no reason attached: the prover learns
    only that no witness exists.

    Attestation binding: A placeholder for in-circuit ECDSA. It hashes
    message, issuer key and signature together and requires them to be
    non-zero. It does NOT verify a signature; trust in issuers rests on the
    gate's registry and on off-circuit checks until a real gadget replaces it.

    Hardened relation: Adds the range checks the faithful relation omits
    (remainder below divisor, birth not after current date).

Copyright © 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import credproof modules on first access."""

    # Field exports
    if name in ("FIELD_MODULUS", "FieldElement"):
        from credproof import field
        return getattr(field, name)

    # Relation exports
    if name in ("RelationInputs", "Witness", "NoWitness", "synthesize",
                "build_relation", "PUBLIC_INPUTS", "PRIVATE_INPUTS", "CIRCUIT_ID"):
        from credproof import circuit
        return getattr(circuit, name)

    # ZK exports
    if name in ("ProofSystem", "CircuitDescriptor", "CircuitRegistry", "Proof",
                "ProvingKey", "VerificationKey", "MockProver", "MockVerifier",
                "ProvingSystemError", "mock_setup", "create_default_registry"):
        from credproof import zkp
        return getattr(zkp, name)

    # Issuer exports
    if name in ("IssuerKey", "Credential", "CredentialError", "encode_citizenship",
                "issue_dob_credential", "issue_citizenship_credential",
                "verify_credential_signature", "load_credential"):
        from credproof import issuer
        return getattr(issuer, name)

    # Workflow exports
    if name in ("ProofService", "ProofBundle", "ProofNotConstructible",
                "build_inputs", "generate_proof", "verify_bundle"):
        from credproof import workflow
        return getattr(workflow, name)

    # Gate exports
    if name in ("VerificationGate", "GateDecision", "GateRejection", "GateCode", "IssuerRole"):
        from credproof import gate
        return getattr(gate, name)

    # Hardening exports
    if name in ("ValidationError", "ValidationErrors", "MalformedInputError"):
        from credproof import hardening
        return getattr(hardening, name)

    raise AttributeError(f"module 'credproof' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Relation
    "RelationInputs",
    "Witness",
    "NoWitness",
    "synthesize",
    # ZK
    "ProofSystem",
    "CircuitDescriptor",
    "Proof",
    "ProvingSystemError",
    # Issuer
    "IssuerKey",
    "Credential",
    "encode_citizenship",
    # Workflow
    "ProofService",
    "ProofBundle",
    "ProofNotConstructible",
    # Gate
    "VerificationGate",
    "GateDecision",
    # Errors
    "MalformedInputError",
]
