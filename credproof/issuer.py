"""credproof.issuer

Credential issuance: the upstream collaborator that produces the signed
attribute credentials the relation consumes.

An issuer commits to (attribute, subject, nonce) with the same Poseidon
instance the relation uses, then signs the 32-byte big-endian commitment with
secp256k1 ECDSA. The signature is over the commitment bytes directly (they
already are a digest), so signing uses a prehashed SHA-256 context.

Relation inputs must be canonical field elements, while secp256k1 scalars
and coordinates are 256-bit. Exported `(r, s)` and `(x, y)` are therefore
reduced modulo the BN254 prime. The unreduced DER signature and the SEC1
public key stay in the credential for off-circuit verification.

Profile:
- `date_of_birth` credentials carry a Unix timestamp (fits 64 bits)
- `citizenship` credentials carry a 2-3 letter ASCII country code, encoded
  big-endian base-256 for the relation ("US" -> 21843)
"""

from __future__ import annotations

import json
import pathlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature

from credproof.field import FIELD_MODULUS, reduce
from credproof.gadgets import commit_credential
from credproof.hardening import Validators
from credproof.observability import CredLayer, get_logger
from credproof.schema import CREDENTIAL_SCHEMA, validate_against_schema


logger = get_logger("issuer", CredLayer.ISSUER)

ECDSA_PREHASHED = ec.ECDSA(Prehashed(hashes.SHA256()))

NONCE_BITS = 64


class CredentialError(ValueError):
    """Credential file or key material is malformed."""
    pass


class CredentialType(Enum):
    DATE_OF_BIRTH = "date_of_birth"
    CITIZENSHIP = "citizenship"


def encode_citizenship(code: str) -> int:
    """Big-endian base-256 encoding of an ASCII country code."""
    if not code or not code.isascii():
        raise ValueError("Citizenship code must be a non-empty ASCII string")
    encoded = 0
    for ch in code:
        encoded = encoded * 256 + ord(ch)
    return encoded


def decode_citizenship(value: int) -> str:
    chars = []
    while value:
        value, ch = divmod(value, 256)
        chars.append(chr(ch))
    return "".join(reversed(chars))


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


# =============================================================================
# ISSUER KEYS
# =============================================================================

class IssuerKey:
    """secp256k1 issuer key pair."""

    def __init__(self, private_key: ec.EllipticCurvePrivateKey, name: str = ""):
        if not isinstance(private_key.curve, ec.SECP256K1):
            raise CredentialError("Issuer keys must be on secp256k1")
        self.private_key = private_key
        self.name = name

    @classmethod
    def generate(cls, name: str = "") -> 'IssuerKey':
        return cls(ec.generate_private_key(ec.SECP256K1()), name)

    @classmethod
    def from_hex(cls, private_hex: str, name: str = "") -> 'IssuerKey':
        if private_hex.startswith("0x"):
            private_hex = private_hex[2:]
        try:
            scalar = int(private_hex, 16)
            return cls(ec.derive_private_key(scalar, ec.SECP256K1()), name)
        except ValueError as e:
            raise CredentialError(f"Invalid issuer private key: {e}") from e

    @classmethod
    def from_pem(cls, pem: bytes, name: str = "") -> 'IssuerKey':
        key = serialization.load_pem_private_key(pem, password=None)
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise CredentialError("PEM does not hold an EC private key")
        return cls(key, name)

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self.private_key.public_key()

    def private_hex(self) -> str:
        return format(self.private_key.private_numbers().private_value, "064x")

    def public_hex(self) -> str:
        """Compressed SEC1 encoding."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        ).hex()

    def public_point(self) -> Tuple[int, int]:
        """Public key coordinates reduced modulo the BN254 prime."""
        numbers = self.public_key.public_numbers()
        return reduce(numbers.x), reduce(numbers.y)

    def to_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def to_dict(self) -> Dict[str, Any]:
        x, y = self.public_point()
        return {
            "name": self.name,
            "curve": "secp256k1",
            "private_key": self.private_hex(),
            "public_key": {"x": str(x), "y": str(y)},
            "public_key_hex": self.public_hex(),
        }

    def save(self, path: Union[str, pathlib.Path]) -> pathlib.Path:
        """Write the key as JSON with owner-only permissions."""
        p = pathlib.Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        p.chmod(0o600)
        return p

    @classmethod
    def load(cls, path: Union[str, pathlib.Path]) -> 'IssuerKey':
        """Load a key file written by `save`, or a PEM private key."""
        p = pathlib.Path(path)
        raw = p.read_bytes()
        if raw.lstrip().startswith(b"-----BEGIN"):
            return cls.from_pem(raw)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CredentialError(f"Key file is neither JSON nor PEM: {p}") from e
        if not isinstance(data, dict) or "private_key" not in data:
            raise CredentialError("Key file must contain 'private_key'")
        return cls.from_hex(data["private_key"], data.get("name", ""))

    def sign_commitment(self, commitment: int) -> Tuple[int, int, bytes]:
        """Sign the 32-byte big-endian commitment; returns (r, s, der)."""
        der = self.private_key.sign(commitment.to_bytes(32, "big"), ECDSA_PREHASHED)
        r, s = decode_dss_signature(der)
        return r, s, der


def public_key_from_hex(public_hex: str) -> ec.EllipticCurvePublicKey:
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes.fromhex(public_hex))
    except ValueError as e:
        raise CredentialError(f"Invalid issuer public key: {e}") from e


# =============================================================================
# CREDENTIALS
# =============================================================================

@dataclass(frozen=True)
class Credential:
    """A signed attribute credential bound to one subject."""
    credential_type: CredentialType
    attribute: str
    subject: int
    nonce: int
    commitment: int
    sig_r: int
    sig_s: int
    signature_der: bytes
    issuer_pubkey_x: int
    issuer_pubkey_y: int
    issuer_public_key_hex: str
    issued_at: str
    issuer: str = ""

    @property
    def attribute_value(self) -> int:
        """Field encoding of the attribute as the relation consumes it."""
        if self.credential_type == CredentialType.CITIZENSHIP:
            return encode_citizenship(self.attribute)
        return int(self.attribute)

    @property
    def issuer_point(self) -> Tuple[int, int]:
        return self.issuer_pubkey_x, self.issuer_pubkey_y

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credential_type": self.credential_type.value,
            "attribute": self.attribute,
            "subject": str(self.subject),
            "nonce": str(self.nonce),
            "commitment": str(self.commitment),
            "signature": {
                "r": str(self.sig_r),
                "s": str(self.sig_s),
                "der": self.signature_der.hex(),
            },
            "issuer_pubkey": {
                "x": str(self.issuer_pubkey_x),
                "y": str(self.issuer_pubkey_y),
            },
            "issuer_public_key_hex": self.issuer_public_key_hex,
            "issued_at": self.issued_at,
            "issuer": self.issuer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Credential':
        """Build from the JSON form; raises CredentialError on schema violations."""
        errors = validate_against_schema(data, CREDENTIAL_SCHEMA)
        if errors:
            raise CredentialError("Invalid credential: " + "; ".join(errors))
        return cls(
            credential_type=CredentialType(data["credential_type"]),
            attribute=data["attribute"],
            subject=int(data["subject"]),
            nonce=int(data["nonce"]),
            commitment=int(data["commitment"]),
            sig_r=int(data["signature"]["r"]),
            sig_s=int(data["signature"]["s"]),
            signature_der=bytes.fromhex(data["signature"]["der"]),
            issuer_pubkey_x=int(data["issuer_pubkey"]["x"]),
            issuer_pubkey_y=int(data["issuer_pubkey"]["y"]),
            issuer_public_key_hex=data["issuer_public_key_hex"],
            issued_at=data["issued_at"],
            issuer=data.get("issuer", ""),
        )

    def save(self, path: Union[str, pathlib.Path]) -> pathlib.Path:
        p = pathlib.Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        return p


def load_credential(path: Union[str, pathlib.Path]) -> Credential:
    p = pathlib.Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CredentialError(f"Credential file is not valid JSON: {p}") from e
    return Credential.from_dict(data)


def _issue(
    key: IssuerKey,
    credential_type: CredentialType,
    attribute: str,
    attribute_value: int,
    subject: Any,
    nonce: Optional[int],
) -> Credential:
    subject_result = Validators.validate_field_element(subject, "subject")
    subject_result.raise_if_invalid()
    if nonce is None:
        nonce = secrets.randbits(NONCE_BITS)
    Validators.validate_field_element(nonce, "nonce").raise_if_invalid()

    commitment = commit_credential(attribute_value, subject_result.sanitized_value, nonce)
    r, s, der = key.sign_commitment(commitment)
    x, y = key.public_point()

    credential = Credential(
        credential_type=credential_type,
        attribute=attribute,
        subject=subject_result.sanitized_value,
        nonce=nonce,
        commitment=commitment,
        sig_r=reduce(r),
        sig_s=reduce(s),
        signature_der=der,
        issuer_pubkey_x=x,
        issuer_pubkey_y=y,
        issuer_public_key_hex=key.public_hex(),
        issued_at=now_rfc3339(),
        issuer=key.name,
    )
    logger.info(
        "Credential issued",
        operation="issue",
        credential_type=credential_type.value,
        issuer=key.name,
        issuer_public_key=credential.issuer_public_key_hex,
    )
    return credential


def issue_dob_credential(
    key: IssuerKey,
    birth_timestamp: Any,
    subject: Any,
    nonce: Optional[int] = None,
) -> Credential:
    result = Validators.validate_uint(birth_timestamp, "birth_timestamp", 64)
    result.raise_if_invalid()
    value = result.sanitized_value
    return _issue(key, CredentialType.DATE_OF_BIRTH, str(value), value, subject, nonce)


def issue_citizenship_credential(
    key: IssuerKey,
    country_code: str,
    subject: Any,
    nonce: Optional[int] = None,
) -> Credential:
    result = Validators.validate_country_code(country_code, "citizenship")
    result.raise_if_invalid()
    code = result.sanitized_value
    return _issue(key, CredentialType.CITIZENSHIP, code, encode_citizenship(code), subject, nonce)


def verify_credential_signature(
    credential: Credential,
    issuer_public_key: Optional[Union[IssuerKey, ec.EllipticCurvePublicKey, str]] = None,
) -> bool:
    """Off-circuit ECDSA check of a credential.

    Recomputes the commitment from (attribute, subject, nonce), checks that
    the relation-facing (r, s) and (x, y) are the reductions of the DER
    signature and the SEC1 key, and verifies the signature. With no explicit
    key, the key embedded in the credential is used.
    """
    if issuer_public_key is None:
        public_key = public_key_from_hex(credential.issuer_public_key_hex)
    elif isinstance(issuer_public_key, IssuerKey):
        public_key = issuer_public_key.public_key
    elif isinstance(issuer_public_key, str):
        public_key = public_key_from_hex(issuer_public_key)
    else:
        public_key = issuer_public_key

    commitment = commit_credential(credential.attribute_value, credential.subject, credential.nonce)
    if commitment != credential.commitment:
        return False

    numbers = public_key.public_numbers()
    if (numbers.x % FIELD_MODULUS, numbers.y % FIELD_MODULUS) != credential.issuer_point:
        return False

    try:
        r, s = decode_dss_signature(credential.signature_der)
    except ValueError:
        return False
    if (r % FIELD_MODULUS, s % FIELD_MODULUS) != (credential.sig_r, credential.sig_s):
        return False

    try:
        public_key.verify(credential.signature_der, commitment.to_bytes(32, "big"), ECDSA_PREHASHED)
    except InvalidSignature:
        return False
    return True
