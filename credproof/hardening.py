"""
credproof Validation and Hardening Module

Input validation for everything that crosses into the relation. Malformed
input is rejected here, before any constraint is built, and is reported
distinctly from an unsatisfiable relation.

Security Model:
    - All inputs are untrusted until validated
    - Error messages name the offending field, never its value (private
      inputs must not leak through exceptions or logs)
    - Validation is deterministic for identical inputs

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hmac
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from credproof.field import FIELD_MODULUS


# =============================================================================
# VALIDATION ERROR TYPES
# =============================================================================

class ValidationError(Exception):
    """Base exception for validation failures."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ValidationErrors(Exception):
    """Collection of validation errors."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        messages = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Validation failed: {messages}")

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


class MalformedInputError(ValidationErrors):
    """Relation input outside its numeric domain."""
    pass


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise MalformedInputError if validation failed."""
        if not self.is_valid:
            raise MalformedInputError(self.errors)

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    DECIMAL_PATTERN = re.compile(r'^[0-9]+$')
    HEX_PATTERN = re.compile(r'^0x[0-9a-fA-F]+$')
    COUNTRY_CODE_PATTERN = re.compile(r'^[A-Z]{2,3}$')

    MAX_NUMERIC_STRING_LENGTH = 80

    @classmethod
    def parse_integer(cls, value: Any, field_name: str) -> ValidationResult:
        """
        Accept an int, a decimal string or a 0x-prefixed hex string.

        Credential files carry field elements as decimal strings (the JSON
        form snarkjs expects); wallet addresses arrive as hex.
        """
        if isinstance(value, bool):
            return ValidationResult.failure([ValidationError(field_name, "Expected integer, got bool")])
        if isinstance(value, int):
            return ValidationResult.success(value)
        if isinstance(value, str):
            text = value.strip()
            if len(text) > cls.MAX_NUMERIC_STRING_LENGTH:
                return ValidationResult.failure([ValidationError(field_name, "Numeric string too long")])
            if cls.DECIMAL_PATTERN.match(text):
                return ValidationResult.success(int(text))
            if cls.HEX_PATTERN.match(text):
                return ValidationResult.success(int(text, 16))
            return ValidationResult.failure([ValidationError(field_name, "Not a decimal or 0x-hex integer")])
        return ValidationResult.failure([
            ValidationError(field_name, f"Expected integer, got {type(value).__name__}")
        ])

    @classmethod
    def validate_field_element(cls, value: Any, field_name: str) -> ValidationResult:
        """Canonical field element: integer in [0, p)."""
        parsed = cls.parse_integer(value, field_name)
        if not parsed.is_valid:
            return parsed
        n = parsed.sanitized_value
        if n < 0:
            return ValidationResult.failure([ValidationError(field_name, "Negative value")])
        if n >= FIELD_MODULUS:
            return ValidationResult.failure([ValidationError(field_name, "Not reduced modulo the field prime")])
        return ValidationResult.success(n)

    @classmethod
    def validate_uint(cls, value: Any, field_name: str, bits: int) -> ValidationResult:
        """Unsigned integer of at most `bits` bits (comparator operand)."""
        result = cls.validate_field_element(value, field_name)
        if not result.is_valid:
            return result
        if result.sanitized_value >= (1 << bits):
            return ValidationResult.failure([
                ValidationError(field_name, f"Exceeds {bits}-bit comparator width")
            ])
        return result

    @classmethod
    def validate_country_code(cls, value: Any, field_name: str) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected string, got {type(value).__name__}")
            ])
        sanitized = value.strip().upper()
        if not cls.COUNTRY_CODE_PATTERN.match(sanitized):
            return ValidationResult.failure([
                ValidationError(field_name, "Expected 2-3 letter ASCII country code")
            ])
        return ValidationResult.success(sanitized)


class CryptoUtils:
    """Cryptographic helpers."""

    @staticmethod
    def constant_time_compare(a: bytes, b: bytes) -> bool:
        return hmac.compare_digest(a, b)


def collect(results: List[ValidationResult]) -> Optional[MalformedInputError]:
    """Merge several results; None when all passed."""
    errors = [e for r in results for e in r.errors]
    return MalformedInputError(errors) if errors else None
