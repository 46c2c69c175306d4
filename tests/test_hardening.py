"""
Tests for input validation.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from credproof.field import FIELD_MODULUS
from credproof.hardening import (
    CryptoUtils,
    MalformedInputError,
    ValidationError,
    ValidationErrors,
    ValidationResult,
    Validators,
    collect,
)


class TestParseInteger:
    """Tests for integer parsing."""

    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        ("7", 7),
        (" 42 ", 42),
        ("0x2a", 42),
        ("0xFF", 255),
    ])
    def test_accepted_forms(self, value, expected):
        result = Validators.parse_integer(value, "x")
        assert result.is_valid
        assert result.sanitized_value == expected

    @pytest.mark.parametrize("value", [True, 1.5, None, "", "-1", "1e3", "0x", "12abc", [1]])
    def test_rejected_forms(self, value):
        result = Validators.parse_integer(value, "x")
        assert not result.is_valid
        assert result.errors[0].field == "x"

    def test_overlong_string(self):
        assert not Validators.parse_integer("9" * 81, "x").is_valid


class TestFieldAndWidth:
    """Tests for field-element and bit-width validation."""

    def test_field_element_bounds(self):
        assert Validators.validate_field_element(0, "x").is_valid
        assert Validators.validate_field_element(FIELD_MODULUS - 1, "x").is_valid
        assert not Validators.validate_field_element(FIELD_MODULUS, "x").is_valid
        assert not Validators.validate_field_element(-5, "x").is_valid

    def test_uint_width(self):
        assert Validators.validate_uint((1 << 64) - 1, "t", 64).is_valid
        result = Validators.validate_uint(1 << 64, "t", 64)
        assert not result.is_valid
        assert "64-bit" in result.errors[0].message

    def test_messages_omit_values(self):
        result = Validators.validate_field_element(FIELD_MODULUS + 99, "birth_timestamp")
        assert str(FIELD_MODULUS + 99) not in result.errors[0].message


class TestCountryCode:
    """Tests for country code validation."""

    @pytest.mark.parametrize("value,expected", [("US", "US"), (" de ", "DE"), ("usa", "USA")])
    def test_valid(self, value, expected):
        result = Validators.validate_country_code(value, "country")
        assert result.sanitized_value == expected

    @pytest.mark.parametrize("value", ["U", "USAX", "U1", "", 840, "ÜS"])
    def test_invalid(self, value):
        assert not Validators.validate_country_code(value, "country").is_valid


class TestResults:
    """Tests for result aggregation."""

    def test_raise_if_invalid(self):
        ValidationResult.success(1).raise_if_invalid()
        with pytest.raises(MalformedInputError):
            ValidationResult.failure([ValidationError("x", "bad")]).raise_if_invalid()

    def test_collect(self):
        ok = ValidationResult.success(1)
        assert collect([ok, ok]) is None
        error = collect([
            ok,
            ValidationResult.failure([ValidationError("a", "bad")]),
            ValidationResult.failure([ValidationError("b", "bad")]),
        ])
        assert isinstance(error, ValidationErrors)
        assert error.fields == ["a", "b"]
        assert "a: bad" in str(error)

    def test_constant_time_compare(self):
        assert CryptoUtils.constant_time_compare(b"abc", b"abc")
        assert not CryptoUtils.constant_time_compare(b"abc", b"abd")
