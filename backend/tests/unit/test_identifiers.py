"""Tests for identifier normalization."""

import pytest

from micampofresco.core.errors import ValidationError
from micampofresco.core.identifiers import (
    IdentifierKind,
    normalize_identifier,
    normalize_optional_phone,
)


class TestNormalizeIdentifier:
    """Tests for normalize_identifier."""

    def test_email_is_trimmed_and_lowercased(self):
        assert normalize_identifier("  Ana@X.COM ") == ("ana@x.com", IdentifierKind.EMAIL)

    def test_phone_separators_are_removed(self):
        assert normalize_identifier("+57 (300) 123-4567") == (
            "+573001234567",
            IdentifierKind.PHONE,
        )

    def test_plain_digits_phone(self):
        assert normalize_identifier("3001234567") == ("3001234567", IdentifierKind.PHONE)

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "   ",
            "ana@",
            "ana@x",
            "ana x@y.com",
            "1234567",  # too short
            "1234567890123456",  # too long
            "not-an-identifier",
        ],
    )
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError) as exc_info:
            normalize_identifier(value)
        assert exc_info.value.message == "Invalid email or phone number"


class TestNormalizeOptionalPhone:
    """Tests for normalize_optional_phone."""

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank_is_none(self, value):
        assert normalize_optional_phone(value) is None

    def test_normalizes(self):
        assert normalize_optional_phone("300 123 4567") == "3001234567"

    def test_rejects_malformed(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_optional_phone("12ab")
        assert exc_info.value.message == "Invalid phone number"
