"""
Tests for phone number normalisation and validation.

Run with: pytest tests/test_phone.py -v
"""

import pytest

from salon_booking.app.core.phone import is_valid_phone, normalize_phone, phone_validation_error


@pytest.mark.parametrize(
    "raw",
    ["0712345678", "+254712345678", "254712345678", "0712 345 678", "(0712)-345-678", "+254 712 345 678"],
)
def test_normalize_to_canonical(raw):
    assert normalize_phone(raw) == "254712345678"


def test_normalize_landline_style_prefix():
    assert normalize_phone("0110000000") == "254110000000"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_empty(raw):
    assert normalize_phone(raw) is None


def test_normalize_other_country_code():
    assert normalize_phone("0712345678", country_code="255") == "255712345678"


def test_foreign_number_kept_cleaned():
    assert normalize_phone("+44 20 7946 0958") == "+442079460958"


@pytest.mark.parametrize("raw", ["0712345678", "+254712345678", "254112345678", "0712-345-678"])
def test_valid_numbers(raw):
    assert is_valid_phone(raw)


@pytest.mark.parametrize("raw", ["", "12345", "0812345678", "07123456789", "+255712345678"])
def test_invalid_numbers(raw):
    assert not is_valid_phone(raw)


def test_validation_messages():
    assert phone_validation_error("") == "Phone number is required"
    assert phone_validation_error("12345").startswith("Enter a valid phone number")
    assert phone_validation_error("0712345678") is None
