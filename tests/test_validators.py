from decimal import Decimal

import pytest

from lawn_tracker.shared.validators import parse_price, price_from_title, validate_us_phone


@pytest.mark.parametrize(
    "raw",
    ["555-123-4567", "(555) 123-4567", "555.123.4567", "+1 555 123 4567", "15551234567"],
)
def test_phone_is_normalized(raw):
    assert validate_us_phone(raw) == "+15551234567"


def test_blank_phone_passes_through():
    assert validate_us_phone(None) is None
    assert validate_us_phone("") == ""


def test_short_phone_is_rejected():
    with pytest.raises(ValueError):
        validate_us_phone("123-4567")


def test_parse_price():
    assert parse_price("45") == Decimal("45.00")
    assert parse_price("$1,250.5") == Decimal("1250.50")
    assert parse_price(Decimal("12.345")) == Decimal("12.34")
    assert parse_price("  ") is None
    assert parse_price(None) is None


@pytest.mark.parametrize("raw", ["-5", "forty", "1.2.3", "NaN", "Infinity", "-Infinity", "1e30", Decimal("NaN")])
def test_parse_price_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        parse_price(raw)


def test_price_from_legacy_title():
    assert price_from_title("Smith ($50)") == Decimal("50.00")
    assert price_from_title("Smith ($42.50) hedge") == Decimal("42.50")
    assert price_from_title("Smith - Mowing") is None
    assert price_from_title(None) is None
