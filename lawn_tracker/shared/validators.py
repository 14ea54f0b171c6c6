"""Shared validation utilities"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

LEGACY_TITLE_PRICE = re.compile(r"\(\$(\d+(?:\.\d{2})?)\)")


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    # US phone numbers should have 10 digits
    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    # Format as E.164 for storage
    return f"+1{digits}"


def parse_price(value) -> Optional[Decimal]:
    """
    Parse a price entered as text ("45", "$45.00", "") into a Decimal.

    Returns None for blank input.

    Raises:
        ValueError: If the value is not a non-negative amount
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        price = value
    else:
        text = str(value).strip().lstrip("$").replace(",", "")
        if not text:
            return None
        try:
            price = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Invalid price: {value}")

    if not price.is_finite():
        raise ValueError(f"Invalid price: {value}")
    if price < 0:
        raise ValueError("Price cannot be negative")
    try:
        return price.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError(f"Price is too large: {value}")


def price_from_title(title: Optional[str]) -> Optional[Decimal]:
    """Recover a price from legacy titles like 'Smith ($50)'"""
    if not title:
        return None
    match = LEGACY_TITLE_PRICE.search(title)
    return Decimal(match.group(1)).quantize(Decimal("0.01")) if match else None
