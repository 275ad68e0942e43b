# insurance.py
# Declared value -> required insurance amount.
# Below the threshold nothing is insured; at or above it the full declared
# value is covered, rounded to cents.

from decimal import Decimal, InvalidOperation
from typing import Any

from shipping_errors import InvalidDeclaredValue

INSURANCE_THRESHOLD = Decimal("25")
INSURANCE_CURRENCY = "USD"
MAX_DECLARED_VALUE = Decimal("1000000")
CENT = Decimal("0.01")


def parse_declared_value(value: Any) -> Decimal:
    """Parse a declared value into a finite Decimal in [0, MAX_DECLARED_VALUE]."""
    if isinstance(value, bool) or value is None:
        raise InvalidDeclaredValue(value)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidDeclaredValue(value)
    if not parsed.is_finite() or parsed < 0 or parsed > MAX_DECLARED_VALUE:
        raise InvalidDeclaredValue(value)
    return parsed


def required_insurance(declared_value: Any) -> Decimal:
    value = parse_declared_value(declared_value)
    if value >= INSURANCE_THRESHOLD:
        return value.quantize(CENT)
    return Decimal("0")
