import math
import numbers
from typing import Any

from ledger_forecast.exceptions import InvalidQuantityError, ValidationError

def _to_float(value: Any):
    """Coerce numbers and numeric strings to float, None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if math.isnan(result) or math.isinf(result):
        return None
    return result

def validate_quantity(value: Any) -> float:
    """Validate a sale or batch quantity.

    Args:
        value: Raw quantity

    Returns:
        Quantity as float

    Raises:
        InvalidQuantityError if the value is not a number greater than zero
    """
    quantity = _to_float(value)
    if quantity is None:
        raise InvalidQuantityError(f"Quantity must be a number, got {value!r}")
    if quantity <= 0:
        raise InvalidQuantityError(f"Quantity must be greater than zero, got {quantity:g}")
    return quantity

def validate_price(value: Any, field: str = 'unit_price') -> float:
    """Validate a price or cost (non-negative number).

    Raises:
        ValidationError if the value is negative or not a number
    """
    price = _to_float(value)
    if price is None:
        raise ValidationError(f"{field} must be a number, got {value!r}", details={'field': field})
    if price < 0:
        raise ValidationError(f"{field} cannot be negative", details={'field': field})
    return price

def validate_delta(value: Any) -> float:
    """Validate an inventory delta (any finite number)."""
    delta = _to_float(value)
    if delta is None:
        raise InvalidQuantityError(f"Inventory change must be a number, got {value!r}")
    return delta

def validate_threshold(value: Any) -> float:
    """Validate a low-stock threshold (non-negative number)."""
    threshold = _to_float(value)
    if threshold is None or threshold < 0:
        raise ValidationError(
            f"Minimum threshold must be a non-negative number, got {value!r}",
            details={'field': 'min_threshold'}
        )
    return threshold

def validate_name(value: Any, field: str = 'name') -> str:
    """Validate a required display name."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={'field': field})
    return value.strip()
