import math
from typing import Any, Optional

from inventory_engine.exceptions import ValidationError


def require_int(value: Any, field: str, minimum: Optional[int] = None) -> int:
    """Validate that a value is a whole number, optionally with a lower bound.

    Args:
        value: Value to validate
        field: Field name used in the error message
        minimum: Optional inclusive lower bound

    Returns:
        The value as int

    Raises:
        ValidationError: If the value is missing, not integral or too small
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required", details={'field': field})

    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number", details={'field': field, 'value': value})
        value = int(value)
    elif not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            raise ValidationError(f"{field} must be a whole number", details={'field': field, 'value': value})

    if minimum is not None and value < minimum:
        raise ValidationError(
            f"{field} must be at least {minimum}",
            details={'field': field, 'value': value}
        )

    return value


def require_non_negative_number(value: Any, field: str, default: Optional[float] = None) -> float:
    """Validate a price or cost: a number that is zero or more."""
    if value is None:
        if default is not None:
            return default
        raise ValidationError(f"{field} is required", details={'field': field})

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={'field': field, 'value': value})

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={'field': field, 'value': value})

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number", details={'field': field, 'value': str(value)})

    if number < 0:
        raise ValidationError(f"{field} cannot be negative", details={'field': field, 'value': number})

    return number


def require_text(value: Any, field: str) -> str:
    """Validate a required, non-blank text field."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", details={'field': field})
    return str(value).strip()
