from __future__ import annotations

from typing import Any

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
# Keeps line totals well inside 64-bit integer columns
MAX_PRICE_CENTS = 999_999_999

MAX_QUANTITY = 1_000_000


def require_int(
    value: Any,
    field: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    """
    Coerce value to int with strict rules.

    - int (not bool) passes through
    - str must be plain digits with an optional leading minus
    - floats, scientific notation, decimals and other types are rejected
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return result


def require_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    return require_int(
        value,
        field,
        minimum=0 if allow_zero else 1,
        maximum=MAX_PRICE_CENTS * MAX_QUANTITY,
    )


def require_quantity(value: Any, field: str = "quantity") -> int:
    return require_int(value, field, minimum=1, maximum=MAX_QUANTITY)


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    result = optional_text(value, field, max_length=max_length)
    if result is None:
        raise ValidationError(f"{field} is required")
    return result
