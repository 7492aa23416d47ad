"""
Input validation shared by the services

Services are callable outside HTTP (scripts, the scheduler), so they check
their own arguments and raise InvalidArgument rather than trusting the
request schemas.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from shisha.core.config import settings
from shisha.core.exceptions import InvalidArgument


def require_present(**fields: Any) -> None:
    """Raise InvalidArgument naming every field that is None or blank"""
    missing = [
        name for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise InvalidArgument(f"All required fields must be provided. Missing: {', '.join(missing)}")


def require_id(value: Any, field_name: str) -> int:
    """Entity identifiers are positive integers"""
    if isinstance(value, bool):
        raise InvalidArgument(f"Invalid {field_name}")
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"Invalid {field_name}")
    if ident <= 0 or (isinstance(value, float) and value != ident):
        raise InvalidArgument(f"Invalid {field_name}")
    return ident


def normalise_quantity(value: Any, field_name: str, allow_zero: bool = False) -> Decimal:
    """
    Convert a quantity in kilograms to a Decimal at stock precision

    Rejects booleans, non-numbers, NaN/infinity and values that are not
    positive (or negative ones when allow_zero is set).
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgument(f"{field_name} must be a number")
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{field_name} must be a number")
    if not quantity.is_finite():
        raise InvalidArgument(f"{field_name} must be a finite number")

    step = Decimal(1).scaleb(-settings.QUANTITY_DECIMAL_PLACES)
    quantity = quantity.quantize(step, rounding=ROUND_HALF_UP)

    if allow_zero:
        if quantity < 0:
            raise InvalidArgument(f"{field_name} cannot be negative")
    elif quantity <= 0:
        raise InvalidArgument(f"{field_name} must be a positive number")
    return quantity


def require_choice(value: Any, choices: Iterable[str], field_name: str) -> str:
    # Enum members from the request schemas compare by value
    raw = getattr(value, "value", value)
    allowed = tuple(choices)
    if raw not in allowed:
        raise InvalidArgument(f"{field_name} must be one of: {', '.join(allowed)}")
    return raw
