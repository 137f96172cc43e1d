"""Number parsing utilities for monetary amounts and multipliers."""
from decimal import Decimal, InvalidOperation

ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """
    Convert int/float/str/Decimal to Decimal without binary float drift.

    Floats go through str() so 1.1 becomes Decimal('1.1'), not
    Decimal('1.100000000000000088817841970012523233890533447265625').
    None is treated as zero.

    Raises:
        ValueError: if the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f'Invalid numeric value: {value!r}')
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid numeric value: {value!r}')


def parse_amount(value, field='amount', maximum=None) -> Decimal:
    """
    Parse a user-supplied price. Must be numeric, non-negative and, when
    `maximum` is given, not above it.

    Raises:
        ValueError: if the value is empty, not numeric, negative or too large.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f'{field} is required')
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValueError(f'{field} must be numeric')
    if not amount.is_finite():
        raise ValueError(f'{field} must be numeric')
    if amount < 0:
        raise ValueError(f'{field} cannot be negative')
    if maximum is not None and amount > maximum:
        raise ValueError(f'{field} cannot exceed {maximum}')
    return amount


def json_number(value):
    """Render a Decimal as int when integral, float otherwise (for JSON payloads)."""
    if value is None:
        return None
    value = to_decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)
