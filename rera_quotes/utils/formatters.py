"""
Formatting utilities for documents and emails.
Indian-style digit grouping (12,34,567) and rupee amounts.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

Number = Union[int, float, Decimal, str, None]


def num_in(value: Number, decimals: int = 0) -> str:
    """
    Format a number with Indian digit grouping.

    The last three digits form one group, every other group has two digits.

    Examples:
        num_in(1500) -> "1,500"
        num_in(215400) -> "2,15,400"
        num_in(12345678) -> "1,23,45,678"
        num_in(1500.5, decimals=2) -> "1,500.50"
        num_in(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    num = num.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    sign = "-" if num < 0 else ""
    text = f"{abs(num):.{decimals}f}"
    integer_part, _, decimal_part = text.partition(".")

    if len(integer_part) > 3:
        head, tail = integer_part[:-3], integer_part[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer_part = ",".join(groups + [tail])

    if decimal_part:
        return f"{sign}{integer_part}.{decimal_part}"
    return f"{sign}{integer_part}"


def money_in(value: Number, symbol: str = "₹") -> str:
    """
    Format a rupee amount without decimals.

    Use symbol="Rs. " where the rupee glyph is unavailable (PDF core fonts).

    Examples:
        money_in(215400) -> "₹2,15,400"
        money_in(215400, symbol="Rs. ") -> "Rs. 2,15,400"
        money_in(None) -> "-"
    """
    formatted = num_in(value)
    if formatted == "-":
        return formatted
    if formatted.startswith("-"):
        return f"-{symbol}{formatted[1:]}"
    return f"{symbol}{formatted}"


def percent(value: Number, signed: bool = False) -> str:
    """
    Format a percentage with one decimal.

    Examples:
        percent(25) -> "25.0%"
        percent(12.34, signed=True) -> "+12.3%"
    """
    if value is None or value == "":
        return "-"
    try:
        num = Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return "-"
    prefix = "+" if signed and num >= 0 else ""
    return f"{prefix}{num}%"


def date_in(value: Optional[Union[date, datetime]]) -> str:
    """Format a date as DD/MM/YYYY."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return "-"
    return value.strftime("%d/%m/%Y")


def approval_level_label(level) -> str:
    """Human label for an ApprovalLevel (or its raw value)."""
    label = getattr(level, "label", None)
    if label:
        return label
    if not level:
        return "Unknown"
    return str(level).replace("_", " ").title()
