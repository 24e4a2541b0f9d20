"""
Rupee formatting in the Indian numbering system.

Digits are grouped as lakhs and crores (12,34,567), not thousands.
Parsing is locale independent: commas are only ever grouping.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

RUPEE = "₹"

_LEADING_NUMBER = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_CURRENCY_NOISE = re.compile(r"[₹,\s]")

Number = Union[Decimal, int, float, str]


def _to_decimal(amount: Number) -> Optional[Decimal]:
    """Leading numeric prefix of the input, None if there is none."""
    if isinstance(amount, bool):
        return None
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, float)):
        value = Decimal(str(amount))
    elif isinstance(amount, str):
        match = _LEADING_NUMBER.match(amount.strip())
        if not match:
            return None
        value = Decimal(match.group(0))
    else:
        return None
    return value if value.is_finite() else None


def group_indian(digits: str) -> str:
    """'1234567' -> '12,34,567'"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def _format_grouped(value: Decimal, max_places: int) -> tuple[str, str]:
    """Return (sign, grouped digits) with trailing fractional zeros dropped."""
    rounded = value.quantize(Decimal(1).scaleb(-max_places), rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    int_part, _, frac = format(abs(rounded), "f").partition(".")
    frac = frac.rstrip("0")
    grouped = group_indian(int_part)
    return sign, f"{grouped}.{frac}" if frac else grouped


def format_currency(amount: Number) -> str:
    """
    Display an amount as rupees, e.g. ``₹1,23,456.5``.

    Up to two fractional digits; unparseable input shows as ``₹0``.
    """
    value = _to_decimal(amount)
    if value is None:
        return f"{RUPEE}0"
    try:
        sign, grouped = _format_grouped(value, 2)
    except InvalidOperation:
        return f"{RUPEE}0"
    return f"{sign}{RUPEE}{grouped}"


def format_amount(amount: Number) -> str:
    """Grouped number without the symbol, up to three fractional digits."""
    value = _to_decimal(amount)
    if value is None:
        return "0"
    try:
        sign, grouped = _format_grouped(value, 3)
    except InvalidOperation:
        return "0"
    return f"{sign}{grouped}"


def parse_currency(value: str) -> Decimal:
    """Strip the symbol, grouping and whitespace; 0 when nothing parses."""
    parsed = _to_decimal(_CURRENCY_NOISE.sub("", value or ""))
    return parsed if parsed is not None else Decimal("0")
