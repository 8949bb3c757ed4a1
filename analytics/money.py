"""
Money parsing and formatting.

Accepts shorthand input like "50k" or "2.5M" as well as "$2,000,000" and
renders amounts as grouped dollar strings.
"""
import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

SHORTHAND_PATTERN = re.compile(r'^([0-9]+\.?[0-9]*)\s*([kmKM])$')

SHORTHAND_MULTIPLIERS = {
    'k': 1_000,
    'm': 1_000_000,
}


def parse_money(raw: Any) -> Optional[float]:
    """
    Parse a money string, supporting k/M shorthand.

    Examples:
        parse_money("50k")         -> 50000.0
        parse_money("2.5M")        -> 2500000.0
        parse_money("$2,000,000")  -> 2000000.0
        parse_money("abc")         -> None

    Returns None for empty input, a lone "$" or anything unparsable.
    Negative values are returned as-is; rejecting them is up to the caller.
    """
    if raw is None:
        return None

    text = str(raw).strip()
    if text == '' or text == '$':
        return None

    cleaned = text.replace('$', '').replace(',', '')

    match = SHORTHAND_PATTERN.match(cleaned)
    if match:
        number = float(match.group(1))
        return number * SHORTHAND_MULTIPLIERS[match.group(2).lower()]

    try:
        value = float(cleaned)
    except ValueError:
        return None

    if not math.isfinite(value):
        return None
    return value


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return True


def _round_half_up(value: float, places: int) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def format_money(value: Optional[float], include_cents: bool = False) -> str:
    """Format an amount as dollars, e.g. 2500000 -> "$2,500,000"."""
    if _is_blank(value):
        return '$0'

    places = 2 if include_cents else 0
    rounded = _round_half_up(value, places)
    sign = '-' if rounded < 0 else ''
    return f"{sign}${abs(rounded):,.{places}f}"


def format_number(value: Optional[float]) -> str:
    """Format an amount as a grouped integer without the dollar sign."""
    if _is_blank(value):
        return '0'
    return f"{_round_half_up(value, 0):,.0f}"



def coerce_money(value: Any) -> Optional[float]:
    """
    Normalize a submitted amount to a float.

    Strings go through parse_money so "450k" and "$450,000" work everywhere
    a number does. Returns None when the value is missing, unparsable or not
    finite; range checks are left to the caller.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return parse_money(value)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount
