from __future__ import annotations

from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Optional
import math
import re


SIGN_POSITIVE = "positive"
SIGN_NON_POSITIVE = "non-positive"

_CENTS = Decimal("0.01")
# wide enough to quantize the largest finite float to cents
_CONTEXT = Context(prec=350, rounding=ROUND_HALF_UP)
# whole-string numeric text, surrounding whitespace allowed
_NUMERIC_TEXT = re.compile(r"\s*[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)\s*")


def _to_number(value) -> Optional[float]:
    # None for anything that should display as zero
    if value is None or value is False or value == "":
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value)
        if not _NUMERIC_TEXT.fullmatch(text):
            return None
        text = text.strip()
        if text.lstrip("+-") == "Infinity":
            number = -math.inf if text.startswith("-") else math.inf
        else:
            number = float(text)
    if math.isnan(number) or number == 0:
        return None
    return number


def format_currency(value) -> str:
    """Two decimals with US thousands grouping, e.g. 1234.5 -> "1,234.50".

    Missing, empty, zero or non-numeric values display as "0.00". Halves round
    away from zero on the shortest decimal form of the float, so 1.005 shows
    as "1.01".
    """
    number = _to_number(value)
    if number is None:
        return "0.00"
    if math.isinf(number):
        return "-∞" if number < 0 else "∞"
    amount = Decimal(repr(number)).quantize(_CENTS, context=_CONTEXT)
    return f"{amount:,.2f}"


def format_percent(value) -> str:
    number = _to_number(value)
    if number is None or math.isinf(number):
        return "0.00%"
    amount = Decimal(repr(number)).quantize(_CENTS, context=_CONTEXT)
    return f"{amount:,.2f}%"


def classify_savings(value: Optional[float]) -> Optional[str]:
    # drives green/red display only; zero and NaN are both non-positive
    if value is None:
        return None
    return SIGN_POSITIVE if value > 0 else SIGN_NON_POSITIVE
