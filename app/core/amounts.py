# app/core/amounts.py
"""
Wei-scale amount arithmetic.

Amounts are carried as base-10 strings so they never lose precision. Sums are
exact when both sides are integers; anything else degrades to float addition
with a warning instead of failing the donation.
"""
import logging
import re
from decimal import Decimal
from typing import Optional

log = logging.getLogger("crowdfund.amounts")

_INTEGER_RE = re.compile(r"^\d+$")


def parse_integer_amount(value: Optional[str]) -> Optional[int]:
    """Return the value as int if it is a plain base-10 integer, else None"""
    if value is None:
        return None
    text = str(value).strip()
    if not _INTEGER_RE.match(text):
        return None
    return int(text)


def is_negative_amount(value: Optional[str]) -> bool:
    """Any leading minus sign counts, integer or not ("-5", "-50.5", "-1e18", "-abc")"""
    if value is None:
        return False
    text = str(value).strip()
    return text.startswith("-") or amount_to_float(text) < 0


def amount_to_float(value: Optional[str]) -> float:
    """Lossy float view of an amount; unparseable values count as 0"""
    if value is None:
        return 0.0
    try:
        result = float(str(value).strip())
    except ValueError:
        return 0.0
    if result != result or result in (float("inf"), float("-inf")):
        return 0.0
    return result


def format_float_amount(value: float) -> str:
    """Render a float in positional notation (5e+17 -> '500000000000000000')"""
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def add_amounts(current: Optional[str], amount: Optional[str]) -> str:
    """
    Add a donation amount to a collected total.

    Both values are parsed as base-10 integers and summed exactly. If either
    one is not an integer string, falls back to float addition and logs a
    precision-loss warning.
    """
    current_int = parse_integer_amount(current if current is not None else "0")
    amount_int = parse_integer_amount(amount)

    if current_int is not None and amount_int is not None:
        return str(current_int + amount_int)

    log.warning(
        f"⚠️ Non-integer amount, falling back to float addition "
        f"(current={current!r}, amount={amount!r}) - precision may be lost"
    )
    total = amount_to_float(current if current is not None else "0") + amount_to_float(amount)
    return format_float_amount(total)
