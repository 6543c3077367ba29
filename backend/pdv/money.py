# Overview: Fixed-point money helpers; all amounts are integer cents internally.

"""
Money primitive.

Amounts live as integer minor units (cents) everywhere inside the core so
that price x quantity, sums and change are exact. Decimal is only used at
the edges: parsing operator input and formatting for display, both with
half-away-from-zero rounding (ROUND_HALF_UP in decimal terms).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import InvalidAmount

CENT = Decimal("0.01")

# Largest accepted amount: 9,999,999.99
MAX_AMOUNT_CENTS = 999_999_999
_MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) * CENT


def parse_amount(value) -> int:
    """
    Convert an operator-entered amount in currency units to cents.

    Accepts Decimal, int, float or str ("4.50", "4,50", " 40 ").
    Raises InvalidAmount for anything else, including bools and NaN.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount("Amount is required")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        # repr() keeps the shortest round-tripping form (0.1 -> "0.1")
        amount = _to_decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            raise InvalidAmount("Amount is required")
        amount = _to_decimal(text)
    else:
        raise InvalidAmount(f"Amount must be numeric, got {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidAmount("Amount must be a finite number")
    if amount.copy_abs() > _MAX_AMOUNT:
        raise InvalidAmount("Amount is too large", details={"max_cents": MAX_AMOUNT_CENTS})

    cents = int((amount / CENT).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise InvalidAmount("Amount is too large", details={"max_cents": MAX_AMOUNT_CENTS})
    return cents


def parse_positive_amount(value) -> int:
    cents = parse_amount(value)
    if cents <= 0:
        raise InvalidAmount("Amount must be positive")
    return cents


def parse_non_negative_amount(value) -> int:
    cents = parse_amount(value)
    if cents < 0:
        raise InvalidAmount("Amount cannot be negative")
    return cents


def _to_decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise InvalidAmount(f"Amount must be numeric: {text!r}") from exc


def to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


def format_cents(cents: int) -> str:
    """Render cents as a plain two-decimal string, e.g. 3400 -> "34.00"."""
    return str(to_decimal(cents))


def divide_cents(numerator: int, denominator: int) -> int:
    """Divide a cent amount, rounding half away from zero; 0 when denominator is 0."""
    if denominator == 0:
        return 0
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))
