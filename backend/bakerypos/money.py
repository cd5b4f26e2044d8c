# Overview: Cent-based money arithmetic and quantity normalisation.

"""
Money is stored as integer cents everywhere (prices, totals, ledger amounts).
Quantities are decimals because bakery goods are sold by weight as well as
by piece. Every product of quantity x price is rounded half-up to the cent
once, at the line level, so totals never drift.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

QUANTITY_PLACES = Decimal("0.001")
PERCENT_PLACES = Decimal("0.01")


def to_decimal(value, *, field: str = "value") -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal) and value.is_finite():
        return value
    try:
        # str() first so floats like 0.1 keep their printed value
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")
    if not result.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return result


def quantize_quantity(value) -> Decimal:
    return to_decimal(value, field="quantity").quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_total_cents(quantity, unit_price_cents: int) -> int:
    return round_cents(to_decimal(quantity) * Decimal(unit_price_cents))


def percent_of_cents(amount_cents: int, percent) -> int:
    """amount * percent / 100, half-up to the cent."""
    return round_cents(Decimal(amount_cents) * to_decimal(percent, field="percent") / Decimal(100))


def to_cents(amount) -> int:
    """Convert a major-unit amount (e.g. 12.50) to cents."""
    return round_cents(to_decimal(amount, field="amount") * Decimal(100))


def cents_to_str(cents: int | None) -> str | None:
    if cents is None:
        return None
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"
