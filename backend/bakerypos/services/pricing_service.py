# Overview: Time-of-day pricing rules for catalog products.

"""
Evening special pricing.

A product flagged is_special_pricing with a special_price_cents sells at
the special price from SPECIAL_PRICE_START_HOUR (19:00 shop time) until
midnight, and at its base price otherwise.

The hour must be captured once per cart (snapshot_hour) and passed to
every line, so a cart processed across 19:00 never mixes prices.
"""

from __future__ import annotations

from flask import current_app, has_app_context

from ..time_utils import business_now

DEFAULT_SPECIAL_PRICE_START_HOUR = 19


def special_price_start_hour() -> int:
    if has_app_context():
        return int(current_app.config.get("SPECIAL_PRICE_START_HOUR", DEFAULT_SPECIAL_PRICE_START_HOUR))
    return DEFAULT_SPECIAL_PRICE_START_HOUR


def snapshot_hour() -> int:
    """Shop-local hour (0-23), taken once per cart."""
    return business_now().hour


def is_special_active(product, current_hour: int, start_hour: int | None = None) -> bool:
    if start_hour is None:
        start_hour = special_price_start_hour()
    return (
        bool(product.is_special_pricing)
        and product.special_price_cents is not None
        and current_hour >= start_hour
    )


def current_price_cents(product, current_hour: int, start_hour: int | None = None) -> int:
    """Effective unit price of a product at the given hour."""
    if is_special_active(product, current_hour, start_hour):
        return product.special_price_cents
    return product.price_cents
