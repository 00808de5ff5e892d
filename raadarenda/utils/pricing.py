import math
from collections import namedtuple
from datetime import date, datetime

PriceQuote = namedtuple('PriceQuote', ['total_price', 'daily_price_used', 'savings'])


def _field(bracket, name):
    if isinstance(bracket, dict):
        return bracket.get(name)
    return getattr(bracket, name)


def _best_bracket(brackets, value, min_key, max_key):
    """Pick the matching bracket with the greatest lower bound, or None."""
    matching = [
        b for b in brackets
        if value >= _field(b, min_key)
        and (_field(b, max_key) is None or value <= _field(b, max_key))
    ]
    if not matching:
        return None
    return max(matching, key=lambda b: _field(b, min_key))


def calculate_rental_days(start, end):
    """
    Inclusive day count between two rental dates: both the start and the end
    calendar day are billed, and a same-day rental counts as one day.
    """
    if isinstance(start, date) and not isinstance(start, datetime):
        start = datetime.combine(start, datetime.min.time())
    if isinstance(end, date) and not isinstance(end, datetime):
        end = datetime.combine(end, datetime.min.time())
    diff_days = math.ceil(abs((end - start).total_seconds()) / 86400)
    return max(1, diff_days + 1)


def calculate_price(daily_price, rental_days, quantity, pricing_tiers=None, quantity_pricing=None):
    """
    Compute the effective daily price for a rental line.

    Quantity brackets only apply to single-day rentals, duration brackets only
    to rentals longer than a day. When several brackets match, the one with the
    highest lower bound wins. Returns a PriceQuote of
    (total_price, daily_price_used, savings).
    """
    pricing_tiers = pricing_tiers or []
    quantity_pricing = quantity_pricing or []
    effective_daily_price = daily_price

    if rental_days == 1 and quantity_pricing:
        bracket = _best_bracket(quantity_pricing, quantity, 'min_quantity', 'max_quantity')
        if bracket is not None:
            effective_daily_price = _field(bracket, 'price_per_unit')
    elif rental_days > 1 and pricing_tiers:
        tier = _best_bracket(pricing_tiers, rental_days, 'min_days', 'max_days')
        if tier is not None:
            effective_daily_price = _field(tier, 'daily_price')

    total_price = effective_daily_price * rental_days * quantity
    full_price = daily_price * rental_days * quantity

    return PriceQuote(
        total_price=total_price,
        daily_price_used=effective_daily_price,
        savings=max(0, full_price - total_price),
    )
