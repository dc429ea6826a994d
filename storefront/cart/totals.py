"""Derived cart aggregates."""
from decimal import Decimal
from typing import Iterable, NamedTuple

from storefront.services.money import round_money

from .models import CartItem


class CartTotals(NamedTuple):
    total_items: int
    total_price: Decimal


def compute_totals(items: Iterable[CartItem]) -> CartTotals:
    """
    Sum quantities and line prices.

    The only place cart aggregates come from; callers never adjust
    totals by hand.
    """
    total_items = 0
    total_price = Decimal("0")
    for item in items:
        total_items += item.quantity
        total_price += item.price * item.quantity
    return CartTotals(total_items, round_money(total_price))
