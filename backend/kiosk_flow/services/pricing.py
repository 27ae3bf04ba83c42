"""
Item pricing and tax.

Tiered pricing: the first `included_quantity` units are free, the first unit
beyond that costs the base price, and every unit after that costs the
additional price. An additional price of 0 means "same as base".
"""

from decimal import ROUND_HALF_UP, Decimal

from kiosk_flow.models import OrderTotals
from shared.utils.schemas import MenuItem


def tiered_price_cents(
    base_price_cents: int,
    additional_price_cents: int,
    included_quantity: int,
    quantity: int,
) -> int:
    """
    Price of `quantity` units of an item.

    price = 0                                  if quantity <= included
    price = base + additional * (extra - 1)    otherwise, extra = quantity - included

    Example:
        >>> tiered_price_cents(500, 0, 1, 3)
        1000
    """
    if quantity <= 0 or quantity <= included_quantity:
        return 0

    additional = additional_price_cents or base_price_cents
    extra = quantity - max(included_quantity, 0)
    return base_price_cents + additional * (extra - 1)


def item_price_cents(item: MenuItem, quantity: int) -> int:
    """Tiered price of a menu item."""
    return tiered_price_cents(
        item.base_price_cents,
        item.additional_price_cents,
        item.included_quantity,
        quantity,
    )


def compute_tax_cents(subtotal_cents: int, tax_rate: float) -> int:
    """Tax on a subtotal, rounded half-up to the cent."""
    if subtotal_cents <= 0 or tax_rate <= 0:
        return 0
    tax = Decimal(subtotal_cents) * Decimal(str(tax_rate))
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_totals(subtotal_cents: int, tax_rate: float) -> OrderTotals:
    """Subtotal plus locally computed tax."""
    tax_cents = compute_tax_cents(subtotal_cents, tax_rate)
    return OrderTotals(
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        total_cents=subtotal_cents + tax_cents,
    )
