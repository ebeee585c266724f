"""Cart totals for a known shipping state (the checkout preview)."""

from protean.utils.globals import current_domain

from printshop.cart.cart import ShoppingCart
from printshop.shared.money import money_add, money_mul, money_sum
from printshop.tax import resolve_tax_rate


def quote_cart_total(customer_id, state: str) -> dict:
    """Subtotal, tax and total the customer would pay shipping to ``state``."""
    cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    subtotal = money_sum(item.photo_total for item in cart.items)
    tax_rate = resolve_tax_rate(state)
    tax_amount = money_mul(subtotal, tax_rate)
    return {
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "total": money_add(subtotal, tax_amount),
        "state": state,
    }
