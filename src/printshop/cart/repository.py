"""Cart lookup by customer. A cart past its TTL comes back empty."""

import structlog

from printshop.cart.cart import ClearReason, ShoppingCart
from printshop.domain import printshop

logger = structlog.get_logger(__name__)


@printshop.repository(part_of=ShoppingCart)
class CartRepository:
    def find_for_customer(self, customer_id) -> ShoppingCart | None:
        found = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return found[0] if found else None

    def for_customer(self, customer_id) -> ShoppingCart:
        """The customer's live cart, created on first use. Not persisted here."""
        cart = self.find_for_customer(customer_id)
        if cart is None:
            return ShoppingCart.create(customer_id=customer_id)

        if cart.is_expired() and cart.items:
            logger.info("Cart expired, discarding items", cart_id=str(cart.id), items=len(cart.items))
            cart.clear(ClearReason.EXPIRED)
            cart.recalculate(cart.summary.tax_rate if cart.summary else 0.0)
        return cart
