"""Printshop bounded context: photo print carts, orders and photo retention.

Handles the cart-to-order checkout, the administrator fulfillment workflow,
and the bookkeeping that decides when an uploaded photo may be removed from
storage.
"""

from protean.domain import Domain

from printshop.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
printshop = Domain(name="printshop")
