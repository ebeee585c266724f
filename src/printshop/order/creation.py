"""Order placement: convert the customer's cart into a price-locked order.

The handler runs in one unit of work. The order, the photo bindings and the
emptied cart are committed together, so a failure at any step leaves no
order behind and the cart untouched. A checkout key makes a retried request
return the order it already created. An order number that a concurrent
checkout stored first is replaced with a fresh one.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from functools import partial

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from printshop.cart.cart import ClearReason, ShoppingCart
from printshop.domain import printshop
from printshop.identifiers.sequence import ORDER_PREFIX, ORDER_WIDTH, next_identifier
from printshop.order.order import Order
from printshop.order.payment import build_payment
from printshop.photo.photo import Photo
from printshop.photo.retention import bind_photos_to_order
from printshop.shared.errors import DuplicateOrderNumber
from printshop.shared.money import money_add, money_mul, money_sum
from printshop.tax import display_tax_rate, resolve_tax_rate
from printshop.utils import settings

logger = structlog.get_logger(__name__)

_ADDRESS_FIELDS = (
    "full_name",
    "street_line1",
    "street_line2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
)


@printshop.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=254)
    customer_name = String(max_length=100)
    shipping_address = Text(required=True)  # JSON: ShippingAddress fields
    payment_method = String(required=True, max_length=20)
    card_last_four = String(max_length=4)
    cardholder_name = String(max_length=100)
    preferred_branch = String(max_length=100)
    checkout_key = String(max_length=100)


def next_order_number(year: int | None = None) -> str:
    orders = current_domain.repository_for(Order)
    return next_identifier(
        ORDER_PREFIX,
        year or datetime.now(UTC).year,
        ORDER_WIDTH,
        existing=orders.order_numbers,
    )


def _log_renumber(retry_state):
    logger.warning(
        "Order number already taken, renumbering",
        attempt=retry_state.attempt_number,
    )


@retry(
    reraise=True,
    stop=stop_after_attempt(settings.SEQUENCE_MAX_ATTEMPTS),
    wait=wait_random_exponential(multiplier=0.01, max=0.2),
    retry=retry_if_exception_type(DuplicateOrderNumber),
    before_sleep=_log_renumber,
)
def store_numbered_order(orders, place: Callable[..., Order]) -> Order:
    """Number, build and store an order, taking a fresh number if another writer won it."""
    order = place(order_number=next_order_number())
    orders.add(order)
    return order


def order_receipt(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "subtotal": order.pricing.subtotal,
        "tax_rate": order.pricing.tax_rate,
        "tax_amount": order.pricing.tax_amount,
        "total": order.pricing.total,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "payment_reference": order.payment_reference,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def _parse_address(raw) -> dict:
    try:
        address = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError({"shipping_address": ["Shipping address is not valid JSON"]}) from None
    if not isinstance(address, dict) or not address.get("state"):
        raise ValidationError({"shipping_address": ["A shipping state is required"]})
    address = {key: value for key, value in address.items() if key in _ADDRESS_FIELDS and value is not None}
    return {**address, "state": str(address["state"]).strip().upper()}


def _freeze_cart_items(cart, customer_id) -> list[dict]:
    """Snapshot cart items, refusing photos that disappeared since they were added."""
    photos = current_domain.repository_for(Photo)
    frozen = []
    for item in cart.items:
        try:
            photo = photos.owned(item.photo_id, customer_id)
        except ObjectNotFoundError:
            raise ValidationError(
                {"cart": [f"Photo {item.photo_filename or item.photo_id} is no longer available"]}
            ) from None
        frozen.append(
            {
                "photo_id": str(photo.id),
                "photo_filename": item.photo_filename or photo.filename,
                "photo_file_size": photo.file_size,
                "print_selections": item.selections,
            }
        )
    return frozen


@printshop.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        orders = current_domain.repository_for(Order)

        if command.checkout_key:
            existing = orders.by_checkout_key(command.customer_id, command.checkout_key)
            if existing is not None:
                logger.info(
                    "Checkout retried, returning existing order",
                    order_id=str(existing.id),
                    checkout_key=command.checkout_key,
                )
                return order_receipt(existing)

        carts = current_domain.repository_for(ShoppingCart)
        cart = carts.for_customer(command.customer_id)
        if not cart.items:
            raise ValidationError({"cart": ["Shopping cart is empty"]})

        address = _parse_address(command.shipping_address)
        tax_rate = resolve_tax_rate(address["state"])

        subtotal = money_sum(item.photo_total for item in cart.items)
        tax_amount = money_mul(subtotal, tax_rate)
        pricing = {
            "subtotal": subtotal,
            "tax_rate": tax_rate,
            "tax_amount": tax_amount,
            "total": money_add(subtotal, tax_amount),
        }

        items_data = _freeze_cart_items(cart, command.customer_id)
        payment = build_payment(
            command.payment_method,
            card_last_four=command.card_last_four,
            cardholder_name=command.cardholder_name,
            preferred_branch=command.preferred_branch,
        )

        place = partial(
            Order.place,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            customer_name=command.customer_name,
            items_data=items_data,
            shipping_address=address,
            pricing=pricing,
            payment=payment,
            checkout_key=command.checkout_key,
        )
        order = store_numbered_order(orders, place)

        bind_photos_to_order(order.photo_ids, order.id)

        cart.clear(ClearReason.CHECKOUT)
        cart.recalculate(display_tax_rate())
        carts.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            photos=len(order.photo_ids),
            total=order.pricing.total,
        )
        return order_receipt(order)
