"""Order aggregate (CQRS): a frozen cart snapshot moving through fulfillment.

Prices, tax and line items are copied from the cart when the order is placed
and never change afterwards. Administrators then drive the status through
the transition table below; each status change carries its side effects and
bumps ``revision`` so concurrent editors can detect lost updates.

State Machine:
    PENDING → PAYMENT_VERIFIED → PROCESSING → PRINTED → SHIPPED → COMPLETED
    PRINTED → COMPLETED (pickup orders skip shipping)
    CANCELLED (from PENDING, PAYMENT_VERIFIED, PROCESSING)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from printshop.domain import printshop
from printshop.order.events import (
    OrderCompleted,
    OrderPhotoCleanupRecorded,
    OrderPlaced,
    OrderStatusChanged,
    PaymentVerified,
)
from printshop.shared.errors import InvalidTransition, StaleRevision
from printshop.shared.money import money_add, money_mul, money_sum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PAYMENT_VERIFIED = "payment_verified"
    PROCESSING = "processing"
    PRINTED = "printed"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    BRANCH_PAYMENT = "branch_payment"


class PaymentStatus(Enum):
    PENDING = "pending"
    VERIFIED = "verified"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAYMENT_VERIFIED, OrderStatus.CANCELLED},
    OrderStatus.PAYMENT_VERIFIED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.PRINTED, OrderStatus.CANCELLED},
    OrderStatus.PRINTED: {OrderStatus.SHIPPED, OrderStatus.COMPLETED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)

_COMPLETABLE_STATES = {OrderStatus.PRINTED, OrderStatus.SHIPPED}


def allowed_transitions(current: OrderStatus) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS[current])


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@printshop.value_object(part_of="Order")
class ShippingAddress:
    full_name = String(required=True, max_length=100)
    street_line1 = String(required=True, max_length=200)
    street_line2 = String(max_length=200)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=2)
    postal_code = String(required=True, max_length=10)
    country = String(max_length=50, default="USA")
    phone = String(max_length=20)


@printshop.value_object(part_of="Order")
class OrderPricing:
    """Money locked at checkout. Later catalogue price edits never reach it."""

    subtotal = Float(default=0.0)
    tax_rate = Float(default=0.0)
    tax_amount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="USD")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@printshop.entity(part_of="Order")
class OrderItem:
    """One photo of the order with its frozen print selections."""

    photo_id = Identifier(required=True)
    photo_filename = String(max_length=255)
    photo_file_size = Integer(default=0)
    print_selections = Text()  # JSON array of {size_code, size_name, quantity, unit_price, subtotal}
    photo_total = Float(default=0.0)

    @property
    def selections(self) -> list[dict]:
        return json.loads(self.print_selections) if self.print_selections else []


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@printshop.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    customer_email = String(max_length=254)
    customer_name = String(max_length=100)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)

    payment_method = String(choices=PaymentMethod, required=True)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    card_last_four = String(max_length=4)
    cardholder_name = String(max_length=100)
    preferred_branch = String(max_length=100)
    payment_reference = String(max_length=20)
    payment_verified_at = DateTime()
    payment_verified_by = String(max_length=50)

    printed_at = DateTime()
    shipped_at = DateTime()
    tracking_number = String(max_length=100)
    completed_at = DateTime()
    fulfillment_notes = Text()  # JSON array of note strings

    # Photo cleanup reported back by the storage job
    photos_cleaned_up = Boolean(default=False)
    photos_deleted = Integer(default=0)
    storage_freed = Integer(default=0)
    photo_cleanup_date = DateTime()

    checkout_key = String(max_length=100)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def pricing_must_balance(self):
        if self.pricing and abs(money_add(self.pricing.subtotal, self.pricing.tax_amount) - self.pricing.total) > 1e-9:
            raise ValidationError({"pricing": ["Total must equal subtotal plus tax"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        items_data,
        shipping_address,
        pricing,
        payment,
        customer_email=None,
        customer_name=None,
        checkout_key=None,
    ):
        """Build an order from frozen item data.

        ``items_data`` holds dicts with photo_id, photo_filename,
        photo_file_size and print_selections (each with size_code, size_name,
        quantity, unit_price). Selection subtotals and photo totals are
        derived here from quantity and unit price.
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            customer_email=customer_email,
            customer_name=customer_name,
            status=OrderStatus.PENDING.value,
            shipping_address=ShippingAddress(**shipping_address),
            pricing=OrderPricing(**pricing),
            photos_cleaned_up=False,
            photos_deleted=0,
            storage_freed=0,
            fulfillment_notes=json.dumps([]),
            checkout_key=checkout_key,
            revision=0,
            created_at=now,
            updated_at=now,
            **payment,
        )

        for item_data in items_data:
            order.add_items(freeze_item(item_data))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                photo_count=len(order.items),
                subtotal=order.pricing.subtotal,
                tax_amount=order.pricing.tax_amount,
                total=order.pricing.total,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def photo_ids(self) -> list[str]:
        return list(dict.fromkeys(str(item.photo_id) for item in self.items))

    @property
    def notes(self) -> list[str]:
        return json.loads(self.fulfillment_notes) if self.fulfillment_notes else []

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATES

    def can_transition_to(self, target_status: OrderStatus) -> bool:
        return target_status in _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def check_revision(self, expected_revision):
        if expected_revision is not None and expected_revision != self.revision:
            raise StaleRevision(
                {"revision": [f"Order was modified (revision {self.revision}, expected {expected_revision})"]}
            )

    def _assert_can_transition(self, target_status: OrderStatus):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, target_status: OrderStatus, changed_by, notes=None):
        """Apply an administrator status change with its side effects."""
        if target_status == OrderStatus.COMPLETED:
            self.complete(changed_by, notes=notes)
            return

        self._assert_can_transition(target_status)
        now = datetime.now(UTC)

        if target_status == OrderStatus.PAYMENT_VERIFIED and self.payment_status == PaymentStatus.PENDING.value:
            self.payment_status = PaymentStatus.VERIFIED.value
            self.payment_verified_at = now
            self.payment_verified_by = str(changed_by)
            self.raise_(
                PaymentVerified(
                    order_id=str(self.id),
                    payment_method=self.payment_method,
                    verified_by=str(changed_by),
                    verified_at=now,
                )
            )
        elif target_status == OrderStatus.PRINTED:
            self.printed_at = now
        elif target_status == OrderStatus.SHIPPED:
            self.shipped_at = now

        if notes:
            self._append_note(changed_by, notes, now)
        self._change_status(target_status, changed_by, now)

    def complete(self, completed_by, shipped_at=None, tracking_number=None, notes=None):
        """Close out a printed or shipped order.

        Resets the photo cleanup record; the caller schedules the photos.
        """
        current = OrderStatus(self.status)
        if current == OrderStatus.COMPLETED:
            raise InvalidTransition({"status": ["Order is already completed"]})
        if current not in _COMPLETABLE_STATES:
            raise InvalidTransition(
                {"status": [f"Order must be printed or shipped before completion (currently {current.value})"]}
            )

        now = datetime.now(UTC)
        self.completed_at = now
        if shipped_at is not None:
            self.shipped_at = shipped_at
        if tracking_number:
            self.tracking_number = tracking_number
        if notes:
            self._append_note(completed_by, f"COMPLETED - {notes}", now)
        self._reset_photo_cleanup()

        self._change_status(OrderStatus.COMPLETED, completed_by, now)
        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                order_number=self.order_number,
                completed_by=str(completed_by) if completed_by else None,
                completed_at=now,
            )
        )

    def record_photo_cleanup(self, photos_deleted, storage_freed):
        if OrderStatus(self.status) != OrderStatus.COMPLETED:
            raise InvalidTransition({"status": ["Photo cleanup can only be recorded for completed orders"]})

        now = datetime.now(UTC)
        self.photos_cleaned_up = True
        self.photos_deleted = photos_deleted
        self.storage_freed = storage_freed
        self.photo_cleanup_date = now
        self.updated_at = now
        self.raise_(
            OrderPhotoCleanupRecorded(
                order_id=str(self.id),
                photos_deleted=photos_deleted,
                storage_freed=storage_freed,
            )
        )

    def _reset_photo_cleanup(self):
        self.photos_cleaned_up = False
        self.photos_deleted = 0
        self.storage_freed = 0
        self.photo_cleanup_date = None

    def _append_note(self, author, text, at):
        notes = self.notes
        notes.append(f"[{at.strftime('%Y-%m-%d %H:%M')}] {author}: {text}")
        self.fulfillment_notes = json.dumps(notes)

    def _change_status(self, target_status, changed_by, at):
        previous = self.status
        self.status = target_status.value
        self.revision = (self.revision or 0) + 1
        self.updated_at = at
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=target_status.value,
                changed_by=str(changed_by) if changed_by else None,
                changed_at=at,
            )
        )


def freeze_item(item_data) -> OrderItem:
    """Copy a cart item into an OrderItem, re-deriving every subtotal."""
    selections = [
        {
            "size_code": selection["size_code"],
            "size_name": selection.get("size_name"),
            "quantity": selection["quantity"],
            "unit_price": selection["unit_price"],
            "subtotal": money_mul(selection["quantity"], selection["unit_price"]),
        }
        for selection in item_data["print_selections"]
    ]
    return OrderItem(
        photo_id=item_data["photo_id"],
        photo_filename=item_data.get("photo_filename"),
        photo_file_size=item_data.get("photo_file_size") or 0,
        print_selections=json.dumps(selections),
        photo_total=money_sum(selection["subtotal"] for selection in selections),
    )
