"""Shopping Cart aggregate: a customer's photo print selections before checkout.

Each customer has one cart. Each cart item is one photo with its print
selections; prices are captured when a selection is made. The summary is
recomputed after every change using the display tax rate, and every change
pushes the expiry out by the cart TTL.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from printshop.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartItemUpdated
from printshop.domain import printshop
from printshop.shared.clock import as_naive_utc
from printshop.shared.money import money_add, money_mul, money_sum
from printshop.utils import settings


class ClearReason(Enum):
    CUSTOMER = "customer"
    CHECKOUT = "checkout"
    EXPIRED = "expired"


@printshop.value_object(part_of="ShoppingCart")
class PrintSelection:
    """One print size and quantity for a photo, priced when it was chosen."""

    size_code = String(required=True, max_length=20)
    size_name = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)

    @classmethod
    def priced(cls, size_code, size_name, quantity, unit_price):
        return cls(
            size_code=size_code,
            size_name=size_name,
            quantity=quantity,
            unit_price=unit_price,
            line_total=money_mul(quantity, unit_price),
        )


@printshop.value_object(part_of="ShoppingCart")
class CartSummary:
    total_photos = Integer(default=0)
    total_prints = Integer(default=0)
    subtotal = Float(default=0.0)
    tax_rate = Float(default=0.0)
    estimated_tax = Float(default=0.0)
    estimated_total = Float(default=0.0)


@printshop.entity(part_of="ShoppingCart")
class CartItem:
    photo_id = Identifier(required=True)
    photo_filename = String(max_length=255)
    photo_file_size = Integer(default=0)
    print_selections = Text()  # JSON array of PrintSelection dicts
    photo_total = Float(default=0.0)
    added_at = DateTime()
    updated_at = DateTime()

    @property
    def selections(self) -> list[dict]:
        return json.loads(self.print_selections) if self.print_selections else []

    @property
    def total_prints(self) -> int:
        return sum(selection["quantity"] for selection in self.selections)

    def replace_selections(self, selections: list[PrintSelection]):
        rows = [selection.to_dict() for selection in selections]
        self.print_selections = json.dumps(rows)
        self.photo_total = money_sum(row["line_total"] for row in rows)


@printshop.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    summary = ValueObject(CartSummary)
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            summary=CartSummary(),
            expires_at=now + timedelta(days=settings.CART_TTL_DAYS),
            created_at=now,
            updated_at=now,
        )

    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at is not None and as_naive_utc(self.expires_at) <= as_naive_utc(now)

    def find_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def item_for_photo(self, photo_id) -> CartItem | None:
        return next((i for i in self.items if str(i.photo_id) == str(photo_id)), None)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_photo(self, photo_id, filename, file_size, selections: list[PrintSelection]):
        """Put a photo in the cart. An existing item for the same photo is replaced."""
        if not selections:
            raise ValidationError({"print_selections": ["At least one print selection is required"]})

        existing = self.item_for_photo(photo_id)
        if existing is not None:
            self.remove_items(existing)

        now = datetime.now(UTC)
        item = CartItem(
            photo_id=photo_id,
            photo_filename=filename,
            photo_file_size=file_size or 0,
            added_at=now,
            updated_at=now,
        )
        item.replace_selections(selections)
        self.add_items(item)
        self._touch(now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                photo_id=str(photo_id),
                total_prints=item.total_prints,
                photo_total=item.photo_total,
                replaced=existing is not None,
            )
        )
        return str(item.id)

    def update_item(self, item_id, selections: list[PrintSelection]):
        """Replace an item's selections. No selections means the item goes away."""
        item = self.find_item(item_id)
        if not selections:
            self.remove_item(item_id)
            return

        now = datetime.now(UTC)
        item.replace_selections(selections)
        item.updated_at = now
        self._touch(now)

        self.raise_(
            CartItemUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                total_prints=item.total_prints,
                photo_total=item.photo_total,
            )
        )

    def remove_item(self, item_id):
        item = self.find_item(item_id)
        self.remove_items(item)
        self._touch(datetime.now(UTC))
        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item.id), photo_id=str(item.photo_id)))

    def clear(self, reason=ClearReason.CUSTOMER):
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self._touch(datetime.now(UTC))
        self.raise_(CartCleared(cart_id=str(self.id), reason=reason.value, items_removed=removed))

    def drop_unavailable_sizes(self, active_codes) -> int:
        """Drop selections whose print size is no longer offered.

        Captured prices of the remaining selections are kept. Items left without
        selections are removed. Returns the number of selections dropped.
        """
        dropped = 0
        for item in list(self.items):
            rows = item.selections
            kept = [row for row in rows if row["size_code"] in active_codes]
            if len(kept) == len(rows):
                continue
            dropped += len(rows) - len(kept)
            if kept:
                item.replace_selections([PrintSelection(**row) for row in kept])
            else:
                self.remove_items(item)
        return dropped

    def recalculate(self, tax_rate):
        subtotal = money_sum(item.photo_total for item in self.items)
        estimated_tax = money_mul(subtotal, tax_rate)
        self.summary = CartSummary(
            total_photos=len(self.items),
            total_prints=sum(item.total_prints for item in self.items),
            subtotal=subtotal,
            tax_rate=tax_rate,
            estimated_tax=estimated_tax,
            estimated_total=money_add(subtotal, estimated_tax),
        )

    def _touch(self, now):
        self.updated_at = now
        self.expires_at = now + timedelta(days=settings.CART_TTL_DAYS)
