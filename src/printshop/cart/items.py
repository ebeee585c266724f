"""Cart item management: commands and handler.

Selections arrive as JSON ``[{"size_code": "4x6", "quantity": 10}, ...]`` and
are priced from the active print sizes. One unknown or inactive size code
rejects the whole request.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from printshop.cart.cart import PrintSelection, ShoppingCart
from printshop.catalogue.print_size import PrintSize
from printshop.domain import printshop
from printshop.photo.photo import Photo
from printshop.tax import display_tax_rate


@printshop.command(part_of="ShoppingCart")
class AddPhotoToCart:
    customer_id = Identifier(required=True)
    photo_id = Identifier(required=True)
    print_selections = Text(required=True)  # JSON: list of {size_code, quantity}


@printshop.command(part_of="ShoppingCart")
class UpdateCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    print_selections = Text(required=True)  # JSON; an empty list removes the item


@printshop.command(part_of="ShoppingCart")
class RemoveCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@printshop.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


def parse_selections(raw) -> list[dict]:
    try:
        requested = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError({"print_selections": ["Print selections are not valid JSON"]}) from None
    if not isinstance(requested, list):
        raise ValidationError({"print_selections": ["Print selections must be a list"]})

    parsed = []
    for entry in requested:
        if not isinstance(entry, dict) or not entry.get("size_code"):
            raise ValidationError({"print_selections": ["Each selection needs a size_code and a quantity"]})
        try:
            quantity = int(entry.get("quantity", 0))
        except (TypeError, ValueError):
            raise ValidationError({"print_selections": [f"Invalid quantity for {entry['size_code']}"]}) from None
        if quantity < 1:
            raise ValidationError({"print_selections": [f"Quantity for {entry['size_code']} must be at least 1"]})
        parsed.append({"size_code": str(entry["size_code"]).strip(), "quantity": quantity})
    return parsed


def price_selections(requested: list[dict], active_sizes: dict) -> list[PrintSelection]:
    """Price requested selections from ``active_sizes`` (size_code -> PrintSize)."""
    missing = sorted({entry["size_code"] for entry in requested if entry["size_code"] not in active_sizes})
    if missing:
        raise ValidationError({"print_selections": [f"Print sizes not available: {', '.join(missing)}"]})

    return [
        PrintSelection.priced(
            size_code=entry["size_code"],
            size_name=active_sizes[entry["size_code"]].display_name,
            quantity=entry["quantity"],
            unit_price=active_sizes[entry["size_code"]].base_price,
        )
        for entry in requested
    ]


def _active_sizes() -> dict:
    return current_domain.repository_for(PrintSize).active_by_code()


def _save(repo, cart, active_sizes=None):
    """Re-validate against the catalogue, recompute the summary and persist."""
    active_sizes = active_sizes if active_sizes is not None else _active_sizes()
    cart.drop_unavailable_sizes(set(active_sizes))
    cart.recalculate(display_tax_rate())
    repo.add(cart)


@printshop.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddPhotoToCart)
    def add_photo_to_cart(self, command):
        photo = current_domain.repository_for(Photo).owned(command.photo_id, command.customer_id)
        active_sizes = _active_sizes()
        selections = price_selections(parse_selections(command.print_selections), active_sizes)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        item_id = cart.add_photo(
            photo_id=str(photo.id),
            filename=photo.filename,
            file_size=photo.file_size,
            selections=selections,
        )
        _save(repo, cart, active_sizes)
        return item_id

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        active_sizes = _active_sizes()
        selections = price_selections(parse_selections(command.print_selections), active_sizes)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        cart.update_item(command.item_id, selections)
        _save(repo, cart, active_sizes)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        cart.remove_item(command.item_id)
        _save(repo, cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        cart.clear()
        _save(repo, cart)
