"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Boolean, Float, Identifier, Integer, String

from printshop.domain import printshop


@printshop.event(part_of="ShoppingCart")
class CartItemAdded:
    """A photo was added to the cart, or its previous selections were replaced."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    photo_id = Identifier(required=True)
    total_prints = Integer(required=True)
    photo_total = Float(required=True)
    replaced = Boolean(default=False)


@printshop.event(part_of="ShoppingCart")
class CartItemUpdated:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    total_prints = Integer(required=True)
    photo_total = Float(required=True)


@printshop.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    photo_id = Identifier(required=True)


@printshop.event(part_of="ShoppingCart")
class CartCleared:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    reason = String(required=True, max_length=20)
    items_removed = Integer(default=0)
