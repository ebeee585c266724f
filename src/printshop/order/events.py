"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from printshop.domain import printshop


@printshop.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into an order with locked prices."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    photo_count = Integer(required=True)
    subtotal = Float(required=True)
    tax_amount = Float(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@printshop.event(part_of="Order")
class OrderStatusChanged:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@printshop.event(part_of="Order")
class PaymentVerified:
    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    verified_by = String(required=True)
    verified_at = DateTime(required=True)


@printshop.event(part_of="Order")
class OrderCompleted:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    completed_by = String()
    completed_at = DateTime(required=True)


@printshop.event(part_of="Order")
class OrderPhotoCleanupRecorded:
    """The cleanup job reported how much storage the order's photos released."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    photos_deleted = Integer(required=True)
    storage_freed = Integer(required=True)
