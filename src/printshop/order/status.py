"""Administrator status updates driven through the order state machine."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.order.completion import schedule_completed_order
from printshop.order.order import Order, OrderStatus
from printshop.photo.retention import release_cancelled_order_photos

logger = structlog.get_logger(__name__)


def release_cancelled_order(order):
    """Schedule the photos this order was holding back from an earlier completion."""
    orders = current_domain.repository_for(Order)
    return release_cancelled_order_photos(
        order.photo_ids,
        order.id,
        is_active_order=orders.is_active,
        is_completed_order=orders.is_completed,
    )


@printshop.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    admin_id = String(required=True, max_length=50)
    notes = Text()
    expected_revision = Integer()


@printshop.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        try:
            target = OrderStatus(command.status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {command.status}"]}) from None

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.check_revision(command.expected_revision)

        previous = order.status
        order.transition_to(target, command.admin_id, notes=command.notes)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
            admin_id=command.admin_id,
        )

        if target == OrderStatus.COMPLETED:
            return schedule_completed_order(order)
        if target == OrderStatus.CANCELLED:
            release_cancelled_order(order)
        return {"order_id": str(order.id), "status": order.status, "revision": order.revision}
