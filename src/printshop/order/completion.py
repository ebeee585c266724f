"""Order completion: close out a printed or shipped order and schedule its photos."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.order.order import Order
from printshop.photo.retention import schedule_order_photos

logger = structlog.get_logger(__name__)


@printshop.command(part_of="Order")
class CompleteOrder:
    order_id = Identifier(required=True)
    admin_id = String(required=True, max_length=50)
    shipped_at = DateTime()
    tracking_number = String(max_length=100)
    notes = Text()
    buffer_days = Integer(min_value=0)
    expected_revision = Integer()


def schedule_completed_order(order, buffer_days=None) -> dict:
    """Schedule photo deletion for a just-completed order and summarize it."""
    orders = current_domain.repository_for(Order)
    schedule = schedule_order_photos(
        order.photo_ids,
        order.id,
        is_active_order=orders.is_active,
        buffer_days=buffer_days,
    )
    return {
        "order_id": str(order.id),
        "status": order.status,
        "revision": order.revision,
        "photos_scheduled_for_deletion": len(schedule.scheduled),
        "photos_retained": len(schedule.retained),
        "deletion_scheduled_for": schedule.scheduled_for.isoformat(),
        "estimated_storage_to_free": schedule.storage_to_free,
    }


@printshop.command_handler(part_of=Order)
class CompleteOrderHandler:
    @handle(CompleteOrder)
    def complete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.check_revision(command.expected_revision)

        order.complete(
            command.admin_id,
            shipped_at=command.shipped_at,
            tracking_number=command.tracking_number,
            notes=command.notes,
        )
        repo.add(order)

        summary = schedule_completed_order(order, buffer_days=command.buffer_days)
        logger.info(
            "Order completed",
            order_id=str(order.id),
            order_number=order.order_number,
            completed_by=command.admin_id,
            photos_scheduled=summary["photos_scheduled_for_deletion"],
        )
        return summary
