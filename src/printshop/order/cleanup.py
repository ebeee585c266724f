"""Write-back from the storage cleanup job once an order's photos are gone."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.order.order import Order


@printshop.command(part_of="Order")
class RecordOrderPhotoCleanup:
    order_id = Identifier(required=True)
    photos_deleted = Integer(required=True, min_value=0)
    storage_freed = Integer(required=True, min_value=0)


@printshop.command_handler(part_of=Order)
class OrderPhotoCleanupHandler:
    @handle(RecordOrderPhotoCleanup)
    def record_cleanup(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_photo_cleanup(command.photos_deleted, command.storage_freed)
        repo.add(order)
