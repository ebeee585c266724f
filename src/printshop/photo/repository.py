"""Photo queries: ownership-checked loads and the cleanup work queue."""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.order.order import Order
from printshop.photo.photo import Photo
from printshop.shared.clock import as_naive_utc, is_due

logger = structlog.get_logger(__name__)


@printshop.repository(part_of=Photo)
class PhotoRepository:
    def owned(self, photo_id, owner_id) -> Photo:
        """Load a live photo belonging to ``owner_id``.

        Missing, deleted and foreign photos all raise the same not-found error.
        """
        try:
            photo = self.get(photo_id)
        except ObjectNotFoundError:
            photo = None

        if photo is None or photo.is_deleted or not photo.is_owned_by(owner_id):
            raise ObjectNotFoundError({"photo_id": ["Photo not found"]})
        return photo

    def for_owner(self, owner_id) -> list[Photo]:
        photos = self._dao.query.filter(owner_id=str(owner_id), is_deleted=False).all().items
        return sorted(photos, key=lambda p: as_naive_utc(p.uploaded_at) or datetime.min, reverse=True)

    def active_orders_of(self, photo: Photo) -> list[str]:
        """Ids of orders referencing ``photo`` that have not reached a terminal status."""
        orders = current_domain.repository_for(Order)
        return [order_id for order_id in photo.order_ids if orders.is_active(order_id)]

    def due_for_cleanup(self, before=None) -> list[Photo]:
        """Photos whose retention window has elapsed and that still hold files.

        Photos still referenced by an active order are never offered.
        """
        before = before or datetime.now(UTC)
        pending = self._dao.query.filter(is_pending_deletion=True, is_deleted=False).all().items

        due = []
        for photo in pending:
            if not is_due(photo.deletion_scheduled_for, before):
                continue
            active = self.active_orders_of(photo)
            if active:
                logger.warning("Pending photo still needed, held back", photo_id=str(photo.id), active_orders=active)
                continue
            due.append(photo)
        return sorted(due, key=lambda p: as_naive_utc(p.deletion_scheduled_for))
