"""Photo aggregate: an uploaded image and the orders that depend on it.

A photo enters ``ordered_in`` when an order is placed with it and stays
there. Once ordered it can no longer be deleted by its owner; the only way
out is retention scheduling after order completion, followed by the cleanup
job purging it. Ordering a photo again while its deletion is pending takes it
back out of the cleanup queue.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from printshop.domain import printshop
from printshop.photo.events import (
    PhotoDeleted,
    PhotoOrdered,
    PhotoPurged,
    PhotoRegistered,
    PhotoScheduledForDeletion,
)
from printshop.shared.errors import BusinessRuleError, PhotoInUse


@printshop.aggregate
class Photo:
    owner_id = Identifier(required=True)
    filename = String(required=True, max_length=255)
    file_size = Integer(default=0, min_value=0)
    blob_id = String(max_length=100)
    thumbnail_blob_id = String(max_length=100)
    width = Integer()
    height = Integer()
    uploaded_at = DateTime()
    updated_at = DateTime()

    # Order references
    is_ordered = Boolean(default=False)
    ordered_in = Text()  # JSON array of order ids
    last_ordered_at = DateTime()

    # Lifecycle flags
    is_deleted = Boolean(default=False)
    deleted_at = DateTime()
    is_pending_deletion = Boolean(default=False)
    deletion_scheduled_for = DateTime()

    @invariant.post
    def ordered_photo_must_reference_an_order(self):
        if self.is_ordered and not self.order_ids:
            raise ValidationError({"ordered_in": ["An ordered photo must reference at least one order"]})

    @classmethod
    def register(cls, owner_id, filename, file_size, blob_id=None, thumbnail_blob_id=None, width=None, height=None):
        now = datetime.now(UTC)
        photo = cls(
            owner_id=owner_id,
            filename=filename,
            file_size=file_size or 0,
            blob_id=blob_id,
            thumbnail_blob_id=thumbnail_blob_id,
            width=width,
            height=height,
            ordered_in=json.dumps([]),
            uploaded_at=now,
            updated_at=now,
        )
        photo.raise_(
            PhotoRegistered(
                photo_id=str(photo.id),
                owner_id=str(owner_id),
                filename=filename,
                file_size=photo.file_size,
            )
        )
        return photo

    @property
    def order_ids(self) -> list[str]:
        return json.loads(self.ordered_in) if self.ordered_in else []

    def is_owned_by(self, owner_id) -> bool:
        return str(self.owner_id) == str(owner_id)

    def mark_ordered(self, order_id, at=None) -> bool:
        """Reference ``order_id``. Returns False when it was already referenced."""
        if self.is_deleted:
            raise BusinessRuleError({"photo_id": [f"Photo {self.id} has been deleted"]})

        at = at or datetime.now(UTC)
        order_ids = self.order_ids
        added = str(order_id) not in order_ids
        if added:
            order_ids.append(str(order_id))
            self.ordered_in = json.dumps(order_ids)

        self.is_ordered = True
        self.last_ordered_at = at
        self.updated_at = at
        # A new order needs the files again
        self.is_pending_deletion = False
        self.deletion_scheduled_for = None

        if added:
            self.raise_(PhotoOrdered(photo_id=str(self.id), order_id=str(order_id), ordered_at=at))
        return added

    def schedule_deletion(self, scheduled_for, order_id=None):
        self.is_pending_deletion = True
        self.deletion_scheduled_for = scheduled_for
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PhotoScheduledForDeletion(
                photo_id=str(self.id),
                order_id=str(order_id) if order_id else None,
                scheduled_for=scheduled_for,
            )
        )

    def delete_by_owner(self):
        if self.is_ordered:
            raise PhotoInUse({"photo_id": ["Photo is part of an order and cannot be deleted"]})

        now = datetime.now(UTC)
        self.is_deleted = True
        self.deleted_at = now
        self.updated_at = now
        self.raise_(
            PhotoDeleted(
                photo_id=str(self.id),
                owner_id=str(self.owner_id),
                blob_id=self.blob_id,
                thumbnail_blob_id=self.thumbnail_blob_id,
                file_size=self.file_size,
            )
        )

    def record_purge(self) -> int:
        """Record that the cleanup job removed the files. Returns bytes freed."""
        if self.is_deleted:
            return 0
        if not self.is_pending_deletion:
            raise BusinessRuleError({"photo_id": ["Photo is not scheduled for deletion"]})

        now = datetime.now(UTC)
        self.is_pending_deletion = False
        self.is_deleted = True
        self.deleted_at = now
        self.updated_at = now
        self.raise_(PhotoPurged(photo_id=str(self.id), file_size=self.file_size, purged_at=now))
        return self.file_size or 0
