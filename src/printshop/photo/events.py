"""Domain events for the Photo aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from printshop.domain import printshop


@printshop.event(part_of="Photo")
class PhotoRegistered:
    __version__ = "v1"

    photo_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    filename = String(required=True)
    file_size = Integer()


@printshop.event(part_of="Photo")
class PhotoOrdered:
    """The photo became part of an order for the first time for this order."""

    __version__ = "v1"

    photo_id = Identifier(required=True)
    order_id = Identifier(required=True)
    ordered_at = DateTime(required=True)


@printshop.event(part_of="Photo")
class PhotoScheduledForDeletion:
    __version__ = "v1"

    photo_id = Identifier(required=True)
    order_id = Identifier()
    scheduled_for = DateTime(required=True)


@printshop.event(part_of="Photo")
class PhotoDeleted:
    """The owner deleted a photo that no order references.

    Carries the blob ids so storage can drop the files.
    """

    __version__ = "v1"

    photo_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    blob_id = String()
    thumbnail_blob_id = String()
    file_size = Integer()


@printshop.event(part_of="Photo")
class PhotoPurged:
    """The cleanup job removed the photo's files after its retention window."""

    __version__ = "v1"

    photo_id = Identifier(required=True)
    file_size = Integer()
    purged_at = DateTime(required=True)
