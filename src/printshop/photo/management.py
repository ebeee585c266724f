"""Photo commands issued by customers and by the storage cleanup job."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.photo.photo import Photo
from printshop.shared.errors import PhotoInUse

logger = structlog.get_logger(__name__)


@printshop.command(part_of="Photo")
class RegisterPhoto:
    """Record an uploaded photo. The files are already in blob storage."""

    owner_id = Identifier(required=True)
    filename = String(required=True, max_length=255)
    file_size = Integer(required=True, min_value=0)
    blob_id = String(max_length=100)
    thumbnail_blob_id = String(max_length=100)
    width = Integer()
    height = Integer()


@printshop.command(part_of="Photo")
class DeletePhoto:
    photo_id = Identifier(required=True)
    owner_id = Identifier(required=True)


@printshop.command(part_of="Photo")
class RecordPhotoPurged:
    """Sent by the cleanup job after it removed a photo's files."""

    photo_id = Identifier(required=True)


@printshop.command_handler(part_of=Photo)
class ManagePhotosHandler:
    @handle(RegisterPhoto)
    def register_photo(self, command):
        photo = Photo.register(
            owner_id=command.owner_id,
            filename=command.filename,
            file_size=command.file_size,
            blob_id=command.blob_id,
            thumbnail_blob_id=command.thumbnail_blob_id,
            width=command.width,
            height=command.height,
        )
        current_domain.repository_for(Photo).add(photo)
        return str(photo.id)

    @handle(DeletePhoto)
    def delete_photo(self, command):
        repo = current_domain.repository_for(Photo)
        photo = repo.owned(command.photo_id, command.owner_id)
        photo.delete_by_owner()
        repo.add(photo)
        logger.info("Photo deleted by owner", photo_id=str(photo.id), file_size=photo.file_size)

    @handle(RecordPhotoPurged)
    def record_photo_purged(self, command):
        repo = current_domain.repository_for(Photo)
        photo = repo.get(command.photo_id)
        active = repo.active_orders_of(photo)
        if active:
            raise PhotoInUse({"photo_id": [f"Photo is still needed by {len(active)} active order(s)"]})
        freed = photo.record_purge()
        repo.add(photo)
        return freed
