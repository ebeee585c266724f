"""Photo retention: binding photos to orders and scheduling their deletion.

Binding happens inside the order placement unit of work, so an order and the
flags on its photos are committed together. Scheduling happens when an order
completes. A photo that another order still needs is left alone and picked up
when that order completes in turn, or released when it is cancelled.
"""

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from printshop.domain import printshop
from printshop.photo.photo import Photo
from printshop.utils import settings

logger = structlog.get_logger(__name__)


@dataclass
class RetentionSchedule:
    scheduled_for: datetime
    scheduled: list[str] = field(default_factory=list)
    retained: list[str] = field(default_factory=list)
    storage_to_free: int = 0


def _distinct(photo_ids: Iterable) -> list[str]:
    return list(dict.fromkeys(str(photo_id) for photo_id in photo_ids))


def bind_photos_to_order(photo_ids: Iterable, order_id, at=None) -> list[str]:
    """Reference ``order_id`` from each photo. Safe to repeat."""
    repo = current_domain.repository_for(Photo)
    at = at or datetime.now(UTC)
    newly_bound = []
    for photo_id in _distinct(photo_ids):
        photo = repo.get(photo_id)
        if photo.mark_ordered(order_id, at=at):
            newly_bound.append(photo_id)
        repo.add(photo)

    logger.info(
        "Photos bound to order",
        order_id=str(order_id),
        newly_bound=len(newly_bound),
    )
    return newly_bound


def _start_schedule(buffer_days, now) -> RetentionSchedule:
    if buffer_days is None:
        buffer_days = settings.RETENTION_BUFFER_DAYS
    now = now or datetime.now(UTC)
    return RetentionSchedule(scheduled_for=now + timedelta(days=buffer_days))


def _live_photos(repo, photo_ids: Iterable, order_id):
    for photo_id in _distinct(photo_ids):
        try:
            photo = repo.get(photo_id)
        except ObjectNotFoundError:
            logger.warning("Ordered photo is missing, nothing to schedule", photo_id=photo_id, order_id=str(order_id))
            continue
        if not photo.is_deleted:
            yield photo_id, photo


def _schedule(repo, photo, schedule: RetentionSchedule, order_id):
    photo.schedule_deletion(schedule.scheduled_for, order_id=order_id)
    repo.add(photo)
    schedule.scheduled.append(str(photo.id))
    schedule.storage_to_free += photo.file_size or 0


def schedule_order_photos(
    photo_ids: Iterable,
    order_id,
    is_active_order: Callable[[str], bool],
    buffer_days: int | None = None,
    now=None,
) -> RetentionSchedule:
    """Mark the order's photos for deletion once the retention buffer passes.

    Photos referenced by another order for which ``is_active_order`` is true
    are reported as retained and keep their current flags.
    """
    schedule = _start_schedule(buffer_days, now)
    repo = current_domain.repository_for(Photo)

    for photo_id, photo in _live_photos(repo, photo_ids, order_id):
        still_needed_by = [oid for oid in photo.order_ids if oid != str(order_id) and is_active_order(oid)]
        if still_needed_by:
            schedule.retained.append(photo_id)
            logger.info(
                "Photo retained for other active orders",
                photo_id=photo_id,
                order_id=str(order_id),
                active_orders=still_needed_by,
            )
            continue
        _schedule(repo, photo, schedule, order_id)

    logger.info(
        "Photo deletion scheduled",
        order_id=str(order_id),
        scheduled=len(schedule.scheduled),
        retained=len(schedule.retained),
        scheduled_for=schedule.scheduled_for.isoformat(),
    )
    return schedule


def release_cancelled_order_photos(
    photo_ids: Iterable,
    order_id,
    is_active_order: Callable[[str], bool],
    is_completed_order: Callable[[str], bool],
    buffer_days: int | None = None,
    now=None,
) -> RetentionSchedule:
    """Schedule photos a cancelled order was the last to hold back.

    A photo qualifies when every other order referencing it is terminal and
    at least one of them completed. Photos only ever seen by cancelled orders
    stay bound and are not scheduled.
    """
    schedule = _start_schedule(buffer_days, now)
    repo = current_domain.repository_for(Photo)

    for photo_id, photo in _live_photos(repo, photo_ids, order_id):
        if photo.is_pending_deletion:
            continue
        others = [oid for oid in photo.order_ids if oid != str(order_id)]
        if any(is_active_order(oid) for oid in others):
            schedule.retained.append(photo_id)
            continue
        if any(is_completed_order(oid) for oid in others):
            _schedule(repo, photo, schedule, order_id)

    if schedule.scheduled:
        logger.info(
            "Photos released by cancelled order",
            order_id=str(order_id),
            scheduled=len(schedule.scheduled),
            scheduled_for=schedule.scheduled_for.isoformat(),
        )
    return schedule


@printshop.command(part_of="Photo")
class MarkPhotosOrdered:
    photo_ids = Text(required=True)  # JSON array of photo ids
    order_id = Identifier(required=True)


@printshop.command_handler(part_of=Photo)
class PhotoRetentionHandler:
    @handle(MarkPhotosOrdered)
    def mark_photos_ordered(self, command):
        photo_ids = json.loads(command.photo_ids) if isinstance(command.photo_ids, str) else command.photo_ids
        return bind_photos_to_order(photo_ids, command.order_id)
