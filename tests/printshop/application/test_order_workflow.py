"""Application tests for the administrator fulfillment workflow and photo retention."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from printshop.order.cleanup import RecordOrderPhotoCleanup
from printshop.order.completion import CompleteOrder
from printshop.order.order import Order
from printshop.order.status import UpdateOrderStatus
from printshop.photo.management import RecordPhotoPurged
from printshop.photo.photo import Photo
from printshop.photo.retention import MarkPhotosOrdered, schedule_order_photos
from printshop.shared.clock import as_naive_utc
from printshop.shared.errors import BusinessRuleError, InvalidTransition, PhotoInUse, StaleRevision


def _update(order_id, status, notes=None, expected_revision=None):
    return current_domain.process(
        UpdateOrderStatus(
            order_id=order_id,
            status=status,
            admin_id="admin-1",
            notes=notes,
            expected_revision=expected_revision,
        ),
        asynchronous=False,
    )


def _advance_to_printed(order_id):
    for status in ("payment_verified", "processing", "printed"):
        _update(order_id, status)


def _complete(order_id, **fields):
    return current_domain.process(CompleteOrder(order_id=order_id, admin_id="admin-1", **fields), asynchronous=False)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestStatusUpdates:
    def test_happy_path(self, placed_order):
        order_id = placed_order["order_id"]

        result = _update(order_id, "payment_verified", notes="Card cleared")
        assert result == {"order_id": order_id, "status": "payment_verified", "revision": 1}

        order = _order(order_id)
        assert order.payment_status == "verified"
        assert order.payment_verified_by == "admin-1"
        assert order.notes[0].endswith("admin-1: Card cleared")

    def test_invalid_transition(self, placed_order):
        with pytest.raises(InvalidTransition) as exc:
            _update(placed_order["order_id"], "shipped")
        assert exc.value.messages["status"] == ["Cannot transition from pending to shipped"]
        assert _order(placed_order["order_id"]).status == "pending"

    def test_unknown_status(self, placed_order):
        with pytest.raises(ValidationError) as exc:
            _update(placed_order["order_id"], "lost")
        assert exc.value.messages["status"] == ["Unknown order status: lost"]

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _update("missing-order", "processing")

    def test_stale_revision_is_refused(self, placed_order):
        order_id = placed_order["order_id"]
        _update(order_id, "payment_verified", expected_revision=0)

        with pytest.raises(StaleRevision):
            _update(order_id, "processing", expected_revision=0)

        assert _order(order_id).status == "payment_verified"

    def test_cancel_keeps_photo_bindings(self, placed_order):
        order_id = placed_order["order_id"]
        _update(order_id, "cancelled")

        photos = current_domain.repository_for(Photo)
        for photo_id in _order(order_id).photo_ids:
            photo = photos.get(photo_id)
            assert photo.is_ordered is True
            assert photo.is_pending_deletion is False


class TestCompletion:
    def test_complete_schedules_photos(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        before = datetime.now(UTC)

        summary = _complete(order_id, tracking_number="1Z999", notes="Handed over")

        assert summary["status"] == "completed"
        assert summary["photos_scheduled_for_deletion"] == 2
        assert summary["photos_retained"] == 0
        assert summary["estimated_storage_to_free"] == 5_000_000
        scheduled_for = datetime.fromisoformat(summary["deletion_scheduled_for"])
        assert abs((scheduled_for - (before + timedelta(days=7))).total_seconds()) < 5

        order = _order(order_id)
        assert order.tracking_number == "1Z999"
        assert order.notes[-1].endswith("admin-1: COMPLETED - Handed over")
        assert order.photos_cleaned_up is False

        for photo_id in order.photo_ids:
            photo = current_domain.repository_for(Photo).get(photo_id)
            assert photo.is_pending_deletion is True

    def test_complete_through_status_update(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)

        result = _update(order_id, "completed")

        assert result["status"] == "completed"
        assert result["photos_scheduled_for_deletion"] == 2

    def test_custom_retention_buffer(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        before = datetime.now(UTC)

        summary = _complete(order_id, buffer_days=0)

        scheduled_for = datetime.fromisoformat(summary["deletion_scheduled_for"])
        assert abs((scheduled_for - before).total_seconds()) < 5

    def test_complete_before_printing_is_refused(self, placed_order):
        with pytest.raises(InvalidTransition):
            _complete(placed_order["order_id"])

    def test_complete_twice(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        _complete(order_id)

        with pytest.raises(InvalidTransition) as exc:
            _complete(order_id)
        assert exc.value.messages["status"] == ["Order is already completed"]

    def test_stale_completion(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        with pytest.raises(StaleRevision):
            _complete(order_id, expected_revision=1)


class TestRetention:
    def test_photo_shared_with_an_active_order_is_retained(
        self, print_sizes, register_photo, fill_cart, checkout
    ):
        shared = register_photo(filename="shared.jpg", file_size=1000)
        fill_cart("cust-001", shared, [{"size_code": "4x6", "quantity": 1}])
        first = checkout()["order_id"]
        fill_cart("cust-001", shared, [{"size_code": "5x7", "quantity": 1}])
        second = checkout()["order_id"]

        _advance_to_printed(first)
        summary = _complete(first)

        assert summary["photos_scheduled_for_deletion"] == 0
        assert summary["photos_retained"] == 1
        photo = current_domain.repository_for(Photo).get(shared)
        assert photo.is_pending_deletion is False
        assert photo.order_ids == [first, second]

        _advance_to_printed(second)
        summary = _complete(second)
        assert summary["photos_scheduled_for_deletion"] == 1

    def test_photo_shared_with_a_cancelled_order_is_scheduled(
        self, print_sizes, register_photo, fill_cart, checkout
    ):
        shared = register_photo(filename="shared.jpg", file_size=1000)
        fill_cart("cust-001", shared, [{"size_code": "4x6", "quantity": 1}])
        first = checkout()["order_id"]
        fill_cart("cust-001", shared, [{"size_code": "5x7", "quantity": 1}])
        second = checkout()["order_id"]
        _update(second, "cancelled")

        _advance_to_printed(first)
        summary = _complete(first)

        assert summary["photos_scheduled_for_deletion"] == 1

    def test_cancelling_the_last_holder_schedules_a_retained_photo(
        self, print_sizes, register_photo, fill_cart, checkout
    ):
        shared = register_photo(filename="shared.jpg", file_size=1000)
        fill_cart("cust-001", shared, [{"size_code": "4x6", "quantity": 1}])
        first = checkout()["order_id"]
        fill_cart("cust-001", shared, [{"size_code": "5x7", "quantity": 1}])
        second = checkout()["order_id"]

        _advance_to_printed(first)
        assert _complete(first, buffer_days=0)["photos_retained"] == 1

        _update(second, "cancelled")

        photos = current_domain.repository_for(Photo)
        photo = photos.get(shared)
        assert photo.is_pending_deletion is True
        assert photo.deletion_scheduled_for is not None
        due = photos.due_for_cleanup(before=datetime.now(UTC) + timedelta(days=8))
        assert [str(p.id) for p in due] == [shared]

    def test_cancelling_with_another_order_still_active_keeps_the_photo(
        self, print_sizes, register_photo, fill_cart, checkout
    ):
        shared = register_photo(filename="shared.jpg", file_size=1000)
        orders = []
        for size_code in ("4x6", "5x7", "8x10"):
            fill_cart("cust-001", shared, [{"size_code": size_code, "quantity": 1}])
            orders.append(checkout()["order_id"])
        first, second, third = orders

        _advance_to_printed(first)
        _complete(first)
        _update(second, "cancelled")

        assert current_domain.repository_for(Photo).get(shared).is_pending_deletion is False

        _update(third, "cancelled")
        assert current_domain.repository_for(Photo).get(shared).is_pending_deletion is True


class TestCleanupQueue:
    def test_due_photos_and_purge(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        _complete(order_id, buffer_days=7)

        photos = current_domain.repository_for(Photo)
        assert photos.due_for_cleanup() == []

        later = datetime.now(UTC) + timedelta(days=8)
        due = photos.due_for_cleanup(before=later)
        assert len(due) == 2

        freed = sum(
            current_domain.process(RecordPhotoPurged(photo_id=str(photo.id)), asynchronous=False) for photo in due
        )
        assert freed == 5_000_000
        assert photos.due_for_cleanup(before=later) == []

        current_domain.process(
            RecordOrderPhotoCleanup(order_id=order_id, photos_deleted=2, storage_freed=freed),
            asynchronous=False,
        )
        order = _order(order_id)
        assert order.photos_cleaned_up is True
        assert order.photos_deleted == 2
        assert order.storage_freed == 5_000_000

    def test_queue_is_sorted_by_schedule(self, placed_order):
        order_id = placed_order["order_id"]
        _advance_to_printed(order_id)
        _complete(order_id, buffer_days=0)

        due = current_domain.repository_for(Photo).due_for_cleanup(before=datetime.now(UTC) + timedelta(seconds=1))
        stamps = [as_naive_utc(photo.deletion_scheduled_for) for photo in due]
        assert stamps == sorted(stamps)

    def test_purging_an_unscheduled_photo(self, register_photo):
        photo_id = register_photo()
        with pytest.raises(BusinessRuleError):
            current_domain.process(RecordPhotoPurged(photo_id=photo_id), asynchronous=False)

    def test_cleanup_record_needs_completed_order(self, placed_order):
        with pytest.raises(InvalidTransition):
            current_domain.process(
                RecordOrderPhotoCleanup(order_id=placed_order["order_id"], photos_deleted=0, storage_freed=0),
                asynchronous=False,
            )

    def test_ordering_again_takes_a_photo_out_of_the_queue(self, placed_order, fill_cart, checkout):
        first = placed_order["order_id"]
        photo_id = _order(first).photo_ids[0]
        _advance_to_printed(first)
        _complete(first, buffer_days=0)

        fill_cart("cust-001", photo_id, [{"size_code": "4x6", "quantity": 3}])
        second = checkout()["order_id"]

        photos = current_domain.repository_for(Photo)
        photo = photos.get(photo_id)
        assert photo.is_pending_deletion is False
        assert photo.deletion_scheduled_for is None
        assert photo.order_ids == [first, second]

        due = photos.due_for_cleanup(before=datetime.now(UTC) + timedelta(days=1))
        assert photo_id not in [str(p.id) for p in due]
        with pytest.raises(BusinessRuleError):
            current_domain.process(RecordPhotoPurged(photo_id=photo_id), asynchronous=False)

    def test_photo_of_an_active_order_is_never_offered_or_purged(
        self, print_sizes, register_photo, fill_cart, checkout
    ):
        shared = register_photo(filename="shared.jpg", file_size=1000)
        fill_cart("cust-001", shared, [{"size_code": "4x6", "quantity": 1}])
        first = checkout()["order_id"]
        fill_cart("cust-001", shared, [{"size_code": "5x7", "quantity": 1}])
        checkout()

        # Force a schedule that ignores the second, still pending, order
        schedule_order_photos([shared], first, is_active_order=lambda _: False, buffer_days=0)

        photos = current_domain.repository_for(Photo)
        assert photos.get(shared).is_pending_deletion is True
        assert photos.due_for_cleanup(before=datetime.now(UTC) + timedelta(days=1)) == []

        with pytest.raises(PhotoInUse):
            current_domain.process(RecordPhotoPurged(photo_id=shared), asynchronous=False)
        assert photos.get(shared).is_deleted is False


class TestPhotoBindings:
    def test_mark_photos_ordered_is_idempotent(self, placed_order):
        order_id = placed_order["order_id"]
        photo_ids = _order(order_id).photo_ids

        newly_bound = current_domain.process(
            MarkPhotosOrdered(photo_ids=json.dumps(photo_ids), order_id=order_id),
            asynchronous=False,
        )

        assert newly_bound == []
        for photo_id in photo_ids:
            assert current_domain.repository_for(Photo).get(photo_id).order_ids == [order_id]

    def test_active_orders_for_photo(self, placed_order):
        order_id = placed_order["order_id"]
        photo_id = _order(order_id).photo_ids[0]
        orders = current_domain.repository_for(Order)

        assert [o.id for o in orders.active_for_photo(photo_id)] == [order_id]

        _update(order_id, "cancelled")
        assert orders.active_for_photo(photo_id) == []
