"""Tests for Order placement, frozen pricing, notes, revisions and cleanup records."""

import re
from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError

from printshop.order.events import OrderCompleted, OrderPhotoCleanupRecorded, OrderPlaced
from printshop.order.order import Order, OrderStatus, freeze_item
from printshop.shared.errors import InvalidTransition, StaleRevision

ADDRESS = {
    "full_name": "Ada Lovelace",
    "street_line1": "12 Main St",
    "city": "Boston",
    "state": "MA",
    "postal_code": "02101",
}

ITEMS = [
    {
        "photo_id": "photo-001",
        "photo_filename": "beach.jpg",
        "photo_file_size": 2000,
        "print_selections": [
            {"size_code": "4x6", "size_name": "4x6 Print", "quantity": 10, "unit_price": 0.29},
            {"size_code": "5x7", "size_name": "5x7 Print", "quantity": 2, "unit_price": 0.49},
        ],
    },
    {
        "photo_id": "photo-002",
        "photo_filename": "hike.jpg",
        "photo_file_size": 3000,
        "print_selections": [{"size_code": "8x10", "size_name": "8x10 Print", "quantity": 1, "unit_price": 2.99}],
    },
]


def _place(**overrides):
    fields = {
        "order_number": "ORD-2026-0000001",
        "customer_id": "cust-001",
        "items_data": ITEMS,
        "shipping_address": ADDRESS,
        "pricing": {"subtotal": 6.87, "tax_rate": 0.0625, "tax_amount": 0.429375, "total": 7.299375},
        "payment": {"payment_method": "credit_card", "card_last_four": "4242", "cardholder_name": "Ada"},
    }
    fields.update(overrides)
    return Order.place(**fields)


def _printed(order):
    for status in (OrderStatus.PAYMENT_VERIFIED, OrderStatus.PROCESSING, OrderStatus.PRINTED):
        order.transition_to(status, "admin-1")
    order._events.clear()
    return order


class TestPlacement:
    def test_new_order_is_pending(self):
        order = _place()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == "pending"
        assert order.revision == 0
        assert order.notes == []
        assert order.photos_cleaned_up is False

    def test_items_are_frozen_with_subtotals(self):
        order = _place()
        first = next(i for i in order.items if i.photo_id == "photo-001")

        assert first.photo_total == 3.88
        assert [s["subtotal"] for s in first.selections] == [2.9, 0.98]

    def test_photo_ids_are_distinct(self):
        assert sorted(_place().photo_ids) == ["photo-001", "photo-002"]

    def test_placed_event(self):
        order = _place()
        events = [e for e in order._events if isinstance(e, OrderPlaced)]
        assert len(events) == 1
        assert events[0].order_number == "ORD-2026-0000001"
        assert events[0].photo_count == 2
        assert events[0].total == 7.299375

    def test_unbalanced_pricing_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _place(pricing={"subtotal": 10.0, "tax_rate": 0.1, "tax_amount": 1.0, "total": 12.0})
        assert "pricing" in exc.value.messages

    def test_state_longer_than_two_letters_is_rejected(self):
        with pytest.raises(ValidationError):
            _place(shipping_address={**ADDRESS, "state": "MASS"})

    def test_country_defaults_to_usa(self):
        assert _place().shipping_address.country == "USA"


class TestFreezeItem:
    def test_subtotal_is_exact_decimal_product(self):
        item = freeze_item(
            {
                "photo_id": "p",
                "print_selections": [{"size_code": "4x6", "quantity": 3, "unit_price": 0.1}],
            }
        )
        assert item.selections[0]["subtotal"] == 0.3
        assert item.photo_total == 0.3

    def test_missing_file_size_defaults_to_zero(self):
        item = freeze_item({"photo_id": "p", "print_selections": []})
        assert item.photo_file_size == 0
        assert item.photo_total == 0.0


class TestRevision:
    def test_matching_revision_passes(self):
        order = _place()
        order.check_revision(0)
        order.check_revision(None)

    def test_stale_revision(self):
        order = _place()
        order.transition_to(OrderStatus.PAYMENT_VERIFIED, "admin-1")
        with pytest.raises(StaleRevision) as exc:
            order.check_revision(0)
        assert "revision 1" in exc.value.messages["revision"][0]


class TestNotes:
    def test_note_format(self):
        order = _place()
        order.transition_to(OrderStatus.PAYMENT_VERIFIED, "admin-1", notes="Card checked")
        assert re.fullmatch(r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}\] admin-1: Card checked", order.notes[0])

    def test_notes_accumulate_in_order(self):
        order = _place()
        order.transition_to(OrderStatus.PAYMENT_VERIFIED, "admin-1", notes="first")
        order.transition_to(OrderStatus.PROCESSING, "admin-2", notes="second")
        assert [n.split("] ")[1] for n in order.notes] == ["admin-1: first", "admin-2: second"]

    def test_no_note_without_text(self):
        order = _place()
        order.transition_to(OrderStatus.PAYMENT_VERIFIED, "admin-1")
        assert order.notes == []


class TestCompletion:
    def test_complete_from_printed(self):
        order = _printed(_place())
        shipped = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        order.complete("admin-9", shipped_at=shipped, tracking_number="1Z999", notes="Picked up")

        assert order.status == OrderStatus.COMPLETED.value
        assert order.completed_at is not None
        assert order.tracking_number == "1Z999"
        assert order.notes[-1].endswith("admin-9: COMPLETED - Picked up")
        assert order.photos_cleaned_up is False
        assert any(isinstance(e, OrderCompleted) for e in order._events)

    def test_complete_from_shipped(self):
        order = _printed(_place())
        order.transition_to(OrderStatus.SHIPPED, "admin-1")
        order.complete("admin-1")
        assert order.status == OrderStatus.COMPLETED.value

    def test_completion_bumps_revision_once(self):
        order = _printed(_place())
        revision = order.revision
        order.complete("admin-1")
        assert order.revision == revision + 1


class TestPhotoCleanupRecord:
    def test_record_on_completed_order(self):
        order = _printed(_place())
        order.complete("admin-1")
        order.record_photo_cleanup(photos_deleted=2, storage_freed=5000)

        assert order.photos_cleaned_up is True
        assert order.photos_deleted == 2
        assert order.storage_freed == 5000
        assert order.photo_cleanup_date is not None
        assert any(isinstance(e, OrderPhotoCleanupRecorded) for e in order._events)

    def test_record_refused_before_completion(self):
        order = _printed(_place())
        with pytest.raises(InvalidTransition):
            order.record_photo_cleanup(photos_deleted=1, storage_freed=10)
