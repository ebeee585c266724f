"""Application tests for converting a cart into an order."""

import re
from datetime import UTC, datetime

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from printshop.cart.cart import ShoppingCart
from printshop.catalogue.management import ChangePrintSizePrice
from printshop.order.order import Order, OrderStatus
from printshop.photo.management import DeletePhoto
from printshop.photo.photo import Photo
from printshop.shared.errors import PhotoInUse


def _orders():
    return current_domain.repository_for(Order).for_customer("cust-001")


@pytest.fixture()
def beach_in_cart(print_sizes, register_photo, fill_cart):
    photo_id = register_photo(filename="beach.jpg", file_size=2_000_000)
    fill_cart("cust-001", photo_id, [{"size_code": "4x6", "quantity": 10}, {"size_code": "5x7", "quantity": 2}])
    return photo_id


class TestCheckout:
    def test_massachusetts_order_totals(self, beach_in_cart, checkout):
        receipt = checkout()

        assert receipt["subtotal"] == 3.88
        assert receipt["tax_rate"] == 0.0625
        assert receipt["tax_amount"] == 0.2425
        assert receipt["total"] == 4.1225
        assert receipt["status"] == OrderStatus.PENDING.value
        assert receipt["payment_status"] == "pending"
        assert receipt["order_number"] == f"ORD-{datetime.now(UTC).year}-0000001"

    def test_order_copies_cart_items(self, beach_in_cart, checkout):
        receipt = checkout()
        order = current_domain.repository_for(Order).get(receipt["order_id"])

        assert order.photo_ids == [beach_in_cart]
        item = order.items[0]
        assert item.photo_filename == "beach.jpg"
        assert item.photo_total == 3.88
        assert [(s["size_code"], s["quantity"], s["unit_price"], s["subtotal"]) for s in item.selections] == [
            ("4x6", 10, 0.29, 2.9),
            ("5x7", 2, 0.49, 0.98),
        ]
        assert order.card_last_four == "4242"
        assert order.shipping_address.state == "MA"

    def test_cart_is_emptied(self, beach_in_cart, checkout):
        checkout()
        cart = current_domain.repository_for(ShoppingCart).find_for_customer("cust-001")
        assert len(cart.items) == 0
        assert cart.summary.subtotal == 0.0

    def test_photos_are_bound_to_the_order(self, beach_in_cart, checkout):
        receipt = checkout()
        photo = current_domain.repository_for(Photo).get(beach_in_cart)

        assert photo.is_ordered is True
        assert photo.order_ids == [receipt["order_id"]]
        with pytest.raises(PhotoInUse):
            current_domain.process(DeletePhoto(photo_id=beach_in_cart, owner_id="cust-001"), asynchronous=False)

    def test_consecutive_orders_get_consecutive_numbers(self, print_sizes, register_photo, fill_cart, checkout):
        numbers = []
        for name in ("a.jpg", "b.jpg"):
            fill_cart("cust-001", register_photo(filename=name), [{"size_code": "4x6", "quantity": 1}])
            numbers.append(checkout()["order_number"])

        assert [int(n.rsplit("-", 1)[1]) for n in numbers] == [1, 2]

    def test_state_is_normalized(self, beach_in_cart, checkout):
        address = {
            "full_name": "Ada",
            "street_line1": "1 Elm",
            "city": "Albany",
            "state": "ny",
            "postal_code": "12207",
        }
        receipt = checkout(address=address)
        assert receipt["tax_rate"] == 0.04


class TestLockedPrices:
    def test_price_change_after_checkout_leaves_order_alone(self, beach_in_cart, checkout):
        receipt = checkout()
        current_domain.process(ChangePrintSizePrice(size_code="4x6", base_price=0.99), asynchronous=False)

        order = current_domain.repository_for(Order).get(receipt["order_id"])
        assert order.pricing.subtotal == 3.88
        assert order.pricing.total == 4.1225
        assert order.items[0].selections[0]["unit_price"] == 0.29


class TestRejectedCheckout:
    def test_empty_cart(self, checkout):
        with pytest.raises(ValidationError) as exc:
            checkout()
        assert exc.value.messages["cart"] == ["Shopping cart is empty"]
        assert _orders() == []

    def test_missing_state(self, beach_in_cart, checkout):
        with pytest.raises(ValidationError):
            checkout(address={"full_name": "Ada", "street_line1": "1 Elm", "city": "X", "postal_code": "1"})
        assert _orders() == []

    def test_bad_card_details(self, beach_in_cart, checkout):
        with pytest.raises(ValidationError):
            checkout(payment_method="credit_card", card_last_four="42", cardholder_name="Ada")
        assert _orders() == []
        cart = current_domain.repository_for(ShoppingCart).find_for_customer("cust-001")
        assert len(cart.items) == 1

    def test_photo_deleted_after_adding_to_cart(self, beach_in_cart, checkout):
        current_domain.process(DeletePhoto(photo_id=beach_in_cart, owner_id="cust-001"), asynchronous=False)

        with pytest.raises(ValidationError) as exc:
            checkout()

        assert exc.value.messages["cart"] == ["Photo beach.jpg is no longer available"]
        assert _orders() == []
        cart = current_domain.repository_for(ShoppingCart).find_for_customer("cust-001")
        assert len(cart.items) == 1


class TestBranchPayment:
    def test_reference_number_issued(self, beach_in_cart, checkout):
        receipt = checkout(payment_method="branch_payment", preferred_branch="Downtown")

        assert receipt["payment_method"] == "branch_payment"
        assert re.fullmatch(rf"BP-{datetime.now(UTC).year}-\d{{7}}", receipt["payment_reference"])


class TestIdempotentCheckout:
    def test_retry_with_same_key_returns_same_order(self, beach_in_cart, checkout):
        first = checkout(checkout_key="key-123")
        second = checkout(checkout_key="key-123")

        assert second["order_id"] == first["order_id"]
        assert len(_orders()) == 1

    def test_new_key_needs_a_filled_cart(self, beach_in_cart, checkout):
        checkout(checkout_key="key-123")
        with pytest.raises(ValidationError):
            checkout(checkout_key="key-456")


class TestTaxResolution:
    def test_state_without_rate_uses_default(self, beach_in_cart, checkout, tax_rates):
        tax_rates.configure(default=0.05)
        address = {"full_name": "A", "street_line1": "1 Rd", "city": "Austin", "state": "TX", "postal_code": "73301"}

        receipt = checkout(address=address)

        assert receipt["tax_rate"] == 0.05
        assert receipt["tax_amount"] == 0.194

    def test_unreachable_rates_fall_back(self, beach_in_cart, checkout, tax_rates):
        tax_rates.configure(reachable=False)
        address = {"full_name": "A", "street_line1": "1 Rd", "city": "Albany", "state": "NY", "postal_code": "12207"}

        receipt = checkout(address=address)

        assert receipt["tax_rate"] == 0.0625
        assert receipt["total"] == 4.1225
